"""
PDF Segmenter.

Splits an uploaded exam paper into single-page PDFs so each page can be
sent to the OCR endpoint on its own.
"""

import io
import logging
from dataclasses import dataclass
from typing import List

from PyPDF2 import PdfReader, PdfWriter

from lecture_qa.core.exceptions import DocumentError

logger = logging.getLogger(__name__)


@dataclass
class PageDocument:
    """A one-page PDF cut out of the uploaded document."""
    page_number: int  # 1-based
    data: bytes

    @property
    def filename(self) -> str:
        return f"page{self.page_number}.pdf"


def _open(data: bytes) -> PdfReader:
    if not data:
        raise DocumentError("Empty upload is not a PDF")

    try:
        reader = PdfReader(io.BytesIO(data))
        if reader.is_encrypted:
            # Owner-password-only files open with an empty user password
            reader.decrypt("")
        # Touch the page tree so broken files fail here, not mid-loop
        len(reader.pages)
    except DocumentError:
        raise
    except Exception as e:
        logger.warning(f"[PDF] Could not parse upload: {e}")
        raise DocumentError(str(e)) from e

    return reader


def split_pdf(data: bytes) -> List[PageDocument]:
    """
    Split a PDF into ordered single-page PDF buffers.

    Args:
        data: Raw bytes of the uploaded PDF

    Returns:
        One PageDocument per page, in page order

    Raises:
        DocumentError: the bytes cannot be parsed as a PDF
    """
    reader = _open(data)
    pages: List[PageDocument] = []

    try:
        for index, page in enumerate(reader.pages):
            writer = PdfWriter()
            writer.add_page(page)
            buffer = io.BytesIO()
            writer.write(buffer)
            page_bytes = buffer.getvalue()
            pages.append(PageDocument(page_number=index + 1, data=page_bytes))
            logger.debug(f"[PDF] Page {index + 1}: {len(page_bytes)} bytes")
    except Exception as e:
        logger.warning(f"[PDF] Failed while splitting pages: {e}")
        raise DocumentError(str(e)) from e

    logger.info(f"[PDF] Split document into {len(pages)} page(s)")
    return pages
