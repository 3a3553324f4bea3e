"""
OCR.space client.

Pages are OCR'd one at a time with a fixed pause between calls; the free
OCR.space tier rejects bursts. A failed page becomes an empty PageText with
the error attached, so one bad page never sinks the whole upload.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import httpx

from lecture_qa.core.config import settings
from lecture_qa.engine.pdf_segmenter import PageDocument

logger = logging.getLogger(__name__)


@dataclass
class PageText:
    """OCR outcome for one page."""
    page_number: int
    text: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class OcrReport:
    """Joined text of all pages plus per-page outcomes."""
    text: str
    pages: List[PageText] = field(default_factory=list)

    @property
    def failed_pages(self) -> List[int]:
        return [p.page_number for p in self.pages if not p.ok]


def join_page_texts(pages: Iterable[PageText]) -> str:
    """Concatenate page texts in order, each followed by a blank line."""
    return "".join(f"{p.text}\n\n" for p in pages)


class OcrSpaceClient:
    """
    Async client for the OCR.space parse endpoint.

    The underlying httpx.AsyncClient is created lazily; pass one in to
    control transport (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        endpoint: Optional[str] = None,
        page_delay: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key or settings.ocr_api_key
        self.endpoint = endpoint or settings.ocr_endpoint
        self.page_delay = settings.ocr_page_delay_seconds if page_delay is None else page_delay
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=settings.ocr_timeout_seconds)
        return self._client

    async def close(self):
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    def _form_fields(self) -> dict:
        return {
            "language": settings.ocr_language,
            "isOverlayRequired": "false",
            "detectOrientation": "true",
            "scale": "true",
            "OCREngine": str(settings.ocr_engine),
        }

    async def ocr_page(self, page: PageDocument) -> PageText:
        """
        OCR a single-page PDF.

        Never raises: transport errors, non-2xx responses, malformed JSON and
        OCR.space processing errors all return an empty PageText with error.
        """
        try:
            client = await self._get_client()
            response = await client.post(
                self.endpoint,
                data=self._form_fields(),
                files={"file": (page.filename, page.data, "application/pdf")},
                headers={"apikey": self.api_key},
                timeout=settings.ocr_timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException:
            logger.warning(f"[OCR] Page {page.page_number}: timeout")
            return PageText(page_number=page.page_number, error="OCR request timed out")
        except httpx.HTTPError as e:
            logger.warning(f"[OCR] Page {page.page_number}: {e}")
            return PageText(page_number=page.page_number, error=str(e))
        except ValueError as e:
            logger.warning(f"[OCR] Page {page.page_number}: invalid JSON response")
            return PageText(page_number=page.page_number, error=f"Invalid OCR response: {e}")
        except Exception as e:
            logger.error(f"[OCR] Page {page.page_number}: unexpected error: {e}")
            return PageText(page_number=page.page_number, error=f"OCR request failed: {e}")

        if not isinstance(payload, dict):
            return PageText(page_number=page.page_number, error="Invalid OCR response")

        if payload.get("IsErroredOnProcessing"):
            message = payload.get("ErrorMessage") or "OCR processing failed"
            if isinstance(message, list):
                message = "; ".join(str(m) for m in message)
            logger.warning(f"[OCR] Page {page.page_number}: {message}")
            return PageText(page_number=page.page_number, error=str(message))

        results = payload.get("ParsedResults") or []
        text = ""
        if results and isinstance(results[0], dict):
            text = results[0].get("ParsedText") or ""

        logger.info(f"[OCR] Page {page.page_number}: {len(text)} chars")
        return PageText(page_number=page.page_number, text=text)

    async def extract_text(self, pages: List[PageDocument]) -> OcrReport:
        """OCR pages sequentially, pausing between successive calls."""
        results: List[PageText] = []
        for index, page in enumerate(pages):
            if index > 0 and self.page_delay > 0:
                await asyncio.sleep(self.page_delay)
            results.append(await self.ocr_page(page))

        report = OcrReport(text=join_page_texts(results), pages=results)
        if report.failed_pages:
            logger.warning(f"[OCR] Failed pages: {report.failed_pages}")
        logger.info(f"[OCR] Extracted {len(report.text)} chars from {len(pages)} page(s)")
        return report
