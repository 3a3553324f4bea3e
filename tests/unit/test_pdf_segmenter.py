"""
Unit tests for PDF page splitting.
"""
import io

import pytest
from PyPDF2 import PdfReader

from lecture_qa.core.exceptions import DocumentError, UserInputError
from lecture_qa.engine.pdf_segmenter import split_pdf


class TestSplitPdf:

    def test_one_document_per_page(self, pdf_factory):
        pages = split_pdf(pdf_factory(3))

        assert len(pages) == 3
        assert [p.page_number for p in pages] == [1, 2, 3]
        for page in pages:
            assert len(PdfReader(io.BytesIO(page.data)).pages) == 1

    def test_page_filenames(self, pdf_factory):
        pages = split_pdf(pdf_factory(2))
        assert [p.filename for p in pages] == ["page1.pdf", "page2.pdf"]

    def test_single_page_document(self, pdf_factory):
        assert len(split_pdf(pdf_factory(1))) == 1

    def test_garbage_bytes_raise_document_error(self):
        with pytest.raises(DocumentError):
            split_pdf(b"this is definitely not a pdf file")

    def test_empty_upload_raises_document_error(self):
        with pytest.raises(DocumentError):
            split_pdf(b"")

    def test_document_error_is_user_input_error(self):
        with pytest.raises(UserInputError):
            split_pdf(b"")
