"""
Question Pipeline - exam paper upload orchestration.

PDF bytes -> single pages -> OCR text -> questions -> for each question:
best matching lecture chunk + Gemini answer.

Everything runs sequentially. Each question is isolated: a failure while
answering one question is recorded in its result and the loop continues.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from lecture_qa.core.config import settings
from lecture_qa.core.exceptions import UserInputError
from lecture_qa.engine.ocr_client import OcrReport, OcrSpaceClient
from lecture_qa.engine.pdf_segmenter import split_pdf
from lecture_qa.engine.question_extractor import extract_questions
from lecture_qa.services.answer_service import AnswerService, get_answer_service
from lecture_qa.services.retrieval_service import (
    RetrievalService,
    build_context,
    get_retrieval_service,
)

logger = logging.getLogger(__name__)

UNKNOWN_LECTURE = "Unknown Lecture"
NO_QUESTIONS_TEXT_LIMIT = 2000


@dataclass
class QuestionResult:
    """Answer and best lecture match for one extracted question."""
    question: str
    lecture_name: str = UNKNOWN_LECTURE
    score: float = 0.0
    metadata: Optional[Dict[str, Any]] = None
    answer: str = ""
    error: Optional[str] = None


@dataclass
class PipelineResult:
    """Outcome of a processed upload."""
    text: str
    questions: List[str]
    results: List[QuestionResult] = field(default_factory=list)
    failed_pages: List[int] = field(default_factory=list)

    @property
    def total_questions(self) -> int:
        return len(self.results)

    @property
    def matched_questions(self) -> int:
        return sum(1 for r in self.results if r.score > 0)


class QuestionPipeline:
    """Runs an uploaded exam paper through OCR, extraction and answering."""

    def __init__(
        self,
        ocr_client: Optional[OcrSpaceClient] = None,
        retrieval: Optional[RetrievalService] = None,
        answers: Optional[AnswerService] = None,
    ):
        self._ocr = ocr_client
        self._retrieval = retrieval
        self._answers = answers

    @property
    def ocr(self) -> OcrSpaceClient:
        if self._ocr is None:
            self._ocr = OcrSpaceClient()
        return self._ocr

    @property
    def retrieval(self) -> RetrievalService:
        if self._retrieval is None:
            self._retrieval = get_retrieval_service()
        return self._retrieval

    @property
    def answers(self) -> AnswerService:
        if self._answers is None:
            self._answers = get_answer_service()
        return self._answers

    async def extract_text(self, data: bytes) -> OcrReport:
        """Split the PDF and OCR every page."""
        pages = split_pdf(data)
        return await self.ocr.extract_text(pages)

    async def answer_question(self, question: str) -> QuestionResult:
        """Find the best matching lecture chunk and answer the question."""
        outcome = await self.retrieval.search(question, top_k=settings.upload_top_k)

        result = QuestionResult(question=question, error=outcome.error)
        context = ""
        best = outcome.best
        if best is not None:
            result.lecture_name = best.label or UNKNOWN_LECTURE
            result.score = best.score or 0.0
            result.metadata = best.metadata
            context = build_context([best])
            logger.info(f"[PIPELINE]   -> {result.lecture_name} ({result.score * 100:.1f}%)")
        else:
            logger.info("[PIPELINE]   -> no match in index")

        result.answer = await self.answers.generate_answer(question, context)
        return result

    async def process(self, data: bytes) -> PipelineResult:
        """
        Process an uploaded exam paper.

        Raises:
            DocumentError: the upload is not a readable PDF
            UserInputError: too little text, or no questions found
        """
        report = await self.extract_text(data)
        text = report.text
        logger.info(f"[PIPELINE] First 500 chars:\n{text[:500]}")

        if len(text) < settings.min_extracted_text_length:
            raise UserInputError("Could not extract text from PDF", extracted_text=text)

        questions = extract_questions(text)
        logger.info(f"[PIPELINE] Found {len(questions)} question(s)")
        if not questions:
            raise UserInputError("No questions found", extracted_text=text[:NO_QUESTIONS_TEXT_LIMIT])

        result = PipelineResult(text=text, questions=questions, failed_pages=report.failed_pages)
        for index, question in enumerate(questions, start=1):
            logger.info(f"[PIPELINE] [{index}/{len(questions)}] {question[:60]}...")
            try:
                result.results.append(await self.answer_question(question))
            except Exception as e:
                logger.error(f"[PIPELINE] Question {index} failed: {e}")
                result.results.append(
                    QuestionResult(
                        question=question,
                        lecture_name="Error",
                        score=0.0,
                        metadata=None,
                        answer=f"Error: {e}",
                        error=str(e),
                    )
                )

        logger.info(
            f"[PIPELINE] Complete: matched {result.matched_questions}/{result.total_questions}"
        )
        return result


# Singleton
_question_pipeline: Optional[QuestionPipeline] = None


def get_question_pipeline() -> QuestionPipeline:
    """Get or create the QuestionPipeline singleton."""
    global _question_pipeline
    if _question_pipeline is None:
        _question_pipeline = QuestionPipeline()
    return _question_pipeline
