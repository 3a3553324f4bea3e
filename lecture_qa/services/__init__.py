"""Service layer for the Lecture QA service."""

from lecture_qa.services.answer_service import AnswerService, get_answer_service
from lecture_qa.services.chat_service import ChatService, get_chat_service
from lecture_qa.services.question_pipeline import (
    PipelineResult,
    QuestionPipeline,
    QuestionResult,
    get_question_pipeline,
)
from lecture_qa.services.retrieval_service import (
    RetrievalOutcome,
    RetrievalService,
    build_context,
    get_retrieval_service,
)

__all__ = [
    "AnswerService",
    "get_answer_service",
    "ChatService",
    "get_chat_service",
    "PipelineResult",
    "QuestionPipeline",
    "QuestionResult",
    "get_question_pipeline",
    "RetrievalOutcome",
    "RetrievalService",
    "build_context",
    "get_retrieval_service",
]
