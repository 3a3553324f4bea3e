"""
Pydantic Schemas for API Request/Response

Wire names follow the existing web clients (camelCase: ``lectureId``,
``totalQuestions``...). Python attributes stay snake_case and are mapped
with aliases; responses are dumped with ``by_alias=True``.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Get current UTC time (timezone-aware)"""
    return datetime.now(timezone.utc)


class MessageType(str, Enum):
    """Author of a stored chat message"""
    USER = "user"
    AI = "ai"


# =============================================================================
# Upload Pipeline Schemas
# =============================================================================

class QuestionResultSchema(BaseModel):
    """One extracted question with its best match and generated answer"""
    model_config = ConfigDict(populate_by_name=True)

    question: str = Field(..., description="Cleaned question text")
    lecture_name: str = Field(..., serialization_alias="lectureName", description="Best matching lecture")
    score: float = Field(default=0.0, description="Similarity score of the best match, 0 when unmatched")
    metadata: Optional[dict[str, Any]] = Field(default=None, description="Metadata of the best match")
    answer: str = Field(..., description="Generated answer or a human-readable error")


class ProcessPdfResponse(BaseModel):
    """Response of POST /api/process-pdf"""
    success: bool = Field(default=True)
    total_questions: int = Field(..., serialization_alias="totalQuestions")
    matched_questions: int = Field(..., serialization_alias="matchedQuestions")
    results: list[QuestionResultSchema] = Field(default_factory=list)

    model_config = {
        "json_schema_extra": {
            "example": {
                "success": True,
                "totalQuestions": 1,
                "matchedQuestions": 1,
                "results": [
                    {
                        "question": "What is a stack data structure and where is it used?",
                        "lectureName": "Lecture 4 - Stacks",
                        "score": 0.87,
                        "metadata": {"lectureName": "Lecture 4 - Stacks", "lectureId": "L4"},
                        "answer": "A stack is a LIFO collection...",
                    }
                ],
            }
        }
    }


class PipelineErrorResponse(BaseModel):
    """Error body of the upload endpoint; unset fields are omitted"""
    error: str = Field(..., description="Human-readable error")
    details: Optional[str] = Field(default=None, description="Underlying error message")
    extracted_text: Optional[str] = Field(
        default=None,
        serialization_alias="extractedText",
        description="OCR output, returned for diagnostics",
    )


# =============================================================================
# Chat History Schemas
# =============================================================================

class ChatHistoryRequest(BaseModel):
    """Body of the conversation history endpoints"""
    model_config = ConfigDict(populate_by_name=True)

    lecture_id: str = Field(..., min_length=1, alias="lectureId", description="Lecture identifier")


class ChatMessageSchema(BaseModel):
    """One stored chat message"""
    type: MessageType
    message: str


class ConversationSchema(BaseModel):
    """A stored conversation for one user and lecture"""
    user_id: str = Field(..., serialization_alias="userId")
    lecture_id: str = Field(..., serialization_alias="lectureId")
    messages: list[ChatMessageSchema] = Field(default_factory=list)


class ChatHistoryResponse(BaseModel):
    """Response of POST /api/chats/ (empty list when no conversation exists)"""
    chat: list[ConversationSchema] = Field(default_factory=list)


class DeleteHistoryResponse(BaseModel):
    """Response of POST /api/chats/delete"""
    success: bool = Field(default=True)
    deleted: bool = Field(..., description="Whether a conversation existed and was removed")


# =============================================================================
# Health Check Schemas
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response"""
    status: str = Field(default="ok", description="Overall system status")


# =============================================================================
# Error Response Schemas
# =============================================================================

class ErrorDetail(BaseModel):
    """Detail of a validation or processing error"""
    field: Optional[str] = Field(default=None, description="Field that caused the error")
    message: str = Field(..., description="Error message")
    code: Optional[str] = Field(default=None, description="Error code")


class ErrorResponse(BaseModel):
    """Standard error response format"""
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[list[ErrorDetail]] = Field(default=None, description="Error details")
    timestamp: datetime = Field(default_factory=utc_now, description="Error timestamp")


class RateLimitResponse(BaseModel):
    """Rate limit exceeded response"""
    error: str = Field(default="rate_limited", description="Error type")
    message: str = Field(default="Rate limit exceeded", description="Error message")
    retry_after: int = Field(..., description="Seconds until rate limit resets")
