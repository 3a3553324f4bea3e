"""
API Dependencies - Dependency Injection for FastAPI

Authentication plus the service singletons used by the routes. Tests swap
services through ``app.dependency_overrides``.
"""
from typing import Annotated

from fastapi import Depends

from lecture_qa.core.security import AuthenticatedUser, require_auth
from lecture_qa.services.chat_service import ChatService, get_chat_service
from lecture_qa.services.question_pipeline import QuestionPipeline, get_question_pipeline


# =============================================================================
# Authentication Dependencies
# =============================================================================

# Require a valid session JWT (query token, Authorization or x-access-token)
RequireAuth = Annotated[AuthenticatedUser, Depends(require_auth)]


# =============================================================================
# Service Dependencies
# =============================================================================

PipelineDep = Annotated[QuestionPipeline, Depends(get_question_pipeline)]

ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
