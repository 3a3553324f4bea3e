"""
Conversation History API

POST /chats/        -> stored conversation for the caller and a lecture
POST /chats/delete  -> remove it

Both take ``{"lectureId": "..."}`` and act on the authenticated user only.
"""
import logging

from fastapi import APIRouter

from lecture_qa.api.deps import ChatServiceDep, RequireAuth
from lecture_qa.models.schemas import (
    ChatHistoryRequest,
    ChatHistoryResponse,
    ChatMessageSchema,
    ConversationSchema,
    DeleteHistoryResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chats", tags=["Chat History"])


@router.post("/", response_model=ChatHistoryResponse, response_model_by_alias=True)
async def get_chat_history(
    body: ChatHistoryRequest,
    auth: RequireAuth,
    chat_service: ChatServiceDep,
) -> ChatHistoryResponse:
    """Return the conversation as a one-element list (empty when none)."""
    conversation = chat_service.get_history(auth.user_id, body.lecture_id)
    if conversation is None:
        return ChatHistoryResponse(chat=[])

    return ChatHistoryResponse(
        chat=[
            ConversationSchema(
                user_id=conversation.user_id,
                lecture_id=conversation.lecture_id,
                messages=[
                    ChatMessageSchema(type=m.type, message=m.message)
                    for m in conversation.messages
                ],
            )
        ]
    )


@router.post("/delete", response_model=DeleteHistoryResponse)
async def delete_chat_history(
    body: ChatHistoryRequest,
    auth: RequireAuth,
    chat_service: ChatServiceDep,
) -> DeleteHistoryResponse:
    """Delete the caller's conversation for a lecture."""
    deleted = chat_service.delete_history(auth.user_id, body.lecture_id)
    logger.info(f"Delete history user={auth.user_id} lecture={body.lecture_id}: {deleted}")
    return DeleteHistoryResponse(success=True, deleted=deleted)
