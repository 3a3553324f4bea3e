"""
Chat History Repository.

CRUD operations for lecture conversations. The chat endpoint appends the
user message before retrieval and the AI message once streaming finishes;
the history endpoints read and delete whole conversations.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from lecture_qa.models.database import Base, ChatMessageModel, ConversationModel
from lecture_qa.models.schemas import MessageType

logger = logging.getLogger(__name__)


@dataclass
class ChatMessage:
    """Chat message data class."""
    type: str  # 'user' or 'ai'
    message: str


@dataclass
class Conversation:
    """Conversation data class."""
    id: int
    user_id: str
    lecture_id: str
    messages: List[ChatMessage] = field(default_factory=list)


def _to_conversation(model: ConversationModel) -> Conversation:
    return Conversation(
        id=model.id,
        user_id=model.user_id,
        lecture_id=model.lecture_id,
        messages=[ChatMessage(type=m.type, message=m.message) for m in model.messages],
    )


class ChatHistoryRepository:
    """
    Repository for chat history operations.

    Uses the shared engine unless a session factory is injected (tests pass
    one bound to an in-memory SQLite engine). Database errors propagate to
    the caller.
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        if session_factory is None:
            from lecture_qa.core.database import get_shared_session_factory
            session_factory = get_shared_session_factory()
        self._session_factory = session_factory

    def ensure_tables(self):
        """Create tables if they don't exist."""
        with self._session_factory() as session:
            Base.metadata.create_all(session.get_bind())
        logger.info("Chat history tables created/verified")

    def _find(self, session: Session, user_id: str, lecture_id: str) -> Optional[ConversationModel]:
        stmt = (
            select(ConversationModel)
            .where(
                ConversationModel.user_id == user_id,
                ConversationModel.lecture_id == lecture_id,
            )
            .options(selectinload(ConversationModel.messages))
        )
        return session.execute(stmt).scalar_one_or_none()

    def get_conversation(self, user_id: str, lecture_id: str) -> Optional[Conversation]:
        """Return the conversation for (user, lecture) or None."""
        with self._session_factory() as session:
            model = self._find(session, user_id, lecture_id)
            return _to_conversation(model) if model else None

    def get_or_create(self, user_id: str, lecture_id: str) -> Conversation:
        """
        Get the conversation for (user, lecture), creating an empty one.

        A concurrent insert of the same pair is resolved by re-reading.
        """
        with self._session_factory() as session:
            model = self._find(session, user_id, lecture_id)
            if model:
                return _to_conversation(model)

            session.add(ConversationModel(user_id=user_id, lecture_id=lecture_id))
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                logger.debug(f"Conversation for {user_id}/{lecture_id} created concurrently")

            model = self._find(session, user_id, lecture_id)
            logger.info(f"Created conversation for user {user_id}, lecture {lecture_id}")
            return _to_conversation(model)

    def append_message(self, conversation_id: int, message_type: MessageType, message: str) -> ChatMessage:
        """Append a message to a conversation."""
        with self._session_factory() as session:
            session.add(
                ChatMessageModel(
                    conversation_id=conversation_id,
                    type=message_type.value,
                    message=message,
                )
            )
            session.commit()
        return ChatMessage(type=message_type.value, message=message)

    def delete_conversation(self, user_id: str, lecture_id: str) -> bool:
        """Delete the conversation for (user, lecture). Returns True if one existed."""
        with self._session_factory() as session:
            model = self._find(session, user_id, lecture_id)
            if model is None:
                return False
            session.delete(model)
            session.commit()
        logger.info(f"Deleted conversation for user {user_id}, lecture {lecture_id}")
        return True
