"""
Chat Service - lecture-scoped streaming chat.

Flow per request:
1. Load or create the (user, lecture) conversation
2. Persist the user message
3. Retrieve lecture context (single query, lecture filter, fallback)
4. Stream the Gemini answer fragment by fragment
5. Persist the full AI message once the stream is exhausted

``stream_reply`` is an async generator; step 5 runs before the generator
finishes, so the caller's ``done`` event always follows persistence.
"""
import logging
from typing import AsyncIterator, Optional

from lecture_qa.core.config import settings
from lecture_qa.models.schemas import MessageType
from lecture_qa.prompts import build_chat_prompt, format_history
from lecture_qa.repositories.chat_history_repository import ChatHistoryRepository, Conversation
from lecture_qa.services.answer_service import AnswerService, get_answer_service
from lecture_qa.services.retrieval_service import (
    RetrievalService,
    build_context,
    get_retrieval_service,
)

logger = logging.getLogger(__name__)


class ChatService:
    """Orchestrates history, retrieval and streaming generation."""

    def __init__(
        self,
        repository: Optional[ChatHistoryRepository] = None,
        retrieval: Optional[RetrievalService] = None,
        answers: Optional[AnswerService] = None,
    ):
        self._repository = repository
        self._retrieval = retrieval
        self._answers = answers

    @property
    def repository(self) -> ChatHistoryRepository:
        if self._repository is None:
            self._repository = ChatHistoryRepository()
        return self._repository

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

    async def stream_reply(
        self,
        user_id: str,
        lecture_id: str,
        prompt: str,
        model: Optional[str] = None,
    ) -> AsyncIterator[str]:
        """
        Answer a chat prompt as a stream of text fragments.

        Raises whatever persistence or the LLM raises; nothing is swallowed.
        """
        conversation = self.repository.get_or_create(user_id, lecture_id)
        user_message = self.repository.append_message(conversation.id, MessageType.USER, prompt)
        history = format_history([*conversation.messages, user_message])

        outcome = await self.retrieval.search(prompt, top_k=settings.chat_top_k, lecture_id=lecture_id)
        if outcome.error:
            logger.warning(f"[STREAM] Retrieval degraded for lecture {lecture_id}: {outcome.error}")
        elif not outcome.matches:
            logger.warning(f"[STREAM] No retrieval matches for lecture {lecture_id}")

        context = build_context(outcome.matches)
        logger.info(f"[STREAM] Retrieved context length: {len(context)}")

        full_prompt = build_chat_prompt(history, prompt, context)

        parts = []
        async for fragment in self.answers.stream_answer(full_prompt, model=model):
            parts.append(fragment)
            yield fragment

        answer = "".join(parts)
        self.repository.append_message(conversation.id, MessageType.AI, answer)
        logger.info(f"[STREAM] Stored AI reply ({len(answer)} chars) for user {user_id}")

    def get_history(self, user_id: str, lecture_id: str) -> Optional[Conversation]:
        """Stored conversation for (user, lecture), or None."""
        return self.repository.get_conversation(user_id, lecture_id)

    def delete_history(self, user_id: str, lecture_id: str) -> bool:
        """Delete the conversation; True if one existed."""
        return self.repository.delete_conversation(user_id, lecture_id)


# Singleton
_chat_service: Optional[ChatService] = None


def get_chat_service() -> ChatService:
    """Get or create the ChatService singleton."""
    global _chat_service
    if _chat_service is None:
        _chat_service = ChatService()
    return _chat_service
