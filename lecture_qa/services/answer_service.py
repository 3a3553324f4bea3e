"""
Answer Service - Gemini answer generation.

Two modes:
- ``generate_answer``: one question, one call, never raises. Failures come
  back as a human-readable string that is shown in place of the answer.
- ``stream_answer``: async iterator over text fragments for the chat
  endpoint. Errors propagate; the caller turns them into an SSE error event.
"""
import asyncio
import logging
from typing import AsyncIterator, Optional

from lecture_qa.core.config import settings
from lecture_qa.engine.stream_chunks import coerce_chunk_text
from lecture_qa.prompts import build_answer_prompt

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "Error: Gemini API key is missing. Please set GOOGLE_API_KEY."
NO_ANSWER_MESSAGE = "No answer generated from Gemini"

STATUS_MESSAGES = {
    400: "Error: Invalid API request. Check your Gemini API key.",
    403: "Error: Gemini API access denied. Check API key permissions.",
    429: "Error: Gemini API rate limit exceeded. Please try again later.",
}


def error_message_for(exc: Exception) -> str:
    """Map an LLM call failure to the string shown to the user."""
    code = getattr(exc, "code", None)
    if code is None:
        code = getattr(exc, "status_code", None)
    if code in STATUS_MESSAGES:
        return STATUS_MESSAGES[code]
    if isinstance(exc, asyncio.TimeoutError):
        return "Error generating answer: request timed out"
    return f"Error generating answer: {getattr(exc, 'message', None) or exc}"


def _response_text(response) -> str:
    if response is None or not getattr(response, "candidates", None):
        return ""
    text = getattr(response, "text", None)
    return text if isinstance(text, str) else coerce_chunk_text(response)


class AnswerService:
    """Wraps the google-genai client for batch and streaming answers."""

    def __init__(self, client=None, api_key: Optional[str] = None):
        self._client = client
        self._api_key = api_key if api_key is not None else settings.google_api_key

    @property
    def configured(self) -> bool:
        return self._client is not None or bool(self._api_key)

    @property
    def client(self):
        """Lazy initialization of Google GenAI client."""
        if self._client is None:
            from google import genai
            self._client = genai.Client(api_key=self._api_key)
            logger.info("Initialized Gemini client")
        return self._client

    async def generate_answer(
        self,
        question: str,
        context: str = "",
        model: Optional[str] = None,
    ) -> str:
        """
        Answer one exam question, optionally grounded on lecture context.

        Returns:
            The answer text, or a user-facing error string
        """
        if not self.configured:
            logger.error("GOOGLE_API_KEY is not set")
            return MISSING_KEY_MESSAGE

        model_name = settings.resolve_model(model)
        prompt = build_answer_prompt(question, context)
        logger.info(f"[ANSWER] {model_name}: {question[:60]}...")

        try:
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(model=model_name, contents=prompt),
                timeout=settings.answer_timeout_seconds,
            )
        except Exception as e:
            logger.error(f"[ANSWER] Gemini call failed: {e}")
            return error_message_for(e)

        answer = _response_text(response)
        if not answer:
            logger.warning("[ANSWER] No candidates in Gemini response")
            return NO_ANSWER_MESSAGE

        logger.info(f"[ANSWER] Received {len(answer)} chars")
        return answer

    async def stream_answer(
        self,
        prompt: str,
        model: Optional[str] = None,
    ) -> AsyncIterator[str]:
        """
        Stream an answer as non-empty text fragments.

        Raises:
            RuntimeError: no API key configured
            Exception: whatever the Gemini client raises
        """
        if not self.configured:
            raise RuntimeError(MISSING_KEY_MESSAGE)

        model_name = settings.resolve_model(model)
        logger.info(f"[STREAM] Opening {model_name} stream ({len(prompt)} chars prompt)")

        stream = await self.client.aio.models.generate_content_stream(
            model=model_name,
            contents=prompt,
        )
        async for chunk in stream:
            text = coerce_chunk_text(chunk)
            if text:
                yield text


# Singleton
_answer_service: Optional[AnswerService] = None


def get_answer_service() -> AnswerService:
    """Get or create the AnswerService singleton."""
    global _answer_service
    if _answer_service is None:
        _answer_service = AnswerService()
    return _answer_service
