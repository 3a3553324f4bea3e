"""
Lecture Chat API - Server-Sent Events (SSE)

GET /chatbot/ask streams a retrieval-augmented answer scoped to one lecture.
It is a GET so the browser EventSource API can consume it; EventSource
cannot set headers, which is why the session token may come as a query
parameter.

Wire format:
- ``data: {"chunk": "..."}`` (unnamed event) per answer fragment
- ``event: done`` / ``data: {}`` once the answer is complete and stored
- ``event: error`` / ``data: {"error": "..."}`` if anything fails mid-stream

Authentication and parameter errors are plain HTTP 401/400 responses,
sent before the stream starts.

**Feature: lecture-chat**
"""

import json
import logging
from typing import AsyncGenerator, Optional

from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse

from lecture_qa.api.deps import ChatServiceDep, RequireAuth
from lecture_qa.core.exceptions import UserInputError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Chat"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse(event: Optional[str], data: dict) -> str:
    """Format data as Server-Sent Event. ``event=None`` gives an unnamed message."""
    payload = f"data: {json.dumps(data, ensure_ascii=False)}\n\n"
    if event is None:
        return payload
    return f"event: {event}\n{payload}"


@router.get("/chatbot/ask")
async def ask(
    auth: RequireAuth,
    chat_service: ChatServiceDep,
    prompt: Optional[str] = Query(default=None, description="Student question"),
    lecture_id: Optional[str] = Query(default=None, alias="lectureId", description="Lecture to ground on"),
    model: Optional[str] = Query(default=None, description="Gemini model; unknown names fall back to the default"),
):
    """Stream an answer to a lecture question."""
    if not prompt or not lecture_id:
        raise UserInputError("Prompt and lectureId are required")

    logger.info(f"[STREAM] User {auth.user_id} asks about lecture {lecture_id}: {prompt[:50]}...")

    async def generate_events() -> AsyncGenerator[str, None]:
        try:
            async for fragment in chat_service.stream_reply(
                user_id=auth.user_id,
                lecture_id=lecture_id,
                prompt=prompt,
                model=model,
            ):
                yield format_sse(None, {"chunk": fragment})

            yield format_sse("done", {})
            logger.info(f"[STREAM] Completed for user {auth.user_id}")

        except Exception as e:
            logger.exception(f"[STREAM] Error: {e}")
            yield format_sse("error", {"error": str(e) or e.__class__.__name__})

    return StreamingResponse(
        generate_events(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
