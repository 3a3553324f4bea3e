"""
Stream chunk coercion.

Streaming LLM clients hand back fragments in several shapes depending on
SDK and version. ``coerce_chunk_text`` reduces any of them to plain text so
the SSE relay only ever deals with strings.
"""
import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

MAX_FALLBACK_LENGTH = 1000


def _get(obj: Any, key: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def _parts_text(parts: Any) -> str:
    if isinstance(parts, str):
        return parts
    if not isinstance(parts, (list, tuple)):
        return ""
    texts = []
    for part in parts:
        if isinstance(part, str):
            texts.append(part)
            continue
        text = _get(part, "text")
        if isinstance(text, str):
            texts.append(text)
    return "".join(texts)


def _candidates_text(candidates: Any) -> str:
    if not isinstance(candidates, (list, tuple)) or not candidates:
        return ""
    content = _get(candidates[0], "content")
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    return _parts_text(_get(content, "parts"))


def _is_sdk_response(chunk: Any) -> bool:
    if isinstance(chunk, dict):
        return False
    return hasattr(chunk, "candidates") or hasattr(chunk, "prompt_feedback")


def _fallback(chunk: Any) -> str:
    try:
        rendered = json.dumps(chunk, default=str)
    except (TypeError, ValueError):
        rendered = str(chunk)
    return rendered[:MAX_FALLBACK_LENGTH]


def coerce_chunk_text(chunk: Any) -> str:
    """
    Extract the text of one streamed fragment.

    Accepted shapes, in order: ``None``; plain strings; a ``text`` attribute
    or method; ``candidates[0].content.parts[*].text``; a ``content`` field
    holding a string or a list of parts. SDK responses without candidates
    give ``""``. Anything else is rendered as JSON (or ``str``) capped at
    1000 chars. Failures yield ``""``.
    """
    if chunk is None:
        return ""
    if isinstance(chunk, str):
        return chunk

    try:
        text = _get(chunk, "text")
        if callable(text):
            text = text()
        if isinstance(text, str):
            return text

        candidates = _get(chunk, "candidates")
        if candidates:
            return _candidates_text(candidates)
        if _is_sdk_response(chunk):
            # blocked prompt or usage-only chunk
            return ""

        content = _get(chunk, "content")
        if content is not None:
            if isinstance(content, str):
                return content
            if isinstance(content, (list, tuple)):
                return _parts_text(content)
            return _parts_text(_get(content, "parts"))

        return _fallback(chunk)
    except Exception as e:
        logger.warning(f"[STREAM] Could not extract chunk text: {e}")
        return ""
