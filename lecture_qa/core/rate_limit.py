"""
Rate Limiting Module

Rate limiting with slowapi. The upload endpoint is the expensive one
(OCR plus one LLM call per question) and gets its own stricter limit.
Returns HTTP 429 with a Retry-After header when a limit is exceeded.
"""
import logging

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from lecture_qa.core.config import settings
from lecture_qa.core.security import extract_token
from lecture_qa.models.schemas import RateLimitResponse

logger = logging.getLogger(__name__)


def get_client_identifier(request: Request) -> str:
    """
    Get unique client identifier for rate limiting.
    Uses the session token if present, otherwise the remote address.
    """
    token = extract_token(request)
    if token:
        return f"token:{token[-12:]}"
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[f"{settings.rate_limit_requests}/{settings.rate_limit_window_seconds}seconds"],
    enabled=settings.rate_limit_enabled,
)


def _retry_after_seconds(exc: RateLimitExceeded) -> int:
    """Best effort read of the window length from the slowapi limit."""
    limit = getattr(exc, "limit", None)
    item = getattr(limit, "limit", None)
    if item is not None:
        try:
            return int(item.get_expiry())
        except (AttributeError, TypeError, ValueError):
            pass
    return settings.rate_limit_window_seconds


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Return HTTP 429 with a Retry-After header."""
    retry_after = _retry_after_seconds(exc)

    logger.warning(
        f"Rate limit exceeded for {get_client_identifier(request)}: {exc.detail}"
    )

    response = RateLimitResponse(
        error="rate_limited",
        message=f"Rate limit exceeded. Try again in {retry_after} seconds.",
        retry_after=retry_after,
    )

    return JSONResponse(
        status_code=429,
        content=response.model_dump(mode="json"),
        headers={"Retry-After": str(retry_after)},
    )


# Stricter limit for the OCR + answering pipeline
upload_rate_limit = limiter.limit(settings.upload_rate_limit)
