"""
Lecture QA Service - FastAPI Application Entry Point

Exam paper answering (PDF -> OCR -> questions -> retrieval -> Gemini) and
lecture-scoped streaming chat.
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from lecture_qa.core.config import settings
from lecture_qa.core.exceptions import AuthenticationError, UserInputError
from lecture_qa.core.rate_limit import limiter, rate_limit_exceeded_handler
from lecture_qa.models.schemas import ErrorDetail, ErrorResponse

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Startup checks only warn; a missing key or an unreachable database
    must not keep the service from starting.
    """
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Embedding backend: {settings.embedding_backend}")

    try:
        from lecture_qa.repositories.chat_history_repository import ChatHistoryRepository
        ChatHistoryRepository().ensure_tables()
        logger.info("✅ Chat history database: Available")
    except Exception as e:
        logger.warning(f"⚠️ Chat history database unavailable: {e} (service will continue)")

    if not settings.google_api_key:
        logger.warning("⚠️ GOOGLE_API_KEY is not set: answers will carry an error message")
    if not settings.pinecone_api_key:
        logger.warning("⚠️ PINECONE_API_KEY is not set: retrieval will return no matches")

    logger.info(f"🚀 {settings.app_name} started successfully")

    yield

    logger.info(f"Shutting down {settings.app_name}...")

    try:
        from lecture_qa.core.database import close_shared_engine
        close_shared_engine()
    except Exception as e:
        logger.error(f"❌ Failed to close shared database engine: {e}")

    logger.info("👋 Shutdown complete")


def create_application() -> FastAPI:
    """
    Application factory pattern.
    Creates and configures the FastAPI application.
    """
    app = FastAPI(
        title=settings.app_name,
        description="Exam paper answering and lecture chat over a Pinecone lecture index",
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # The browser extension calls from arbitrary page origins
    allow_all = settings.cors_origins == ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=not allow_all,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Configure Rate Limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # Register exception handlers
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(AuthenticationError, authentication_exception_handler)
    app.add_exception_handler(UserInputError, user_input_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # Include API routers
    from lecture_qa.api.v1 import router as api_router
    app.include_router(api_router, prefix=settings.api_prefix)

    return app


# =============================================================================
# Exception Handlers
# =============================================================================

async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return HTTP 400 with per-field error details."""
    errors = [
        ErrorDetail(
            field=".".join(str(loc) for loc in error["loc"]),
            message=error["msg"],
            code=error["type"],
        )
        for error in exc.errors()
    ]

    response = ErrorResponse(
        error="validation_error",
        message="Request validation failed",
        details=errors,
    )

    logger.warning(f"Validation error: {response.model_dump_json()}")

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=response.model_dump(mode="json"),
    )


async def authentication_exception_handler(
    request: Request, exc: AuthenticationError
) -> JSONResponse:
    """Return HTTP 401 with the authentication failure message."""
    logger.info(f"Authentication failed on {request.url.path}: {exc.message}")
    response = ErrorResponse(error="unauthorized", message=exc.message)
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content=response.model_dump(mode="json"),
    )


async def user_input_exception_handler(
    request: Request, exc: UserInputError
) -> JSONResponse:
    """Return HTTP 400 for requests the service cannot act on."""
    response = ErrorResponse(error="bad_request", message=exc.message)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=response.model_dump(mode="json"),
    )


async def general_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Return HTTP 500; the message is only exposed in debug mode."""
    logger.exception(f"Unexpected error: {exc}")

    response = ErrorResponse(
        error="internal_error",
        message="An unexpected error occurred" if not settings.debug else str(exc),
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=response.model_dump(mode="json"),
    )


# Create application instance
app = create_application()


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint - service information"""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
