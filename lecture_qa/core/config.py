"""
Configuration Management using Pydantic Settings
Loads configuration from environment variables with validation
"""
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Lecture QA Service", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    environment: str = Field(default="development", description="Environment: development, staging, production")

    # API Settings
    api_prefix: str = Field(default="/api", description="API prefix")
    jwt_secret_key: str = Field(default="change-me-in-production", description="JWT secret key")
    jwt_algorithm: str = Field(default="HS256", description="JWT algorithm")
    jwt_expire_minutes: int = Field(default=60 * 24, description="JWT token expiration in minutes")

    # Rate Limiting
    rate_limit_enabled: bool = Field(default=True, description="Enable slowapi rate limiting")
    rate_limit_requests: int = Field(default=100, description="Max requests per window")
    rate_limit_window_seconds: int = Field(default=60, description="Rate limit window in seconds")
    upload_rate_limit: str = Field(default="10/minute", description="Rate limit for the PDF upload endpoint")

    # Database (chat history)
    database_url: str = Field(default="sqlite:///./lecture_qa.db", description="SQLAlchemy URL for chat history")

    # LLM Settings - Google Gemini
    google_api_key: Optional[str] = Field(default=None, description="Google Gemini API key")
    google_model: str = Field(default="gemini-2.5-flash", description="Default Gemini model")
    allowed_models: list[str] = Field(
        default=["gemini-2.5-flash", "gemini-2.0-flash", "gemini-1.5-flash"],
        description="Models a chat client may select",
    )
    answer_timeout_seconds: float = Field(default=30.0, description="Timeout for single-shot answers")

    # OCR (OCR.space)
    ocr_api_key: str = Field(default="helloworld", description="OCR.space API key")
    ocr_endpoint: str = Field(default="https://api.ocr.space/parse/image", description="OCR endpoint URL")
    ocr_language: str = Field(default="eng", description="OCR language hint")
    ocr_engine: int = Field(default=2, description="OCR.space engine variant")
    ocr_timeout_seconds: float = Field(default=60.0, description="Timeout per OCR request")
    ocr_page_delay_seconds: float = Field(default=1.0, description="Pause between successive page OCR calls")
    min_extracted_text_length: int = Field(default=50, description="Below this the upload is rejected as unreadable")

    # Vector Index (Pinecone)
    pinecone_api_key: Optional[str] = Field(default=None, description="Pinecone API key")
    pinecone_index: str = Field(default="testing", description="Pinecone index name")
    pinecone_namespace: str = Field(default="example-namespace", description="Pinecone namespace")
    pinecone_embed_model: str = Field(default="multilingual-e5-large", description="Pinecone hosted embedding model")

    # Embeddings
    embedding_backend: str = Field(default="local", description="Embedding backend: local, pinecone, gemini")
    local_embedding_model: str = Field(default="intfloat/multilingual-e5-large", description="sentence-transformers model")
    gemini_embedding_model: str = Field(default="models/gemini-embedding-001", description="Gemini embedding model")
    embedding_dimensions: int = Field(default=1024, description="Embedding vector dimensions")

    # Retrieval
    upload_top_k: int = Field(default=1, description="Matches per extracted question")
    chat_top_k: int = Field(default=5, description="Matches per chat prompt")
    retrieval_fallback_top_k: int = Field(default=50, description="Broad query size for the unfiltered fallback")
    snippet_max_chars: int = Field(default=2000, description="Cap per retrieved snippet")
    context_max_chars: int = Field(default=20000, description="Cap for the joined retrieval context")

    # Security
    cors_origins: list[str] = Field(default=["*"], description="CORS allowed origins")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        allowed = ["development", "staging", "production", "test"]
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v.upper()

    @field_validator("embedding_backend")
    @classmethod
    def validate_embedding_backend(cls, v: str) -> str:
        allowed = ["local", "pinecone", "gemini"]
        if v.lower() not in allowed:
            raise ValueError(f"embedding_backend must be one of {allowed}")
        return v.lower()

    def resolve_model(self, requested: Optional[str]) -> str:
        """Return the requested model if it is allowed, otherwise the default."""
        if requested and requested in self.allowed_models:
            return requested
        return self.google_model


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Export settings instance for convenience
settings = get_settings()
