"""
Application configuration using Pydantic Settings.

Everything the service needs from the environment (Mongo, JWT, OpenAI,
reconciliation timing) lives here. The lifespan calls validate_for_startup()
so a missing API key fails at boot instead of on the first upload.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "PDF Document Assistant API"
    debug: bool = False
    cors_origins: str = "http://localhost:3000"  # comma-separated

    # MongoDB - Motor (async driver) connection string
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_database: str = "pdf_assistant"

    # JWT validation for the bearer tokens issued at sign-in
    jwt_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"

    # Uploads
    max_upload_size_mb: int = 50

    # OpenAI - files, vector stores and the file_search assistant
    openai_api_key: Optional[str] = None
    openai_assistant_id: Optional[str] = None
    default_model_id: str = "o3-mini"
    answer_instructions: Optional[str] = None

    # Status reconciliation
    processing_timeout_minutes: float = 5.0
    status_sweep_interval_minutes: float = 1.0
    status_sweep_concurrency: int = 4

    # Answer-job polling (server-side wait)
    result_poll_initial_interval_seconds: float = 1.0
    result_poll_max_interval_seconds: float = 8.0
    result_poll_max_attempts: int = 30

    @field_validator("jwt_secret", "openai_api_key", "openai_assistant_id", mode="before")
    @classmethod
    def strip_secret(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not isinstance(v, str):
            return v
        return v.strip() or None

    @field_validator(
        "processing_timeout_minutes",
        "status_sweep_interval_minutes",
        "status_sweep_concurrency",
        "result_poll_initial_interval_seconds",
        "result_poll_max_interval_seconds",
        "result_poll_max_attempts",
        "max_upload_size_mb",
    )
    @classmethod
    def must_be_positive(cls, v):
        if v <= 0:
            raise ValueError("must be a positive number")
        return v

    @property
    def cors_origin_list(self) -> List[str]:
        return [s.strip() for s in self.cors_origins.split(",") if s.strip()]

    def validate_for_startup(self) -> None:
        """Raise ValueError naming every required setting that is missing."""
        missing = []
        if not self.openai_api_key:
            missing.append("OPENAI_API_KEY")
        if not self.openai_assistant_id:
            missing.append("OPENAI_ASSISTANT_ID")
        if missing:
            raise ValueError(f"Missing required settings: {', '.join(missing)}")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings instance.
    Using lru_cache avoids re-reading .env on every request.
    """
    return Settings()
