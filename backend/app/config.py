"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "StudyNest"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "text"

    # Database
    # If database_url_override is set (e.g., for Neon with SSL), it takes precedence
    database_url_override: str | None = None
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "studynest"
    postgres_password: str = ""
    postgres_db: str = "studynest"

    @computed_field
    @property
    def database_url(self) -> str:
        """Get async database URL. Uses override if provided, otherwise constructs from parts."""
        if self.database_url_override:
            url = self.database_url_override
            # Replace scheme for async driver
            if url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            elif url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql+asyncpg://", 1)
            # asyncpg doesn't accept query params via URL, SSL goes through connect_args
            if url.startswith("postgresql+asyncpg://") and "?" in url:
                url = url.split("?")[0]
            return url
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    @computed_field
    @property
    def database_requires_ssl(self) -> bool:
        """Check if the database connection requires SSL (for Neon, etc.)."""
        if self.database_url_override:
            return "sslmode=require" in self.database_url_override or "ssl=require" in self.database_url_override
        return False

    @computed_field
    @property
    def database_url_sync(self) -> str:
        """Get sync database URL (for Alembic). Uses override if provided, otherwise constructs from parts."""
        if self.database_url_override:
            url = self.database_url_override
            if url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql://", 1)
            elif url.startswith("postgresql+asyncpg://"):
                url = url.replace("postgresql+asyncpg://", "postgresql://", 1)
            elif url.startswith("sqlite+aiosqlite://"):
                url = url.replace("sqlite+aiosqlite://", "sqlite://", 1)
            return url
        return f"postgresql://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    # Auth / JWT
    jwt_secret_key: str  # Required - no default, must be set in .env
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7  # 7 days

    # Google OAuth
    google_client_id: str

    # CORS
    cors_origins: list[str] = ["http://localhost:5173"]

    # Set to true when frontend and backend are on different domains
    cookie_cross_domain: bool = False

    # AWS S3 (file blobs)
    aws_access_key_id: str
    aws_secret_access_key: str
    aws_s3_bucket: str
    aws_s3_region: str = "us-east-2"
    aws_s3_endpoint_url: str | None = None  # Set for MinIO/LocalStack (e.g. http://localhost:9000)
    max_upload_size_bytes: int = 50 * 1024 * 1024  # 50MB
    presigned_url_expiration_seconds: int = 300
    download_url_expiration_seconds: int = 3600

    # Anthropic API
    anthropic_api_key: str
    llm_model: str = "claude-sonnet-4-20250514"
    llm_max_tokens: int = 1024

    # AI chat
    ai_memory_window: int = 20  # entries kept in the per-user memory transcript
    file_context_max_chars: int = 10000

    # Deferred jobs
    scheduler_enabled: bool = True
    scheduler_poll_interval_seconds: float = 1.0
    scheduler_lease_seconds: int = 300
    scheduler_batch_size: int = 10

    # Study groups
    group_messages_page_size: int = 50
    serial_number_length: int = 8
    serial_number_max_attempts: int = 5

    # Dashboard: IANA zone for "today"/"this week" windows, server zone when unset
    dashboard_timezone: str | None = None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def sanitize_error(error: Exception, *, generic_message: str = "An internal error occurred.") -> str:
    """
    Return a user-safe error message.

    In development, returns the full exception string for debugging.
    In staging/production, returns a generic message to avoid leaking internals.
    """
    settings = get_settings()
    if settings.environment == "development":
        return str(error)
    return generic_message
