"""Application settings loaded from environment variables.

Environment Configuration:
    READLISTEN_ENV: Deployment environment (local | test | staging | prod)
    DATABASE_URL: PostgreSQL connection string (required)

Redis / Celery Configuration:
    REDIS_URL: Redis connection string (required for worker)
    CELERY_BROKER_URL: Celery broker URL (defaults to REDIS_URL)
    CELERY_RESULT_BACKEND: Celery result backend URL (defaults to REDIS_URL)

Auth Configuration (required in all environments):
    SUPABASE_JWT_SECRET: Shared HS256 secret used to sign Supabase access tokens

Storage Configuration:
    SUPABASE_URL / SUPABASE_SERVICE_KEY: Supabase Storage credentials
    STORAGE_BUCKET: Bucket holding generated audio
    STORAGE_PUBLIC: "true" when the bucket is public (stable URLs, no signing)
    SIGNED_URL_EXPIRY_S: Validity of signed download URLs

Speech Configuration:
    OPENAI_API_KEY, OPENAI_BASE_URL, TTS_MODEL, TTS_VOICE, TTS_FORMAT, TTS_TIMEOUT_S

Storage and speech credentials are required in staging/prod only; local and
test environments fall back to in-memory fakes.
"""

from enum import Enum
from functools import lru_cache
from typing import Annotated

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


# Content types for supported synthesis formats
AUDIO_CONTENT_TYPES: dict[str, str] = {
    "aac": "audio/aac",
    "mp3": "audio/mpeg",
    "opus": "audio/opus",
    "wav": "audio/wav",
    "flac": "audio/flac",
}


class Settings(BaseSettings):
    """Application configuration.

    Settings are loaded from environment variables.
    Validation rules:
    - DATABASE_URL and SUPABASE_JWT_SECRET are always required
    - OPENAI_API_KEY, SUPABASE_URL, SUPABASE_SERVICE_KEY are required in staging and prod
    - TTS_FORMAT must be one of the supported audio formats
    """

    readlisten_env: Environment = Field(default=Environment.LOCAL, alias="READLISTEN_ENV")
    database_url: Annotated[str, Field(alias="DATABASE_URL")]

    # Redis / Celery settings
    redis_url: str | None = Field(default=None, alias="REDIS_URL")
    celery_broker_url: str | None = Field(default=None, alias="CELERY_BROKER_URL")
    celery_result_backend: str | None = Field(default=None, alias="CELERY_RESULT_BACKEND")

    # Credential verification
    supabase_jwt_secret: str | None = Field(default=None, alias="SUPABASE_JWT_SECRET")

    # Supabase Storage settings
    supabase_url: str | None = Field(default=None, alias="SUPABASE_URL")
    supabase_service_key: str | None = Field(default=None, alias="SUPABASE_SERVICE_KEY")
    storage_bucket: str = Field(default="listening-audio", alias="STORAGE_BUCKET")
    storage_public: bool = Field(default=False, alias="STORAGE_PUBLIC")
    signed_url_expiry_s: int = Field(default=3600, alias="SIGNED_URL_EXPIRY_S", gt=0)

    # Token ledger
    min_tokens_required: int = Field(default=7, alias="MIN_TOKENS_REQUIRED", ge=0)
    default_free_tokens: int = Field(default=0, alias="DEFAULT_FREE_TOKENS", ge=0)

    # Speech synthesis gateway
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_base_url: str = Field(default="https://api.openai.com/v1", alias="OPENAI_BASE_URL")
    tts_model: str = Field(default="gpt-4o-mini-tts", alias="TTS_MODEL")
    tts_voice: str = Field(default="coral", alias="TTS_VOICE")
    tts_format: str = Field(default="aac", alias="TTS_FORMAT")
    tts_timeout_s: int = Field(default=120, alias="TTS_TIMEOUT_S", gt=0)

    # Browser origins allowed to call the job endpoints (comma-separated)
    cors_allowed_origins: str = Field(
        default="https://llm-crl.netlify.com,http://localhost:5173",
        alias="CORS_ALLOWED_ORIGINS",
    )

    # Orphaned lock sweep
    audio_lock_stale_s: int = Field(default=900, alias="AUDIO_LOCK_STALE_S", gt=0)
    audio_lock_sweep_interval_s: int = Field(
        default=300, alias="AUDIO_LOCK_SWEEP_INTERVAL_S", gt=0
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Ensure required settings are set for the configured environment."""
        if not self.supabase_jwt_secret:
            raise ValueError(
                "Missing required auth setting: SUPABASE_JWT_SECRET. "
                "Copy it from the Supabase project settings (API > JWT secret)."
            )

        if self.tts_format not in AUDIO_CONTENT_TYPES:
            raise ValueError(
                f"TTS_FORMAT must be one of {', '.join(sorted(AUDIO_CONTENT_TYPES))}, "
                f"got {self.tts_format!r}"
            )

        if self.readlisten_env in (Environment.STAGING, Environment.PROD):
            missing = []
            if not self.openai_api_key:
                missing.append("OPENAI_API_KEY")
            if not self.supabase_url:
                missing.append("SUPABASE_URL")
            if not self.supabase_service_key:
                missing.append("SUPABASE_SERVICE_KEY")
            if missing:
                raise ValueError(
                    f"{', '.join(missing)} required for "
                    f"READLISTEN_ENV={self.readlisten_env.value}"
                )

        return self

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]

    @property
    def audio_extension(self) -> str:
        """File extension for synthesized audio."""
        return self.tts_format

    @property
    def audio_content_type(self) -> str:
        """Content type for synthesized audio."""
        return AUDIO_CONTENT_TYPES[self.tts_format]

    @property
    def effective_celery_broker_url(self) -> str | None:
        """Return Celery broker URL, falling back to REDIS_URL if not set."""
        return self.celery_broker_url or self.redis_url

    @property
    def effective_celery_result_backend(self) -> str | None:
        """Return Celery result backend URL, falling back to REDIS_URL if not set."""
        return self.celery_result_backend or self.redis_url


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
