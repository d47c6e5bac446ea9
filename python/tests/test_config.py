"""Tests for application configuration."""

import pytest
from pydantic import ValidationError

from readlisten.config import Environment, Settings


def _make_settings(**overrides) -> Settings:
    """Build a Settings instance with test defaults + overrides."""
    defaults = {
        "DATABASE_URL": "postgresql+psycopg://localhost/test",
        "READLISTEN_ENV": "test",
        "SUPABASE_JWT_SECRET": "secret",
    }
    defaults.update(overrides)
    return Settings(**defaults)


class TestDefaults:
    def test_defaults(self):
        s = _make_settings()
        assert s.readlisten_env is Environment.TEST
        assert s.min_tokens_required == 7
        assert s.signed_url_expiry_s == 3600
        assert s.storage_bucket == "listening-audio"
        assert s.storage_public is False
        assert s.tts_model == "gpt-4o-mini-tts"
        assert s.tts_voice == "coral"
        assert s.audio_extension == "aac"
        assert s.audio_content_type == "audio/aac"

    def test_mp3_format(self):
        s = _make_settings(TTS_FORMAT="mp3")
        assert s.audio_extension == "mp3"
        assert s.audio_content_type == "audio/mpeg"

    def test_cors_origin_list(self):
        s = _make_settings(CORS_ALLOWED_ORIGINS=" https://a.test , ,http://localhost:5173")
        assert s.cors_origin_list == ["https://a.test", "http://localhost:5173"]

    def test_celery_urls_fall_back_to_redis(self):
        s = _make_settings(REDIS_URL="redis://localhost:6379/0")
        assert s.effective_celery_broker_url == "redis://localhost:6379/0"
        assert s.effective_celery_result_backend == "redis://localhost:6379/0"

    def test_explicit_celery_urls_win(self):
        s = _make_settings(
            REDIS_URL="redis://localhost:6379/0", CELERY_BROKER_URL="redis://broker:6379/1"
        )
        assert s.effective_celery_broker_url == "redis://broker:6379/1"


class TestValidation:
    def test_jwt_secret_required(self, monkeypatch):
        monkeypatch.delenv("SUPABASE_JWT_SECRET", raising=False)
        with pytest.raises(ValidationError, match="SUPABASE_JWT_SECRET"):
            Settings(DATABASE_URL="sqlite://", READLISTEN_ENV="test")

    def test_unknown_tts_format_rejected(self):
        with pytest.raises(ValidationError, match="TTS_FORMAT"):
            _make_settings(TTS_FORMAT="ogg")

    def test_negative_token_minimum_rejected(self):
        with pytest.raises(ValidationError):
            _make_settings(MIN_TOKENS_REQUIRED=-1)

    @pytest.mark.parametrize("env", ["staging", "prod"])
    def test_deployed_envs_require_credentials(self, env):
        with pytest.raises(ValidationError) as exc_info:
            _make_settings(READLISTEN_ENV=env)
        message = str(exc_info.value)
        assert "OPENAI_API_KEY" in message
        assert "SUPABASE_URL" in message
        assert "SUPABASE_SERVICE_KEY" in message

    def test_prod_with_credentials(self):
        s = _make_settings(
            READLISTEN_ENV="prod",
            OPENAI_API_KEY="sk",
            SUPABASE_URL="https://proj.supabase.co",
            SUPABASE_SERVICE_KEY="service",
        )
        assert s.readlisten_env is Environment.PROD

    def test_storage_public_parses_bool(self):
        assert _make_settings(STORAGE_PUBLIC="true").storage_public is True
