# kafkaspectre/core/config.py
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Process-wide settings loaded from environment variables (and .env).

    Notes
    -----
    - Everything here tunes the Kafka client; audit defaults such as the
      bootstrap server or exclusion patterns come from CLI flags and the
      `.kafkaspectre.yaml` file instead.
    - SASL credentials may be supplied here so they stay off the command line:
        KAFKASPECTRE_SASL_USERNAME=svc KAFKASPECTRE_SASL_PASSWORD=...
    """
    model_config = SettingsConfigDict(
        env_prefix="KAFKASPECTRE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ---------- Kafka client/admin ----------
    client_id: str = "kafkaspectre"
    api_version: str | None = None

    # Client timeouts (ms)
    request_timeout_ms: int = Field(default=20_000, ge=1)
    metadata_max_age_ms: int = Field(default=30_000, ge=1)
    api_version_auto_timeout_ms: int = Field(default=10_000, ge=1)

    # Default query timeout when neither flag nor config file sets one
    default_timeout_sec: float = Field(default=10.0, gt=0)

    # ---------- Retry ----------
    retry_max_attempts: int = Field(default=4, ge=1)
    retry_initial_backoff_sec: float = Field(default=0.5, ge=0)
    retry_max_backoff_sec: float = Field(default=4.0, ge=0)

    # ---------- Security (fallbacks for --username / --password) ----------
    sasl_username: str | None = None
    sasl_password: str | None = None

    @field_validator("api_version", "sasl_username", "sasl_password", mode="before")
    def _blank_to_none(cls, v):
        """Treat empty environment values as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
