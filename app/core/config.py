"""Application configuration loaded from environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Allowed URL schemes for DATABASE_URL (module-level so validators can use it).
VALID_DATABASE_URL_PREFIXES = (
    "postgresql://",
    "postgresql+psycopg2://",
    "postgres://",
    "postgres+psycopg2://",
)


class Settings(BaseSettings):
    """Validated application settings from env and optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    APP_ENV: Literal["dev", "prod"] = "dev"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    API_V1_PREFIX: str = "/api/v1"

    # Postgres. Optional at import time; /report answers 500 with a `missing`
    # map until it is set.
    DATABASE_URL: str | None = None

    # Base URL of the dashboard, used for links in notifications and check runs.
    APP_BASE_URL: str = "http://localhost:3000"

    # GitHub: token for PR diff lookups and legacy check runs; App credentials
    # for installation-scoped check runs.
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_TOKEN: SecretStr | None = None
    GITHUB_APP_ID: str | None = None
    GITHUB_APP_PRIVATE_KEY: SecretStr | None = None
    GITHUB_REQUEST_TIMEOUT_SEC: float = 15.0
    CHECK_RUN_NAME: str = "Scangate Quality Gate"

    # Slack / Discord incoming webhooks (URLs live on the project row).
    WEBHOOK_REQUEST_TIMEOUT_SEC: float = 10.0

    # Per-ingestion scan trimming is always on; this flag only gates the CLI backfill.
    RETENTION_ENABLED: bool = True

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        if not any(v.startswith(prefix) for prefix in VALID_DATABASE_URL_PREFIXES):
            raise ValueError(
                "DATABASE_URL must be a PostgreSQL URL (e.g. postgresql:// or postgresql+psycopg2://)"
            )
        return v.strip()

    @field_validator("APP_BASE_URL", "GITHUB_API_URL")
    @classmethod
    def validate_http_url(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("URL must be set and non-empty")
        s = v.strip().lower()
        if not (s.startswith("http://") or s.startswith("https://")):
            raise ValueError("URL must use http or https")
        return v.strip().rstrip("/")

    @field_validator("GITHUB_TOKEN", "GITHUB_APP_PRIVATE_KEY")
    @classmethod
    def blank_secret_is_unset(cls, v: SecretStr | None) -> SecretStr | None:
        if v is None or not v.get_secret_value().strip():
            return None
        return v

    @field_validator("GITHUB_APP_ID")
    @classmethod
    def validate_github_app_id(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("GITHUB_REQUEST_TIMEOUT_SEC", "WEBHOOK_REQUEST_TIMEOUT_SEC")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0 or v > 120:
            raise ValueError("Request timeouts must be greater than 0 and at most 120")
        return v

    @field_validator("CHECK_RUN_NAME")
    @classmethod
    def validate_check_run_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("CHECK_RUN_NAME must be set and non-empty")
        return v.strip()

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = (v or "").strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return level

    def missing_store_settings(self) -> dict[str, bool]:
        """Map of required store settings to whether each one is missing."""
        return {"DATABASE_URL": not self.DATABASE_URL}


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance (safe to call from dependencies)."""
    return Settings()


settings = get_settings()
