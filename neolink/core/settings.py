"""
Application settings loaded from environment (.env).
Single source of truth with validation at import time.
"""
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _project_root() -> Path:
    return Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """Validated configuration from env and .env file."""

    model_config = SettingsConfigDict(
        env_file=_project_root() / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # PostgreSQL
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "neolink"
    db_user: str = "postgres"
    db_password: str = ""

    # Pool sizes; get_stats runs three queries at once so keep max >= 3
    db_pool_min: int = Field(default=1, ge=1)
    db_pool_max: int = Field(default=10, ge=3)

    # Deployment mode: "production" turns on TLS to the database
    app_env: str = "development"

    # bcrypt cost factor for new password hashes
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)

    # Ops
    log_level: str = "INFO"
    log_file: str = ""

    @field_validator("app_env", mode="before")
    @classmethod
    def normalize_env(cls, v: object) -> str:
        return str(v or "development").strip().lower()

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_level(cls, v: object) -> str:
        return str(v or "INFO").strip().upper()

    @model_validator(mode="after")
    def check_pool_bounds(self) -> "Settings":
        if self.db_pool_max < self.db_pool_min:
            raise ValueError("DB_POOL_MAX must be >= DB_POOL_MIN")
        return self

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def db_sslmode(self) -> str:
        """libpq sslmode: encrypted (unverified) transport in production, plain otherwise."""
        return "require" if self.is_production else "disable"


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return singleton settings instance. Validates on first access."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached instance so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None
