"""
Application settings configuration for the family calendar backend.

Centralized settings loaded from environment variables (and an optional
``.env`` file).
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment Variables:
        FAMCAL_DB_URL: SQLAlchemy database URL
            (default: "sqlite:///./famcal.db")
        FAMCAL_ENV: Environment name - production, development or test
            (default: "development")
        FAMCAL_CORS_ORIGINS: Comma-separated list of allowed CORS origins
            (default: "http://localhost:3000,http://127.0.0.1:3000")
        FAMCAL_LIST_LIMIT_MAX: Upper bound for the events list page size
            (default: 100)
        FAMCAL_DB_ECHO: Echo SQL statements (default: False)
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    db_url: str = Field(
        default="sqlite:///./famcal.db",
        validation_alias="FAMCAL_DB_URL",
        description="SQLAlchemy database URL (PostgreSQL in production, SQLite for tests)"
    )

    env: str = Field(
        default="development",
        validation_alias="FAMCAL_ENV",
    )

    cors_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000",
        validation_alias="FAMCAL_CORS_ORIGINS",
    )

    list_limit_max: int = Field(
        default=100,
        validation_alias="FAMCAL_LIST_LIMIT_MAX",
        ge=1,
        le=1000,
    )

    db_echo: bool = Field(
        default=False,
        validation_alias="FAMCAL_DB_ECHO",
    )

    @field_validator("env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Normalize and validate the environment name."""
        v = v.strip().lower()
        if v not in {"production", "development", "test"}:
            raise ValueError("FAMCAL_ENV must be one of: production, development, test")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.env == "production"

    @property
    def is_sqlite(self) -> bool:
        """Check if the configured database is SQLite."""
        return self.db_url.startswith("sqlite")

    @property
    def cors_origins_list(self) -> List[str]:
        """Get the allowed CORS origins as a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get cached application settings instance.

    Returns:
        AppSettings: Configured application settings from environment
    """
    return AppSettings()
