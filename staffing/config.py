from __future__ import annotations

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Uses pydantic-settings so it works with Pydantic v2.
    Every value can be overridden via a STAFFING_* environment variable
    or a `.env` file.
    """

    model_config = SettingsConfigDict(env_prefix="STAFFING_", env_file=".env", extra="ignore")

    # Token signing
    # Unset: a random key per process
    JWT_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_HOURS: int = 24

    # Capacity defaults (percentages)
    DEFAULT_MAX_CAPACITY: int = 100
    UNDERUTILIZED_THRESHOLD: int = 30

    # Manager dashboard
    RECENT_ASSIGNMENTS_LIMIT: int = 5

    # Comma separated list of allowed origins
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    LOG_LEVEL: str = "INFO"

    # JSON snapshot of the document store; in-memory only when unset
    DATA_FILE: Optional[str] = None

    # First manager account, created at startup when both are set
    BOOTSTRAP_MANAGER_EMAIL: Optional[str] = None
    BOOTSTRAP_MANAGER_PASSWORD: Optional[str] = None

    SEED_DEMO_DATA: bool = False

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
