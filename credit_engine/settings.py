"""
Credit Engine — Settings
Centralises all environment-driven settings with sensible defaults.
"""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All config sourced from environment / .env file."""

    # ── Observability ────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    # ── Hazards ──────────────────────────────────────────────────────────
    # length_too_short threshold per length category (JSON in the environment)
    STANDARD_LESSON_MINUTES: dict[str, int] = {"60": 60, "90": 90, "120": 120}
    STANDARD_LENGTHS_FILE: Optional[str] = None  # YAML override

    # ── SNC allowance ────────────────────────────────────────────────────
    SNC_TIMEZONE: str = "UTC"

    # ── Lot warnings ─────────────────────────────────────────────────────
    EXPIRING_SOON_DAYS: int = 30
    LOW_CREDIT_GENERIC_MINUTES: int = 360
    LOW_CREDIT_BUFFER_HOURS: float = 4.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
