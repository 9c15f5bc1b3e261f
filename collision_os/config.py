# collision_os/config.py
"""
Application configuration using Pydantic-Settings.
All settings can be overridden via environment variables or .env file.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # ── Database ──────────────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite:///./collision_os.db"

    # ── Network ───────────────────────────────────────────────────────────
    BACKEND_HOST: str = "0.0.0.0"
    BACKEND_PORT: int = 8080

    # ── Security ──────────────────────────────────────────────────────────
    API_KEY: Optional[str] = None   # Set in .env to enable auth on API endpoints

    # ── Loaner scoring ────────────────────────────────────────────────────
    SCORE_BASE: float = 100.0
    AGE_PENALTY_PER_YEAR: float = 2.0
    MILES_PER_SCORE_POINT: float = 1000.0
    TYPE_MATCH_BONUS: float = 50.0
    FEATURE_MATCH_BONUS: float = 5.0

    # ── Loaner thresholds ─────────────────────────────────────────────────
    DAMAGE_HIGH_PRIORITY_COST: float = 500.0
    LOW_UTILIZATION_PERCENT: float = 50.0
    HIGH_UTILIZATION_PERCENT: float = 85.0
    MIN_RECOMMENDED_FLEET_SIZE: int = 5
    UTILIZATION_PERIOD_DAYS: int = 30

    # ── Parts thresholds ──────────────────────────────────────────────────
    CRITICAL_DELAY_DAYS: int = 7           # Backordered longer than this = critical

    # ── Logging ───────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = ""                      # Empty = <repo>/logs
    LOG_FILE: str = "collision_os.log"
    LOG_MAX_BYTES: int = 5 * 1024 * 1024
    LOG_BACKUP_COUNT: int = 10

    @property
    def IS_SQLITE(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
