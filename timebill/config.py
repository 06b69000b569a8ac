"""Application Configuration - environment-driven settings via pydantic-settings.

Invariants:
    - get_settings() is cached (lru_cache) - single instance per process
    - bridge_mode is chosen once at startup; nothing switches transports at runtime
    - default_rounding_unit is one of {5, 10, 15, 30, 60}

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for everything: a local SQLite file and direct mode work out of the box
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

from timebill.core.domain_types import BridgeMode, ResumePolicy, RoundingUnit


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = "sqlite+aiosqlite:///timebill.db"

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres hands out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Command bridge
    bridge_mode: BridgeMode = BridgeMode.DIRECT
    host_ws_url: str = "ws://localhost:3001/ws/ipc"
    bridge_request_timeout_seconds: float = 5.0
    bridge_max_immediate_attempts: int = 3
    bridge_backoff_seconds: float = 2.0

    # Timer
    default_rounding_unit: RoundingUnit = RoundingUnit.FIFTEEN
    resume_policy: ResumePolicy = ResumePolicy.ACCUMULATE

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
