"""Configuration management for the prediction sync service.

Settings are loaded from environment variables (or a .env file) using
pydantic-settings. Every field has a default, so a bare checkout runs against
a local SQLite database and the public Stats API.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from mlb_prediction_sync.db.session import DEFAULT_DATABASE_URL
from mlb_prediction_sync.feed.client import DEFAULT_BASE_URL


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Env var name is the field name upper-cased, e.g. ``POLL_INTERVAL_SECONDS``.
    ``TRACKED_GAME_PKS`` takes a JSON list (``[745123, 745124]``); when empty
    the scheduler discovers today's game for ``TEAM_ID``.
    """

    environment: str = Field(default="development")
    log_level: str = Field(default="INFO", description="Stdlib level name for the root logger")

    # Database
    database_url: str = Field(default=DEFAULT_DATABASE_URL)
    db_pool_size: int = Field(
        default=10,
        ge=1,
        le=50,
        description="SQLAlchemy connection pool size (PostgreSQL only)"
    )
    db_max_overflow: int = Field(
        default=20,
        ge=0,
        le=100,
        description="Max overflow connections beyond pool_size"
    )

    # Upstream feed
    feed_base_url: str = Field(default=DEFAULT_BASE_URL)
    fetch_timeout_seconds: float = Field(default=8.0, gt=0, le=60)
    team_id: int = Field(default=136, description="Team whose game is discovered when none is tracked")
    tracked_game_pks: list[int] = Field(default_factory=list)

    # Scheduler
    poll_interval_seconds: float = Field(default=10.0, gt=0, le=600)
    idle_poll_interval_seconds: float = Field(default=300.0, gt=0, le=86400)
    final_ticks_before_backoff: int = Field(default=3, ge=1, le=100)
    stop_when_idle: bool = Field(default=False)
    scheduler_enabled: bool = Field(default=True, description="Start the scheduler in the API lifespan")

    # Snapshot cache
    live_cache_ttl_seconds: float = Field(default=10.0, gt=0)
    static_cache_ttl_seconds: float = Field(default=300.0, gt=0)
    snapshot_cache_dir: str | None = Field(
        default=None,
        description="Directory for the shared disk-backed snapshot cache (in-memory when unset)"
    )

    # Scoring
    streak_history_limit: int = Field(default=20, ge=1, le=500)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance (singleton).

    Returns:
        Settings instance with validated configuration

    Raises:
        ValidationError: If an environment value is out of range
    """
    return Settings()
