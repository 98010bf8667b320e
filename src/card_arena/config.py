"""Application configuration using pydantic-settings."""

from datetime import timedelta
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    bot_token: str
    database_url: str

    debug: bool = False

    # Battle timing
    battle_timeout_seconds: int = 24 * 60 * 60  # Whole battle idle window
    turn_timeout_seconds: int = 10 * 60  # Per-turn idle window
    timeout_poll_seconds: float = 30.0  # 0 disables the background watcher
    finished_battle_retention_seconds: int = 24 * 60 * 60  # Ended battles kept for queries before pruning

    # Matchmaking
    auto_match: bool = True  # Pair as soon as the queue holds two entries

    # Progression
    starting_stat_points: int = 30

    # Admin Configuration
    admin_user_id: int | None = None  # Telegram user ID of the arena operator

    @property
    def battle_timeout(self) -> timedelta:
        return timedelta(seconds=self.battle_timeout_seconds)

    @property
    def turn_timeout(self) -> timedelta:
        return timedelta(seconds=self.turn_timeout_seconds)

    @property
    def finished_battle_retention(self) -> timedelta:
        return timedelta(seconds=self.finished_battle_retention_seconds)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
