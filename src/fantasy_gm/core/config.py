"""
Configuration management for Fantasy GM.

Uses Pydantic settings for type-safe configuration with environment variable support.
All settings can be overridden via environment variables (or a local .env file).
"""

import os
from functools import lru_cache
from typing import Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    Environment variable names are the upper-cased field names, e.g.
    ESPN_LEAGUE_ID, ESPN_S2, TELEGRAM_BOT_TOKEN.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # ==========================================================================
    # Application Metadata
    # ==========================================================================
    app_name: str = "Fantasy GM"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = Field(default="development", description="development, production")
    log_level: str = "INFO"

    # ==========================================================================
    # ESPN Fantasy API
    # ==========================================================================
    espn_league_id: int = Field(default=0, description="ESPN league id (0 = not configured)")
    espn_season: int = Field(default=2026, description="Season id, e.g. 2026 for 2025-26")
    espn_s2: Optional[str] = Field(default=None, description="espn_s2 auth cookie")
    espn_swid: Optional[str] = Field(default=None, description="SWID auth cookie")
    espn_my_team_id: int = Field(default=1, description="Team id of the league member using the assistant")
    espn_requests_per_minute: int = Field(default=60, ge=1)
    espn_max_retries: int = Field(default=3, ge=0, le=10)
    espn_timeout: float = 30.0
    free_agent_limit: int = Field(default=50, ge=1, le=250)

    # ==========================================================================
    # Telegram Notifications
    # ==========================================================================
    telegram_bot_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None
    app_base_url: Optional[str] = Field(
        default=None,
        description="Public dashboard URL used in notification links",
    )

    @computed_field
    @property
    def telegram_configured(self) -> bool:
        """Whether both Telegram credentials are present."""
        return bool(self.telegram_bot_token and self.telegram_chat_id)

    @computed_field
    @property
    def dashboard_url(self) -> Optional[str]:
        """Dashboard URL with a scheme, or None when not configured."""
        base_url = self.app_base_url or os.getenv("VERCEL_URL")
        if not base_url:
            return None
        if base_url.startswith("http"):
            return base_url.rstrip("/")
        return f"https://{base_url}".rstrip("/")

    # ==========================================================================
    # Storage
    # ==========================================================================
    data_dir: str = Field(default=".data", description="Directory for file-based storage")
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis connection URL (redis://host:port/db); file storage when unset",
    )
    snapshot_history_length: int = Field(default=50, ge=2)

    # ==========================================================================
    # Refresh Job
    # ==========================================================================
    cron_secret: Optional[str] = Field(
        default=None,
        description="Bearer token required by scheduled GET /refresh calls",
    )
    refresh_interval_minutes: int = Field(default=360, ge=5)
    briefing_interval_minutes: int = Field(default=1440, ge=60)
    send_quiet_summary: bool = False
    scheduler_enabled: bool = Field(
        default=False,
        description="Run the refresh scheduler inside the API process",
    )
    transaction_lookback_hours: int = Field(default=24, ge=1)
    adds_per_week: int = Field(default=5, ge=0)

    # ==========================================================================
    # API Configuration
    # ==========================================================================
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_prefix: str = "/api/v1"

    cors_allow_origins: list[str] = Field(
        default=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
    )
    cors_allow_methods: list[str] = ["GET", "POST", "DELETE", "OPTIONS"]
    cors_allow_headers: list[str] = ["Accept", "Content-Type", "Authorization"]

    @computed_field
    @property
    def espn_configured(self) -> bool:
        """Whether league id and both auth cookies are present."""
        return bool(self.espn_league_id and self.espn_s2 and self.espn_swid)

    def require_espn(self) -> None:
        """Raise ConfigurationError naming the first missing ESPN setting."""
        if not self.espn_league_id:
            raise ConfigurationError("ESPN_LEAGUE_ID environment variable is required")
        if not self.espn_s2:
            raise ConfigurationError("ESPN_S2 environment variable is required")
        if not self.espn_swid:
            raise ConfigurationError("ESPN_SWID environment variable is required")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
