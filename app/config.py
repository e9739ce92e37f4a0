"""Application configuration loaded from environment variables."""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

TURNSTILE_VERIFY_URL = "https://challenges.cloudflare.com/turnstile/v0/siteverify"


class Settings(BaseSettings):
    """Central settings – values come from .env or environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Discord webhook (required)
    discord_webhook_url: str = ""
    webhook_timeout: float = 10.0
    discord_role_id: str = ""

    # Discord member directory (optional)
    discord_bot_token: str = ""
    discord_guild_id: str = ""
    discord_api_base: str = "https://discord.com/api/v10"

    # Cloudflare Turnstile (required)
    turnstile_secret: str = ""
    turnstile_verify_url: str = TURNSTILE_VERIFY_URL
    turnstile_timeout: float = 6.0

    # Intake policy
    require_links: bool = True
    require_discord: bool = False
    apply_shared_secret: str = ""
    apply_debug: bool = False

    # Embed presentation
    embed_footer: str = "Guild Apply"
    embed_color: int = 0xF39C12
    error_body_limit: int = 500

    # App
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"

    @property
    def directory_enabled(self) -> bool:
        return bool(self.discord_bot_token and self.discord_guild_id)

    def missing_secrets(self) -> list[str]:
        """Names of required deployment secrets that are not set."""
        missing = []
        if not self.discord_webhook_url:
            missing.append("DISCORD_WEBHOOK_URL")
        if not self.turnstile_secret:
            missing.append("TURNSTILE_SECRET")
        return missing


@lru_cache
def get_settings() -> Settings:
    """Return cached singleton settings instance."""
    return Settings()


def setup_logging() -> None:
    """Configure root logger based on settings."""
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
