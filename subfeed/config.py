"""Application configuration using Pydantic Settings."""

import json
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import PostgresDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # App
    app_env: Literal["development", "production", "test"] = "development"
    app_name: str = "Subfeed"
    port: int = 8080

    # Database
    database_url: PostgresDsn = "postgresql://localhost:5432/subfeed"  # type: ignore[assignment]
    database_pool_size: int = 5
    database_echo: bool = False

    # Subscriptions, shorts whitelist and cookies live here
    config_dir: Path = Path("config")

    # Feed API
    expected_server_authorization: str = ""

    # Discord webhooks
    error_webhook: str = ""
    info_webhook: str = ""
    error_ping_user: str = ""

    # External APIs
    sponsorblock_api_url: str = "https://sponsor.ajay.app"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def database_url_async(self) -> str:
        """Get async database URL (postgresql+asyncpg)."""
        url = str(self.database_url)
        return url.replace("postgresql://", "postgresql+asyncpg://")

    @property
    def subscriptions_path(self) -> Path:
        return self.config_dir / "subscriptions.json"

    @property
    def shorts_whitelist_path(self) -> Path:
        return self.config_dir / "shorts-whitelist.json"

    @property
    def cookies_path(self) -> Path:
        return self.config_dir / "cookies.txt"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def _read_uri_list(path: Path) -> list[str]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list) or not all(isinstance(uri, str) for uri in data):
        raise ValueError(f"{path} must contain a JSON array of channel URIs")
    return data


def load_subscriptions(settings: Settings | None = None) -> list[str]:
    """Read the ordered list of subscribed channel URIs.

    Re-read at the start of every run so edits apply without a restart.
    """
    settings = settings or get_settings()
    return _read_uri_list(settings.subscriptions_path)


def load_shorts_whitelist(settings: Settings | None = None) -> list[str]:
    """Read the channel URIs whose shorts are kept. A missing file means none."""
    settings = settings or get_settings()
    if not settings.shorts_whitelist_path.exists():
        return []
    return _read_uri_list(settings.shorts_whitelist_path)
