"""
Project settings.
Loads environment variables (and an optional .env file) into a typed settings object.
"""
from pathlib import Path

from pydantic_settings import BaseSettings

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """Application-wide settings."""

    # Finnhub
    finnhub_api_key: str = ""
    finnhub_base_url: str = "https://finnhub.io/api/v1"
    catalog_exchange: str = "US"
    catalog_stock_type: str = "Common Stock"

    # Database
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "stockfeed"
    db_password: str = ""
    db_name: str = "stockfeed"
    # Full SQLAlchemy URL; takes precedence over the db_* parts when set.
    db_url: str = ""
    db_echo: bool = False

    # Logo acquisition
    logo_dir: Path = _PROJECT_ROOT / "assets" / "stockLogos"
    logo_url_prefix: str = "/assets/stockLogos"
    browser_headless: bool = True
    browser_launch_timeout: float = 30.0
    browser_navigation_timeout: float = 30.0
    browser_viewport_width: int = 1920
    browser_viewport_height: int = 1080
    logo_settle_seconds: float = 2.0
    logo_min_image_px: int = 80

    # Catalog sync
    catalog_retry_attempts: int = 3
    catalog_retry_base_delay: float = 2.0

    # News sync (Finnhub free tier: 60 calls/min)
    news_request_delay: float = 1.1
    news_freshness_minutes: int = 10
    news_lookback_days: int = 10
    news_page_size: int = 10

    # Scheduler
    news_sync_interval_minutes: int = 20
    stock_sync_weekday: int = 6  # 0=Monday, 6=Sunday
    stock_sync_hour: int = 3
    scheduler_timezone: str = "America/New_York"

    # Logging
    log_level: str = "INFO"
    log_dir: Path = _PROJECT_ROOT / "logs"
    log_to_file: bool = True
    log_retention_days: int = 30

    @property
    def database_url(self) -> str:
        """Async SQLAlchemy URL (asyncpg driver unless db_url overrides it)."""
        if self.db_url:
            return self.db_url
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the Settings singleton."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
