"""
Application Configuration
Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings
from typing import Any, Dict, List, Optional
from pathlib import Path


BACKEND_DIR = Path(__file__).parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration
    database_url: str = f"sqlite:///{BACKEND_DIR / 'data' / 'job_saver.db'}"

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False

    # CORS Configuration
    cors_origins: List[str] = ["*"]

    # Browser Configuration
    launch_browser: bool = True  # Open the browser when the API starts
    headless: bool = False  # The user logs in and picks the search in a visible window
    start_url: str = "https://www.linkedin.com/jobs/search/"
    browser_timeout: int = 30
    session_file: str = "linkedin_session.json"  # Saved login, relative to data_dir

    # Scraper Configuration (None keeps the site default)
    site: str = "linkedin"
    watch_changes: bool = True
    card_interval_delay: Optional[float] = None
    scroll_pause: Optional[float] = None
    page_settle_delay: Optional[float] = None

    # Export Configuration
    export_dir: str = str(BACKEND_DIR / "exports")

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Paths
    @property
    def log_dir(self) -> Path:
        """Get the log directory path."""
        return BACKEND_DIR.parent / "logs"

    @property
    def log_file(self) -> Path:
        """Get the log file path."""
        return self.log_dir / "job_saver.log"

    @property
    def data_dir(self) -> Path:
        """Get the data directory path."""
        return BACKEND_DIR / "data"

    @property
    def session_path(self) -> Path:
        return self.data_dir / self.session_file

    def site_overrides(self) -> Dict[str, Any]:
        """Delay overrides to apply on top of the site configuration."""
        return {
            'card_interval_delay': self.card_interval_delay,
            'scroll_pause': self.scroll_pause,
            'page_settle_delay': self.page_settle_delay,
        }

    class Config:
        # Only load .env if it exists to avoid permission errors
        env_file = ".env" if Path(".env").exists() else None
        env_file_encoding = "utf-8"
        env_prefix = "JOB_SAVER_"
        case_sensitive = False
        extra = "ignore"  # Ignore extra environment variables


# Global settings instance
settings = Settings()
