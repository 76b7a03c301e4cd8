"""
Application Configuration
"""

from pydantic_settings import BaseSettings
from typing import List, Optional


MILLIS_PER_DAY = 24 * 60 * 60 * 1000


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    database_url: str = "sqlite:///data/storage.db"
    database_timeout_seconds: float = 10.0  # SQLite busy timeout, bounds every storage call

    # Environment
    environment: str = "development"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 57303

    # Retention
    ttl_days: int = 25
    sweep_interval_hours: int = 24

    # Listing
    page_size: int = 10

    # Payloads
    max_payload_size_mb: int = 10

    # CORS
    cors_origins: List[str] = ["*"]

    # Front-end bundle (built by scripts/build_frontend.sh)
    static_dir: str = "dist"

    # Sentry Error Tracking
    sentry_dsn: Optional[str] = None
    sentry_environment: Optional[str] = None

    @property
    def ttl_ms(self) -> int:
        return self.ttl_days * MILLIS_PER_DAY

    @property
    def max_payload_bytes(self) -> int:
        return self.max_payload_size_mb * 1024 * 1024

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
