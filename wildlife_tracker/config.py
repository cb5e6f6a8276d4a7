"""
Application Settings

All configuration comes from environment variables, read once at startup:

Database:
- DATABASE_URL: Full SQLAlchemy URL (takes precedence when set)
- DB_HOST, DB_PORT, DB_NAME, DB_USER, DB_PASSWORD, DB_SSLMODE

Server:
- HOST (default: 0.0.0.0), PORT (default: 8000), LOG_LEVEL (default: INFO)
- CORS_ORIGINS: Comma-separated list of origins (default: *)

Sighting lifecycle:
- EXPIRY_WINDOW_MINUTES (default: 60)
- SWEEP_INTERVAL_MINUTES (default: 30)
- SWEEP_ENABLED (default: true)
- AUTO_CREATE_TABLES (default: true)
- DEFAULT_LIST_LIMIT (default: 100), MAX_LIST_LIMIT (default: 500)
- MAX_IMAGE_BYTES (default: 10 MiB)

Media host (Cloudflare R2):
- R2_ACCOUNT_ID, R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY
- R2_BUCKET_NAME (default: wildlife-sightings)
- R2_PUBLIC_BASE_URL (optional public bucket URL)
"""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional

from wildlife_tracker.exceptions import ConfigurationError


def _get_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


def get_database_url() -> str:
    """
    Get database URL from environment variables.

    Returns:
        Database URL string for SQLAlchemy
    """
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    host = os.getenv('DB_HOST', 'localhost')
    port = os.getenv('DB_PORT', '5432')
    database = os.getenv('DB_NAME', 'wildlife_tracker')
    user = os.getenv('DB_USER', 'postgres')
    password = os.getenv('DB_PASSWORD', 'password')
    sslmode = os.getenv('DB_SSLMODE', '')

    url = f"postgresql://{user}:{password}@{host}:{port}/{database}"
    if sslmode:
        url += f"?sslmode={sslmode}"
    return url


def mask_database_url(url: str) -> str:
    """Hide credentials in a database URL before logging it."""
    if "@" not in url or "://" not in url:
        return url
    scheme, rest = url.split("://", 1)
    return f"{scheme}://USERNAME:PASSWORD@{rest.rsplit('@', 1)[1]}"


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration"""
    database_url: str
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    expiry_window: timedelta = timedelta(hours=1)
    sweep_interval: timedelta = timedelta(minutes=30)
    sweep_enabled: bool = True
    auto_create_tables: bool = True
    default_list_limit: int = 100
    max_list_limit: int = 500
    max_image_bytes: int = 10 * 1024 * 1024

    r2_account_id: Optional[str] = None
    r2_access_key_id: Optional[str] = None
    r2_secret_access_key: Optional[str] = None
    r2_bucket_name: str = "wildlife-sightings"
    r2_public_base_url: Optional[str] = None

    def __post_init__(self):
        if self.expiry_window <= timedelta(0):
            raise ConfigurationError(
                f"EXPIRY_WINDOW_MINUTES must be positive, got {self.expiry_window}"
            )
        if self.sweep_interval <= timedelta(0):
            raise ConfigurationError(
                f"SWEEP_INTERVAL_MINUTES must be positive, got {self.sweep_interval}"
            )
        if self.default_list_limit < 1 or self.max_list_limit < 1:
            raise ConfigurationError("DEFAULT_LIST_LIMIT and MAX_LIST_LIMIT must be at least 1")
        if self.max_image_bytes < 1:
            raise ConfigurationError("MAX_IMAGE_BYTES must be at least 1")

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the current environment."""
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            database_url=get_database_url(),
            host=os.getenv("HOST", "0.0.0.0"),
            port=_get_int("PORT", 8000),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            expiry_window=timedelta(minutes=_get_int("EXPIRY_WINDOW_MINUTES", 60)),
            sweep_interval=timedelta(minutes=_get_int("SWEEP_INTERVAL_MINUTES", 30)),
            sweep_enabled=_get_bool("SWEEP_ENABLED", True),
            auto_create_tables=_get_bool("AUTO_CREATE_TABLES", True),
            default_list_limit=_get_int("DEFAULT_LIST_LIMIT", 100),
            max_list_limit=_get_int("MAX_LIST_LIMIT", 500),
            max_image_bytes=_get_int("MAX_IMAGE_BYTES", 10 * 1024 * 1024),
            r2_account_id=os.getenv("R2_ACCOUNT_ID"),
            r2_access_key_id=os.getenv("R2_ACCESS_KEY_ID"),
            r2_secret_access_key=os.getenv("R2_SECRET_ACCESS_KEY"),
            r2_bucket_name=os.getenv("R2_BUCKET_NAME", "wildlife-sightings"),
            r2_public_base_url=os.getenv("R2_PUBLIC_BASE_URL") or None,
        )

    @property
    def r2_configured(self) -> bool:
        return all([self.r2_account_id, self.r2_access_key_id, self.r2_secret_access_key])
