"""Configuration management."""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


CONTENT_SOURCES = ("sqlite", "wordpress")


@dataclass
class SMTPConfig:
    """Outgoing mail server configuration."""
    host: str
    port: int
    username: Optional[str]
    password: Optional[str]
    use_tls: bool   # STARTTLS on non-465 ports
    from_email: str
    timeout_seconds: int = 30


@dataclass
class ContentSourceConfig:
    """Where published pages are read from."""
    source: str                      # "sqlite" or "wordpress"
    site_url: str                    # base URL for local page permalinks
    wordpress_url: Optional[str] = None
    wordpress_username: Optional[str] = None
    wordpress_app_password: Optional[str] = None
    per_page: int = 100


@dataclass
class AppConfig:
    """Complete application configuration."""
    db_path: str
    admin_email: str  # Fallback recipient when no reminder address is stored
    smtp: SMTPConfig
    content: ContentSourceConfig
    poll_interval_seconds: int = 300


def _parse_bool_env(key: str, default: bool) -> bool:
    """Parse a true/false environment variable."""
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config(require_mail: bool = True) -> AppConfig:
    """
    Load configuration from environment variables.

    Args:
        require_mail: Whether ADMIN_EMAIL and SMTP_HOST must be set. Commands
            that only touch the local database pass False.

    Raises:
        ValueError: If required configuration values are missing or invalid.
    """
    # Database
    db_path = os.getenv("DB_PATH", "content_checkup.db")

    admin_email = os.getenv("ADMIN_EMAIL")

    # SMTP configuration
    smtp_host = os.getenv("SMTP_HOST")
    smtp_port = int(os.getenv("SMTP_PORT", "587"))
    smtp_username = os.getenv("SMTP_USERNAME") or None
    smtp_password = os.getenv("SMTP_PASSWORD")
    # App passwords are often pasted with spaces
    if smtp_password:
        smtp_password = smtp_password.replace(" ", "")
    smtp_use_tls = _parse_bool_env("SMTP_USE_TLS", True)
    smtp_from_email = os.getenv("SMTP_FROM_EMAIL") or admin_email

    # Content source configuration
    content_source = os.getenv("CONTENT_SOURCE", "sqlite").strip().lower()
    site_url = os.getenv("SITE_URL", "http://localhost").rstrip("/")
    wordpress_url = os.getenv("WORDPRESS_URL")
    wordpress_username = os.getenv("WORDPRESS_USERNAME") or None
    wordpress_app_password = os.getenv("WORDPRESS_APP_PASSWORD") or None

    poll_interval_seconds = int(os.getenv("POLL_INTERVAL_SECONDS", "300"))

    if content_source not in CONTENT_SOURCES:
        raise ValueError(
            f"Unknown CONTENT_SOURCE '{content_source}'. Expected one of: {', '.join(CONTENT_SOURCES)}"
        )

    # Validate required fields
    missing = []
    if require_mail and not admin_email:
        missing.append("ADMIN_EMAIL")
    if require_mail and not smtp_host:
        missing.append("SMTP_HOST")
    if content_source == "wordpress" and not wordpress_url:
        missing.append("WORDPRESS_URL")

    if missing:
        raise ValueError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    return AppConfig(
        db_path=db_path,
        admin_email=admin_email or "",
        smtp=SMTPConfig(
            host=smtp_host or "",
            port=smtp_port,
            username=smtp_username,
            password=smtp_password,
            use_tls=smtp_use_tls,
            from_email=smtp_from_email or "",
        ),
        content=ContentSourceConfig(
            source=content_source,
            site_url=site_url,
            wordpress_url=wordpress_url.rstrip("/") if wordpress_url else None,
            wordpress_username=wordpress_username,
            wordpress_app_password=wordpress_app_password,
        ),
        poll_interval_seconds=poll_interval_seconds,
    )
