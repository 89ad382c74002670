"""Application configuration."""

import logging
from os import getenv

from pydantic import BaseModel


class Settings(BaseModel):
    """Runtime settings for the application."""

    app_name: str = "Order Admin Panel"
    app_env: str = getenv("APP_ENV", "dev")
    debug: bool = getenv("DEBUG", "0") == "1"
    log_level: str = getenv("LOG_LEVEL", "INFO")
    database_url: str = getenv("DATABASE_URL", "sqlite:///./order_admin.db")
    data_backend: str = getenv("DATA_BACKEND", "sql")
    rest_url: str = getenv("REST_URL", "")
    rest_api_key: str = getenv("REST_API_KEY", "")
    rest_timeout_seconds: float = float(getenv("REST_TIMEOUT_SECONDS", "10"))
    session_secret: str = getenv("SESSION_SECRET", "dev-session-secret-change-me")
    session_secret_fallback: str = "dev-session-secret-change-me"
    currency_label: str = getenv("CURRENCY_LABEL", "PKR")


settings: Settings = Settings()


def configure_logging() -> None:
    """Set the root log format and level once at startup."""
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
