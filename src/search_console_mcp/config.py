from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from functools import lru_cache

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _parse_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _parse_list(value: str | None, default: tuple[str, ...]) -> tuple[str, ...]:
    if not value:
        return default
    items = tuple(item.strip() for item in value.split(",") if item.strip())
    return items or default


def _database_url(value: str | None) -> str:
    if not value:
        return "sqlite:///search_console.db"
    # Hosted Postgres providers hand out postgres:// URLs; SQLAlchemy wants postgresql://
    if value.startswith("postgres://"):
        return value.replace("postgres://", "postgresql://", 1)
    return value


@dataclass(frozen=True)
class Settings:
    credentials_file: str | None
    impersonate_user: str | None
    google_client_id: str | None
    google_client_secret: str | None

    database_url: str
    auth_user_header: str

    default_row_limit: int
    max_row_limit: int
    quick_wins_row_limit: int
    default_dimensions: tuple[str, ...]

    log_level: str


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    return Settings(
        credentials_file=os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
        or os.getenv("GOOGLE_SERVICE_ACCOUNT_FILE")
        or None,
        impersonate_user=os.getenv("GOOGLE_IMPERSONATE_USER") or None,
        google_client_id=os.getenv("GOOGLE_CLIENT_ID") or None,
        google_client_secret=os.getenv("GOOGLE_CLIENT_SECRET") or None,
        database_url=_database_url(os.getenv("DATABASE_URL")),
        auth_user_header=os.getenv("AUTH_USER_HEADER") or "X-Authenticated-User-Email",
        default_row_limit=_parse_int(os.getenv("DEFAULT_ROW_LIMIT"), 1000),
        max_row_limit=_parse_int(os.getenv("MAX_ROW_LIMIT"), 25000),
        quick_wins_row_limit=_parse_int(os.getenv("QUICK_WINS_ROW_LIMIT"), 25000),
        default_dimensions=_parse_list(os.getenv("DEFAULT_DIMENSIONS"), ("query", "page")),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )


def require_service_account(settings: Settings) -> str:
    if not settings.credentials_file:
        raise RuntimeError(
            "GOOGLE_APPLICATION_CREDENTIALS environment variable is required "
            "(or GOOGLE_SERVICE_ACCOUNT_FILE) and must point to a service account JSON file."
        )
    return settings.credentials_file


def require_oauth_client(settings: Settings) -> tuple[str, str]:
    missing = [
        name
        for name, value in (
            ("GOOGLE_CLIENT_ID", settings.google_client_id),
            ("GOOGLE_CLIENT_SECRET", settings.google_client_secret),
        )
        if not value
    ]
    if missing:
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")
    return settings.google_client_id, settings.google_client_secret  # type: ignore[return-value]


def configure_logging(level: str = "INFO") -> None:
    """Send logs to stderr; stdout belongs to the stdio MCP transport."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
