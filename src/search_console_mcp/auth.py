from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Sequence

from google.auth.credentials import Credentials
from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials as UserCredentials
from google.oauth2.service_account import Credentials as ServiceAccountCredentials

from search_console_mcp.config import Settings, require_service_account

logger = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"


def service_account_credentials(settings: Settings, scopes: Sequence[str]) -> Credentials:
    creds_path = require_service_account(settings)

    creds: Credentials = ServiceAccountCredentials.from_service_account_file(
        creds_path, scopes=list(scopes)
    )

    subject = settings.impersonate_user
    if subject and hasattr(creds, "with_subject"):
        creds = creds.with_subject(subject)

    return creds


def user_credentials(
    *,
    access_token: str,
    refresh_token: str,
    client_id: str,
    client_secret: str,
    scopes: Sequence[str],
    expiry: datetime | None = None,
) -> UserCredentials:
    creds = UserCredentials(
        token=access_token,
        refresh_token=refresh_token,
        token_uri=TOKEN_URI,
        client_id=client_id,
        client_secret=client_secret,
        scopes=list(scopes),
    )
    # google-auth compares expiry against naive UTC
    if expiry is not None:
        if expiry.tzinfo is not None:
            expiry = expiry.astimezone(timezone.utc)
        creds.expiry = expiry.replace(tzinfo=None)
    return creds


def refresh_if_needed(creds: UserCredentials) -> UserCredentials:
    if creds.valid:
        return creds
    try:
        creds.refresh(Request())
    except RefreshError as exc:
        logger.warning("OAuth token refresh failed: %s", exc)
        raise RuntimeError("Failed to refresh access token") from exc
    return creds
