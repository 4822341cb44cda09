from __future__ import annotations

from typing import Callable, Iterator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from search_console_mcp.config import Settings, require_oauth_client
from search_console_mcp.connectors.gsc import GSCConnector
from search_console_mcp.store.database import Database
from search_console_mcp.store.models import GoogleAccount

ConnectorFactory = Callable[[GoogleAccount], GSCConnector]


def oauth_connector_factory(settings: Settings) -> ConnectorFactory:
    client_id, client_secret = require_oauth_client(settings)

    def factory(account: GoogleAccount) -> GSCConnector:
        return GSCConnector.from_user_tokens(
            access_token=account.access_token,
            refresh_token=account.refresh_token,
            client_id=client_id,
            client_secret=client_secret,
            expiry=account.token_expiry,
        )

    return factory


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_session(database: Database = Depends(get_database)) -> Iterator[Session]:
    with database.session() as db:
        yield db


def get_connector_factory(request: Request) -> ConnectorFactory:
    return request.app.state.connector_factory


def get_current_email(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> str:
    """Email of the signed-in user, as set by the auth proxy in front of the app."""
    email = (request.headers.get(settings.auth_user_header) or "").strip()
    if not email:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return email
