from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from search_console_mcp.config import Settings
from search_console_mcp.core import analytics
from search_console_mcp.schemas import SearchAnalyticsArguments, parse_arguments
from search_console_mcp.store import repository
from search_console_mcp.web.dependencies import (
    ConnectorFactory,
    get_connector_factory,
    get_current_email,
    get_session,
    get_settings,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


@router.get("/sites")
def list_sites(
    email: str = Depends(get_current_email),
    db: Session = Depends(get_session),
) -> Any:
    user = repository.get_user_by_email(db, email)
    if user is None:
        return _error("User not found", 404)
    return repository.list_sites_for_user(db, user.id)


@router.get("/accounts")
def list_accounts(
    email: str = Depends(get_current_email),
    db: Session = Depends(get_session),
) -> Any:
    user = repository.get_user_by_email(db, email)
    if user is None:
        return _error("User not found", 404)
    return repository.list_accounts_with_sites(db, user.id)


@router.post("/accounts/{account_id}/sync")
async def sync_account_sites(
    account_id: str,
    email: str = Depends(get_current_email),
    db: Session = Depends(get_session),
    connector_factory: ConnectorFactory = Depends(get_connector_factory),
) -> Any:
    user = repository.get_user_by_email(db, email)
    if user is None:
        return _error("User not found", 404)

    account = repository.get_account_for_user(db, account_id, user.id)
    if account is None:
        return _error("Account not found", 404)

    try:
        connector = connector_factory(account)
        await connector.refresh_token_if_needed()
        sites_data = await connector.list_sites()
    except Exception:
        logger.exception("Search Console API error while syncing account %s", account_id)
        return _error("Failed to sync sites from Google Search Console", 500)

    entries = sites_data.get("siteEntry")
    if entries:
        sites = repository.replace_account_sites(db, account, entries)
        db.commit()
        logger.info("Synced %d sites for account %s", len(sites), account_id)

    return {"success": True, "message": "Sites synced successfully"}


@router.get("/analytics/search")
async def search_analytics(
    site_id: str | None = Query(None, alias="siteId"),
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    dimensions: str | None = Query(None),
    row_limit: int | None = Query(None, alias="rowLimit"),
    enable_quick_wins: str | None = Query(None, alias="enableQuickWins"),
    email: str = Depends(get_current_email),
    db: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    connector_factory: ConnectorFactory = Depends(get_connector_factory),
) -> Any:
    if not site_id or not start_date or not end_date:
        return _error("Missing required parameters: siteId, startDate, endDate", 400)

    user = repository.get_user_by_email(db, email)
    if user is None:
        return _error("User not found", 404)

    found = repository.get_site_with_account(db, site_id, user.id)
    if found is None:
        return _error("Site not found", 404)
    site, account = found

    limit = settings.default_row_limit if row_limit is None else row_limit
    try:
        args = parse_arguments(
            SearchAnalyticsArguments,
            {
                "site_url": site.site_url,
                "start_date": start_date,
                "end_date": end_date,
                "dimensions": dimensions or ",".join(settings.default_dimensions),
                "row_limit": min(limit, settings.max_row_limit),
            },
        )
    except ValueError as exc:
        return _error(str(exc), 400)

    try:
        connector = connector_factory(account)
        await connector.refresh_token_if_needed()
        if enable_quick_wins == "true":
            return await analytics.enhanced_search_analytics(
                connector,
                args.to_descriptor(),
                enable_quick_wins=True,
            )
        return await analytics.search_analytics(connector, args.to_descriptor())
    except Exception:
        logger.exception("Search Console API error for site %s", site_id)
        return _error("Failed to fetch analytics data from Google Search Console", 500)
