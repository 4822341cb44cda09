from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from search_console_mcp.store.models import GoogleAccount, SearchConsoleSite, User, utcnow

logger = logging.getLogger(__name__)


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.scalars(select(User).where(User.email == email).limit(1)).first()


def get_or_create_user(db: Session, email: str, name: str | None = None) -> User:
    """Sign-in hook: called by the auth layer in front of the app for a new identity."""
    user = get_user_by_email(db, email)
    if user is None:
        user = User(email=email, name=name)
        db.add(user)
        db.flush()
    return user


def list_sites_for_user(db: Session, user_id: str) -> list[dict[str, Any]]:
    stmt = (
        select(SearchConsoleSite, GoogleAccount)
        .join(GoogleAccount, SearchConsoleSite.google_account_id == GoogleAccount.id)
        .where(GoogleAccount.user_id == user_id)
        .order_by(SearchConsoleSite.site_url)
    )
    return [
        {
            "id": site.id,
            "siteUrl": site.site_url,
            "permissionLevel": site.permission_level,
            "verified": site.verified,
            "accountEmail": account.account_email,
            "googleAccountId": account.id,
        }
        for site, account in db.execute(stmt)
    ]


def site_as_dict(site: SearchConsoleSite) -> dict[str, Any]:
    return {
        "id": site.id,
        "googleAccountId": site.google_account_id,
        "siteUrl": site.site_url,
        "permissionLevel": site.permission_level,
        "verified": site.verified,
        "lastSynced": site.last_synced.isoformat() if site.last_synced else None,
    }


def list_accounts_with_sites(db: Session, user_id: str) -> list[dict[str, Any]]:
    accounts = db.scalars(
        select(GoogleAccount)
        .where(GoogleAccount.user_id == user_id)
        .order_by(GoogleAccount.created_at)
    ).all()
    return [
        {
            "id": account.id,
            "accountEmail": account.account_email,
            "accountName": account.account_name,
            "isActive": account.is_active,
            "createdAt": account.created_at.isoformat() if account.created_at else None,
            "sites": [site_as_dict(site) for site in account.sites],
        }
        for account in accounts
    ]


def get_account_for_user(db: Session, account_id: str, user_id: str) -> GoogleAccount | None:
    return db.scalars(
        select(GoogleAccount)
        .where(GoogleAccount.id == account_id, GoogleAccount.user_id == user_id)
        .limit(1)
    ).first()


def get_site_with_account(
    db: Session,
    site_id: str,
    user_id: str,
) -> tuple[SearchConsoleSite, GoogleAccount] | None:
    stmt = (
        select(SearchConsoleSite, GoogleAccount)
        .join(GoogleAccount, SearchConsoleSite.google_account_id == GoogleAccount.id)
        .where(SearchConsoleSite.id == site_id, GoogleAccount.user_id == user_id)
        .limit(1)
    )
    row = db.execute(stmt).first()
    if row is None:
        return None
    return row[0], row[1]


def replace_account_sites(
    db: Session,
    account: GoogleAccount,
    site_entries: Iterable[dict[str, Any]],
) -> list[SearchConsoleSite]:
    """Swap the stored sites of ``account`` for the entries of a sites.list response."""
    synced_at = utcnow()
    db.execute(
        delete(SearchConsoleSite).where(SearchConsoleSite.google_account_id == account.id)
    )
    db.expire(account, ["sites"])

    sites = [
        SearchConsoleSite(
            google_account_id=account.id,
            site_url=entry.get("siteUrl") or "",
            permission_level=entry.get("permissionLevel") or "unknown",
            # Anything sites.list returns is accessible to the account.
            verified=True,
            last_synced=synced_at,
        )
        for entry in site_entries
    ]
    db.add_all(sites)
    db.flush()
    return sites


def upsert_google_account(
    db: Session,
    user: User,
    *,
    account_email: str,
    access_token: str,
    refresh_token: str,
    account_name: str | None = None,
    token_expiry: datetime | None = None,
    scopes: Iterable[str] = (),
) -> GoogleAccount:
    account = db.scalars(
        select(GoogleAccount).where(GoogleAccount.user_id == user.id).limit(1)
    ).first()

    if account is None:
        account = GoogleAccount(
            user_id=user.id,
            account_email=account_email,
            account_name=account_name or "",
            access_token=access_token,
            refresh_token=refresh_token,
            token_expiry=token_expiry,
            scopes=list(scopes),
        )
        db.add(account)
    else:
        account.access_token = access_token
        account.refresh_token = refresh_token
        account.token_expiry = token_expiry
        account.updated_at = utcnow()

    db.flush()
    return account


def link_google_account_on_sign_in(
    db: Session,
    *,
    email: str,
    access_token: str | None,
    refresh_token: str | None,
    name: str | None = None,
    token_expiry: datetime | None = None,
    scopes: Iterable[str] = (),
) -> GoogleAccount | None:
    """Record the Google tokens of a user who just signed in.

    Called by the auth layer in front of the app after a Google sign-in.

    Sign-in must go ahead even when this fails, so errors are logged and
    ``None`` is returned.
    """
    if not access_token or not refresh_token:
        return None

    try:
        user = get_user_by_email(db, email)
        if user is None:
            return None
        account = upsert_google_account(
            db,
            user,
            account_email=email,
            account_name=name,
            access_token=access_token,
            refresh_token=refresh_token,
            token_expiry=token_expiry,
            scopes=scopes,
        )
        db.commit()
        return account
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Could not save Google account for %s", email, exc_info=True)
        return None
