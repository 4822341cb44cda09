from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any

import httplib2
from google.auth.credentials import Credentials
from google.oauth2.credentials import Credentials as UserCredentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build

from search_console_mcp.auth import refresh_if_needed, service_account_credentials, user_credentials
from search_console_mcp.config import Settings
from search_console_mcp.core.request_shaper import WireQuery
from search_console_mcp.core.site_url import with_permission_fallback

logger = logging.getLogger(__name__)


class GSCConnector:
    SCOPES = (
        "https://www.googleapis.com/auth/webmasters.readonly",
        "https://www.googleapis.com/auth/webmasters",
    )

    def __init__(self, credentials: Credentials, *, service: Any = None) -> None:
        self._credentials = credentials
        self._service = service or build(
            "searchconsole",
            "v1",
            credentials=credentials,
            cache_discovery=False,
        )

    @classmethod
    def from_service_account(cls, settings: Settings) -> "GSCConnector":
        return cls(service_account_credentials(settings, cls.SCOPES))

    @classmethod
    def from_user_tokens(
        cls,
        *,
        access_token: str,
        refresh_token: str,
        client_id: str,
        client_secret: str,
        expiry: datetime | None = None,
    ) -> "GSCConnector":
        creds = user_credentials(
            access_token=access_token,
            refresh_token=refresh_token,
            client_id=client_id,
            client_secret=client_secret,
            scopes=cls.SCOPES,
            expiry=expiry,
        )
        return cls(creds)

    async def refresh_token_if_needed(self) -> None:
        if isinstance(self._credentials, UserCredentials):
            await asyncio.to_thread(refresh_if_needed, self._credentials)

    def _authorized_http(self) -> AuthorizedHttp:
        # httplib2.Http is not thread-safe; each execution gets its own.
        return AuthorizedHttp(self._credentials, http=httplib2.Http())

    async def _execute(self, request: Any) -> dict[str, Any]:
        def _run() -> Any:
            return request.execute(http=self._authorized_http())

        response = await asyncio.to_thread(_run)
        return response or {}

    async def list_sites(self) -> dict[str, Any]:
        return await self._execute(self._service.sites().list())

    async def query(self, site_url: str, body: dict[str, Any]) -> dict[str, Any]:
        return await self._execute(
            self._service.searchanalytics().query(siteUrl=site_url, body=body)
        )

    async def search_analytics(self, wire_query: WireQuery) -> dict[str, Any]:
        body = wire_query.to_body()
        return await with_permission_fallback(
            lambda site_url: self.query(site_url, body),
            wire_query.site_url,
        )

    async def list_sitemaps(
        self,
        site_url: str,
        sitemap_index: str | None = None,
    ) -> dict[str, Any]:
        def _list(target: str):
            kwargs: dict[str, Any] = {"siteUrl": target}
            if sitemap_index:
                kwargs["sitemapIndex"] = sitemap_index
            return self._execute(self._service.sitemaps().list(**kwargs))

        return await with_permission_fallback(_list, site_url)

    async def get_sitemap(self, site_url: str, feedpath: str) -> dict[str, Any]:
        return await with_permission_fallback(
            lambda target: self._execute(
                self._service.sitemaps().get(siteUrl=target, feedpath=feedpath)
            ),
            site_url,
        )

    async def submit_sitemap(self, site_url: str, feedpath: str) -> dict[str, Any]:
        # The API answers a successful submit with an empty body.
        await with_permission_fallback(
            lambda target: self._execute(
                self._service.sitemaps().submit(siteUrl=target, feedpath=feedpath)
            ),
            site_url,
        )
        logger.info("Submitted sitemap %s for %s", feedpath, site_url)
        return {"success": True, "siteUrl": site_url, "feedpath": feedpath}

    async def inspect_url(
        self,
        site_url: str,
        inspection_url: str,
        language_code: str = "en-US",
    ) -> dict[str, Any]:
        body = {
            "siteUrl": site_url,
            "inspectionUrl": inspection_url,
            "languageCode": language_code,
        }
        return await self._execute(self._service.urlInspection().index().inspect(body=body))
