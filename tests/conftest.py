"""
Shared fixtures: a recording stand-in for the Search Console connector,
sample analytics rows, settings, and an in-memory database.
"""

from typing import Any, Dict, List

import pytest

from search_console_mcp.config import Settings
from search_console_mcp.core.request_shaper import WireQuery
from search_console_mcp.store.database import Database


class FakeConnector:
    """Records what it was asked and answers with canned responses."""

    def __init__(self, response: Dict[str, Any] | None = None, sites: Dict[str, Any] | None = None):
        self.response = response if response is not None else {"rows": []}
        self.sites = sites if sites is not None else {"siteEntry": []}
        self.queries: List[WireQuery] = []
        self.refreshed = 0
        self.error: Exception | None = None

    async def refresh_token_if_needed(self) -> None:
        self.refreshed += 1

    async def search_analytics(self, wire_query: WireQuery) -> Dict[str, Any]:
        self.queries.append(wire_query)
        if self.error is not None:
            raise self.error
        return self.response

    async def list_sites(self) -> Dict[str, Any]:
        if self.error is not None:
            raise self.error
        return self.sites

    async def inspect_url(self, site_url: str, inspection_url: str, language_code: str = "en-US"):
        return {
            "inspectionResult": {
                "siteUrl": site_url,
                "inspectionUrl": inspection_url,
                "languageCode": language_code,
            }
        }

    async def list_sitemaps(self, site_url: str, sitemap_index: str | None = None):
        return {"sitemap": [{"path": f"{site_url}sitemap.xml", "sitemapIndex": sitemap_index}]}

    async def get_sitemap(self, site_url: str, feedpath: str):
        return {"path": feedpath, "siteUrl": site_url}

    async def submit_sitemap(self, site_url: str, feedpath: str):
        return {"success": True, "siteUrl": site_url, "feedpath": feedpath}


@pytest.fixture
def fake_connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def quick_win_row() -> Dict[str, Any]:
    return {
        "keys": ["buy shoes", "/shoes"],
        "clicks": 2,
        "impressions": 100,
        "ctr": 0.02,
        "position": 6.5,
    }


@pytest.fixture
def mixed_rows() -> List[Dict[str, Any]]:
    return [
        # below impressions threshold
        {"keys": ["rare query", "/rare"], "clicks": 0, "impressions": 20, "ctr": 0.0, "position": 5.0},
        # qualifies, 10 additional clicks
        {"keys": ["running shoes", "/running"], "clicks": 5, "impressions": 300, "ctr": 0.0167, "position": 7.2},
        # ranks too well
        {"keys": ["brand", "/"], "clicks": 1, "impressions": 500, "ctr": 0.002, "position": 1.3},
        # qualifies, 3 additional clicks
        {"keys": ["buy shoes", "/shoes"], "clicks": 2, "impressions": 100, "ctr": 0.02, "position": 6.5},
        # qualifies, 38 additional clicks
        {"keys": ["trail shoes", "/trail"], "clicks": 12, "impressions": 1000, "ctr": 0.012, "position": 9.9},
        # CTR too high
        {"keys": ["shoe sale", "/sale"], "clicks": 30, "impressions": 400, "ctr": 0.075, "position": 4.1},
        # ranks too poorly
        {"keys": ["shoe history", "/history"], "clicks": 0, "impressions": 800, "ctr": 0.0, "position": 23.0},
    ]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        credentials_file="/tmp/service-account.json",
        impersonate_user=None,
        google_client_id="client-id",
        google_client_secret="client-secret",
        database_url="sqlite://",
        auth_user_header="X-Authenticated-User-Email",
        default_row_limit=1000,
        max_row_limit=25000,
        quick_wins_row_limit=25000,
        default_dimensions=("query", "page"),
        log_level="INFO",
    )


@pytest.fixture
def database() -> Database:
    db = Database("sqlite://")
    db.create_all()
    yield db
    db.dispose()
