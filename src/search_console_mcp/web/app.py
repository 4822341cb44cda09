from __future__ import annotations

import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from search_console_mcp.config import Settings, configure_logging, load_settings
from search_console_mcp.schemas import format_errors
from search_console_mcp.store.database import Database
from search_console_mcp.web.dependencies import ConnectorFactory, oauth_connector_factory
from search_console_mcp.web.routes import router

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    database: Database | None = None,
    connector_factory: ConnectorFactory | None = None,
) -> FastAPI:
    """Build the dashboard API.

    Missing OAuth client credentials stop the app from being built at all.
    """
    if settings is None:
        load_dotenv()
        settings = load_settings()
        configure_logging(settings.log_level)

    if connector_factory is None:
        connector_factory = oauth_connector_factory(settings)

    if database is None:
        database = Database(settings.database_url)
        database.create_all()

    app = FastAPI(
        title="Search Console Dashboard API",
        description="Search Console sites, accounts, and search analytics for the dashboard",
    )
    app.state.settings = settings
    app.state.database = database
    app.state.connector_factory = connector_factory
    app.include_router(router)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse({"error": format_errors(exc.errors())}, status_code=400)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
        )
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    return app
