"""
FastAPI application factory.

create_app() builds the app; the lifespan opens MongoDB and the mail HTTP
client and parks the long-lived collaborators on app.state, where
dependencies.py picks them up per request.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings, SentrySettings
from errors import register_error_handlers
from infrastructure.email.zeptomail import ZeptoMailProvider
from infrastructure.http_client import HttpClient
from repositories.site_repository import SITES_COLLECTION, MongoSiteRepository, ensure_indexes
from routes.health_routes import router as health_router
from routes.site_routes import router as site_router
from services.token_service import TokenService
from shared.datetime_utils import utc_now
from shared.logging import get_logger
from shared.logging_config import setup_logging

log = get_logger(__name__)


def _init_sentry(sentry: SentrySettings, environment: str) -> None:
    if not sentry.sentry_dsn:
        return
    sentry_sdk.init(
        dsn=sentry.sentry_dsn,
        send_default_pii=sentry.sentry_send_pii,
        traces_sample_rate=sentry.sentry_traces_sample_rate,
        environment=environment,
    )


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging(settings.logging)
    _init_sentry(settings.sentry, settings.env)

    # Fail at startup rather than on the first login when secrets are missing
    token_service = TokenService(settings.jwt, utc_now)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        mongo_client: AsyncMongoClient = AsyncMongoClient(
            settings.db.mongodb_uri, tz_aware=True
        )
        db = mongo_client[settings.db.db_name]
        await ensure_indexes(db)
        mail_http = HttpClient(timeout=settings.email.email_timeout_seconds)

        app.state.settings = settings
        app.state.clock = utc_now
        app.state.mongo_client = mongo_client
        app.state.db = db
        app.state.site_store = MongoSiteRepository(db[SITES_COLLECTION])
        app.state.email_provider = ZeptoMailProvider(settings.email, mail_http)
        app.state.token_service = token_service
        log.info("app_started", env=settings.env, db_name=settings.db.db_name)

        try:
            yield
        finally:
            await mail_http.aclose()
            await mongo_client.close()
            log.info("app_stopped")

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )
    # Auth travels in cookies, so credentialed cross-origin requests are allowed
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app, debug=settings.debug)
    app.include_router(health_router)
    app.include_router(site_router)
    return app
