from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from stellar_auth.api.deps import AuthContainer, build_container
from stellar_auth.api.routers.auth import router as auth_router
from stellar_auth.shared.config import Settings, get_settings
from stellar_auth.shared.logging_config import configure_logging


logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, container: AuthContainer | None = None) -> FastAPI:
    """Application factory; serve with ``uvicorn --factory stellar_auth.main:create_app``."""
    if container is not None:
        settings = container.settings
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.container is None:
            app.state.container = build_container(settings)
        purged = app.state.container.refresh_ledger.purge_expired(now=datetime.now(timezone.utc))
        state_store = app.state.container.state_store
        state_store.start_sweeper(interval_seconds=settings.oauth_state_sweep_seconds)
        logger.info("main: started environment=%s purged_refresh_tokens=%s", settings.environment, purged)
        try:
            yield
        finally:
            state_store.stop_sweeper()

    app = FastAPI(title="Stellar Auth API", lifespan=lifespan)
    app.state.container = container
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if settings.trusted_proxies:
        app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=list(settings.trusted_proxies))
    app.include_router(auth_router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app
