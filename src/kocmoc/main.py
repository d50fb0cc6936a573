"""Main entry point for the Kocmoc application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from kocmoc.api.error_handlers import register_error_handlers
from kocmoc.api.v1 import (
    auth_router,
    chats_router,
    messages_router,
    stories_router,
    users_router,
)
from kocmoc.api.v1.dependencies import get_container
from kocmoc.core.settings import settings
from kocmoc.db import Store
from kocmoc.services import ServiceContainer

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Messaging backend: accounts, chats, messages and stories",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

register_error_handlers(app)

# Include API routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")
app.include_router(chats_router, prefix="/api/v1")
app.include_router(messages_router, prefix="/api/v1")
app.include_router(stories_router, prefix="/api/v1")


@app.on_event("startup")
def on_startup() -> None:
    if get_container in app.dependency_overrides:
        # The override supplies its own store; nothing to open or bootstrap.
        logger.info("Service container overridden; skipping store startup")
        return
    store = Store(
        settings.effective_database_url,
        echo=settings.sql_debug,
        pool_timeout=settings.db_pool_timeout_seconds,
        statement_timeout_ms=settings.db_statement_timeout_ms,
    ).open()
    container = ServiceContainer(store, settings)
    container.accounts.ensure_admin(settings.admin_email, settings.admin_password)
    app.state.container = container
    logger.info("%s %s started", settings.app_name, settings.app_version)


@app.on_event("shutdown")
def on_shutdown() -> None:
    container: ServiceContainer | None = getattr(app.state, "container", None)
    if container is not None:
        container.store.close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("kocmoc.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
