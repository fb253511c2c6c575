"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from google.cloud import firestore

from app.adapters.line_profile import LineProfileGateway
from app.config import get_settings
from app.core.components import AppComponents, build_components
from app.db import db_manager
from app.exceptions import StoreError
from app.infra.logging_config import LoggingConfig, get_logger
from app.routers import health, webhooks
from app.routers.talk_rooms_router import talk_rooms_router
from app.stores.firestore_store import FirestoreDocumentStore
from app.stores.sql_identity_store import SqlIdentityStore

logger = get_logger("main")

SHUTDOWN_DRAIN_SECONDS = 30.0


def _build_default_components() -> AppComponents:
    settings = get_settings()
    document_store = FirestoreDocumentStore(
        firestore.AsyncClient(
            project=settings.firestore_project_id,
            database=settings.firestore_database,
        )
    )
    profiles = LineProfileGateway(
        base_url=settings.line_api_base_url,
        access_token=settings.line_channel_access_token or "",
        timeout=settings.line_profile_timeout_seconds,
    )
    return build_components(
        settings=settings,
        identity_store=SqlIdentityStore(db_manager.session_factory),
        conversations=document_store,
        timeline=document_store,
        profiles=profiles,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    owns_components = getattr(app.state, "components", None) is None
    if owns_components:
        app.state.components = _build_default_components()
        logger.info("Ingestion pipeline ready")
    try:
        yield
    finally:
        await app.state.components.dispatcher.drain(timeout=SHUTDOWN_DRAIN_SECONDS)
        if owns_components:
            await db_manager.dispose()


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error("Store failure on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Storage unavailable"})


def create_app(
    testing: bool = False, components: Optional[AppComponents] = None
) -> FastAPI:
    settings = get_settings()
    LoggingConfig(level="DEBUG" if testing else settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        description="Receives LINE webhooks and records conversation timelines",
        version="0.1.0",
        lifespan=lifespan,
    )
    if components is not None:
        app.state.components = components

    app.add_exception_handler(StoreError, store_error_handler)

    app.include_router(health.router)
    app.include_router(webhooks.router)
    app.include_router(talk_rooms_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=get_settings().port)
