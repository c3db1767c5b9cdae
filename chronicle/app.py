"""
FastAPI application entry point for the chronicle service.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chronicle.config import Settings, get_settings
from chronicle.db import DbClient
from chronicle.dependencies import build_db_client, build_storage_client
from chronicle.errors import register_error_handlers
from chronicle.routes import router
from chronicle.storage import StorageClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    try:
        yield
    finally:
        app.state.db.close()


def create_app(
    settings: Optional[Settings] = None,
    db: Optional[DbClient] = None,
    storage: Optional[StorageClient] = None,
) -> FastAPI:
    """
    Build the app with explicit backends. Anything not passed in is built
    from ``settings``.
    """
    settings = settings or get_settings()
    app = FastAPI(title="Chronicle Backend", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db if db is not None else build_db_client(settings)
    app.state.storage = (
        storage if storage is not None else build_storage_client(settings)
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)
    return app


def route_summary(app: FastAPI) -> list[str]:
    lines = []
    for route in app.routes:
        methods = sorted(getattr(route, "methods", None) or [])
        path = getattr(route, "path", "")
        for method in methods:
            if method == "HEAD" or not path.startswith(app.state.settings.api_prefix):
                continue
            lines.append(f"{method:<7}{path}")
    return lines
