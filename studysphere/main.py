# studysphere/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from studysphere.core.config import Settings, settings as default_settings
from studysphere.core.logging import configure_logging
from studysphere.routers import activities, auth, discussions, groups, papers, search, sessions
from studysphere.storage.base import IStorage
from studysphere.storage.factory import build_storage

log = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, storage: Optional[IStorage] = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)
    store = storage if storage is not None else build_storage(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.storage.close()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.settings = settings
    app.state.storage = store

    # --------------------------- Middleware ---------------------------
    # CORS for local dev (frontend may be on a different port)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SESSION_SECRET,
        max_age=settings.SESSION_MAX_AGE,
        same_site="lax",
        https_only=False,
    )

    # --------------------------- Routers ---------------------------
    app.include_router(auth.router)
    app.include_router(papers.router)
    app.include_router(discussions.router)
    app.include_router(groups.router)
    app.include_router(sessions.router)
    app.include_router(activities.router)
    app.include_router(search.router)

    # --------------------------- Health ---------------------------
    @app.get("/healthz")
    def health():
        return {"ok": True, "app": settings.APP_NAME}

    log.info("[app] %s ready (storage=%s)", settings.APP_NAME, type(store).__name__)
    return app


app = create_app()
