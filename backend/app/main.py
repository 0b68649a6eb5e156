# app/main.py

from __future__ import annotations

import asyncio

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.logging import configure_logging
from app.db.session import Base, engine
from app.db import models  # noqa: F401

from app.api.v1 import production_logs as production_logs_router
from app.api.v1 import metrics as metrics_router

from app.api import ws as ws_router

from app.ws.bus import ws_bus


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title=settings.APP_NAME)

    Base.metadata.create_all(bind=engine)

    origins = [
        origin.strip()
        for origin in settings.BACKEND_CORS_ORIGINS.split(",")
        if origin.strip()
    ]
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # REST API
    app.include_router(production_logs_router.router, prefix="/api/v1")
    app.include_router(metrics_router.router, prefix="/api/v1")

    # progress / recompute push channel
    app.include_router(ws_router.router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.on_event("startup")
    async def on_startup():
        # the event bus is bound to FastAPI's loop
        ws_bus.set_loop(asyncio.get_running_loop())
        asyncio.create_task(ws_bus.run())

    return app


app = create_app()
