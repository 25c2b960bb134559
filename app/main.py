from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.session import build_default_session


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    session = build_default_session()
    try:
        yield
    finally:
        session.shutdown()
        build_default_session.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Telemetry Window",
        description="Bounded per-device temperature windows projected into chart-ready datasets.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
