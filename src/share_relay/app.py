from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from share_relay.api.middleware.correlation_id import CorrelationIdMiddleware
from share_relay.api.v1.routers import health, share, ws
from share_relay.application.exceptions import QueueUnavailableError, ValidationError
from share_relay.config import settings
from share_relay.services.relay_service import RelayServer

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    relay = RelayServer(settings)
    app.state.relay = relay
    await relay.start()

    yield

    await relay.stop()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Share Relay",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(share.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": exc.detail})

    @app.exception_handler(QueueUnavailableError)
    async def _queue_unavailable(_req: Request, exc: QueueUnavailableError) -> JSONResponse:
        logger.error("Queue unavailable: %s", exc.detail)
        return JSONResponse(status_code=503, content={"detail": exc.detail})
