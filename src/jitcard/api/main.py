"""API composition root."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from jitcard import __version__
from jitcard.client import MarqetaClient
from jitcard.config import JitCardSettings, load_settings
from jitcard.dispatcher import CommandDispatcher
from jitcard.registry import ResourceRegistry

from .middleware import StructuredLoggingMiddleware, register_exception_handlers, setup_logging
from .routers import marqeta

logger = logging.getLogger("jitcard.api")


def create_app(
    settings: JitCardSettings | None = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    registry: Optional[ResourceRegistry] = None,
) -> FastAPI:
    settings = settings or load_settings()
    setup_logging(json_format=settings.use_json_logs, level=settings.log_level)

    client = MarqetaClient.from_settings(settings, transport=transport)
    registry = registry or ResourceRegistry()
    dispatcher = CommandDispatcher.build(client, settings, registry=registry)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting jitcard API against %s", client.base_url)
        yield
        logger.info("Shutting down jitcard API...")
        await client.aclose()

    app = FastAPI(
        title="JIT Card Demo API",
        version=__version__,
        lifespan=lifespan,
    )

    # Structured logging with correlation IDs
    app.add_middleware(StructuredLoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )

    register_exception_handlers(app)

    app.state.registry = registry
    app.state.dispatcher = dispatcher

    app.dependency_overrides[marqeta.get_deps] = lambda: marqeta.MarqetaDependencies(  # type: ignore[arg-type]
        dispatcher=dispatcher,
    )
    app.include_router(marqeta.router, prefix="/api/marqeta")

    @app.get("/health", tags=["health"])
    async def health_check():
        """Health check endpoint. Does not call the upstream platform."""
        snapshot = registry.get_all()
        return {
            "status": "healthy",
            "environment": settings.environment,
            "upstream_base_url": settings.marqeta_base_url,
            "card_ready": snapshot.card is not None,
            "setup_complete": snapshot.is_complete,
        }

    return app
