"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from diabite.api.history import router as history_router
from diabite.api.models import (
    ResolveBarcodeRequest,
    ResolveNameRequest,
    ResolveResponse,
)
from diabite.app_logging import configure_logging
from diabite.containers import AppContainer


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(debug=container.settings.debug)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        removed = app.state.container.cache_service.purge_expired()
        logger.info("Startup cache purge removed %s expired entries", removed)
        yield
        try:
            await app.state.container.close_resources()
        except Exception:
            logger.exception("Failed to close HTTP clients")

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(history_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/foods/resolve")
    async def resolve_by_name(
        body: ResolveNameRequest, request: Request
    ) -> ResolveResponse:
        """Resolve a food name into nutrition and a suitability decision."""
        state_container: AppContainer = request.app.state.container
        result = await state_container.resolver.resolve_by_name(
            body.query, body.diabetes_type
        )
        return ResolveResponse.from_result(result)

    @app.post("/foods/barcode")
    async def resolve_by_barcode(
        body: ResolveBarcodeRequest, request: Request
    ) -> ResolveResponse:
        """Resolve a barcode into nutrition and a suitability decision."""
        state_container: AppContainer = request.app.state.container
        result = await state_container.resolver.resolve_by_barcode(
            body.barcode, body.diabetes_type
        )
        return ResolveResponse.from_result(result)

    return app

