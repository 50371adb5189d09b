"""Application entry-point – creates the FastAPI app and wires services."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from smartdocs.api.routes import router
from smartdocs.services.container import Services, build_services

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(services: Services | None = None) -> FastAPI:
    """Build the app; *services* is built at startup unless injected."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if services is None:
            logger.info("=== Building services ===")
            app.state.services = build_services()
        else:
            app.state.services = services
        logger.info(
            "=== Startup complete (%d chunks retrievable) ===",
            app.state.services.store.count(),
        )
        yield

    app = FastAPI(
        title="SmartDocs RAG",
        description=(
            "Upload PDFs, then ask questions answered from their text "
            "with source/page citations."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )
    app.include_router(router, prefix="/api")
    return app


app = create_app()
