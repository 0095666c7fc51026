"""
LifeContext Web - FastAPI application.

Mounts the onboarding router under /api and exposes a health check.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lifecontext import __version__
from lifecontext.config import settings
from lifecontext.logging_config import configure_logging
from onboarding.api import router as onboarding_router

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and return the FastAPI application."""
    configure_logging()

    app = FastAPI(title="LifeContext", version=__version__)

    origins = ["*"] if settings.is_development else []
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(onboarding_router, prefix="/api")

    @app.get("/health")
    async def health() -> dict:
        return {
            "status": "healthy",
            "version": __version__,
            "service": "lifecontext",
        }

    logger.info(f"LifeContext app created (storage: {settings.storage_backend})")
    return app
