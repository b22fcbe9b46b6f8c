"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from swaprace import __version__
from swaprace.config import Settings, get_settings
from swaprace.engine import SwapEngine
from swaprace.registry import LiFiRegistry

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[SwapEngine] = None,
    registry: Optional[LiFiRegistry] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    The engine is built from settings at startup unless one is injected.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        if getattr(app.state, "engine", None) is None:
            app.state.engine = SwapEngine.from_settings(settings)
        logger.info(
            f"Swap engine ready: providers={app.state.engine.aggregator.provider_names} "
            f"simulated={app.state.engine.simulated}"
        )
        yield
        # Shutdown
        await app.state.engine.close()

    app = FastAPI(
        title="SwapRace API",
        description="Multi-provider quote aggregation and swap execution",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.registry = registry or LiFiRegistry(
        api_key=settings.lifi_api_key or None,
        base_url=settings.lifi_api_url,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from swaprace.web.controllers import health_router, router

    app.include_router(health_router)
    app.include_router(router)

    return app
