"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from code_cup.api.admin import router as admin_router
from code_cup.api.store import router as store_router
from code_cup.app_logging import configure_logging
from code_cup.containers import AppContainer
from code_cup.services.sync import BACKGROUND


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    settings = container.settings
    configure_logging(logging.DEBUG if settings.debug else settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        try:
            await state_container.app_store.initialize_app()
            state_container.background_sync.start()
        except Exception:
            logger.exception("Failed to start app state")
        yield
        await state_container.background_sync.handle_app_state_change(BACKGROUND)
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)
    app.include_router(store_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app
