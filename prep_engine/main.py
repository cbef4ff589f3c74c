"""
Adaptive Prep Engine API

Application factory wiring configuration, logging, error handling and the
routers around one shared SessionRegistry.

Usage:
    uvicorn prep_engine.main:app --reload

    # or, with a custom store (tests, local runs):
    app = create_app(store=InMemoryProgressStore(topics))
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from prep_engine import __version__
from prep_engine.config import settings
from prep_engine.middleware import setup_error_handling
from prep_engine.routers import health, learning_session
from prep_engine.services.learning import (
    ProgressStore,
    SessionRegistry,
    SqlAlchemyProgressStore,
)

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(store: Optional[ProgressStore] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        store: Progress store to use. Defaults to PostgreSQL, in which case
               missing tables are created on startup.
    """
    configure_logging()

    if store is None:
        from prep_engine.db import async_session_maker, init_db

        store = SqlAlchemyProgressStore(async_session_maker)
        startup = init_db
    else:
        startup = None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if startup is not None:
            await startup()
        logger.info(
            f"{settings.APP_NAME} started with {type(app.state.session_registry.store).__name__}"
        )
        yield
        logger.info(f"{settings.APP_NAME} shutting down")

    app = FastAPI(title=settings.APP_NAME, version=__version__, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_error_handling(app, debug=settings.DEBUG)

    app.state.session_registry = SessionRegistry(store)

    app.include_router(health.router)
    app.include_router(learning_session.router)
    return app


app = create_app()
