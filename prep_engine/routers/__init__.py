"""API routers."""

from prep_engine.routers import health, learning_session

__all__ = ["health", "learning_session"]
