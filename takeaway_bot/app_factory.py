"""
Application factory for the takeaway voice ordering API.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .config import CORS_ORIGINS
from .routes.orders import orders_router
from .routes.voice import limiter, voice_router

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """
    Create a FastAPI application.

    Returns:
        Configured FastAPI application with voice and order routes
    """
    app = FastAPI(
        title="Takeaway Voice Ordering API",
        description="Voice dialog engine for takeaway orders",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.include_router(voice_router)
    app.include_router(orders_router)

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    logger.info("Application created")
    return app
