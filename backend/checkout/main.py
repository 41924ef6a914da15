"""FastAPI application entry point."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from checkout.api.v1 import health, purchases
from checkout.config import settings
from checkout.db import dispose_engine, init_models
from checkout.logging import setup_logging

# Configure logging before anything else
setup_logging()

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup/shutdown events."""
    logger.info("Starting Checkout API", debug=settings.debug)

    await init_models()
    logger.info("Database tables ensured")

    yield

    logger.info("Shutting down Checkout API")
    await dispose_engine()
    logger.info("Database connections disposed")


app = FastAPI(
    title="Checkout API",
    description="Purchase record-keeping and order number allocation",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router, prefix="/api/v1", tags=["health"])
app.include_router(purchases.router, prefix="/api/v1", tags=["purchases"])
