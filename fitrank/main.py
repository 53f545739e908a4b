"""Main application entry point."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Response
from prometheus_fastapi_instrumentator import Instrumentator

from fitrank.ai.llm_service import llm_service
from fitrank.api.routes import budget_settings, priority_settings, recommendations
from fitrank.config import settings
from fitrank.db.models import Base
from fitrank.db.session import engine

# Configure structured logging
from fitrank.logging_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting fitrank...")

    # Initialize database
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if settings.ranking_enabled and not settings.openai_api_key:
        logger.warning("Ranking enabled without a process-wide API key; tenants need their own")

    yield

    logger.info("Shutting down...")
    await llm_service.close()
    await engine.dispose()
    logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="fitrank",
    description="Body-shape aware catalog recommendations",
    version="0.1.0",
    lifespan=lifespan,
)

# Add Prometheus instrumentation
instrumentator = Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=True,
    excluded_handlers=["/metrics", "/health", "/favicon.ico"],
)
instrumentator.instrument(app).expose(app, include_in_schema=True, tags=["monitoring"])

# Include API routes
app.include_router(recommendations.router)
app.include_router(budget_settings.router)
app.include_router(priority_settings.router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/favicon.ico")
async def favicon():
    """Return empty favicon response to avoid 404 noise."""
    return Response(status_code=204)


if __name__ == "__main__":
    uvicorn.run(
        "fitrank.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.debug,
    )
