"""
DEX Token Aggregator - FastAPI Application

Main entry point for the backend API.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dex_aggregator.core.config import settings
from dex_aggregator.core.logging import configure_logging
from dex_aggregator.api.v1 import router as api_v1_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    configure_logging()
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    # Initialize Redis cache
    from dex_aggregator.services.cache.redis_client import init_redis, close_redis
    redis_client = await init_redis()
    if redis_client:
        logger.info("Redis cache connected")
    else:
        logger.info("Redis unavailable - using in-memory cache")

    yield

    # Shutdown
    logger.info("Shutting down...")
    from dex_aggregator.services.aggregation import close_token_aggregator_service
    await close_token_aggregator_service()
    await close_redis()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    DEX Token Aggregator API

    ## Architecture
    - **Providers**: DexScreener and GeckoTerminal listings, Jupiter prices
    - **Merge Engine**: One record per token address, field-level resolution
    - **Filter/Sort**: Threshold filters and a stable multi-key sort
    - **Pagination**: Opaque, stateless cursors

    ## Guarantees
    - A failing provider never fails a request while another one answers
    - Invalid cursors restart from the first page
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

cors_origins = [settings.frontend_url]
if settings.allowed_origins:
    cors_origins.extend([o for o in settings.allowed_origins if o not in cors_origins])

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }


@app.get("/health/sources")
async def sources_health():
    """Availability of each upstream data provider."""
    from dex_aggregator.services.aggregation import get_token_aggregator_service
    return await get_token_aggregator_service().get_data_sources_status()


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "DEX Token Aggregator API",
        "docs": "/docs",
        "health": "/health",
    }
