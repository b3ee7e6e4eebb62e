"""
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.config import settings
from app.api.rate_limit import limiter
from app.middleware.error_handler import ErrorHandlerMiddleware
from app.api.v1.routers import farms, geometry, irrigation
from app.infrastructure.external_api_client import close_api_clients

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events using the modern FastAPI pattern.
    """
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(f"Document store: {settings.document_store_backend} "
                f"(collection={settings.farm_collection})")
    logger.info(f"Source timeout: {settings.source_timeout_seconds}s, "
                f"NDVI window: {settings.ndvi_window_days} days")
    logger.info(f"Rate limit: {settings.rate_limit_requests} requests/minute")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    await close_api_clients()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Farm environment data and advisory API

    This API aggregates third-party environmental data per farm and layers
    simple agronomic heuristics on top of it.

    ## Features

    - **Environment Aggregation**: Soil moisture and temperature, vegetation
      index (NDVI), soil chemistry and texture, and hourly weather, fetched
      concurrently with per-source graceful degradation
    - **Farm Documents**: Results are merge-upserted per farm; a source only
      ever writes its own fields
    - **Geometry**: Circle polygons around a farm and area estimates
    - **Advisories**: Crop recommendations, irrigation schedules and yield
      history import
    - **Robust Error Handling**: Automatic retries with exponential backoff for
      upstream server errors and a bounded wait per source
    - **Rate Limiting**: Protects the upstream providers from abuse
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware with configurable origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add global error handling middleware
app.add_middleware(ErrorHandlerMiddleware)

# Include routers
app.include_router(farms.router, prefix="/api/v1")
app.include_router(geometry.router, prefix="/api/v1")
app.include_router(irrigation.router, prefix="/api/v1")


@app.get("/", tags=["health"])
async def root():
    """
    Root endpoint for health check.

    Returns:
        Status message
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
    }


@app.get("/health", tags=["health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        Health status
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
    }
