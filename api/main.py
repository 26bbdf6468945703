"""
FastAPI application initialization
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from api.routes import errors, health, stats
from api.middleware import RequestContextMiddleware
from core.config import settings
from core.database import engine, init_models
from core.logging import setup_logging
import logging

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown"""
    logger.info("Starting Citi Bike rides API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")
    await init_models(engine)
    yield
    logger.info("Shutting down Citi Bike rides API")
    await engine.dispose()


# Create FastAPI app
app = FastAPI(
    title="Citi Bike Rides API",
    description="Read-only access to imported rides, import errors and reports",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(RequestContextMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(stats.router)
app.include_router(errors.router)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Citi Bike Rides API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "stats": "/stats",
            "import_errors": "/import-errors"
        }
    }
