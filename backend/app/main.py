"""
FastAPI Application Entry Point.

This is the main application file for the DriveNow Rental Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from backend.app.core.config import settings
from backend.app.api.v1.router import router as api_v1_router
from backend.app.core.observability import ObservabilityMiddleware, configure_logging
from backend.app.core.exceptions import register_exception_handlers
from backend.app.core.redis_client import ping_redis
from backend.app.db.session import engine, Base

# Import models to ensure they are registered with Base
from backend.app.models.customer import Customer
from backend.app.models.employee import Employee
from backend.app.models.vehicle import Vehicle
from backend.app.models.promotion import Promotion
from backend.app.models.rental_order import RentalOrder
from backend.app.models.rental_status_history import RentalStatusHistory
from backend.app.models.vehicle_history import VehicleHistory
from backend.app.models.invoice import Invoice, InvoiceDetail
from backend.app.models.payment import Payment
from backend.app.models.document_sequence import DocumentSequence

configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.
    
    Creates database tables on startup.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Rental order lifecycle and billing API for DriveNow",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
register_exception_handlers(app)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.
    
    Returns:
        dict: Status, application information and notification channel reachability
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": "up" if await ping_redis() else "down",
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.
    
    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to DriveNow Rental Backend API",
        "docs": "/docs",
        "health": "/health",
    }
