"""
WorkForce - FastAPI Application Entry Point

This is the main entry point for the FastAPI application.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.database import init_db, close_db
from app.middleware.security import setup_security_middleware
from app.middleware.tier_middleware import setup_tier_middleware
from app.utils.error_handling import setup_exception_handlers

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info(f"Starting {settings.app_name}...")
    logger.info(f"Environment: {settings.app_env}")

    # Initialize database (dev only - use migrations in production)
    if settings.is_development:
        await init_db()
        logger.info("Database tables initialized")

    if not settings.stripe_configured:
        logger.warning("Stripe is not configured; billing endpoints will return errors")
    if not settings.twilio_configured:
        logger.warning("Twilio is not configured; client SMS will be skipped")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")
    await close_db()
    logger.info("Database connections closed")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Multi-tenant workforce and booking platform",
    version="0.1.0",
    docs_url="/api/docs" if settings.is_development else None,
    redoc_url="/api/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

# Starlette runs the last-added middleware first: tier gating, then
# security/logging, then CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
setup_security_middleware(app=app, development_mode=settings.is_development)
setup_tier_middleware(app)

setup_exception_handlers(app)


# ===========================================
# API ROUTES
# ===========================================

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": "0.1.0",
    }


@app.get("/api/v1")
async def api_root():
    """API v1 root endpoint."""
    return {
        "message": f"Welcome to {settings.app_name} API v1",
        "endpoints": {
            "auth": "/api/v1/auth",
            "onboarding": "/api/v1/onboarding",
            "access": "/api/v1/access",
            "dashboard": "/api/v1/dashboard",
            "billing": "/api/v1/billing",
            "notifications": "/api/v1/notifications",
            "organization_users": "/api/v1/organization-users",
            "schedule": "/api/v1/schedule",
        }
    }


# ===========================================
# INCLUDE ROUTERS
# ===========================================

from app.routers import (
    access,
    auth,
    billing,
    dashboard,
    notifications,
    onboarding,
    organization_users,
    schedule,
)

# Authentication
app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])

# Onboarding wizard
app.include_router(onboarding.router)

# Tier gate and upgrade prompt
app.include_router(access.router)

# Role-scoped dashboards
app.include_router(dashboard.router)

# Stripe subscriptions
app.include_router(billing.router)

# Client SMS and staff email
app.include_router(notifications.router, prefix="/api/v1")

# Staff invitations
app.include_router(organization_users.router, prefix="/api/v1")

# Bookings
app.include_router(schedule.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
    )
