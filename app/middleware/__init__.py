"""
WorkForce - Middleware Package

Security and tier-gating middleware for FastAPI.
"""

from app.middleware.security import (
    SecurityHeadersMiddleware,
    RequestLoggingMiddleware,
    setup_security_middleware,
)

from app.middleware.tier_middleware import (
    TierContextMiddleware,
    FeatureGateMiddleware,
    setup_tier_middleware,
)

__all__ = [
    # Security middleware
    "SecurityHeadersMiddleware",
    "RequestLoggingMiddleware",
    "setup_security_middleware",
    # Tier middleware
    "TierContextMiddleware",
    "FeatureGateMiddleware",
    "setup_tier_middleware",
]
