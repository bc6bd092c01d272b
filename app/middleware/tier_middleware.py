"""
WorkForce - Tier Context Middleware

Middleware to inject the organization's subscription tier into request state,
and path-based feature gating for API prefixes so individual endpoints do not
need to repeat the check.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Set
from uuid import UUID

from sqlalchemy import select
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response, JSONResponse
from fastapi import status

from app import database
from app.models.tier_enums import Feature, Tier

logger = logging.getLogger(__name__)


# =============================================================================
# PATH-BASED FEATURE GATING CONFIGURATION
# =============================================================================

@dataclass
class PathFeatureGate:
    """Configuration for a feature gate on an API path prefix."""
    path_prefix: str
    required_features: List[Feature]
    methods: Optional[Set[str]] = None  # None = all methods
    description: str = ""


# Client-side routes are gated by FeatureFlagService.resolve_navigation instead
PATH_FEATURE_GATES: List[PathFeatureGate] = [
    PathFeatureGate(
        path_prefix="/api/v1/schedule",
        required_features=[Feature.ADVANCED_SCHEDULING],
        description="Scheduling requires the Solo plan",
    ),
]

# Paths that never need tier context
EXEMPT_PREFIXES: List[str] = [
    "/docs",
    "/redoc",
    "/openapi.json",
    "/health",
    "/api/v1/auth/",
    "/api/v1/billing/webhook",
]


def _extract_token(request: Request) -> Optional[str]:
    """Extract JWT token from header or cookie."""
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:]

    token = request.cookies.get("access_token")
    if token:
        if token.startswith("Bearer "):
            return token[7:]
        return token

    return None


class TierContextMiddleware(BaseHTTPMiddleware):
    """
    Middleware that injects tier context into request state.

    After this middleware runs, request.state will have:
    - tier: The organization's tier value (or None if not resolved)
    - tier_features: Set of enabled feature values
    - tier_loaded: Boolean indicating if the tier was loaded
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint
    ) -> Response:
        request.state.tier = None
        request.state.tier_features = set()
        request.state.tier_loaded = False

        if _is_exempt(request.url.path):
            return await call_next(request)

        try:
            user_id = self._get_user_id(request)
            if user_id:
                await self._load_tier_context(request, user_id)
        except Exception as e:
            # Endpoints still enforce auth; a failed lookup only skips gating
            logger.warning(f"Failed to load tier context: {e}")

        return await call_next(request)

    def _get_user_id(self, request: Request) -> Optional[UUID]:
        from app.utils.security import verify_access_token

        token = _extract_token(request)
        if not token:
            return None
        payload = verify_access_token(token)
        if not payload or not payload.get("sub"):
            return None
        try:
            return UUID(payload["sub"])
        except ValueError:
            return None

    async def _load_tier_context(self, request: Request, user_id: UUID) -> None:
        """Resolve account -> profile -> organization tier."""
        from app.models.organization import Organization
        from app.models.user import Profile
        from app.services.feature_flags import get_tier_features

        async with database.async_session_maker() as db:
            result = await db.execute(
                select(Organization.tier)
                .join(Profile, Profile.organization_id == Organization.id)
                .where(Profile.id == user_id)
            )
            tier = result.scalar_one_or_none() or Tier.FREE

        request.state.tier = tier.value
        request.state.tier_features = {f.value for f in get_tier_features(tier)}
        request.state.tier_loaded = True


class FeatureGateMiddleware(BaseHTTPMiddleware):
    """
    Middleware that enforces tier feature gating based on URL paths.

    Requests without a loaded tier (unauthenticated) pass through so the
    endpoint can answer with its own 401.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path

        if _is_exempt(path):
            return await call_next(request)

        gates = self._find_applicable_gates(path, request.method)
        if not gates:
            return await call_next(request)

        if not getattr(request.state, "tier_loaded", False):
            return await call_next(request)

        tier_features = getattr(request.state, "tier_features", set())
        for gate in gates:
            for feature in gate.required_features:
                if feature.value not in tier_features:
                    from app.services.feature_flags import (
                        build_upgrade_redirect,
                        feature_requires_tier,
                    )

                    required_tier = feature_requires_tier(feature)
                    return JSONResponse(
                        status_code=status.HTTP_403_FORBIDDEN,
                        content={
                            "error": "feature_not_available",
                            "message": gate.description,
                            "feature": feature.value,
                            "path": path,
                            "current_tier": getattr(request.state, "tier", Tier.FREE.value),
                            "required_tier": required_tier.value if required_tier else None,
                            "upgrade_required": True,
                            "upgrade_url": build_upgrade_redirect(path),
                        },
                    )

        return await call_next(request)

    def _find_applicable_gates(self, path: str, method: str) -> List[PathFeatureGate]:
        applicable = []
        for gate in PATH_FEATURE_GATES:
            if path.startswith(gate.path_prefix):
                if gate.methods is None or method.upper() in gate.methods:
                    applicable.append(gate)
        return applicable


def _is_exempt(path: str) -> bool:
    return any(path.startswith(prefix) for prefix in EXEMPT_PREFIXES)


def setup_tier_middleware(app, enable_feature_gating: bool = True) -> None:
    """
    Add tier middleware to the FastAPI app.

    Starlette runs the last-added middleware first, so the gate is added
    before the context loader it depends on.
    """
    if enable_feature_gating:
        app.add_middleware(FeatureGateMiddleware)
        logger.info("Tier feature gating middleware enabled")

    app.add_middleware(TierContextMiddleware)
    logger.info("Tier context middleware enabled")
