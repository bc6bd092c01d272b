"""
WorkForce - Access Router

Tier gate for client-side navigation and the upgrade prompt.

Endpoints:
- GET /navigate?to=/path - allow, or redirect to the upgrade prompt
- GET /plans - plan catalogue for the upgrade prompt
- GET /features - the caller's tier and enabled features
- GET /return-to?from=/path - where to resume after an upgrade
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import get_current_profile
from app.models.user import Profile
from app.services.feature_flags import (
    PLAN_CATALOG,
    FeatureFlagService,
    resolve_return_to,
)


router = APIRouter(prefix="/api/v1/access", tags=["Access"])


@router.get("/navigate")
async def navigate(
    to: str = Query(..., description="Client route the caller wants to open"),
    db: AsyncSession = Depends(get_async_session),
    profile: Profile = Depends(get_current_profile),
):
    """Decide whether the caller's tier may open a client route."""
    service = FeatureFlagService(db)
    decision = await service.resolve_navigation(profile.organization_id, to)
    return decision.to_dict()


@router.get("/plans")
async def list_plans():
    """Plans offered on the upgrade prompt."""
    return {"plans": [plan.to_dict() for plan in PLAN_CATALOG]}


@router.get("/features")
async def get_features(
    db: AsyncSession = Depends(get_async_session),
    profile: Profile = Depends(get_current_profile),
):
    """The caller's effective tier and its feature set."""
    service = FeatureFlagService(db)
    tier = await service.get_effective_tier(profile.organization_id)
    features = await service.get_enabled_features(profile.organization_id)
    return {
        "tier": tier.value,
        "features": sorted(f.value for f in features),
    }


@router.get("/return-to")
async def get_return_to(
    from_path: Optional[str] = Query(None, alias="from"),
):
    """Destination to resume after an upgrade."""
    return {"return_to": resolve_return_to(from_path)}
