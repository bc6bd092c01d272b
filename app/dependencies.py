"""
WorkForce - FastAPI Dependencies

Shared dependencies for authentication, database sessions, and tier gating.

This module provides dependency injection for:
1. Current account and profile authentication
2. Organization membership checks
3. Feature gating based on subscription tier
"""

import uuid
from typing import List, Optional

from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database import get_async_session
from app.models.user import User, Profile
from app.models.tier_enums import Feature
from app.utils.security import verify_access_token


# HTTP Bearer token security
security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_async_session),
) -> User:
    """
    Get the current authenticated account from JWT token.

    Token can be provided via:
    1. Authorization: Bearer <token> header
    2. access_token cookie

    Raises:
        HTTPException: If token is invalid or account not found
    """
    token = None

    if credentials:
        token = credentials.credentials
    else:
        token = request.cookies.get("access_token")
        if token and token.startswith("Bearer "):
            token = token[7:]

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_access_token(token)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user_uuid = uuid.UUID(user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID in token",
        )

    result = await db.execute(
        select(User)
        .options(selectinload(User.profile))
        .where(User.id == user_uuid)
    )
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated",
        )

    return user


async def get_current_profile(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> Profile:
    """Get the caller's staff profile."""
    result = await db.execute(select(Profile).where(Profile.id == current_user.id))
    profile = result.scalar_one_or_none()
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Profile not found",
        )
    return profile


async def get_organization_profile(
    profile: Profile = Depends(get_current_profile),
) -> Profile:
    """Get the caller's profile, requiring organization membership."""
    if profile.organization_id is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No organization found for this account",
        )
    return profile


def require_feature(required_features: List[Feature]):
    """
    Dependency factory for tier feature-based access control.

    Usage:
        @router.get("/bookings")
        async def list_bookings(
            profile: Profile = Depends(require_feature([Feature.ADVANCED_SCHEDULING]))
        ):
            ...

    Returns:
        Dependency that validates feature access and returns the profile
    """
    async def feature_checker(
        profile: Profile = Depends(get_organization_profile),
        db: AsyncSession = Depends(get_async_session),
    ) -> Profile:
        from app.services.feature_flags import (
            FeatureFlagService,
            FeatureAccessDenied,
            get_upgrade_recommendation,
        )

        feature_service = FeatureFlagService(db)
        for feature in required_features:
            try:
                await feature_service.require_feature(profile.organization_id, feature)
            except FeatureAccessDenied as e:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail={
                        "error": "feature_not_available",
                        "message": str(e),
                        "feature": feature.value,
                        "upgrade": get_upgrade_recommendation(e.current_tier, feature),
                    },
                )
        return profile

    return feature_checker
