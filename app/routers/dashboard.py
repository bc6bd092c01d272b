"""
WorkForce - Dashboard API Router

Role-scoped dashboards:
- Super Admin / District Manager: executive overview
- Store Manager: store performance and P&L
- Department Manager: team efficiency leaderboard
- Associate: personal commissions
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import get_organization_profile
from app.models.user import Profile
from app.services.dashboard_service import DashboardService


router = APIRouter(prefix="/api/v1/dashboard", tags=["Dashboard"])


@router.get("")
async def get_dashboard(
    db: AsyncSession = Depends(get_async_session),
    profile: Profile = Depends(get_organization_profile),
):
    """
    Get the dashboard for the caller's role.

    The response carries a ``view`` key naming the variant.
    """
    service = DashboardService(db)
    try:
        return await service.get_dashboard(profile)
    except PermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e),
        )
