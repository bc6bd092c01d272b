"""
WorkForce - Schedule Router

API endpoints for the scheduling feature (Solo plan and above).

The /api/v1/schedule prefix is tier-gated by FeatureGateMiddleware; the
per-endpoint dependency repeats the check for callers the middleware could
not resolve.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import require_feature
from app.models.booking import BookingStatus
from app.models.tier_enums import Feature
from app.models.user import Profile
from app.schemas.booking import (
    BookingCreate,
    BookingDecisionResponse,
    BookingResponse,
    ClientCreate,
    ClientResponse,
    ServiceCreate,
    ServiceResponse,
)
from app.services.booking_service import BookingService


router = APIRouter(prefix="/api/v1/schedule", tags=["Schedule"])

require_scheduling = require_feature([Feature.ADVANCED_SCHEDULING])


# ===========================================
# CLIENTS & SERVICES
# ===========================================

@router.get("/clients", response_model=List[ClientResponse])
async def list_clients(
    db: AsyncSession = Depends(get_async_session),
    profile: Profile = Depends(require_scheduling),
):
    """List the organization's clients."""
    return await BookingService(db).list_clients(profile.organization_id)


@router.post("/clients", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    request: ClientCreate,
    db: AsyncSession = Depends(get_async_session),
    profile: Profile = Depends(require_scheduling),
):
    """Add a client."""
    return await BookingService(db).create_client(profile.organization_id, request)


@router.get("/services", response_model=List[ServiceResponse])
async def list_services(
    db: AsyncSession = Depends(get_async_session),
    profile: Profile = Depends(require_scheduling),
):
    """List the organization's bookable services."""
    return await BookingService(db).list_services(profile.organization_id)


@router.post("/services", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
async def create_service(
    request: ServiceCreate,
    db: AsyncSession = Depends(get_async_session),
    profile: Profile = Depends(require_scheduling),
):
    """Add a bookable service."""
    return await BookingService(db).create_service(profile.organization_id, request)


# ===========================================
# BOOKINGS
# ===========================================

@router.get("/bookings", response_model=List[BookingResponse])
async def list_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_async_session),
    profile: Profile = Depends(require_scheduling),
):
    """List the organization's bookings, optionally by status."""
    return await BookingService(db).list_bookings(profile.organization_id, status_filter)


@router.post("/bookings", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    request: BookingCreate,
    db: AsyncSession = Depends(get_async_session),
    profile: Profile = Depends(require_scheduling),
):
    """Create a pending booking."""
    return await BookingService(db).create_booking(profile.organization_id, request)


async def _decide(
    db: AsyncSession,
    profile: Profile,
    booking_id: uuid.UUID,
    decision: BookingStatus,
) -> BookingDecisionResponse:
    booking, notification = await BookingService(db).decide_booking(
        profile.organization_id, booking_id, decision
    )
    return BookingDecisionResponse(
        booking=BookingResponse.model_validate(booking),
        notification=notification.payload,
    )


@router.post("/bookings/{booking_id}/approve", response_model=BookingDecisionResponse)
async def approve_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    profile: Profile = Depends(require_scheduling),
):
    """Approve a booking and text the client."""
    return await _decide(db, profile, booking_id, BookingStatus.APPROVED)


@router.post("/bookings/{booking_id}/decline", response_model=BookingDecisionResponse)
async def decline_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    profile: Profile = Depends(require_scheduling),
):
    """Decline a booking and text the client."""
    return await _decide(db, profile, booking_id, BookingStatus.DECLINED)
