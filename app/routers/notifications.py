"""
WorkForce - Notifications Router

API endpoints for relaying booking outcomes:
- Client SMS after approve/decline (Twilio)
- Staff email for a new booking (logged)
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import get_current_user
from app.models.user import User
from app.schemas.notifications import BookingNotificationRequest, ClientNotificationRequest
from app.services.notification_service import NotificationService
from app.utils.error_handling import AppException, ExternalServiceException, ValidationException


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.post("/notify-client")
async def notify_client(
    request: ClientNotificationRequest,
    current_user: User = Depends(get_current_user),
):
    """
    Text a client the outcome of their booking request.

    A skipped notification (no Twilio credentials) still answers 200.
    """
    service = NotificationService()
    try:
        result = await service.notify_client(request)
    except ValidationException as e:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": e.message})
    except ExternalServiceException as e:
        logger.error(f"Client notification failed: {e.message}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": e.message},
        )

    return result.payload


@router.post("/booking")
async def notify_booking(
    request: BookingNotificationRequest,
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
):
    """Email the organization's staff about a new booking."""
    service = NotificationService(db)
    try:
        return await service.send_booking_notification(request.booking_id)
    except AppException as e:
        logger.error(f"Booking notification failed: {e.message}")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": e.message})
