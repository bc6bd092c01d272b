"""
WorkForce - Booking Service

Business logic for the scheduling feature: clients, services and bookings
within one organization, plus the approve/decline decision that texts the
client.
"""

import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.booking import Booking, BookingStatus, Client, Service, OPEN_BOOKING_STATUSES
from app.models.user import Profile
from app.schemas.booking import BookingCreate, ClientCreate, ServiceCreate
from app.services.notification_service import NotificationService
from app.services.results import DispatchResult, SoftFailure
from app.utils.error_handling import (
    AppException,
    BusinessRuleException,
    ErrorCode,
    NotFoundException,
)

logger = logging.getLogger(__name__)


DECISION_STATUSES = frozenset({BookingStatus.APPROVED, BookingStatus.DECLINED})


class BookingService:
    """Service for bookings within one organization."""

    def __init__(
        self,
        db: AsyncSession,
        notification_service: Optional[NotificationService] = None,
    ):
        self.db = db
        self.notification_service = notification_service or NotificationService(db)

    # ===========================================
    # CLIENTS & SERVICES
    # ===========================================

    async def list_clients(self, organization_id: uuid.UUID) -> List[Client]:
        result = await self.db.execute(
            select(Client)
            .where(Client.organization_id == organization_id)
            .order_by(Client.name)
        )
        return list(result.scalars().all())

    async def create_client(self, organization_id: uuid.UUID, data: ClientCreate) -> Client:
        client = Client(organization_id=organization_id, **data.model_dump())
        self.db.add(client)
        await self.db.commit()
        return client

    async def list_services(self, organization_id: uuid.UUID) -> List[Service]:
        result = await self.db.execute(
            select(Service)
            .where(Service.organization_id == organization_id)
            .order_by(Service.name)
        )
        return list(result.scalars().all())

    async def create_service(self, organization_id: uuid.UUID, data: ServiceCreate) -> Service:
        service = Service(organization_id=organization_id, **data.model_dump())
        self.db.add(service)
        await self.db.commit()
        return service

    # ===========================================
    # BOOKINGS
    # ===========================================

    async def list_bookings(
        self,
        organization_id: uuid.UUID,
        status: Optional[BookingStatus] = None,
    ) -> List[Booking]:
        """Organization bookings, most recent appointment first."""
        query = select(Booking).where(Booking.organization_id == organization_id)
        if status is not None:
            query = query.where(Booking.status == status)
        result = await self.db.execute(query.order_by(Booking.booking_datetime.desc()))
        return list(result.scalars().all())

    async def get_booking(self, organization_id: uuid.UUID, booking_id: uuid.UUID) -> Booking:
        """
        Get a booking of the organization.

        Raises:
            NotFoundException: If the booking does not exist in this organization
        """
        result = await self.db.execute(
            select(Booking)
            .where(Booking.id == booking_id)
            .where(Booking.organization_id == organization_id)
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()
        if booking is None:
            raise NotFoundException("Booking", booking_id, code=ErrorCode.BOOKING_NOT_FOUND)
        return booking

    async def _check_ownership(self, organization_id: uuid.UUID, data: BookingCreate) -> None:
        checks = [
            (Client, data.client_id, "Client"),
            (Service, data.service_id, "Service"),
            (Profile, data.employee_id, "Employee"),
        ]
        for model, record_id, label in checks:
            if record_id is None:
                continue
            result = await self.db.execute(
                select(model.id)
                .where(model.id == record_id)
                .where(model.organization_id == organization_id)
            )
            if result.scalar_one_or_none() is None:
                raise NotFoundException(label, record_id)

    async def create_booking(self, organization_id: uuid.UUID, data: BookingCreate) -> Booking:
        """
        Create a pending booking and announce it to staff.

        Raises:
            NotFoundException: If the client, service or employee is not in the organization
        """
        await self._check_ownership(organization_id, data)

        booking = Booking(
            organization_id=organization_id,
            client_id=data.client_id,
            service_id=data.service_id,
            employee_id=data.employee_id,
            booking_datetime=data.booking_datetime,
            notes=data.notes,
            status=BookingStatus.PENDING,
        )
        self.db.add(booking)
        await self.db.commit()
        logger.info(f"Booking {booking.id} created for organization {organization_id}")

        booking = await self.get_booking(organization_id, booking.id)
        try:
            await self.notification_service.send_booking_notification(booking.id)
        except AppException as e:
            logger.error(f"Booking notification failed for {booking.id}: {e.message}")
        return booking

    async def decide_booking(
        self,
        organization_id: uuid.UUID,
        booking_id: uuid.UUID,
        status: BookingStatus,
    ) -> Tuple[Booking, DispatchResult]:
        """
        Approve or decline a booking, then text the client.

        The status change is committed before the SMS is attempted; a failed
        notification is reported in the result and never undoes it.

        Raises:
            BusinessRuleException: If the booking is no longer open
        """
        if status not in DECISION_STATUSES:
            raise BusinessRuleException(f"Unsupported booking decision: {status.value}")

        booking = await self.get_booking(organization_id, booking_id)
        if booking.status not in OPEN_BOOKING_STATUSES:
            raise BusinessRuleException(
                f"Booking is already {booking.status.value}",
                rule="booking_must_be_open",
                details={"booking_id": str(booking.id), "status": booking.status.value},
            )

        booking.status = status
        await self.db.commit()
        logger.info(f"Booking {booking.id} {status.value}")

        try:
            notification = await self.notification_service.notify_booking_decision(booking)
        except AppException as e:
            logger.error(f"Client SMS for booking {booking.id} failed: {e.message}")
            notification = SoftFailure(reason="notification_failed", payload={"error": e.message})

        return booking, notification
