"""
WorkForce - Notification Service

Stateless relays that format a message from booking/client data and hand
it to a provider:
- Client SMS for booking approval outcomes (Twilio)
- Staff email for new bookings (logged)

Missing Twilio credentials are a soft failure: the caller's approve/decline
action stands and the notification is skipped.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.booking import Booking, BookingStatus
from app.models.user import Profile
from app.schemas.notifications import ClientNotificationRequest
from app.services.results import DispatchResult, SoftFailure, Success
from app.utils.error_handling import (
    ErrorCode,
    ExternalServiceException,
    NotFoundException,
    ValidationException,
)

logger = logging.getLogger(__name__)


CREDENTIALS_SKIPPED_MESSAGE = "Twilio credentials not configured. Notification skipped."
MISSING_FIELDS_MESSAGE = "Missing required fields"


# ===========================================
# MESSAGE FORMATTING
# ===========================================

def parse_appointment_time(value: Optional[str]) -> datetime:
    """
    Parse an ISO 8601 appointment time.

    The wall-clock time is kept as sent; no timezone conversion happens.
    """
    if not value:
        raise ValidationException("Invalid dateTime", field="dateTime")
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        raise ValidationException("Invalid dateTime", field="dateTime")


def format_appointment_date(moment: datetime) -> str:
    """Mon, Jan 5"""
    return f"{moment.strftime('%a, %b')} {moment.day}"


def format_appointment_time(moment: datetime) -> str:
    """3:30 PM"""
    hour = moment.hour % 12 or 12
    meridiem = "AM" if moment.hour < 12 else "PM"
    return f"{hour}:{moment.minute:02d} {meridiem}"


def build_client_message(
    client_name: str,
    status: str,
    moment: datetime,
    service_name: Optional[str] = None,
    employee_name: Optional[str] = None,
) -> str:
    """SMS text for an approval outcome; anything but "approved" reads as declined."""
    service = service_name or "a service"
    employee = employee_name or "us"
    date_str = format_appointment_date(moment)
    time_str = format_appointment_time(moment)

    if status == BookingStatus.APPROVED.value:
        return (
            f"Hi {client_name}, your appointment for {service} with {employee} "
            f"on {date_str} at {time_str} has been APPROVED! See you then."
        )
    return (
        f"Hi {client_name}, unfortunately your request for {service} with {employee} "
        f"on {date_str} at {time_str} was DECLINED. Please reach out to reschedule."
    )


# ===========================================
# PROVIDERS
# ===========================================

class TwilioSMSClient:
    """Sends SMS through the Twilio Messages API."""

    def __init__(
        self,
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
        from_number: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.account_sid = account_sid if account_sid is not None else settings.twilio_account_sid
        self.auth_token = auth_token if auth_token is not None else settings.twilio_auth_token
        self.from_number = from_number if from_number is not None else settings.twilio_phone_number
        self.base_url = (base_url or settings.twilio_base_url).rstrip("/")
        self.timeout = timeout or settings.twilio_timeout_seconds

    @property
    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    async def send_sms(self, to_phone: str, body: str) -> Dict[str, Any]:
        """
        Send one SMS.

        Raises:
            ExternalServiceException: On timeouts, network errors and non-2xx replies
        """
        url = f"{self.base_url}/Accounts/{self.account_sid}/Messages.json"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    url,
                    auth=(self.account_sid, self.auth_token),
                    data={"To": to_phone, "From": self.from_number, "Body": body},
                )
        except httpx.TimeoutException as e:
            logger.error(f"Twilio API timeout sending to {to_phone}")
            raise ExternalServiceException(
                "Twilio", "Twilio API Error: request timed out",
                code=ErrorCode.SMS_SERVICE_ERROR, original_error=e,
            )
        except httpx.RequestError as e:
            logger.error(f"Twilio API request error: {e}")
            raise ExternalServiceException(
                "Twilio", f"Twilio API Error: {e}",
                code=ErrorCode.SMS_SERVICE_ERROR, original_error=e,
            )

        if not response.is_success:
            logger.error(f"Twilio API Error: {response.status_code} {response.text}")
            raise ExternalServiceException(
                "Twilio", f"Twilio API Error: {response.reason_phrase}",
                code=ErrorCode.SMS_SERVICE_ERROR,
            )

        result = response.json()
        logger.info(f"SMS sent to {to_phone}: sid={result.get('sid')}")
        return result


@dataclass
class EmailMessage:
    """Email message data structure."""
    to: List[str]
    subject: str
    body_text: str


def log_email(message: EmailMessage) -> None:
    """Email transport for bookings: the message is written to the log."""
    logger.info(f"[Email Notification] To: {', '.join(message.to)}")
    logger.info(f"[Email Notification] Subject: {message.subject}")
    logger.info(f"[Email Notification] Body: {message.body_text}")


# ===========================================
# SERVICE
# ===========================================

class NotificationService:
    """Formats and dispatches booking notifications."""

    def __init__(
        self,
        db: Optional[AsyncSession] = None,
        sms_client: Optional[TwilioSMSClient] = None,
    ):
        self.db = db
        self.sms_client = sms_client or TwilioSMSClient()

    async def notify_client(self, request: ClientNotificationRequest) -> DispatchResult:
        """
        Text a client the outcome of their booking request.

        Raises:
            ValidationException: If phone, client name or status is missing
            ExternalServiceException: If Twilio rejects the message
        """
        if not request.phone or not request.client_name or not request.status:
            raise ValidationException(MISSING_FIELDS_MESSAGE)

        if not self.sms_client.is_configured:
            logger.warning("Missing Twilio credentials in environment variables.")
            return SoftFailure(
                reason="credentials_missing",
                payload={"error": CREDENTIALS_SKIPPED_MESSAGE},
            )

        moment = parse_appointment_time(request.date_time)
        body = build_client_message(
            client_name=request.client_name,
            status=request.status,
            moment=moment,
            service_name=request.service_name,
            employee_name=request.employee_name,
        )
        await self.sms_client.send_sms(request.phone, body)
        return Success(payload={"success": True})

    async def notify_booking_decision(self, booking: Booking) -> DispatchResult:
        """SMS the booking's client after an approve/decline."""
        client = booking.client
        if client is None or not client.phone:
            logger.info(f"Booking {booking.id} has no client phone; SMS skipped")
            return SoftFailure(reason="no_phone", payload={"error": "Client has no phone number"})

        request = ClientNotificationRequest(
            phone=client.phone,
            client_name=client.name,
            employee_name=booking.employee.full_name if booking.employee else None,
            status=booking.status.value,
            date_time=booking.booking_datetime.isoformat(),
            service_name=booking.service.name if booking.service else None,
        )
        return await self.notify_client(request)

    async def send_booking_notification(self, booking_id: Optional[uuid.UUID]) -> Dict[str, Any]:
        """
        Tell the organization about a new booking by email.

        Raises:
            ValidationException: If no booking id is given
            NotFoundException: If the booking does not exist
        """
        if booking_id is None:
            raise ValidationException("Missing booking_id", field="booking_id")

        result = await self.db.execute(select(Booking).where(Booking.id == booking_id))
        booking = result.scalar_one_or_none()
        if booking is None:
            raise NotFoundException("Booking", code=ErrorCode.BOOKING_NOT_FOUND)

        staff_result = await self.db.execute(
            select(Profile.email)
            .where(Profile.organization_id == booking.organization_id)
            .where(Profile.email.is_not(None))
            .order_by(Profile.created_at)
            .limit(1)
        )
        staff_email = staff_result.scalar_one_or_none()
        if staff_email is None:
            logger.warning(
                f"[Email Notification] No staff email for org {booking.organization_id}. Using default."
            )
            staff_email = settings.default_notification_email

        service_name = booking.service.name if booking.service else None
        client_name = booking.client.name if booking.client else None
        log_email(EmailMessage(
            to=[staff_email],
            subject=f"New Booking: {service_name}",
            body_text=(
                f"You have a new booking from {client_name} for {service_name} "
                f"at {booking.booking_datetime.isoformat()}."
            ),
        ))

        return {"message": "Notification sent (logged)", "booking_id": str(booking.id)}
