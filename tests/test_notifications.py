"""
Notification Tests

Client SMS relay (Twilio, mocked with respx) and the staff booking email.
"""

import logging
from datetime import datetime, timezone
from urllib.parse import parse_qs

import httpx
import pytest
import respx

from app.schemas.notifications import ClientNotificationRequest
from app.services.notification_service import (
    CREDENTIALS_SKIPPED_MESSAGE,
    MISSING_FIELDS_MESSAGE,
    NotificationService,
    TwilioSMSClient,
    build_client_message,
    format_appointment_date,
    format_appointment_time,
    parse_appointment_time,
)
from app.services.results import SoftFailure, Success
from app.utils.error_handling import ExternalServiceException, ValidationException


TWILIO_URL = "https://api.twilio.com/2010-04-01/Accounts/AC_test_sid/Messages.json"

APPROVAL = {
    "phone": "+15550001111",
    "clientName": "Jane",
    "employeeName": "Sam Stylist",
    "status": "approved",
    "dateTime": "2026-01-05T15:30:00",
    "serviceName": "Haircut",
}


def sent_form(route) -> dict:
    request = route.calls.last.request
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


# =============================================================================
# MESSAGE FORMATTING
# =============================================================================

class TestMessageFormatting:

    def test_date_and_time(self):
        moment = datetime(2026, 1, 5, 15, 30)
        assert format_appointment_date(moment) == "Mon, Jan 5"
        assert format_appointment_time(moment) == "3:30 PM"

    @pytest.mark.parametrize("hour,minute,expected", [
        (0, 5, "12:05 AM"),
        (9, 0, "9:00 AM"),
        (12, 0, "12:00 PM"),
        (23, 59, "11:59 PM"),
    ])
    def test_twelve_hour_clock(self, hour, minute, expected):
        assert format_appointment_time(datetime(2026, 1, 5, hour, minute)) == expected

    def test_wall_time_kept_as_sent(self):
        moment = parse_appointment_time("2026-01-05T15:30:00-05:00")
        assert format_appointment_time(moment) == "3:30 PM"

    def test_trailing_z_accepted(self):
        moment = parse_appointment_time("2026-01-05T09:00:00Z")
        assert moment.tzinfo == timezone.utc

    @pytest.mark.parametrize("value", [None, "", "next tuesday"])
    def test_invalid_datetime(self, value):
        with pytest.raises(ValidationException):
            parse_appointment_time(value)

    def test_approved_message(self):
        message = build_client_message("Jane", "approved", datetime(2026, 1, 5, 15, 30), "Haircut", "Sam")
        assert message == (
            "Hi Jane, your appointment for Haircut with Sam on Mon, Jan 5 at 3:30 PM "
            "has been APPROVED! See you then."
        )

    def test_declined_message(self):
        message = build_client_message("Jane", "declined", datetime(2026, 1, 5, 15, 30), "Haircut", "Sam")
        assert "was DECLINED" in message
        assert "reschedule" in message

    def test_unknown_status_reads_as_declined(self):
        message = build_client_message("Jane", "maybe", datetime(2026, 1, 5, 15, 30))
        assert "DECLINED" in message
        assert "for a service with us" in message


# =============================================================================
# SERVICE
# =============================================================================

class TestNotifyClient:

    @pytest.mark.asyncio
    async def test_missing_credentials_skips(self, no_twilio):
        service = NotificationService(sms_client=TwilioSMSClient())
        result = await service.notify_client(ClientNotificationRequest(**APPROVAL))

        assert isinstance(result, SoftFailure)
        assert result.payload == {"error": CREDENTIALS_SKIPPED_MESSAGE}

    @pytest.mark.asyncio
    async def test_missing_fields_checked_before_credentials(self, no_twilio):
        service = NotificationService(sms_client=TwilioSMSClient())
        with pytest.raises(ValidationException, match=MISSING_FIELDS_MESSAGE):
            await service.notify_client(ClientNotificationRequest(phone="+1555", status="approved"))

    @pytest.mark.asyncio
    @respx.mock
    async def test_sends_sms(self, twilio_settings):
        route = respx.post(TWILIO_URL).mock(return_value=httpx.Response(201, json={"sid": "SM123"}))

        service = NotificationService(sms_client=TwilioSMSClient())
        result = await service.notify_client(ClientNotificationRequest(**APPROVAL))

        assert isinstance(result, Success)
        assert result.payload == {"success": True}
        form = sent_form(route)
        assert form["To"] == "+15550001111"
        assert form["From"] == "+15550009999"
        assert "APPROVED" in form["Body"]
        assert route.calls.last.request.headers["Authorization"].startswith("Basic ")

    @pytest.mark.asyncio
    @respx.mock
    async def test_provider_error_raises(self, twilio_settings):
        respx.post(TWILIO_URL).mock(return_value=httpx.Response(400, json={"message": "Invalid 'To'"}))

        service = NotificationService(sms_client=TwilioSMSClient())
        with pytest.raises(ExternalServiceException, match="Twilio API Error"):
            await service.notify_client(ClientNotificationRequest(**APPROVAL))

    @pytest.mark.asyncio
    @respx.mock
    async def test_network_error_raises(self, twilio_settings):
        respx.post(TWILIO_URL).mock(side_effect=httpx.ConnectError("connection refused"))

        service = NotificationService(sms_client=TwilioSMSClient())
        with pytest.raises(ExternalServiceException):
            await service.notify_client(ClientNotificationRequest(**APPROVAL))


class TestNotifyClientEndpoint:

    @pytest.mark.asyncio
    async def test_skipped_without_credentials(self, client, auth_headers, no_twilio):
        response = await client.post("/api/v1/notifications/notify-client", json=APPROVAL, headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"error": CREDENTIALS_SKIPPED_MESSAGE}

    @pytest.mark.asyncio
    async def test_missing_fields(self, client, auth_headers, twilio_settings):
        response = await client.post(
            "/api/v1/notifications/notify-client",
            json={"phone": "+15550001111"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"error": MISSING_FIELDS_MESSAGE}

    @pytest.mark.asyncio
    async def test_success(self, client, auth_headers, twilio_settings):
        with respx.mock() as router:
            router.post(TWILIO_URL).mock(return_value=httpx.Response(201, json={"sid": "SM1"}))
            response = await client.post(
                "/api/v1/notifications/notify-client", json=APPROVAL, headers=auth_headers
            )

        assert response.status_code == 200
        assert response.json() == {"success": True}

    @pytest.mark.asyncio
    async def test_provider_error_is_500(self, client, auth_headers, twilio_settings):
        with respx.mock() as router:
            router.post(TWILIO_URL).mock(return_value=httpx.Response(500))
            response = await client.post(
                "/api/v1/notifications/notify-client", json=APPROVAL, headers=auth_headers
            )

        assert response.status_code == 500
        assert response.json()["error"].startswith("Twilio API Error")

    @pytest.mark.asyncio
    async def test_requires_authentication(self, client):
        response = await client.post("/api/v1/notifications/notify-client", json=APPROVAL)
        assert response.status_code == 401


# =============================================================================
# BOOKING EMAIL
# =============================================================================

class TestBookingNotification:

    @pytest.mark.asyncio
    async def test_logs_email_to_first_staff_member(
        self, client, auth_headers, solo_org, test_client_record, test_service, make_booking, caplog
    ):
        booking = await make_booking(
            solo_org, datetime(2026, 1, 5, 15, 30, tzinfo=timezone.utc),
            service=test_service, client=test_client_record,
        )

        with caplog.at_level(logging.INFO, logger="app.services.notification_service"):
            response = await client.post(
                "/api/v1/notifications/booking",
                json={"booking_id": str(booking.id)},
                headers=auth_headers,
            )

        assert response.status_code == 200
        assert response.json() == {"message": "Notification sent (logged)", "booking_id": str(booking.id)}
        assert "To: admin@solo.example.com" in caplog.text
        assert "Subject: New Booking: Haircut" in caplog.text
        assert "new booking from Jane Doe for Haircut" in caplog.text

    @pytest.mark.asyncio
    async def test_falls_back_to_default_address(
        self, db_session, make_organization, make_booking, caplog
    ):
        org = await make_organization()
        booking = await make_booking(org, datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc))

        with caplog.at_level(logging.INFO, logger="app.services.notification_service"):
            result = await NotificationService(db_session).send_booking_notification(booking.id)

        assert result["booking_id"] == str(booking.id)
        assert "To: admin@example.com" in caplog.text
        assert "Using default" in caplog.text

    @pytest.mark.asyncio
    async def test_missing_booking_id(self, client, auth_headers):
        response = await client.post("/api/v1/notifications/booking", json={}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing booking_id"}

    @pytest.mark.asyncio
    async def test_unknown_booking(self, client, auth_headers):
        response = await client.post(
            "/api/v1/notifications/booking",
            json={"booking_id": "00000000-0000-0000-0000-000000000000"},
            headers=auth_headers,
        )
        assert response.status_code == 400
