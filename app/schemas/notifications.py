"""
WorkForce - Notification Schemas

Request bodies for client SMS and staff booking notifications.
Required fields are checked by the service so that a missing field answers
400 rather than a schema error.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ClientNotificationRequest(BaseModel):
    """Approval outcome to relay to a client by SMS."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    phone: Optional[str] = None
    client_name: Optional[str] = None
    employee_name: Optional[str] = None
    status: Optional[str] = Field(None, description="approved or declined")
    date_time: Optional[str] = Field(None, description="ISO 8601 appointment time")
    service_name: Optional[str] = None


class BookingNotificationRequest(BaseModel):
    """A newly created booking to announce to the organization's staff."""
    booking_id: Optional[UUID] = None
