"""
WorkForce - Booking Schemas

Pydantic schemas for clients, services and bookings.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.booking import BookingStatus


# ===========================================
# CLIENTS
# ===========================================

class ClientCreate(BaseModel):
    """Schema for creating a client."""
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=30)


class ClientResponse(BaseModel):
    """Schema for client response."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


# ===========================================
# SERVICES
# ===========================================

class ServiceCreate(BaseModel):
    """Schema for creating a bookable service."""
    name: str = Field(..., min_length=1, max_length=255)
    price: Decimal = Field(Decimal("0"), ge=0)
    duration_minutes: int = Field(60, gt=0)


class ServiceResponse(BaseModel):
    """Schema for service response."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    price: Decimal
    duration_minutes: int


# ===========================================
# BOOKINGS
# ===========================================

class BookingCreate(BaseModel):
    """Schema for creating a booking."""
    client_id: Optional[UUID] = None
    service_id: Optional[UUID] = None
    employee_id: Optional[UUID] = None
    booking_datetime: datetime
    notes: Optional[str] = None


class BookingResponse(BaseModel):
    """Schema for booking response."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: UUID
    client_id: Optional[UUID] = None
    service_id: Optional[UUID] = None
    employee_id: Optional[UUID] = None
    booking_datetime: datetime
    status: BookingStatus
    notes: Optional[str] = None
    client: Optional[ClientResponse] = None
    service: Optional[ServiceResponse] = None


class BookingDecisionResponse(BaseModel):
    """A booking after approve/decline, with the client SMS outcome."""
    booking: BookingResponse
    notification: dict
