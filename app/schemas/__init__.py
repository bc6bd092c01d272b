"""
WorkForce - Schemas Package

Pydantic schemas for request/response validation.
"""

from app.schemas.auth import LoginRequest, ProfileResponse, RegisterRequest, TokenResponse
from app.schemas.billing import CheckoutSessionRequest, UrlResponse
from app.schemas.booking import (
    BookingCreate,
    BookingDecisionResponse,
    BookingResponse,
    ClientCreate,
    ClientResponse,
    ServiceCreate,
    ServiceResponse,
)
from app.schemas.notifications import BookingNotificationRequest, ClientNotificationRequest
from app.schemas.onboarding import (
    OnboardingAction,
    OnboardingActionRequest,
    OnboardingRecord,
    OnboardingStateResponse,
    OnboardingStepInfo,
    WizardState,
)
from app.schemas.organization_users import InviteUserRequest

__all__ = [
    "LoginRequest",
    "ProfileResponse",
    "RegisterRequest",
    "TokenResponse",
    "CheckoutSessionRequest",
    "UrlResponse",
    "BookingCreate",
    "BookingDecisionResponse",
    "BookingResponse",
    "ClientCreate",
    "ClientResponse",
    "ServiceCreate",
    "ServiceResponse",
    "BookingNotificationRequest",
    "ClientNotificationRequest",
    "OnboardingAction",
    "OnboardingActionRequest",
    "OnboardingRecord",
    "OnboardingStateResponse",
    "OnboardingStepInfo",
    "WizardState",
    "InviteUserRequest",
]
