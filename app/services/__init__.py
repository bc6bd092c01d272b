"""
WorkForce - Services Package

Business logic services.
"""

from app.services.auth_service import AuthService
from app.services.billing_service import BillingService, StripeProvider
from app.services.booking_service import BookingService
from app.services.dashboard_service import DashboardService
from app.services.feature_flags import FeatureFlagService
from app.services.notification_service import NotificationService, TwilioSMSClient
from app.services.onboarding_service import OnboardingService
from app.services.organization_user_service import OrganizationUserService
from app.services.results import DispatchResult, SoftFailure, Success

__all__ = [
    "AuthService",
    "BillingService",
    "StripeProvider",
    "BookingService",
    "DashboardService",
    "FeatureFlagService",
    "NotificationService",
    "TwilioSMSClient",
    "OnboardingService",
    "OrganizationUserService",
    "DispatchResult",
    "SoftFailure",
    "Success",
]
