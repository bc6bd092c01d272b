"""
WorkForce - SQLAlchemy Models Package

This package contains all database models for the application.
"""

from app.models.base import BaseModel, TimestampMixin
from app.models.tier_enums import Tier, Feature, SubscriptionStatus, ProfileRole, ADMIN_ROLES
from app.models.organization import Organization
from app.models.user import User, Profile, provision_profile
from app.models.booking import Booking, BookingStatus, Client, Service, OPEN_BOOKING_STATUSES
from app.models.onboarding import OnboardingDraft

__all__ = [
    "BaseModel",
    "TimestampMixin",
    "Tier",
    "Feature",
    "SubscriptionStatus",
    "ProfileRole",
    "ADMIN_ROLES",
    "Organization",
    "User",
    "Profile",
    "provision_profile",
    "Booking",
    "BookingStatus",
    "Client",
    "Service",
    "OPEN_BOOKING_STATUSES",
    "OnboardingDraft",
]
