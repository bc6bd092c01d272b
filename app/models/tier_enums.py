"""
WorkForce - Tier, Role and Subscription Enums

Shared enums for models, services and schemas.

Plans (USD):
- FREE: $0/month, no premium features
- SOLO: $40/month
- BUSINESS: $70/month
"""

from enum import Enum


class Tier(str, Enum):
    """
    Subscription tiers, ordered lowest to highest.

    Every feature a tier grants is also granted by the tiers above it.
    """
    FREE = "free"
    SOLO = "solo"
    BUSINESS = "business"


class Feature(str, Enum):
    """
    All features that can be gated by subscription tier.
    """
    # ===========================================
    # SOLO TIER FEATURES ($40/mo)
    # ===========================================
    ADVANCED_SCHEDULING = "advanced_scheduling"
    FINANCIAL_TRACKING = "financial_tracking"
    PERSONAL_VAULT = "personal_vault"
    STANDARD_ANALYTICS = "standard_analytics"

    # ===========================================
    # BUSINESS TIER FEATURES ($70/mo)
    # ===========================================
    BRANDING_STUDIO = "branding_studio"
    EMPLOYEE_MANAGEMENT = "employee_management"
    AI_COACHING = "ai_coaching"
    ORG_VAULT = "org_vault"
    WHITE_LABEL_COMMUNICATION = "white_label_communication"


class SubscriptionStatus(str, Enum):
    """
    Subscription statuses reported by the billing provider.

    Statuses outside this list are stored verbatim on the organization.
    """
    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    UNPAID = "unpaid"
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    PAUSED = "paused"


class ProfileRole(str, Enum):
    """Staff roles within an organization."""
    SUPER_ADMIN = "super_admin"
    DISTRICT_MANAGER = "district_manager"
    STORE_MANAGER = "store_manager"
    DEPARTMENT_MANAGER = "department_manager"
    ASSOCIATE = "associate"
    CLIENT = "client"


# Roles allowed to invite staff and manage billing
ADMIN_ROLES = frozenset({
    ProfileRole.SUPER_ADMIN,
    ProfileRole.DISTRICT_MANAGER,
    ProfileRole.STORE_MANAGER,
})
