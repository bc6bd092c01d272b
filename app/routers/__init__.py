"""
WorkForce - Routers Package

FastAPI route handlers.

Routers:
- auth: Registration, login, current profile
- onboarding: 13-step setup wizard
- access: Tier gate for client routes and the upgrade prompt
- dashboard: Role-scoped dashboards
- billing: Stripe checkout, portal and webhook
- notifications: Client SMS and staff booking email
- organization_users: Staff invitations
- schedule: Clients, services and bookings
"""

from app.routers import (
    access,
    auth,
    billing,
    dashboard,
    notifications,
    onboarding,
    organization_users,
    schedule,
)

__all__ = [
    "access",
    "auth",
    "billing",
    "dashboard",
    "notifications",
    "onboarding",
    "organization_users",
    "schedule",
]
