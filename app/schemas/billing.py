"""
WorkForce - Billing Schemas
"""

from pydantic import BaseModel, Field


class CheckoutSessionRequest(BaseModel):
    """Plan chosen on the upgrade prompt; anything but business buys Solo."""
    tier: str = Field(..., min_length=1)


class UrlResponse(BaseModel):
    """Hosted Stripe page to redirect to."""
    url: str
