"""
WorkForce - Organization Model

Organization model for multi-tenancy support.

Subscription fields are written by two paths only:
- Onboarding submission (initial tier)
- Stripe webhook sync (tier, status, period end, subscription id)
"""

from typing import TYPE_CHECKING, Any, Dict, List, Optional
from datetime import datetime

from sqlalchemy import JSON, Boolean, Integer, String, Enum as SQLEnum, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel
from app.models.tier_enums import Tier

if TYPE_CHECKING:
    from app.models.user import Profile
    from app.models.booking import Booking


class Organization(BaseModel):
    """
    Organization model - top-level tenant.

    Owns staff profiles, bookings and the submitted onboarding record.
    """

    __tablename__ = "organizations"

    # Basic Info
    business_name: Mapped[str] = mapped_column(String(255), nullable=False)
    employee_count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    # Subscription
    tier: Mapped[Tier] = mapped_column(
        SQLEnum(
            Tier,
            native_enum=False,
            length=20,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        default=Tier.FREE,
        nullable=False,
    )
    # Provider statuses are passed through verbatim, so this is a plain string
    subscription_status: Mapped[Optional[str]] = mapped_column(
        String(40),
        nullable=True,
        comment="Stripe subscription status (active, past_due, canceled, ...)",
    )
    subscription_period_end: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ===========================================
    # STRIPE REFERENCES
    # ===========================================
    stripe_customer_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
        index=True,
    )
    stripe_subscription_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    # ===========================================
    # ONBOARDING
    # ===========================================
    onboarding_data: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSON,
        nullable=True,
        comment="Submitted onboarding record, immutable after submission",
    )
    onboarding_complete: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # Relationships
    profiles: Mapped[List["Profile"]] = relationship(
        "Profile",
        back_populates="organization",
    )
    bookings: Mapped[List["Booking"]] = relationship(
        "Booking",
        back_populates="organization",
        cascade="all, delete-orphan",
    )

    @property
    def is_paid(self) -> bool:
        """Whether the organization is on a paid tier."""
        return self.tier != Tier.FREE
