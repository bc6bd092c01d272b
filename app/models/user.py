"""
WorkForce - User and Profile Models

Accounts and staff profiles are separate records sharing one id:
- User: authentication account (email, password hash, active flag)
- Profile: staff identity and role within exactly one organization

A profile row is provisioned automatically whenever an account is inserted
(see provision_profile). Invitations and onboarding then link the existing
profile to an organization rather than creating one.
"""

import logging
import uuid
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, ForeignKey, String, Uuid, Enum as SQLEnum, event
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel
from app.models.tier_enums import ProfileRole, ADMIN_ROLES

if TYPE_CHECKING:
    from app.models.organization import Organization

logger = logging.getLogger(__name__)


class User(BaseModel):
    """Authentication account."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    email_confirmed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    profile: Mapped[Optional["Profile"]] = relationship(
        "Profile",
        back_populates="user",
        uselist=False,
    )

    @property
    def full_name(self) -> str:
        """Get user's full name."""
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"


class Profile(BaseModel):
    """
    Staff member profile.

    The primary key is the owning account's id.
    """

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    organization_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    email: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    department: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    role: Mapped[ProfileRole] = mapped_column(
        SQLEnum(
            ProfileRole,
            native_enum=False,
            length=30,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        default=ProfileRole.ASSOCIATE,
        nullable=False,
    )

    user: Mapped["User"] = relationship("User", back_populates="profile")
    organization: Mapped[Optional["Organization"]] = relationship(
        "Organization",
        back_populates="profiles",
    )

    @property
    def full_name(self) -> str:
        """Get profile's display name."""
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        """Check if the profile may manage staff and billing."""
        return self.role in ADMIN_ROLES

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, role={self.role}, organization_id={self.organization_id})>"


@event.listens_for(User, "after_insert")
def provision_profile(mapper, connection, target: User) -> None:
    """Create the bare profile row for a newly inserted account."""
    connection.execute(
        Profile.__table__.insert().values(
            id=target.id,
            email=target.email,
            first_name=target.first_name or "",
            last_name=target.last_name or "",
            role=ProfileRole.ASSOCIATE,
        )
    )
    logger.debug(f"Provisioned profile for account {target.id}")
