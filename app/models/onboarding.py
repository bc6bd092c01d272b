"""
WorkForce - Onboarding Draft Model

Persists the wizard state between actions so a user can leave and resume.
"""

import uuid
from typing import Any, Dict, Optional

from sqlalchemy import JSON, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel


class OnboardingDraft(BaseModel):
    """One in-progress wizard per account."""

    __tablename__ = "onboarding_drafts"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    step: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    data: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    error: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    organization_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        comment="Set once the draft has been submitted",
    )
