"""
Pending Signup Models

A pending signup bridges an accepted admission and the student account
created when an admin approves it.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from portal.modules.shared.models import BaseModel


class SignupStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PendingSignup(BaseModel):
    """
    Account request created when an admission is accepted.

    Exactly one per admission (unique ``application_id``). Moves once from
    ``pending`` to ``approved`` or ``rejected`` and is immutable afterwards.
    The one-time code doubles as the student's first password and is never
    returned by the API.
    """

    __tablename__ = "pending_signups"

    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("admissions.id", ondelete="RESTRICT"),
        unique=True,
        nullable=False,
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    desired_username: Mapped[str] = mapped_column(String(255), nullable=False)

    otp: Mapped[str] = mapped_column(String(6), nullable=False)
    otp_expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    status: Mapped[SignupStatus] = mapped_column(
        Enum(SignupStatus, name="signup_status"),
        nullable=False,
        default=SignupStatus.PENDING,
        index=True,
    )
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<PendingSignup {self.desired_username} ({self.status.value})>"
