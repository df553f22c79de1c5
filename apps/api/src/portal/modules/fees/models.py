"""
Fee Models

Fee schedule items assigned to students, with partial payment tracking.
"""

import enum
import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Enum, ForeignKey, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from portal.modules.admissions.models import FormLevel
from portal.modules.shared.models import BaseModel


class FeeType(str, enum.Enum):
    TUITION = "tuition"
    BOARDING = "boarding"
    TRANSPORT = "transport"
    UNIFORM = "uniform"
    BOOKS = "books"
    OTHER = "other"


class FeeStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    PARTIAL = "partial"


class Fee(BaseModel):
    """A fee owed by a student for an academic year."""

    __tablename__ = "fees"

    student_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False)
    form: Mapped[FormLevel] = mapped_column(Enum(FormLevel, name="form_level"), nullable=False)
    fee_type: Mapped[FeeType] = mapped_column(Enum(FeeType, name="fee_type"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[FeeStatus] = mapped_column(
        Enum(FeeStatus, name="fee_status"),
        nullable=False,
        default=FeeStatus.PENDING,
        index=True,
    )
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    payment_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    paid_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    paid_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def balance(self) -> Decimal:
        return max(self.amount - self.paid_amount, Decimal("0"))

    def __repr__(self) -> str:
        return f"<Fee {self.fee_type.value} {self.amount} ({self.status.value})>"
