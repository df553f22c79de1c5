"""
Fee Schemas
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import Field

from portal.modules.admissions.models import FormLevel
from portal.modules.fees.models import FeeStatus, FeeType
from portal.modules.shared.schemas import CamelModel


class FeeCreate(CamelModel):
    """Request body for POST /fees."""

    student_id: UUID
    academic_year: str = Field(..., min_length=1, max_length=20)
    form: FormLevel
    fee_type: FeeType
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    due_date: date
    notes: str | None = Field(None, max_length=2000)


class FeePayment(CamelModel):
    """Request body for PUT /fees/{id}/payment."""

    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    payment_method: str = Field(..., min_length=1, max_length=50)
    payment_reference: str | None = Field(None, max_length=100)


class FeeResponse(CamelModel):
    id: UUID
    student_id: UUID
    academic_year: str
    form: FormLevel
    fee_type: FeeType
    amount: float
    due_date: date
    status: FeeStatus
    payment_method: str | None = None
    payment_reference: str | None = None
    paid_amount: float
    balance: float
    paid_date: date | None = None
    notes: str | None = None
    created_at: datetime


class FeeStatusTotals(CamelModel):
    count: int
    total_amount: float
    paid_amount: float


class FeeStats(CamelModel):
    """Response for GET /fees-stats."""

    total: int
    total_amount: float
    total_paid: float
    by_status: dict[str, FeeStatusTotals]
