"""
Payment Schemas
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import Field

from portal.modules.payments.models import PaymentStatus
from portal.modules.shared.schemas import CamelModel


class PaymentCreate(CamelModel):
    """Request body for POST /payments."""

    student_id: UUID
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    type: str = Field(..., min_length=1, max_length=50)
    method: str = Field(..., min_length=1, max_length=50)
    reference: str = Field(..., min_length=1, max_length=100)


class PaymentStatusUpdate(CamelModel):
    """Request body for PUT /payments/{id}/status. Only a decision is accepted."""

    status: PaymentStatus


class PaymentStudent(CamelModel):
    username: str
    full_name: str
    email: str


class PaymentResponse(CamelModel):
    id: UUID
    student_id: UUID
    amount: float
    type: str = Field(validation_alias="payment_type")
    method: str
    reference: str
    status: PaymentStatus
    decided_at: datetime | None = None
    created_at: datetime
    student: PaymentStudent | None = None


class PaymentStatusTotals(CamelModel):
    count: int
    amount: float


class PaymentStats(CamelModel):
    """Response for GET /payments-stats."""

    total_count: int
    total_amount: float
    by_status: dict[str, PaymentStatusTotals]
