"""
Fees Service Layer

Fee items are created by admins per student. Payments recorded against a
fee accumulate into ``paid_amount`` and recompute the fee's status.
"""

import logging
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.exceptions import ConflictError, NotFoundError
from portal.modules.fees import repository
from portal.modules.fees.helpers import compute_fee_status
from portal.modules.fees.models import Fee, FeeStatus
from portal.modules.fees.schemas import FeeCreate, FeePayment
from portal.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


class FeeNotFoundError(NotFoundError):
    def __init__(self, fee_id: UUID | None = None):
        message = f"Fee {fee_id} not found" if fee_id else "Fee not found"
        super().__init__(message=message, error_code="FEE_NOT_FOUND")


class FeeAlreadyPaidError(ConflictError):
    def __init__(self):
        super().__init__(message="This fee has already been paid in full.", error_code="FEE_PAID")


async def create_fee(db: AsyncSession, data: FeeCreate) -> Fee:
    """
    Assign a fee to a student.

    Raises:
        NotFoundError: If the student does not exist
    """
    if await UserRepository.get_student(db, data.student_id) is None:
        raise NotFoundError(message="Student not found", error_code="STUDENT_NOT_FOUND")

    fee = await repository.create(db, data)
    await db.commit()
    await db.refresh(fee)

    logger.info(f"Fee {fee.id} ({data.fee_type.value}) created for student {data.student_id}")
    return fee


async def list_fees(db: AsyncSession, status: FeeStatus | None = None) -> list[Fee]:
    return await repository.get_list(db, status=status)


async def list_student_fees(db: AsyncSession, student_id: UUID) -> list[Fee]:
    return await repository.get_for_student(db, student_id)


async def record_payment(db: AsyncSession, fee_id: UUID, data: FeePayment) -> Fee:
    """
    Add a payment to a fee and recompute its status.

    The fee row is locked for the duration so concurrent payments add up.

    Raises:
        FeeNotFoundError: Unknown fee
        FeeAlreadyPaidError: Fee is already fully paid
    """
    fee = await repository.get_for_update(db, fee_id)
    if fee is None:
        raise FeeNotFoundError(fee_id)
    if fee.status == FeeStatus.PAID:
        await db.rollback()
        raise FeeAlreadyPaidError()

    today = datetime.now(UTC).date()
    fee.paid_amount = (fee.paid_amount or Decimal("0")) + data.amount
    fee.status = compute_fee_status(fee.amount, fee.paid_amount, fee.due_date, today)
    fee.payment_method = data.payment_method
    fee.payment_reference = data.payment_reference
    fee.paid_date = today

    await db.commit()
    await db.refresh(fee)

    logger.info(f"Payment of {data.amount} recorded on fee {fee_id}, status {fee.status.value}")
    return fee


async def get_stats(db: AsyncSession) -> dict:
    """Count, amount and paid amount per status, plus overall totals."""
    totals = await repository.totals_by_status(db)

    by_status = {}
    for status in FeeStatus:
        count, amount, paid = totals.get(status, (0, Decimal("0"), Decimal("0")))
        by_status[status.value] = {
            "count": count,
            "total_amount": float(amount),
            "paid_amount": float(paid),
        }

    return {
        "total": sum(v["count"] for v in by_status.values()),
        "total_amount": sum(v["total_amount"] for v in by_status.values()),
        "total_paid": sum(v["paid_amount"] for v in by_status.values()),
        "by_status": by_status,
    }
