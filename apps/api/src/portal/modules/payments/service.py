"""
Payments Service Layer

Students report payments; admins confirm or reject them exactly once.
"""

import logging
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.exceptions import ConflictError, NotFoundError, ServiceError
from portal.modules.payments import repository
from portal.modules.payments.models import Payment, PaymentStatus
from portal.modules.payments.schemas import PaymentCreate
from portal.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

DECISION_STATUSES = frozenset({PaymentStatus.CONFIRMED, PaymentStatus.REJECTED})


class StudentNotFoundError(NotFoundError):
    def __init__(self):
        super().__init__(message="Student not found", error_code="STUDENT_NOT_FOUND")


class PaymentNotFoundError(NotFoundError):
    def __init__(self, payment_id: UUID | None = None):
        message = f"Payment {payment_id} not found" if payment_id else "Payment not found"
        super().__init__(message=message, error_code="PAYMENT_NOT_FOUND")


class InvalidPaymentStatusError(ServiceError):
    """Raised when the requested status is not a decision."""

    def __init__(self):
        super().__init__(
            message="Payment status must be 'confirmed' or 'rejected'.",
            error_code="INVALID_PAYMENT_STATUS",
            status_code=400,
        )


class PaymentAlreadyDecidedError(ConflictError):
    def __init__(self, status: PaymentStatus | None = None):
        message = "This payment has already been decided."
        if status:
            message = f"This payment has already been {status.value}."
        super().__init__(message=message, error_code="PAYMENT_ALREADY_DECIDED")


async def create_payment(db: AsyncSession, data: PaymentCreate) -> Payment:
    """
    Record a payment reported by a student. Always starts ``pending``.

    Raises:
        StudentNotFoundError: If the student does not exist or is not a student
    """
    student = await UserRepository.get_student(db, data.student_id)
    if student is None:
        raise StudentNotFoundError()

    payment = await repository.create(
        db,
        student_id=student.id,
        amount=data.amount,
        payment_type=data.type,
        method=data.method,
        reference=data.reference,
    )
    await db.commit()

    logger.info(f"Payment {payment.id} submitted by student {student.username}: {data.amount}")
    return await repository.get_by_id(db, payment.id)


async def list_payments(db: AsyncSession, status: PaymentStatus | None = None) -> list[Payment]:
    return await repository.get_list(db, status=status)


async def list_student_payments(db: AsyncSession, student_id: UUID) -> list[Payment]:
    if await UserRepository.get_student(db, student_id) is None:
        raise StudentNotFoundError()
    return await repository.get_for_student(db, student_id)


async def update_status(
    db: AsyncSession,
    payment_id: UUID,
    status: PaymentStatus,
    admin_id: UUID,
) -> Payment:
    """
    Confirm or reject a pending payment.

    Raises:
        InvalidPaymentStatusError: Status is not confirmed/rejected
        PaymentNotFoundError: Unknown payment
        PaymentAlreadyDecidedError: Payment is no longer pending
    """
    if status not in DECISION_STATUSES:
        raise InvalidPaymentStatusError()

    payment = await repository.get_by_id(db, payment_id)
    if payment is None:
        raise PaymentNotFoundError(payment_id)
    if payment.status != PaymentStatus.PENDING:
        raise PaymentAlreadyDecidedError(payment.status)

    decided = await repository.decide(
        db,
        payment_id,
        status,
        decided_at=datetime.now(UTC),
        decided_by=admin_id,
    )
    if decided is None:
        await db.rollback()
        logger.warning(f"Payment {payment_id} was decided concurrently")
        raise PaymentAlreadyDecidedError()

    await db.commit()
    logger.info(f"Payment {payment_id} {status.value} by admin {admin_id}")

    return await repository.get_by_id(db, payment_id)


async def get_stats(db: AsyncSession) -> dict:
    """Count and amount per status, plus overall totals."""
    totals = await repository.totals_by_status(db)

    by_status = {}
    for status in PaymentStatus:
        count, amount = totals.get(status, (0, Decimal("0")))
        by_status[status.value] = {"count": count, "amount": float(amount)}

    return {
        "total_count": sum(v["count"] for v in by_status.values()),
        "total_amount": sum(v["amount"] for v in by_status.values()),
        "by_status": by_status,
    }
