"""
Payments Repository
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from .models import Payment, PaymentStatus


async def create(
    db: AsyncSession,
    *,
    student_id: UUID,
    amount: Decimal,
    payment_type: str,
    method: str,
    reference: str,
) -> Payment:
    payment = Payment(
        student_id=student_id,
        amount=amount,
        payment_type=payment_type,
        method=method,
        reference=reference,
        status=PaymentStatus.PENDING,
    )
    db.add(payment)
    await db.flush()
    return payment


async def get_by_id(db: AsyncSession, id: UUID) -> Payment | None:
    result = await db.execute(
        select(Payment)
        .options(joinedload(Payment.student))
        .where(Payment.id == id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_list(db: AsyncSession, status: PaymentStatus | None = None) -> list[Payment]:
    """All payments with their student loaded, newest first."""
    query = (
        select(Payment).options(joinedload(Payment.student)).order_by(Payment.created_at.desc())
    )
    if status is not None:
        query = query.where(Payment.status == status)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_for_student(db: AsyncSession, student_id: UUID) -> list[Payment]:
    result = await db.execute(
        select(Payment)
        .options(joinedload(Payment.student))
        .where(Payment.student_id == student_id)
        .order_by(Payment.created_at.desc())
    )
    return list(result.scalars().all())


async def decide(
    db: AsyncSession,
    id: UUID,
    status: PaymentStatus,
    **kwargs,
) -> UUID | None:
    """
    Set the decision on a payment that is still pending.

    Returns:
        The payment id, or None if it was not pending
    """
    result = await db.execute(
        update(Payment)
        .where(Payment.id == id, Payment.status == PaymentStatus.PENDING)
        .values(status=status, **kwargs)
        .returning(Payment.id)
    )
    return result.scalar_one_or_none()


async def totals_by_status(db: AsyncSession) -> dict[PaymentStatus, tuple[int, Decimal]]:
    """Count and summed amount per status."""
    result = await db.execute(
        select(
            Payment.status,
            func.count(Payment.id),
            func.coalesce(func.sum(Payment.amount), 0),
        ).group_by(Payment.status)
    )
    return {row[0]: (row[1], Decimal(row[2])) for row in result.all()}
