"""
Fees Repository
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Fee, FeeStatus
from .schemas import FeeCreate


async def create(db: AsyncSession, data: FeeCreate) -> Fee:
    fee = Fee(
        student_id=data.student_id,
        academic_year=data.academic_year,
        form=data.form,
        fee_type=data.fee_type,
        amount=data.amount,
        due_date=data.due_date,
        notes=data.notes,
        status=FeeStatus.PENDING,
        paid_amount=Decimal("0"),
    )
    db.add(fee)
    await db.flush()
    return fee


async def get_for_update(db: AsyncSession, id: UUID) -> Fee | None:
    """Load a fee and lock its row until the transaction ends."""
    result = await db.execute(
        select(Fee)
        .where(Fee.id == id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_list(db: AsyncSession, status: FeeStatus | None = None) -> list[Fee]:
    query = select(Fee).order_by(Fee.due_date.asc())
    if status is not None:
        query = query.where(Fee.status == status)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_for_student(db: AsyncSession, student_id: UUID) -> list[Fee]:
    result = await db.execute(
        select(Fee).where(Fee.student_id == student_id).order_by(Fee.due_date.asc())
    )
    return list(result.scalars().all())


async def totals_by_status(db: AsyncSession) -> dict[FeeStatus, tuple[int, Decimal, Decimal]]:
    """Count, amount and paid amount per status."""
    result = await db.execute(
        select(
            Fee.status,
            func.count(Fee.id),
            func.coalesce(func.sum(Fee.amount), 0),
            func.coalesce(func.sum(Fee.paid_amount), 0),
        ).group_by(Fee.status)
    )
    return {row[0]: (row[1], Decimal(row[2]), Decimal(row[3])) for row in result.all()}
