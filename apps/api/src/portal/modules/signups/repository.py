"""
Pending Signups Repository

Database operations for pending signups. Resolution is a conditional update
on ``status = 'pending'`` so at most one caller can approve or reject a
signup.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import PendingSignup, SignupStatus


async def create(
    db: AsyncSession,
    *,
    application_id: UUID,
    email: str,
    full_name: str,
    desired_username: str,
    otp: str,
    otp_expires_at: datetime,
) -> PendingSignup:
    signup = PendingSignup(
        application_id=application_id,
        email=email,
        full_name=full_name,
        desired_username=desired_username,
        otp=otp,
        otp_expires_at=otp_expires_at,
        status=SignupStatus.PENDING,
    )
    db.add(signup)
    await db.flush()
    return signup


async def get_by_id(db: AsyncSession, id: UUID) -> PendingSignup | None:
    return await db.get(PendingSignup, id)


async def get_by_application_id(db: AsyncSession, application_id: UUID) -> PendingSignup | None:
    result = await db.execute(
        select(PendingSignup).where(PendingSignup.application_id == application_id)
    )
    return result.scalar_one_or_none()


async def get_by_user_id(db: AsyncSession, user_id: UUID) -> PendingSignup | None:
    """The approved signup that created a student account."""
    result = await db.execute(
        select(PendingSignup).where(PendingSignup.user_id == user_id).limit(1)
    )
    return result.scalars().first()


async def get_list(db: AsyncSession, status: SignupStatus | None = None) -> list[PendingSignup]:
    """List signups, newest first."""
    query = select(PendingSignup).order_by(PendingSignup.created_at.desc())
    if status is not None:
        query = query.where(PendingSignup.status == status)
    result = await db.execute(query)
    return list(result.scalars().all())


async def resolve(
    db: AsyncSession,
    id: UUID,
    status: SignupStatus,
    **kwargs,
) -> PendingSignup | None:
    """
    Move a signup out of ``pending``.

    Returns:
        The updated signup, or None if it was not pending (already resolved,
        possibly by a concurrent request)
    """
    values = {"status": status, **kwargs}
    result = await db.execute(
        update(PendingSignup)
        .where(PendingSignup.id == id, PendingSignup.status == SignupStatus.PENDING)
        .values(**values)
        .returning(PendingSignup)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()
