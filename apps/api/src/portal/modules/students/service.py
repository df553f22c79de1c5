"""
Students Service Layer

Admin and self-service views over student accounts.
"""

import logging
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.exceptions import ConflictError, NotFoundError
from portal.modules.admissions import repository as admissions_repository
from portal.modules.admissions.models import Admission
from portal.modules.payments import repository as payments_repository
from portal.modules.payments.models import PaymentStatus
from portal.modules.signups import repository as signups_repository
from portal.modules.students.schemas import StudentUpdate
from portal.modules.users.models import User
from portal.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


class StudentNotFoundError(NotFoundError):
    def __init__(self, student_id: UUID | None = None):
        message = f"Student {student_id} not found" if student_id else "Student not found"
        super().__init__(message=message, error_code="STUDENT_NOT_FOUND")


class DuplicateEmailError(ConflictError):
    def __init__(self):
        super().__init__(
            message="Another account already uses this email address.",
            error_code="DUPLICATE_EMAIL",
        )


async def list_students(db: AsyncSession) -> list[User]:
    return await UserRepository.list_active_students(db)


async def get_student(db: AsyncSession, student_id: UUID) -> User:
    student = await UserRepository.get_student(db, student_id)
    if student is None:
        raise StudentNotFoundError(student_id)
    return student


async def get_student_application(db: AsyncSession, student_id: UUID) -> Admission:
    """
    The admission a student account came from.

    Follows the approved signup that created the account, so later email
    changes do not matter. Accounts registered directly by an admin have no
    signup and fall back to the most recent admission with their email.
    """
    student = await get_student(db, student_id)

    admission = None
    signup = await signups_repository.get_by_user_id(db, student.id)
    if signup is not None:
        admission = await admissions_repository.get_by_id(db, signup.application_id)
    if admission is None:
        admission = await admissions_repository.get_latest_by_email(db, student.email)
    if admission is None:
        raise NotFoundError(
            message="No application found for this student",
            error_code="APPLICATION_NOT_FOUND",
        )
    return admission


async def update_student(db: AsyncSession, student_id: UUID, data: StudentUpdate) -> User:
    """
    Update a student's name and/or email.

    Raises:
        StudentNotFoundError: Unknown student
        DuplicateEmailError: Email belongs to another account
    """
    student = await get_student(db, student_id)

    if data.email is not None:
        email = str(data.email).lower()
        existing = await UserRepository.get_by_email(db, email)
        if existing is not None and existing.id != student.id:
            raise DuplicateEmailError()
        student.email = email

    if data.full_name is not None:
        student.full_name = data.full_name

    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise DuplicateEmailError() from e

    await db.refresh(student)
    logger.info(f"Student {student.username} profile updated")
    return student


async def deactivate_student(db: AsyncSession, student_id: UUID) -> User:
    """Soft delete: the account stays but can no longer log in."""
    student = await get_student(db, student_id)
    student.is_active = False
    await db.commit()

    logger.info(f"Student {student.username} deactivated")
    return student


async def get_stats(db: AsyncSession) -> dict:
    now = datetime.now(UTC)
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    total = await UserRepository.count_active_students(db)
    new_this_month = await UserRepository.count_active_students(db, since=month_start)

    payment_totals = await payments_repository.totals_by_status(db)
    payments_count = sum(count for count, _ in payment_totals.values())
    _, confirmed_amount = payment_totals.get(PaymentStatus.CONFIRMED, (0, Decimal("0")))

    return {
        "total": total,
        "new_this_month": new_this_month,
        "payments_count": payments_count,
        "payments_total_confirmed": float(confirmed_amount),
    }
