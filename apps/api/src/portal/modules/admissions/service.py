"""
Admissions Service Layer

Business logic for admission applications.

This module implements:
1. Submission:
   - Assign the next application number for the year (atomic counter)
   - Persist the application as ``pending``
   - Queue the confirmation email

2. Status workflow:
   - Validate the transition against the state machine
   - Compare-and-set the status so concurrent decisions cannot both win
   - On acceptance, create the pending signup in the same transaction
   - Queue the applicant notification for the new status after commit

3. Admin queries: listing, detail and per-status statistics
"""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.config import settings
from portal.core.email import (
    send_application_received,
    send_application_rejected,
    send_application_status_update,
)
from portal.core.exceptions import ConflictError, NotFoundError
from portal.modules.admissions import repository
from portal.modules.admissions.helpers import format_application_number
from portal.modules.admissions.models import Admission, AdmissionStatus
from portal.modules.admissions.repository import InvalidStatusTransitionError
from portal.modules.admissions.schemas import AdmissionCreate
from portal.modules.signups import service as signups_service
from portal.modules.signups.models import PendingSignup

logger = logging.getLogger(__name__)


class ApplicationNotFoundError(NotFoundError):
    """Raised when an application is not found."""

    def __init__(self, application_id: UUID | None = None):
        message = (
            f"Application {application_id} not found" if application_id else "Application not found"
        )
        super().__init__(message=message, error_code="APPLICATION_NOT_FOUND")


class InvalidTransitionError(ConflictError):
    """Raised when the requested status change is not allowed."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="INVALID_STATUS_TRANSITION")


class ConcurrentUpdateError(ConflictError):
    """Raised when the application changed between read and write."""

    def __init__(self):
        super().__init__(
            message="The application was updated by someone else. Reload and try again.",
            error_code="CONCURRENT_UPDATE",
        )


async def submit_application(db: AsyncSession, data: AdmissionCreate) -> Admission:
    """
    Persist a new application and queue the confirmation email.

    Returns:
        The created admission with its application number
    """
    year = datetime.now(UTC).year
    seq = await repository.next_application_seq(db, year)
    application_number = format_application_number(settings.application_number_prefix, year, seq)

    admission = await repository.create(db, data, application_number)
    await db.commit()
    await db.refresh(admission)

    logger.info(f"Application {application_number} submitted ({admission.applying_for.value})")

    try:
        send_application_received(
            to_email=admission.email,
            applicant_name=admission.full_name,
            application_number=application_number,
        )
    except Exception as e:
        # Email is non-blocking - log error but don't fail the request
        logger.error(f"Failed to queue confirmation email for {application_number}: {e}")

    return admission


async def get_application(db: AsyncSession, application_id: UUID) -> Admission:
    admission = await repository.get_by_id(db, application_id)
    if admission is None:
        raise ApplicationNotFoundError(application_id)
    return admission


async def list_applications(
    db: AsyncSession,
    status: AdmissionStatus | None = None,
    search: str | None = None,
    skip: int = 0,
    limit: int = 50,
) -> dict:
    applications, total = await repository.get_list(
        db, status=status, search=search, skip=skip, limit=limit
    )
    return {
        "applications": applications,
        "total": total,
        "skip": skip,
        "limit": limit,
    }


async def get_stats(db: AsyncSession) -> dict:
    """Total applications and a count for every status (zero if none)."""
    counts = await repository.count_by_status(db)
    by_status = {status.value: counts.get(status, 0) for status in AdmissionStatus}
    return {"total": sum(by_status.values()), "by_status": by_status}


def _notify_status_change(admission: Admission, signup: PendingSignup | None) -> None:
    """Queue the applicant email matching the new status."""
    try:
        if admission.status == AdmissionStatus.ACCEPTED:
            if signup is not None:
                signups_service.notify_signup_created(admission, signup)
        elif admission.status == AdmissionStatus.REJECTED:
            send_application_rejected(
                to_email=admission.email,
                applicant_name=admission.full_name,
                application_number=admission.application_number,
                notes=admission.admin_notes,
            )
        else:
            send_application_status_update(
                to_email=admission.email,
                applicant_name=admission.full_name,
                application_number=admission.application_number,
                status=admission.status.value,
            )
    except Exception as e:
        # Email is non-blocking - log error but don't fail the request
        logger.error(f"Failed to queue status email for {admission.application_number}: {e}")


async def update_status(
    db: AsyncSession,
    application_id: UUID,
    new_status: AdmissionStatus,
    admin_notes: str | None = None,
    reviewed_by: str | None = None,
) -> tuple[Admission, PendingSignup | None]:
    """
    Move an application to a new status.

    Accepting creates the pending signup in the same transaction, so an
    accepted application always has exactly one.

    Returns:
        Tuple of (updated admission, created signup or None)

    Raises:
        ApplicationNotFoundError: Unknown application
        InvalidTransitionError: Transition not allowed from the current status
        ConcurrentUpdateError: Status changed since it was read
    """
    admission = await get_application(db, application_id)
    current_status = admission.status

    try:
        repository.validate_transition(current_status, new_status)
    except InvalidStatusTransitionError as e:
        logger.warning(f"Rejected transition for {admission.application_number}: {e}")
        raise InvalidTransitionError(str(e)) from e

    fields: dict = {"reviewed_at": datetime.now(UTC)}
    if admin_notes is not None:
        fields["admin_notes"] = admin_notes
    if reviewed_by is not None:
        fields["reviewed_by"] = reviewed_by

    updated = await repository.update_status(
        db, application_id, current_status, new_status, **fields
    )
    if updated is None:
        await db.rollback()
        logger.warning(f"Concurrent status change on application {application_id}")
        raise ConcurrentUpdateError()

    signup: PendingSignup | None = None
    try:
        if new_status == AdmissionStatus.ACCEPTED:
            signup = await signups_service.create_for_admission(db, updated)
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Signup already exists for application {application_id}")
        raise ConcurrentUpdateError() from e

    logger.info(
        f"Application {updated.application_number}: {current_status.value} -> {new_status.value}"
    )

    _notify_status_change(updated, signup)
    return updated, signup
