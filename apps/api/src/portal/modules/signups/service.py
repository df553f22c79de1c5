"""
Pending Signups Service Layer

Business logic for the account provisioning cascade:

1. Creation:
   - When an admission is accepted (same transaction as the status change)
   - Manually by an admin for an accepted admission that has no signup

2. Approval:
   - Resolve a free username (desired name, then name2, name3, ...)
   - Refresh the one-time code if it has expired
   - Conditionally flip pending -> approved, create the student User and
     commit both together; losing a race yields a conflict, never a second User
   - Email the final credentials after commit

3. Rejection:
   - Conditionally flip pending -> rejected and email the reason
"""

import logging
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.config import settings
from portal.core.email import send_account_ready, send_application_accepted, send_signup_rejected
from portal.core.exceptions import ConflictError, NotFoundError
from portal.core.security import generate_otp, hash_password
from portal.modules.admissions import repository as admissions_repository
from portal.modules.admissions.helpers import derive_username, pick_available_username
from portal.modules.admissions.models import Admission, AdmissionStatus
from portal.modules.signups import repository
from portal.modules.signups.models import PendingSignup, SignupStatus
from portal.modules.users.models import User, UserRole
from portal.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


class SignupNotFoundError(NotFoundError):
    """Raised when a pending signup does not exist."""

    def __init__(self, signup_id: UUID | None = None):
        message = f"Pending signup {signup_id} not found" if signup_id else "Pending signup not found"
        super().__init__(message=message, error_code="SIGNUP_NOT_FOUND")


class SignupAlreadyResolvedError(ConflictError):
    """Raised when acting on a signup that is no longer pending."""

    def __init__(self, status: SignupStatus | None = None):
        message = "This signup has already been resolved."
        if status:
            message = f"This signup has already been {status.value}."
        super().__init__(message=message, error_code="SIGNUP_ALREADY_RESOLVED")


class SignupExistsError(ConflictError):
    """Raised when an admission already has a signup."""

    def __init__(self):
        super().__init__(
            message="A signup already exists for this application.",
            error_code="SIGNUP_EXISTS",
        )


class AdmissionNotAcceptedError(ConflictError):
    """Raised when creating a signup for an admission that is not accepted."""

    def __init__(self):
        super().__init__(
            message="Signups can only be created for accepted applications.",
            error_code="ADMISSION_NOT_ACCEPTED",
        )


class AccountConflictError(ConflictError):
    """Raised when the student account cannot be created because of a uniqueness clash."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="ACCOUNT_CONFLICT")


def _otp_expiry(now: datetime) -> datetime:
    return now + timedelta(minutes=settings.otp_expiry_minutes)


async def create_for_admission(db: AsyncSession, admission: Admission) -> PendingSignup:
    """
    Create the pending signup for a just-accepted admission.

    Flushes but does not commit; the caller owns the transaction.
    """
    now = datetime.now(UTC)
    signup = await repository.create(
        db,
        application_id=admission.id,
        email=admission.email,
        full_name=admission.full_name,
        desired_username=derive_username(admission.first_name, admission.last_name),
        otp=generate_otp(),
        otp_expires_at=_otp_expiry(now),
    )
    logger.info(
        f"Pending signup {signup.id} created for application {admission.application_number}"
    )
    return signup


def notify_signup_created(admission: Admission, signup: PendingSignup) -> None:
    """Email the applicant their acceptance and one-time code."""
    try:
        send_application_accepted(
            to_email=admission.email,
            applicant_name=admission.full_name,
            application_number=admission.application_number,
            username=signup.desired_username,
            otp=signup.otp,
            expiry_minutes=settings.otp_expiry_minutes,
        )
    except Exception as e:
        # Email is non-blocking - log error but don't fail the request
        logger.error(f"Failed to queue acceptance email for signup {signup.id}: {e}")


async def create_manual(db: AsyncSession, application_id: UUID) -> PendingSignup:
    """
    Create a signup for an accepted admission that has none.

    Raises:
        NotFoundError: If the admission does not exist
        AdmissionNotAcceptedError: If the admission is not accepted
        SignupExistsError: If a signup already exists
    """
    admission = await admissions_repository.get_by_id(db, application_id)
    if admission is None:
        raise NotFoundError(
            message=f"Application {application_id} not found",
            error_code="APPLICATION_NOT_FOUND",
        )

    if admission.status != AdmissionStatus.ACCEPTED:
        raise AdmissionNotAcceptedError()

    if await repository.get_by_application_id(db, application_id):
        raise SignupExistsError()

    try:
        signup = await create_for_admission(db, admission)
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise SignupExistsError() from e

    notify_signup_created(admission, signup)
    return signup


async def list_signups(
    db: AsyncSession,
    status: SignupStatus | None = SignupStatus.PENDING,
) -> list[PendingSignup]:
    return await repository.get_list(db, status=status)


async def _get_pending(db: AsyncSession, signup_id: UUID) -> PendingSignup:
    signup = await repository.get_by_id(db, signup_id)
    if signup is None:
        raise SignupNotFoundError(signup_id)
    if signup.status != SignupStatus.PENDING:
        raise SignupAlreadyResolvedError(signup.status)
    return signup


async def resolve_username(db: AsyncSession, desired: str) -> str:
    """Return ``desired`` if free, else the first free ``desired<n>`` with n >= 2."""
    taken = await UserRepository.get_usernames_like(db, desired)
    return pick_available_username(desired, taken)


async def approve(db: AsyncSession, signup_id: UUID) -> tuple[PendingSignup, User]:
    """
    Approve a pending signup and create the student account.

    Returns:
        Tuple of (resolved signup, created user)

    Raises:
        SignupNotFoundError: Unknown signup
        SignupAlreadyResolvedError: Signup not pending, including a lost race
        AccountConflictError: Email already has an account, or a concurrent
            request took the username
    """
    signup = await _get_pending(db, signup_id)

    if await UserRepository.get_by_email(db, signup.email):
        raise AccountConflictError("An account with this email address already exists.")

    username = await resolve_username(db, signup.desired_username)

    now = datetime.now(UTC)
    otp = signup.otp
    otp_expires_at = signup.otp_expires_at
    if otp_expires_at <= now:
        logger.info(f"One-time code for signup {signup_id} expired, issuing a new one")
        otp = generate_otp()
        otp_expires_at = _otp_expiry(now)

    resolved = await repository.resolve(
        db,
        signup_id,
        SignupStatus.APPROVED,
        decided_at=now,
        otp=otp,
        otp_expires_at=otp_expires_at,
    )
    if resolved is None:
        await db.rollback()
        logger.warning(f"Signup {signup_id} was resolved concurrently")
        raise SignupAlreadyResolvedError()

    try:
        user = await UserRepository.create(
            db,
            username=username,
            email=resolved.email,
            password_hash=hash_password(otp),
            full_name=resolved.full_name,
            role=UserRole.STUDENT,
            requires_password_reset=True,
        )
        resolved.user_id = user.id
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Account creation conflict approving signup {signup_id}")
        raise AccountConflictError(
            "The username or email was taken by another account. Please try again."
        ) from e

    logger.info(f"Signup {signup_id} approved, student account created: {user.username}")

    try:
        send_account_ready(
            to_email=user.email,
            full_name=user.full_name,
            username=user.username,
            temporary_password=otp,
        )
    except Exception as e:
        # Email is non-blocking - log error but don't fail the request
        logger.error(f"Failed to queue credentials email for user {user.id}: {e}")

    return resolved, user


async def reject(db: AsyncSession, signup_id: UUID, reason: str | None = None) -> PendingSignup:
    """
    Reject a pending signup.

    Raises:
        SignupNotFoundError: Unknown signup
        SignupAlreadyResolvedError: Signup not pending, including a lost race
    """
    await _get_pending(db, signup_id)

    resolved = await repository.resolve(
        db,
        signup_id,
        SignupStatus.REJECTED,
        decided_at=datetime.now(UTC),
        rejection_reason=reason,
    )
    if resolved is None:
        await db.rollback()
        logger.warning(f"Signup {signup_id} was resolved concurrently")
        raise SignupAlreadyResolvedError()

    await db.commit()
    logger.info(f"Signup {signup_id} rejected")

    try:
        send_signup_rejected(
            to_email=resolved.email,
            full_name=resolved.full_name,
            reason=reason,
        )
    except Exception as e:
        # Email is non-blocking - log error but don't fail the request
        logger.error(f"Failed to queue rejection email for signup {signup_id}: {e}")

    return resolved
