"""
Admissions Repository

Database operations for admission applications and the application number
counter.

Design Principles:
- All queries are parameterized (no SQL injection)
- Functions flush, the service decides when to commit
- Status writes are compare-and-set on the previously read status
- Timezone-aware datetime handling (UTC)
"""

from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from .helpers import counter_key
from .models import Admission, AdmissionStatus, ApplicationCounter
from .schemas import AdmissionCreate


async def next_application_seq(db: AsyncSession, year: int) -> int:
    """
    Atomically increment and return the application counter for a year.

    A single INSERT ... ON CONFLICT DO UPDATE ... RETURNING statement, so two
    concurrent submissions can never read the same value.
    """
    stmt = (
        insert(ApplicationCounter)
        .values(key=counter_key(year), seq=1)
        .on_conflict_do_update(
            index_elements=[ApplicationCounter.key],
            set_={"seq": ApplicationCounter.seq + 1},
        )
        .returning(ApplicationCounter.seq)
    )
    result = await db.execute(stmt)
    return result.scalar_one()


async def create(db: AsyncSession, data: AdmissionCreate, application_number: str) -> Admission:
    """Create a new admission in ``pending`` status."""

    admission = Admission(
        application_number=application_number,
        # Personal
        first_name=data.first_name,
        last_name=data.last_name,
        date_of_birth=data.date_of_birth,
        gender=data.gender,
        nationality=data.nationality,
        # Contact
        address=data.address,
        phone=data.phone,
        email=str(data.email).lower(),
        # Academic
        applying_for=data.applying_for,
        academic_year=data.academic_year,
        previous_school=data.previous_school,
        # Guardian
        guardian_name=data.guardian_name,
        guardian_relationship=data.relationship,
        guardian_phone=data.guardian_phone,
        guardian_email=str(data.guardian_email).lower() if data.guardian_email else None,
        occupation=data.occupation,
        # Medical
        allergies=data.allergies,
        emergency_contact=data.emergency_contact,
        # Payment
        payment_methods=data.payment_method,
        payment_reference=data.reference,
        status=AdmissionStatus.PENDING,
    )

    db.add(admission)
    await db.flush()

    return admission


async def get_by_id(db: AsyncSession, id: UUID) -> Admission | None:
    """Get admission by ID."""
    return await db.get(Admission, id)


async def get_latest_by_email(db: AsyncSession, email: str) -> Admission | None:
    """Most recent admission submitted with this contact email."""
    result = await db.execute(
        select(Admission)
        .where(Admission.email == email.lower())
        .order_by(Admission.date_submitted.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_list(
    db: AsyncSession,
    status: AdmissionStatus | None = None,
    search: str | None = None,
    skip: int = 0,
    limit: int = 50,
) -> tuple[list[Admission], int]:
    """
    List admissions, newest first.

    Args:
        status: Optional status filter
        search: Case-insensitive match on name, email or application number

    Returns:
        Tuple of (page of admissions, total matching count)
    """
    filters = []
    if status is not None:
        filters.append(Admission.status == status)
    if search:
        pattern = f"%{search}%"
        filters.append(
            or_(
                Admission.first_name.ilike(pattern),
                Admission.last_name.ilike(pattern),
                Admission.email.ilike(pattern),
                Admission.application_number.ilike(pattern),
            )
        )

    total_result = await db.execute(select(func.count(Admission.id)).where(*filters))
    total = total_result.scalar_one()

    result = await db.execute(
        select(Admission)
        .where(*filters)
        .order_by(Admission.date_submitted.desc())
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def count_by_status(db: AsyncSession) -> dict[AdmissionStatus, int]:
    """Count admissions grouped by status."""
    result = await db.execute(
        select(Admission.status, func.count(Admission.id)).group_by(Admission.status)
    )
    return {row[0]: row[1] for row in result.all()}


# Valid status transitions - prevents invalid state changes
# Accepted and rejected are terminal: a decision is never reopened
VALID_STATUS_TRANSITIONS: dict[AdmissionStatus, set[AdmissionStatus]] = {
    AdmissionStatus.PENDING: {
        AdmissionStatus.UNDER_REVIEW,  # Admin started reviewing
        AdmissionStatus.ACCEPTED,  # Fast-track acceptance
        AdmissionStatus.REJECTED,  # Fast-track rejection
    },
    AdmissionStatus.UNDER_REVIEW: {
        AdmissionStatus.PENDING,  # Returned to the queue
        AdmissionStatus.ACCEPTED,
        AdmissionStatus.REJECTED,
    },
    # Terminal states - no transitions allowed
    AdmissionStatus.ACCEPTED: set(),
    AdmissionStatus.REJECTED: set(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in VALID_STATUS_TRANSITIONS.items() if not targets
)


class InvalidStatusTransitionError(ValueError):
    """Raised when an invalid status transition is attempted."""

    def __init__(
        self,
        current_status: AdmissionStatus,
        new_status: AdmissionStatus,
    ):
        self.current_status = current_status
        self.new_status = new_status
        valid_transitions = VALID_STATUS_TRANSITIONS.get(current_status, set())
        super().__init__(
            f"Invalid status transition: {current_status.value} -> {new_status.value}. "
            f"Valid transitions: {sorted(s.value for s in valid_transitions)}"
        )


def validate_transition(current_status: AdmissionStatus, new_status: AdmissionStatus) -> None:
    """
    Check a transition against the state machine.

    Re-applying the current status is allowed for non-terminal states so
    admins can edit notes; terminal states accept nothing.

    Raises:
        InvalidStatusTransitionError: If the transition is not allowed
    """
    if current_status in TERMINAL_STATUSES:
        raise InvalidStatusTransitionError(current_status, new_status)

    if new_status != current_status and new_status not in VALID_STATUS_TRANSITIONS[current_status]:
        raise InvalidStatusTransitionError(current_status, new_status)


async def update_status(
    db: AsyncSession,
    id: UUID,
    expected_status: AdmissionStatus,
    status: AdmissionStatus,
    **kwargs,
) -> Admission | None:
    """
    Set a new status only if the admission still has ``expected_status``.

    Args:
        db: Database session
        id: Admission UUID
        expected_status: Status the caller read before deciding
        status: New status to set
        **kwargs: Additional columns to update (e.g. reviewed_at, admin_notes)

    Returns:
        The updated admission, or None if it was changed concurrently
    """
    values = {"status": status, **kwargs}
    result = await db.execute(
        update(Admission)
        .where(Admission.id == id, Admission.status == expected_status)
        .values(**values)
        .returning(Admission)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()
