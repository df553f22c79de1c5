"""
Unit tests for admissions service layer.

These tests cover:
- Application submission and numbering
- Status workflow (transitions, terminal states, concurrent updates)
- Pending signup creation on acceptance
- Statistics
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from portal.modules.admissions.models import AdmissionStatus
from portal.modules.admissions.repository import validate_transition
from portal.modules.admissions.service import (
    ApplicationNotFoundError,
    ConcurrentUpdateError,
    InvalidTransitionError,
    get_application,
    get_stats,
    submit_application,
    update_status,
)

SERVICE = "portal.modules.admissions.service"


class TestSubmitApplication:
    """Tests for submit_application function."""

    @pytest.mark.asyncio
    async def test_submit_application_assigns_number_and_emails(
        self,
        mock_db,
        sample_admission_create,
        sample_admission,
    ):
        """A Form 2 application is stored pending with this year's first number."""
        year = datetime.now(UTC).year

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.send_application_received") as mock_email,
        ):
            mock_repo.next_application_seq = AsyncMock(return_value=1)
            mock_repo.create = AsyncMock(return_value=sample_admission)

            result = await submit_application(mock_db, sample_admission_create)

            assert result is sample_admission
            mock_repo.next_application_seq.assert_awaited_once_with(mock_db, year)
            mock_repo.create.assert_awaited_once_with(
                mock_db, sample_admission_create, f"JJ{year}0001"
            )
            mock_db.commit.assert_awaited_once()
            mock_email.assert_called_once_with(
                to_email="ama.banda@example.com",
                applicant_name="Ama Banda",
                application_number=f"JJ{year}0001",
            )

    @pytest.mark.asyncio
    async def test_submit_application_email_failure_does_not_fail(
        self,
        mock_db,
        sample_admission_create,
        sample_admission,
    ):
        """A failure queueing the email is logged, the submission still succeeds."""
        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.send_application_received") as mock_email,
        ):
            mock_repo.next_application_seq = AsyncMock(return_value=7)
            mock_repo.create = AsyncMock(return_value=sample_admission)
            mock_email.side_effect = RuntimeError("no event loop")

            result = await submit_application(mock_db, sample_admission_create)

            assert result is sample_admission
            mock_db.commit.assert_awaited_once()


class TestGetApplication:
    @pytest.mark.asyncio
    async def test_not_found(self, mock_db):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=None)

            with pytest.raises(ApplicationNotFoundError) as exc_info:
                await get_application(mock_db, uuid4())

            assert exc_info.value.status_code == 404
            assert exc_info.value.error_code == "APPLICATION_NOT_FOUND"


class TestUpdateStatus:
    """Tests for update_status function."""

    @pytest.mark.asyncio
    async def test_accept_creates_pending_signup(self, mock_db, sample_admission, sample_signup):
        """Accepting commits the status and the signup together, then notifies."""
        accepted = MagicMock()
        accepted.id = sample_admission.id
        accepted.application_number = sample_admission.application_number
        accepted.status = AdmissionStatus.ACCEPTED

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.signups_service") as mock_signups,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=sample_admission)
            mock_repo.validate_transition = validate_transition
            mock_repo.update_status = AsyncMock(return_value=accepted)
            mock_signups.create_for_admission = AsyncMock(return_value=sample_signup)
            mock_signups.notify_signup_created = MagicMock()

            admission, signup = await update_status(
                mock_db,
                sample_admission.id,
                AdmissionStatus.ACCEPTED,
                admin_notes="Strong application",
                reviewed_by="Admissions Office",
            )

            assert admission is accepted
            assert signup is sample_signup

            args, kwargs = mock_repo.update_status.call_args
            assert args[2] == AdmissionStatus.PENDING
            assert args[3] == AdmissionStatus.ACCEPTED
            assert kwargs["admin_notes"] == "Strong application"
            assert kwargs["reviewed_by"] == "Admissions Office"
            assert kwargs["reviewed_at"] is not None

            mock_signups.create_for_admission.assert_awaited_once_with(mock_db, accepted)
            mock_db.commit.assert_awaited_once()
            mock_signups.notify_signup_created.assert_called_once_with(accepted, sample_signup)

    @pytest.mark.asyncio
    async def test_under_review_sends_status_update(self, mock_db, sample_admission):
        reviewed = MagicMock()
        reviewed.email = sample_admission.email
        reviewed.full_name = "Ama Banda"
        reviewed.application_number = sample_admission.application_number
        reviewed.status = AdmissionStatus.UNDER_REVIEW

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.signups_service") as mock_signups,
            patch(f"{SERVICE}.send_application_status_update") as mock_email,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=sample_admission)
            mock_repo.validate_transition = validate_transition
            mock_repo.update_status = AsyncMock(return_value=reviewed)
            mock_signups.create_for_admission = AsyncMock()

            admission, signup = await update_status(
                mock_db, sample_admission.id, AdmissionStatus.UNDER_REVIEW
            )

            assert signup is None
            mock_signups.create_for_admission.assert_not_called()
            mock_email.assert_called_once()
            assert mock_email.call_args.kwargs["status"] == "under_review"

    @pytest.mark.asyncio
    async def test_reject_sends_rejection_with_notes(self, mock_db, sample_admission):
        rejected = MagicMock()
        rejected.email = sample_admission.email
        rejected.full_name = "Ama Banda"
        rejected.application_number = sample_admission.application_number
        rejected.admin_notes = "Form 2 is full"
        rejected.status = AdmissionStatus.REJECTED

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.send_application_rejected") as mock_email,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=sample_admission)
            mock_repo.validate_transition = validate_transition
            mock_repo.update_status = AsyncMock(return_value=rejected)

            await update_status(
                mock_db, sample_admission.id, AdmissionStatus.REJECTED, admin_notes="Form 2 is full"
            )

            mock_email.assert_called_once()
            assert mock_email.call_args.kwargs["notes"] == "Form 2 is full"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("terminal", [AdmissionStatus.ACCEPTED, AdmissionStatus.REJECTED])
    async def test_terminal_status_is_conflict(self, mock_db, sample_admission, terminal):
        """A decided application cannot be changed, not even to the same status."""
        sample_admission.status = terminal

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=sample_admission)
            mock_repo.validate_transition = validate_transition
            mock_repo.update_status = AsyncMock()

            with pytest.raises(InvalidTransitionError) as exc_info:
                await update_status(mock_db, sample_admission.id, terminal)

            assert exc_info.value.status_code == 409
            assert exc_info.value.error_code == "INVALID_STATUS_TRANSITION"
            mock_repo.update_status.assert_not_called()
            mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_concurrent_change_is_conflict(self, mock_db, sample_admission):
        """If the compare-and-set matches no row, nothing is committed."""
        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.signups_service") as mock_signups,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=sample_admission)
            mock_repo.validate_transition = validate_transition
            mock_repo.update_status = AsyncMock(return_value=None)
            mock_signups.create_for_admission = AsyncMock()

            with pytest.raises(ConcurrentUpdateError) as exc_info:
                await update_status(mock_db, sample_admission.id, AdmissionStatus.ACCEPTED)

            assert exc_info.value.status_code == 409
            mock_db.rollback.assert_awaited_once()
            mock_db.commit.assert_not_called()
            mock_signups.create_for_admission.assert_not_called()

    @pytest.mark.asyncio
    async def test_duplicate_signup_is_conflict(self, mock_db, sample_admission):
        accepted = MagicMock()
        accepted.status = AdmissionStatus.ACCEPTED

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.signups_service") as mock_signups,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=sample_admission)
            mock_repo.validate_transition = validate_transition
            mock_repo.update_status = AsyncMock(return_value=accepted)
            mock_signups.create_for_admission = AsyncMock(
                side_effect=IntegrityError("insert", {}, Exception("duplicate key"))
            )
            mock_signups.notify_signup_created = MagicMock()

            with pytest.raises(ConcurrentUpdateError):
                await update_status(mock_db, sample_admission.id, AdmissionStatus.ACCEPTED)

            mock_db.rollback.assert_awaited_once()
            mock_signups.notify_signup_created.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_application(self, mock_db):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=None)

            with pytest.raises(ApplicationNotFoundError):
                await update_status(mock_db, uuid4(), AdmissionStatus.ACCEPTED)


class TestGetStats:
    @pytest.mark.asyncio
    async def test_every_status_reported(self, mock_db):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.count_by_status = AsyncMock(
                return_value={AdmissionStatus.PENDING: 3, AdmissionStatus.ACCEPTED: 2}
            )

            stats = await get_stats(mock_db)

            assert stats["total"] == 5
            assert stats["by_status"] == {
                "pending": 3,
                "under_review": 0,
                "accepted": 2,
                "rejected": 0,
            }
