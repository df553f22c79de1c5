"""
Unit tests for students service layer.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from pydantic import ValidationError

from portal.core.exceptions import NotFoundError
from portal.modules.payments.models import PaymentStatus
from portal.modules.students.schemas import StudentUpdate
from portal.modules.students.service import (
    DuplicateEmailError,
    StudentNotFoundError,
    deactivate_student,
    get_stats,
    get_student,
    get_student_application,
    update_student,
)

SERVICE = "portal.modules.students.service"


class TestGetStudent:
    @pytest.mark.asyncio
    async def test_not_found(self, mock_db):
        with patch(f"{SERVICE}.UserRepository") as mock_users:
            mock_users.get_student = AsyncMock(return_value=None)

            with pytest.raises(StudentNotFoundError) as exc_info:
                await get_student(mock_db, uuid4())

            assert exc_info.value.status_code == 404


class TestGetStudentApplication:
    """Tests for get_student_application function."""

    @pytest.mark.asyncio
    async def test_follows_signup_link(self, mock_db, sample_student, sample_admission):
        signup = MagicMock()
        signup.application_id = sample_admission.id

        with (
            patch(f"{SERVICE}.UserRepository") as mock_users,
            patch(f"{SERVICE}.signups_repository") as mock_signups,
            patch(f"{SERVICE}.admissions_repository") as mock_admissions,
        ):
            mock_users.get_student = AsyncMock(return_value=sample_student)
            mock_signups.get_by_user_id = AsyncMock(return_value=signup)
            mock_admissions.get_by_id = AsyncMock(return_value=sample_admission)

            result = await get_student_application(mock_db, sample_student.id)

            assert result is sample_admission
            mock_signups.get_by_user_id.assert_awaited_once_with(mock_db, sample_student.id)
            mock_admissions.get_by_id.assert_awaited_once_with(mock_db, sample_admission.id)
            mock_admissions.get_latest_by_email.assert_not_called()

    @pytest.mark.asyncio
    async def test_found_after_email_change(self, mock_db, sample_student, sample_admission):
        """Changing the account email does not lose the application."""
        signup = MagicMock()
        signup.application_id = sample_admission.id

        with (
            patch(f"{SERVICE}.UserRepository") as mock_users,
            patch(f"{SERVICE}.signups_repository") as mock_signups,
            patch(f"{SERVICE}.admissions_repository") as mock_admissions,
        ):
            mock_users.get_student = AsyncMock(return_value=sample_student)
            mock_users.get_by_email = AsyncMock(return_value=None)
            mock_signups.get_by_user_id = AsyncMock(return_value=signup)
            mock_admissions.get_by_id = AsyncMock(return_value=sample_admission)
            mock_admissions.get_latest_by_email = AsyncMock(return_value=None)

            await update_student(
                mock_db, sample_student.id, StudentUpdate(email="ama.new@example.com")
            )
            result = await get_student_application(mock_db, sample_student.id)

            assert sample_student.email == "ama.new@example.com"
            assert result is sample_admission

    @pytest.mark.asyncio
    async def test_falls_back_to_email_without_signup(
        self, mock_db, sample_student, sample_admission
    ):
        with (
            patch(f"{SERVICE}.UserRepository") as mock_users,
            patch(f"{SERVICE}.signups_repository") as mock_signups,
            patch(f"{SERVICE}.admissions_repository") as mock_admissions,
        ):
            mock_users.get_student = AsyncMock(return_value=sample_student)
            mock_signups.get_by_user_id = AsyncMock(return_value=None)
            mock_admissions.get_latest_by_email = AsyncMock(return_value=sample_admission)

            result = await get_student_application(mock_db, sample_student.id)

            assert result is sample_admission
            mock_admissions.get_latest_by_email.assert_awaited_once_with(
                mock_db, "ama.banda@example.com"
            )

    @pytest.mark.asyncio
    async def test_no_application(self, mock_db, sample_student):
        with (
            patch(f"{SERVICE}.UserRepository") as mock_users,
            patch(f"{SERVICE}.signups_repository") as mock_signups,
            patch(f"{SERVICE}.admissions_repository") as mock_admissions,
        ):
            mock_users.get_student = AsyncMock(return_value=sample_student)
            mock_signups.get_by_user_id = AsyncMock(return_value=None)
            mock_admissions.get_latest_by_email = AsyncMock(return_value=None)

            with pytest.raises(NotFoundError) as exc_info:
                await get_student_application(mock_db, sample_student.id)

            assert exc_info.value.error_code == "APPLICATION_NOT_FOUND"


class TestUpdateStudent:
    """Tests for update_student function."""

    def test_empty_update_rejected(self):
        with pytest.raises(ValidationError):
            StudentUpdate()

    @pytest.mark.asyncio
    async def test_updates_name_and_lowercases_email(self, mock_db, sample_student):
        with patch(f"{SERVICE}.UserRepository") as mock_users:
            mock_users.get_student = AsyncMock(return_value=sample_student)
            mock_users.get_by_email = AsyncMock(return_value=None)

            await update_student(
                mock_db,
                sample_student.id,
                StudentUpdate(full_name="Ama K. Banda", email="Ama.K@Example.com"),
            )

            assert sample_student.full_name == "Ama K. Banda"
            assert sample_student.email == "ama.k@example.com"
            mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_email_taken_by_other_account(self, mock_db, sample_student):
        other = MagicMock()
        other.id = uuid4()

        with patch(f"{SERVICE}.UserRepository") as mock_users:
            mock_users.get_student = AsyncMock(return_value=sample_student)
            mock_users.get_by_email = AsyncMock(return_value=other)

            with pytest.raises(DuplicateEmailError) as exc_info:
                await update_student(
                    mock_db, sample_student.id, StudentUpdate(email="taken@example.com")
                )

            assert exc_info.value.status_code == 409
            mock_db.commit.assert_not_called()


class TestDeactivateStudent:
    @pytest.mark.asyncio
    async def test_soft_delete(self, mock_db, sample_student):
        with patch(f"{SERVICE}.UserRepository") as mock_users:
            mock_users.get_student = AsyncMock(return_value=sample_student)

            result = await deactivate_student(mock_db, sample_student.id)

            assert result.is_active is False
            mock_db.commit.assert_awaited_once()


class TestGetStats:
    @pytest.mark.asyncio
    async def test_combines_students_and_payments(self, mock_db):
        with (
            patch(f"{SERVICE}.UserRepository") as mock_users,
            patch(f"{SERVICE}.payments_repository") as mock_payments,
        ):
            mock_users.count_active_students = AsyncMock(side_effect=[40, 6])
            mock_payments.totals_by_status = AsyncMock(
                return_value={
                    PaymentStatus.PENDING: (3, Decimal("900")),
                    PaymentStatus.CONFIRMED: (5, Decimal("1250.50")),
                }
            )

            stats = await get_stats(mock_db)

            assert stats == {
                "total": 40,
                "new_this_month": 6,
                "payments_count": 8,
                "payments_total_confirmed": 1250.5,
            }
