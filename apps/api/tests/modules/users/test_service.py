"""
Unit tests for users service layer.

These tests cover:
- Login (identical failures for unknown, inactive and wrong password)
- Logout token revocation
- Password change with and without the reset flag
- Admin registration and password reset
- Default admin seeding
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from portal.core.auth import CurrentUser
from portal.core.security import decode_token
from portal.modules.users.models import UserRole
from portal.modules.users.service import (
    INVALID_CREDENTIALS_MESSAGE,
    DuplicateUserError,
    IncorrectPasswordError,
    InvalidCredentialsError,
    OldPasswordRequiredError,
    UserNotFoundError,
    authenticate,
    change_password,
    logout,
    register_user,
    reset_password,
    seed_default_admin,
)

SERVICE = "portal.modules.users.service"


class TestAuthenticate:
    """Tests for authenticate function."""

    @pytest.mark.asyncio
    async def test_success_issues_token_with_role(self, mock_db, sample_student):
        with (
            patch(f"{SERVICE}.UserRepository") as mock_users,
            patch(f"{SERVICE}.verify_password", return_value=True),
        ):
            mock_users.get_by_username = AsyncMock(return_value=sample_student)
            mock_users.update_last_login = AsyncMock()

            user, token, expires_at = await authenticate(mock_db, " ama.banda ", "482913")

            assert user is sample_student
            mock_users.get_by_username.assert_awaited_once_with(mock_db, "ama.banda")
            mock_users.update_last_login.assert_awaited_once_with(mock_db, sample_student)
            mock_db.commit.assert_awaited_once()

            claims = decode_token(token)
            assert claims["sub"] == str(sample_student.id)
            assert claims["role"] == "student"
            assert claims["username"] == "ama.banda"
            assert expires_at > datetime.now(UTC)

    @pytest.mark.asyncio
    async def test_unknown_user(self, mock_db):
        with patch(f"{SERVICE}.UserRepository") as mock_users:
            mock_users.get_by_username = AsyncMock(return_value=None)

            with pytest.raises(InvalidCredentialsError) as exc_info:
                await authenticate(mock_db, "nobody", "secret")

            assert exc_info.value.status_code == 401
            assert exc_info.value.message == INVALID_CREDENTIALS_MESSAGE

    @pytest.mark.asyncio
    async def test_inactive_user_same_error(self, mock_db, sample_student):
        sample_student.is_active = False

        with (
            patch(f"{SERVICE}.UserRepository") as mock_users,
            patch(f"{SERVICE}.verify_password", return_value=True),
        ):
            mock_users.get_by_username = AsyncMock(return_value=sample_student)

            with pytest.raises(InvalidCredentialsError) as exc_info:
                await authenticate(mock_db, "ama.banda", "482913")

            assert exc_info.value.message == INVALID_CREDENTIALS_MESSAGE

    @pytest.mark.asyncio
    async def test_wrong_password_same_error(self, mock_db, sample_student):
        with (
            patch(f"{SERVICE}.UserRepository") as mock_users,
            patch(f"{SERVICE}.verify_password", return_value=False),
        ):
            mock_users.get_by_username = AsyncMock(return_value=sample_student)
            mock_users.update_last_login = AsyncMock()

            with pytest.raises(InvalidCredentialsError) as exc_info:
                await authenticate(mock_db, "ama.banda", "wrong")

            assert exc_info.value.message == INVALID_CREDENTIALS_MESSAGE
            mock_users.update_last_login.assert_not_called()


class TestLogout:
    @pytest.mark.asyncio
    async def test_revokes_token_until_expiry(self):
        expires_at = datetime.now(UTC) + timedelta(hours=1)
        current_user = CurrentUser(
            id=uuid4(),
            username="ama.banda",
            role="student",
            jti="abc123",
            expires_at=expires_at,
        )

        with patch(f"{SERVICE}.revoke_token", new_callable=AsyncMock) as mock_revoke:
            await logout(current_user)

            mock_revoke.assert_awaited_once_with("abc123", expires_at.timestamp())


class TestChangePassword:
    """Tests for change_password function."""

    @pytest.mark.asyncio
    async def test_flagged_user_needs_no_old_password(self, mock_db, sample_student):
        sample_student.requires_password_reset = True

        with (
            patch(f"{SERVICE}.UserRepository") as mock_users,
            patch(f"{SERVICE}.hash_password", return_value="new-hash"),
        ):
            mock_users.get_by_id = AsyncMock(return_value=sample_student)
            mock_users.set_password = AsyncMock()

            await change_password(mock_db, sample_student.id, "newPass123")

            mock_users.set_password.assert_awaited_once_with(
                mock_db, sample_student, "new-hash", requires_password_reset=False
            )
            mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_old_password_required(self, mock_db, sample_student):
        with patch(f"{SERVICE}.UserRepository") as mock_users:
            mock_users.get_by_id = AsyncMock(return_value=sample_student)

            with pytest.raises(OldPasswordRequiredError) as exc_info:
                await change_password(mock_db, sample_student.id, "newPass123")

            assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_wrong_old_password(self, mock_db, sample_student):
        with (
            patch(f"{SERVICE}.UserRepository") as mock_users,
            patch(f"{SERVICE}.verify_password", return_value=False),
        ):
            mock_users.get_by_id = AsyncMock(return_value=sample_student)
            mock_users.set_password = AsyncMock()

            with pytest.raises(IncorrectPasswordError) as exc_info:
                await change_password(
                    mock_db, sample_student.id, "newPass123", old_password="guess"
                )

            assert exc_info.value.status_code == 401
            mock_users.set_password.assert_not_called()

    @pytest.mark.asyncio
    async def test_correct_old_password(self, mock_db, sample_student):
        with (
            patch(f"{SERVICE}.UserRepository") as mock_users,
            patch(f"{SERVICE}.verify_password", return_value=True),
            patch(f"{SERVICE}.hash_password", return_value="new-hash"),
        ):
            mock_users.get_by_id = AsyncMock(return_value=sample_student)
            mock_users.set_password = AsyncMock()

            await change_password(
                mock_db, sample_student.id, "newPass123", old_password="oldPass1"
            )

            mock_users.set_password.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_user(self, mock_db):
        with patch(f"{SERVICE}.UserRepository") as mock_users:
            mock_users.get_by_id = AsyncMock(return_value=None)

            with pytest.raises(UserNotFoundError):
                await change_password(mock_db, uuid4(), "newPass123")


class TestRegisterUser:
    @pytest.mark.asyncio
    async def test_duplicate_username(self, mock_db, sample_student):
        with patch(f"{SERVICE}.UserRepository") as mock_users:
            mock_users.get_by_username = AsyncMock(return_value=sample_student)
            mock_users.create = AsyncMock()

            with pytest.raises(DuplicateUserError) as exc_info:
                await register_user(
                    mock_db,
                    username="ama.banda",
                    password="secret1",
                    email="other@example.com",
                    full_name="Other Person",
                    role=UserRole.STUDENT,
                )

            assert exc_info.value.status_code == 409
            mock_users.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_creates_user(self, mock_db, sample_student):
        with (
            patch(f"{SERVICE}.UserRepository") as mock_users,
            patch(f"{SERVICE}.hash_password", return_value="hashed"),
        ):
            mock_users.get_by_username = AsyncMock(return_value=None)
            mock_users.get_by_email = AsyncMock(return_value=None)
            mock_users.create = AsyncMock(return_value=sample_student)

            user = await register_user(
                mock_db,
                username="ama.banda",
                password="secret1",
                email="ama.banda@example.com",
                full_name="Ama Banda",
                role=UserRole.STUDENT,
            )

            assert user is sample_student
            assert mock_users.create.call_args.kwargs["password_hash"] == "hashed"
            mock_db.commit.assert_awaited_once()


class TestResetPassword:
    @pytest.mark.asyncio
    async def test_sets_temporary_password_and_emails(self, mock_db, sample_student):
        with (
            patch(f"{SERVICE}.UserRepository") as mock_users,
            patch(f"{SERVICE}.generate_otp", return_value="654321"),
            patch(f"{SERVICE}.hash_password", return_value="temp-hash"),
            patch(f"{SERVICE}.send_password_reset") as mock_email,
        ):
            mock_users.get_by_id = AsyncMock(return_value=sample_student)
            mock_users.set_password = AsyncMock()

            await reset_password(mock_db, sample_student.id)

            mock_users.set_password.assert_awaited_once_with(
                mock_db, sample_student, "temp-hash", requires_password_reset=True
            )
            assert mock_email.call_args.kwargs["temporary_password"] == "654321"

    @pytest.mark.asyncio
    async def test_email_failure_does_not_fail_reset(self, mock_db, sample_student):
        """The reset is already committed when the email is queued."""
        with (
            patch(f"{SERVICE}.UserRepository") as mock_users,
            patch(f"{SERVICE}.send_password_reset", side_effect=RuntimeError("no loop")),
        ):
            mock_users.get_by_id = AsyncMock(return_value=sample_student)
            mock_users.set_password = AsyncMock()

            user = await reset_password(mock_db, sample_student.id)

            assert user is sample_student
            mock_db.commit.assert_awaited_once()


class TestSeedDefaultAdmin:
    @pytest.mark.asyncio
    async def test_existing_admin_untouched(self, mock_db):
        with patch(f"{SERVICE}.UserRepository") as mock_users:
            mock_users.get_by_username = AsyncMock(return_value=MagicMock())
            mock_users.create = AsyncMock()

            assert await seed_default_admin(mock_db) is None
            mock_users.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_creates_admin(self, mock_db):
        admin = MagicMock()
        admin.username = "admin@jjmw"

        with (
            patch(f"{SERVICE}.UserRepository") as mock_users,
            patch(f"{SERVICE}.hash_password", return_value="hashed"),
        ):
            mock_users.get_by_username = AsyncMock(return_value=None)
            mock_users.create = AsyncMock(return_value=admin)

            assert await seed_default_admin(mock_db) is admin
            assert mock_users.create.call_args.kwargs["role"] == UserRole.ADMIN
            mock_db.commit.assert_awaited_once()
