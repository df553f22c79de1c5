"""
Users Service Layer

Business logic for authentication, password management and account
provisioning outside the signup flow.

Security considerations:
- Unknown username, inactive account and wrong password all produce the same
  401 message so the response never reveals which usernames exist
- Passwords and one-time codes are never logged
- Usernames and emails are unique at the database level; IntegrityError on
  flush is reported as a conflict
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.auth import CurrentUser
from portal.core.config import settings
from portal.core.email import send_password_reset
from portal.core.exceptions import ConflictError, NotFoundError, ServiceError
from portal.core.redis import revoke_token
from portal.core.security import create_access_token, generate_otp, hash_password, verify_password
from portal.modules.users.models import User, UserRole
from portal.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid username or password."


class InvalidCredentialsError(ServiceError):
    """Raised for any failed login. The message is deliberately generic."""

    def __init__(self):
        super().__init__(
            message=INVALID_CREDENTIALS_MESSAGE,
            error_code="INVALID_CREDENTIALS",
            status_code=401,
        )


class UserNotFoundError(NotFoundError):
    """Raised when a user does not exist."""

    def __init__(self, user_id: UUID | None = None):
        message = f"User {user_id} not found" if user_id else "User not found"
        super().__init__(message=message, error_code="USER_NOT_FOUND")


class DuplicateUserError(ConflictError):
    """Raised when a username or email is already taken."""

    def __init__(self, message: str = "Username or email already exists."):
        super().__init__(message=message, error_code="DUPLICATE_USER")


class OldPasswordRequiredError(ServiceError):
    """Raised when a regular password change omits the current password."""

    def __init__(self):
        super().__init__(
            message="Current password is required.",
            error_code="OLD_PASSWORD_REQUIRED",
            status_code=400,
        )


class IncorrectPasswordError(ServiceError):
    """Raised when the supplied current password does not match."""

    def __init__(self):
        super().__init__(
            message="Current password is incorrect.",
            error_code="INCORRECT_PASSWORD",
            status_code=401,
        )


async def authenticate(
    db: AsyncSession,
    username: str,
    password: str,
) -> tuple[User, str, datetime]:
    """
    Verify credentials and issue an access token.

    Returns:
        Tuple of (user, access token, token expiry)

    Raises:
        InvalidCredentialsError: On unknown user, inactive user or wrong password
    """
    user = await UserRepository.get_by_username(db, username.strip())

    if user is None:
        logger.warning(f"Login attempt for unknown username: {username}")
        raise InvalidCredentialsError()

    if not user.is_active:
        logger.warning(f"Login attempt for inactive account: {username}")
        raise InvalidCredentialsError()

    if not verify_password(password, user.password_hash):
        logger.warning(f"Invalid password for user: {username}")
        raise InvalidCredentialsError()

    await UserRepository.update_last_login(db, user)
    await db.commit()

    token, expires_at = create_access_token(
        subject=str(user.id),
        additional_claims={
            "role": user.role.value,
            "username": user.username,
        },
    )

    logger.info(f"User logged in: {user.username} (role: {user.role.value})")
    return user, token, expires_at


async def logout(current_user: CurrentUser) -> None:
    """Revoke the caller's token until it expires."""
    await revoke_token(current_user.jti, current_user.expires_at.timestamp())
    logger.info(f"User logged out: {current_user.username}")


async def get_user(db: AsyncSession, user_id: UUID) -> User:
    user = await UserRepository.get_by_id(db, user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return user


async def change_password(
    db: AsyncSession,
    user_id: UUID,
    new_password: str,
    old_password: str | None = None,
) -> User:
    """
    Change a user's password.

    Users flagged with ``requires_password_reset`` (fresh accounts, admin
    resets) only supply the new password. Everyone else must also supply the
    correct current password. A successful change clears the flag.

    Raises:
        UserNotFoundError: If the user does not exist
        OldPasswordRequiredError: If the current password is required but missing
        IncorrectPasswordError: If the current password does not match
    """
    user = await get_user(db, user_id)

    if not user.requires_password_reset:
        if not old_password:
            raise OldPasswordRequiredError()
        if not verify_password(old_password, user.password_hash):
            logger.warning(f"Password change with wrong current password for: {user.username}")
            raise IncorrectPasswordError()

    await UserRepository.set_password(
        db, user, hash_password(new_password), requires_password_reset=False
    )
    await db.commit()

    logger.info(f"Password changed for user: {user.username}")
    return user


async def register_user(
    db: AsyncSession,
    *,
    username: str,
    password: str,
    email: str,
    full_name: str,
    role: UserRole,
) -> User:
    """
    Create an account directly (admin only).

    Raises:
        DuplicateUserError: If the username or email is already taken
    """
    if await UserRepository.get_by_username(db, username):
        raise DuplicateUserError("Username already exists.")
    if await UserRepository.get_by_email(db, email):
        raise DuplicateUserError("Email already exists.")

    try:
        user = await UserRepository.create(
            db,
            username=username,
            email=email,
            password_hash=hash_password(password),
            full_name=full_name,
            role=role,
        )
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Concurrent registration conflict for username: {username}")
        raise DuplicateUserError() from e

    logger.info(f"User registered: {user.username} (role: {role.value})")
    return user


async def reset_password(db: AsyncSession, user_id: UUID) -> User:
    """
    Replace a user's password with a fresh one-time code and email it.

    The user must choose a new password on next login.
    """
    user = await get_user(db, user_id)

    temporary_password = generate_otp()
    await UserRepository.set_password(
        db, user, hash_password(temporary_password), requires_password_reset=True
    )
    await db.commit()

    try:
        send_password_reset(
            to_email=user.email,
            full_name=user.full_name,
            username=user.username,
            temporary_password=temporary_password,
        )
    except Exception as e:
        # Email is non-blocking - log error but don't fail the request
        logger.error(f"Failed to queue password reset email for user {user.id}: {e}")

    logger.info(f"Password reset by admin for user: {user.username}")
    return user


async def seed_default_admin(db: AsyncSession) -> User | None:
    """
    Ensure the configured default admin account exists.

    Returns:
        The created admin, or None if it already existed
    """
    existing = await UserRepository.get_by_username(db, settings.admin_username)
    if existing:
        logger.debug(f"Default admin already exists: {settings.admin_username}")
        return None

    try:
        admin = await UserRepository.create(
            db,
            username=settings.admin_username,
            email=settings.admin_email,
            password_hash=hash_password(settings.admin_password),
            full_name=settings.admin_full_name,
            role=UserRole.ADMIN,
        )
        await db.commit()
    except IntegrityError:
        # Another worker seeded it first
        await db.rollback()
        logger.info("Default admin was created concurrently")
        return None

    logger.info(f"Default admin created: {admin.username}")
    return admin
