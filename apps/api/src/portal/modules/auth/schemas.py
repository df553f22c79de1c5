"""Authentication schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field

from portal.modules.shared.schemas import CamelModel
from portal.modules.users.models import UserRole
from portal.modules.users.schemas import UserResponse

MIN_PASSWORD_LENGTH = 6


class LoginRequest(CamelModel):
    """Login request schema."""

    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)


class LoginResponse(CamelModel):
    """Successful login: identity plus bearer token."""

    message: str = "Login successful"
    user: UserResponse
    requires_password_reset: bool
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime


class RegisterRequest(CamelModel):
    """Admin request to create an account directly."""

    username: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=200)
    role: UserRole = UserRole.STUDENT


class ChangePasswordRequest(CamelModel):
    """
    Password change.

    ``user_id`` defaults to the caller. ``old_password`` may be omitted only
    when the account is flagged for a password reset.
    """

    user_id: UUID | None = None
    old_password: str | None = None
    new_password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)


class VerifyResponse(CamelModel):
    """Identity behind the presented token."""

    valid: bool = True
    user: UserResponse
