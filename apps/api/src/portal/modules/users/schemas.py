"""
User Schemas
"""

from datetime import datetime
from uuid import UUID

from portal.modules.shared.schemas import CamelModel
from portal.modules.users.models import UserRole


class UserResponse(CamelModel):
    """Public view of a user account. Never includes the password hash."""

    id: UUID
    username: str
    email: str
    full_name: str
    role: UserRole
    is_active: bool
    requires_password_reset: bool
    last_login: datetime | None = None
    created_at: datetime


class ResetPasswordResponse(CamelModel):
    """Response for an admin-initiated password reset."""

    message: str
    user_id: UUID
    requires_password_reset: bool = True
