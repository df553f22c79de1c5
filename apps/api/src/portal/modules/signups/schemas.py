"""
Pending Signup Schemas
"""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from portal.modules.shared.schemas import CamelModel
from portal.modules.signups.models import SignupStatus
from portal.modules.users.schemas import UserResponse


class PendingSignupResponse(CamelModel):
    """Admin view of a pending signup. The one-time code is not included."""

    id: UUID
    application_id: UUID
    email: str
    full_name: str
    desired_username: str
    otp_expires_at: datetime
    status: SignupStatus
    decided_at: datetime | None = None
    rejection_reason: str | None = None
    user_id: UUID | None = None
    created_at: datetime


class PendingSignupListResponse(CamelModel):
    signups: list[PendingSignupResponse]
    total: int


class CreatePendingSignupRequest(CamelModel):
    """Create the signup for an accepted admission that has none."""

    application_id: UUID


class ApproveSignupResponse(CamelModel):
    message: str
    signup: PendingSignupResponse
    user: UserResponse


class RejectSignupRequest(CamelModel):
    reason: str | None = Field(None, max_length=1000)


class RejectSignupResponse(CamelModel):
    message: str
    signup: PendingSignupResponse
