"""
Users Router

Admin account-management endpoints.

Endpoints:
- POST /users/{user_id}/reset-password - Issue a temporary password by email
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.auth import CurrentUser, require_admin
from portal.core.database import get_db
from portal.core.exceptions import INTERNAL_ERROR_DETAIL, ServiceError, raise_for_service_error
from portal.modules.users import service
from portal.modules.users.schemas import ResetPasswordResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/{user_id}/reset-password",
    response_model=ResetPasswordResponse,
    summary="Reset User Password",
    description="""
Replace the user's password with a temporary 6-digit code and email it to them.

The account is flagged so the user must choose a new password on next login.

**Access:** Admin only
""",
    responses={
        404: {"description": "User not found"},
    },
)
async def reset_password(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> ResetPasswordResponse:
    try:
        user = await service.reset_password(db, user_id)

        logger.info(f"Admin {admin.id} reset password for user {user.id}")

        return ResetPasswordResponse(
            message="Password reset. A temporary password has been emailed to the user.",
            user_id=user.id,
        )

    except ServiceError as e:
        raise_for_service_error(e)
    except Exception as e:
        logger.exception(f"Error resetting password for user {user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR_DETAIL,
        ) from e
