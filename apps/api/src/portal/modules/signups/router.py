"""
Pending Signups Router

Admin endpoints for turning accepted admissions into student accounts.

Endpoints:
- GET /pending-signups - List signups (pending by default)
- POST /pending-signups - Create a signup for an accepted application
- POST /pending-signups/{id}/approve - Create the student account
- POST /pending-signups/{id}/reject - Decline the account request
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.auth import CurrentUser, require_admin
from portal.core.database import get_db
from portal.core.exceptions import INTERNAL_ERROR_DETAIL, ServiceError, raise_for_service_error
from portal.modules.signups import service
from portal.modules.signups.models import SignupStatus
from portal.modules.signups.schemas import (
    ApproveSignupResponse,
    CreatePendingSignupRequest,
    PendingSignupListResponse,
    PendingSignupResponse,
    RejectSignupRequest,
    RejectSignupResponse,
)
from portal.modules.users.schemas import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=PendingSignupListResponse, summary="List Pending Signups")
async def list_signups(
    status_filter: SignupStatus | None = Query(
        SignupStatus.PENDING,
        alias="status",
        description="Filter by signup status",
    ),
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> PendingSignupListResponse:
    """List signups, newest first. Defaults to those awaiting a decision."""
    try:
        signups = await service.list_signups(db, status=status_filter)
        return PendingSignupListResponse(
            signups=[PendingSignupResponse.model_validate(s) for s in signups],
            total=len(signups),
        )
    except Exception as e:
        logger.exception(f"Error listing pending signups: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR_DETAIL,
        ) from e


@router.post(
    "",
    response_model=PendingSignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Pending Signup",
    description="""
Create the pending signup for an accepted application that does not have one.

**Access:** Admin only
""",
    responses={
        404: {"description": "Application not found"},
        409: {"description": "Application not accepted, or signup already exists"},
    },
)
async def create_signup(
    data: CreatePendingSignupRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> PendingSignupResponse:
    try:
        signup = await service.create_manual(db, data.application_id)
        logger.info(f"Admin {admin.id} created signup {signup.id}")
        return PendingSignupResponse.model_validate(signup)

    except ServiceError as e:
        raise_for_service_error(e)
    except Exception as e:
        logger.exception(f"Error creating pending signup: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR_DETAIL,
        ) from e


@router.post(
    "/{signup_id}/approve",
    response_model=ApproveSignupResponse,
    summary="Approve Pending Signup",
    description="""
Approve a pending signup and create the student account.

**Effects:**
- A unique username is assigned (`first.last`, then `first.last2`, ...)
- The student account is created with the one-time code as its password
  and must change it on first login
- Login details are emailed to the student

**Access:** Admin only
""",
    responses={
        404: {"description": "Signup not found"},
        409: {"description": "Signup already resolved or account conflict"},
    },
)
async def approve_signup(
    signup_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> ApproveSignupResponse:
    try:
        signup, user = await service.approve(db, signup_id)

        logger.info(f"Admin {admin.id} approved signup {signup_id}, user {user.id}")

        return ApproveSignupResponse(
            message="Student account created",
            signup=PendingSignupResponse.model_validate(signup),
            user=UserResponse.model_validate(user),
        )

    except ServiceError as e:
        raise_for_service_error(e)
    except Exception as e:
        logger.exception(f"Error approving signup: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR_DETAIL,
        ) from e


@router.post(
    "/{signup_id}/reject",
    response_model=RejectSignupResponse,
    summary="Reject Pending Signup",
    responses={
        404: {"description": "Signup not found"},
        409: {"description": "Signup already resolved"},
    },
)
async def reject_signup(
    signup_id: UUID,
    data: RejectSignupRequest | None = None,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> RejectSignupResponse:
    reason = data.reason if data else None

    try:
        signup = await service.reject(db, signup_id, reason=reason)

        logger.info(f"Admin {admin.id} rejected signup {signup_id}")

        return RejectSignupResponse(
            message="Signup rejected",
            signup=PendingSignupResponse.model_validate(signup),
        )

    except ServiceError as e:
        raise_for_service_error(e)
    except Exception as e:
        logger.exception(f"Error rejecting signup: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR_DETAIL,
        ) from e
