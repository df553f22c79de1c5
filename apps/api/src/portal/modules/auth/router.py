"""
Authentication Router

Endpoints:
- POST /login - Exchange username and password for a bearer token
- POST /logout - Revoke the current token
- POST /register - Create an account directly (admin)
- POST /change-password - Change a password
- GET /verify - Return the identity behind the current token
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.auth import CurrentUser, ensure_self_or_admin, get_current_user, require_admin
from portal.core.database import get_db
from portal.core.exceptions import INTERNAL_ERROR_DETAIL, ServiceError, raise_for_service_error
from portal.core.rate_limit import RATE_LIMIT_LOGIN, enforce_rate_limit
from portal.modules.auth.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    VerifyResponse,
)
from portal.modules.shared.schemas import MessageResponse
from portal.modules.users import service as users_service
from portal.modules.users.schemas import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Log In",
    responses={
        401: {
            "description": "Invalid credentials",
            "content": {
                "application/json": {
                    "example": {
                        "error": "INVALID_CREDENTIALS",
                        "message": "Invalid username or password.",
                    }
                }
            },
        },
        429: {"description": "Too many login attempts"},
    },
)
async def login(
    credentials: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """
    Authenticate user and return a JWT access token.

    The response tells the client whether the user must change their
    password before doing anything else.
    """
    await enforce_rate_limit(request, "login", *RATE_LIMIT_LOGIN)

    try:
        user, token, expires_at = await users_service.authenticate(
            db, credentials.username, credentials.password
        )
        return LoginResponse(
            user=UserResponse.model_validate(user),
            requires_password_reset=user.requires_password_reset,
            access_token=token,
            expires_at=expires_at,
        )

    except ServiceError as e:
        raise_for_service_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error during login: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR_DETAIL,
        ) from e


@router.post("/logout", response_model=MessageResponse, summary="Log Out")
async def logout(
    current_user: CurrentUser = Depends(get_current_user),
) -> MessageResponse:
    """Revoke the presented token. Subsequent requests with it get 401."""
    await users_service.logout(current_user)
    return MessageResponse(message="Logged out successfully")


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register User",
    description="""
Create an account directly, bypassing the admissions flow.

**Access:** Admin only
""",
    responses={
        409: {"description": "Username or email already exists"},
    },
)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> UserResponse:
    try:
        user = await users_service.register_user(
            db,
            username=data.username,
            password=data.password,
            email=data.email,
            full_name=data.full_name,
            role=data.role,
        )

        logger.info(f"Admin {admin.id} registered user {user.id}")
        return UserResponse.model_validate(user)

    except ServiceError as e:
        raise_for_service_error(e)
    except Exception as e:
        logger.exception(f"Error registering user: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR_DETAIL,
        ) from e


@router.post(
    "/change-password",
    response_model=MessageResponse,
    summary="Change Password",
    responses={
        400: {"description": "Current password missing or new password too short"},
        401: {"description": "Current password incorrect"},
        403: {"description": "Cannot change another user's password"},
    },
)
async def change_password(
    data: ChangePasswordRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> MessageResponse:
    """
    Change a password.

    Accounts flagged for reset only need ``newPassword``; others must also
    send the correct ``oldPassword``.
    """
    user_id = data.user_id or current_user.id
    ensure_self_or_admin(current_user, user_id)

    try:
        await users_service.change_password(
            db,
            user_id,
            new_password=data.new_password,
            old_password=data.old_password,
        )
        return MessageResponse(message="Password changed successfully")

    except ServiceError as e:
        raise_for_service_error(e)
    except Exception as e:
        logger.exception(f"Error changing password for user {user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR_DETAIL,
        ) from e


@router.get("/verify", response_model=VerifyResponse, summary="Verify Token")
async def verify(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> VerifyResponse:
    """Return the current user's account, or 401 if the token is not usable."""
    try:
        user = await users_service.get_user(db, current_user.id)
    except ServiceError as e:
        raise_for_service_error(e)

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "ACCOUNT_INACTIVE", "message": "This account has been deactivated."},
        )

    return VerifyResponse(user=UserResponse.model_validate(user))
