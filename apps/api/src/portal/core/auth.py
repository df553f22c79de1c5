"""
Authentication and Authorization Module

Provides authentication dependencies for FastAPI endpoints.
This module handles JWT token validation, logout revocation and role-based
access control using the security utilities defined in security.py.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from portal.core.redis import is_token_revoked
from portal.core.security import decode_token

logger = logging.getLogger(__name__)

# Security scheme for OpenAPI documentation
security = HTTPBearer(
    auto_error=False,
    description="JWT Bearer token for authentication",
)

ROLE_ADMIN = "admin"
ROLE_STUDENT = "student"


@dataclass
class CurrentUser:
    """
    Represents an authenticated portal user.

    Populated from JWT claims after token validation.

    Attributes:
        id: User's unique identifier (UUID)
        username: Login name
        role: 'admin' or 'student'
        jti: Token id, used to revoke the token on logout
        expires_at: Token expiry
    """

    id: UUID
    username: str
    role: str
    jti: str
    expires_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def __str__(self) -> str:
        return f"CurrentUser(id={self.id}, username={self.username}, role={self.role})"


def _unauthorized(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _validate_jwt_token(token: str) -> CurrentUser:
    """
    Validate JWT token and extract user claims.

    Raises:
        HTTPException 401: If token is invalid, expired or revoked
    """
    payload = decode_token(token)

    if payload is None:
        raise _unauthorized("INVALID_TOKEN", "Invalid or expired authentication token.")

    if payload.get("type", "access") != "access":
        logger.warning(f"Invalid token type: {payload.get('type')}")
        raise _unauthorized("INVALID_TOKEN_TYPE", "This endpoint requires an access token.")

    try:
        user = CurrentUser(
            id=UUID(payload["sub"]),
            username=payload.get("username", ""),
            role=payload.get("role", ""),
            jti=payload["jti"],
            expires_at=datetime.fromtimestamp(payload["exp"], tz=UTC),
        )
    except (ValueError, KeyError, TypeError) as e:
        logger.warning(f"Invalid token claims: {e}")
        raise _unauthorized(
            "INVALID_TOKEN_CLAIMS", "Token contains invalid or missing claims."
        ) from e

    if await is_token_revoked(user.jti):
        logger.info(f"Rejected revoked token for user {user.id}")
        raise _unauthorized("TOKEN_REVOKED", "This session has been logged out.")

    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> CurrentUser:
    """
    FastAPI dependency that validates the bearer token and returns the user.

    Raises:
        HTTPException 401: If token is missing, invalid, expired or revoked
    """
    if credentials is None:
        raise _unauthorized("NOT_AUTHENTICATED", "Authentication required.")

    user = await _validate_jwt_token(credentials.credentials)
    logger.debug(f"Authenticated user: {user}")
    return user


async def require_admin(
    user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """
    FastAPI dependency restricting an endpoint to administrators.

    Raises:
        HTTPException 403: If the user is not an admin
    """
    if not user.is_admin:
        logger.warning(
            f"Access denied: User {user.id} ({user.username}) has role '{user.role}', "
            "but 'admin' is required"
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "ADMIN_ACCESS_REQUIRED",
                "message": "Admin access is required for this endpoint.",
            },
        )
    return user


def ensure_self_or_admin(user: CurrentUser, student_id: UUID) -> None:
    """
    Allow admins, or a student acting on their own record.

    Raises:
        HTTPException 403: If a student targets another student's record
    """
    if user.is_admin or user.id == student_id:
        return

    logger.warning(f"Access denied: User {user.id} attempted to access student {student_id}")
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={
            "error": "FORBIDDEN",
            "message": "You can only access your own records.",
        },
    )


__all__ = [
    "CurrentUser",
    "ROLE_ADMIN",
    "ROLE_STUDENT",
    "ensure_self_or_admin",
    "get_current_user",
    "require_admin",
]
