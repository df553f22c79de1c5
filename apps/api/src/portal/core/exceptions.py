"""
Service Exceptions

Base class for errors raised by the service layer. Routers translate them into
HTTP responses with ``raise_for_service_error``.
"""

from fastapi import HTTPException


class ServiceError(Exception):
    """Base exception for service-layer errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(ServiceError):
    """Raised when a record does not exist."""

    def __init__(self, message: str, error_code: str = "NOT_FOUND"):
        super().__init__(message=message, error_code=error_code, status_code=404)


class ConflictError(ServiceError):
    """Raised when a record is not in a state that allows the operation."""

    def __init__(self, message: str, error_code: str = "CONFLICT"):
        super().__init__(message=message, error_code=error_code, status_code=409)


def raise_for_service_error(e: ServiceError) -> None:
    """Convert a service error to an HTTPException."""
    raise HTTPException(
        status_code=e.status_code,
        detail={
            "error": e.error_code,
            "message": e.message,
        },
    ) from e


INTERNAL_ERROR_DETAIL = {
    "error": "INTERNAL_ERROR",
    "message": "An unexpected error occurred. Please try again later.",
}
