"""
Admissions Router

Public endpoint for the admissions form. No authentication: applicants have
no account yet.

Endpoints:
- POST /submit-application - Submit a new admission application

Security:
- Rate limited per client IP
- Input validation via Pydantic schemas
- HTML escaping of user input in email templates
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.database import get_db
from portal.core.exceptions import INTERNAL_ERROR_DETAIL, ServiceError, raise_for_service_error
from portal.core.rate_limit import RATE_LIMIT_SUBMIT_APPLICATION, enforce_rate_limit
from portal.modules.admissions import service
from portal.modules.admissions.schemas import (
    AdmissionCreate,
    SubmitApplicationResponse,
    SubmittedApplication,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/submit-application",
    response_model=SubmitApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit Admission Application",
    description="""
Submit a new admission application.

After submission:
1. The application is stored with status `pending`
2. An application number is assigned (e.g. `JJ20260001`)
3. A confirmation email is sent to the applicant

**Response:**
Returns the application number the applicant should keep for reference.
""",
    responses={
        201: {
            "description": "Application created successfully",
            "model": SubmitApplicationResponse,
        },
        400: {
            "description": "Validation error - invalid input data",
            "content": {
                "application/json": {
                    "example": {
                        "error": "VALIDATION_ERROR",
                        "message": "Validation failed",
                        "errors": [
                            {"field": "firstName", "message": "Field required"},
                        ],
                    }
                }
            },
        },
        429: {"description": "Too many submissions"},
    },
)
async def submit_application(
    data: AdmissionCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> SubmitApplicationResponse:
    """
    Submit a new admission application.

    Args:
        data: Flat form payload (personal, contact, academic, guardian,
            medical and payment fields)
        db: Database session (injected)

    Returns:
        Confirmation message, application number and summary
    """
    await enforce_rate_limit(request, "submit_application", *RATE_LIMIT_SUBMIT_APPLICATION)

    try:
        admission = await service.submit_application(db, data)

        return SubmitApplicationResponse(
            application_number=admission.application_number,
            data=SubmittedApplication(
                id=admission.id,
                application_number=admission.application_number,
                status=admission.status,
                date_submitted=admission.date_submitted,
            ),
        )

    except ServiceError as e:
        logger.error(f"Application service error: {e.message}")
        raise_for_service_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error submitting application: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR_DETAIL,
        ) from e
