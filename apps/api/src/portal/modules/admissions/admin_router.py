"""
Admissions Admin Router

API endpoints for administrators to review admission applications.
All endpoints require an admin token.

Endpoints:
- GET /applications - List applications with filters and pagination
- GET /applications-stats - Count of applications per status
- GET /applications/{id} - Get application details
- PUT /applications/{id}/status - Change application status
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.auth import CurrentUser, require_admin
from portal.core.database import get_db
from portal.core.exceptions import INTERNAL_ERROR_DETAIL, ServiceError, raise_for_service_error
from portal.modules.admissions import service
from portal.modules.admissions.models import AdmissionStatus
from portal.modules.admissions.schemas import (
    AdmissionListResponse,
    AdmissionResponse,
    AdmissionStats,
    StatusUpdateRequest,
    StatusUpdateResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/applications",
    response_model=AdmissionListResponse,
    summary="List Applications",
)
async def list_applications(
    status_filter: AdmissionStatus | None = Query(
        None,
        alias="status",
        description="Filter by application status",
    ),
    search: str | None = Query(
        None,
        min_length=1,
        max_length=100,
        description="Search name, email or application number",
    ),
    skip: int = Query(0, ge=0, description="Records to skip"),
    limit: int = Query(50, ge=1, le=200, description="Maximum records to return"),
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> AdmissionListResponse:
    """List applications, newest first."""
    try:
        result = await service.list_applications(
            db, status=status_filter, search=search, skip=skip, limit=limit
        )

        logger.info(
            f"Admin {admin.id} listed applications: "
            f"total={result['total']}, returned={len(result['applications'])}"
        )

        return AdmissionListResponse(
            applications=[AdmissionResponse.from_admission(a) for a in result["applications"]],
            total=result["total"],
            skip=result["skip"],
            limit=result["limit"],
        )

    except ServiceError as e:
        raise_for_service_error(e)
    except Exception as e:
        logger.exception(f"Error listing applications: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR_DETAIL,
        ) from e


@router.get(
    "/applications-stats",
    response_model=AdmissionStats,
    summary="Application Statistics",
)
async def get_stats(
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> AdmissionStats:
    """Total number of applications and the count in each status."""
    try:
        return AdmissionStats(**await service.get_stats(db))
    except Exception as e:
        logger.exception(f"Error computing application stats: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR_DETAIL,
        ) from e


@router.get(
    "/applications/{application_id}",
    response_model=AdmissionResponse,
    summary="Get Application",
    responses={404: {"description": "Application not found"}},
)
async def get_application(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> AdmissionResponse:
    try:
        admission = await service.get_application(db, application_id)
        return AdmissionResponse.from_admission(admission)

    except ServiceError as e:
        raise_for_service_error(e)
    except Exception as e:
        logger.exception(f"Error fetching application {application_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR_DETAIL,
        ) from e


@router.put(
    "/applications/{application_id}/status",
    response_model=StatusUpdateResponse,
    summary="Update Application Status",
    description="""
Move an application through the review workflow.

**Allowed transitions:**
- `pending` -> `under_review`, `accepted`, `rejected`
- `under_review` -> `pending`, `accepted`, `rejected`
- Re-applying `pending` or `under_review` updates notes only

`accepted` and `rejected` are final.

**Effects:**
- `reviewedAt` is stamped
- `accepted` creates a pending signup and emails the applicant a one-time code
- `rejected` emails the decision with any admin notes
- other statuses email a generic update

**Access:** Admin only
""",
    responses={
        400: {"description": "Unknown status value"},
        404: {"description": "Application not found"},
        409: {"description": "Transition not allowed or concurrent update"},
    },
)
async def update_status(
    application_id: UUID,
    data: StatusUpdateRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> StatusUpdateResponse:
    try:
        admission, signup = await service.update_status(
            db,
            application_id,
            data.status,
            admin_notes=data.admin_notes,
            reviewed_by=data.reviewed_by or admin.username,
        )

        logger.info(f"Admin {admin.id} set application {application_id} to {data.status.value}")

        return StatusUpdateResponse(
            message=f"Application status updated to {data.status.value}",
            data=AdmissionResponse.from_admission(admission),
            pending_signup_id=signup.id if signup else None,
        )

    except ServiceError as e:
        raise_for_service_error(e)
    except Exception as e:
        logger.exception(f"Error updating application status: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR_DETAIL,
        ) from e
