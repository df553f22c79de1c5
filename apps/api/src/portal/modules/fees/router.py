"""
Fees Router

Endpoints:
- GET /fees - List fees (admin)
- POST /fees - Assign a fee to a student (admin)
- GET /fees/student/{student_id} - A student's fees (admin or the student)
- PUT /fees/{id}/payment - Record a payment against a fee (admin)
- GET /fees-stats - Totals per status (admin)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.auth import CurrentUser, ensure_self_or_admin, get_current_user, require_admin
from portal.core.database import get_db
from portal.core.exceptions import INTERNAL_ERROR_DETAIL, ServiceError, raise_for_service_error
from portal.modules.fees import service
from portal.modules.fees.models import FeeStatus
from portal.modules.fees.schemas import FeeCreate, FeePayment, FeeResponse, FeeStats

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/fees", response_model=list[FeeResponse], summary="List Fees")
async def list_fees(
    status_filter: FeeStatus | None = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> list[FeeResponse]:
    try:
        fees = await service.list_fees(db, status=status_filter)
        return [FeeResponse.model_validate(f) for f in fees]
    except Exception as e:
        logger.exception(f"Error listing fees: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR_DETAIL,
        ) from e


@router.post(
    "/fees",
    response_model=FeeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Fee",
    responses={404: {"description": "Student not found"}},
)
async def create_fee(
    data: FeeCreate,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> FeeResponse:
    try:
        fee = await service.create_fee(db, data)
        return FeeResponse.model_validate(fee)

    except ServiceError as e:
        raise_for_service_error(e)
    except Exception as e:
        logger.exception(f"Error creating fee: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR_DETAIL,
        ) from e


@router.get(
    "/fees/student/{student_id}",
    response_model=list[FeeResponse],
    summary="List Student Fees",
)
async def list_student_fees(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> list[FeeResponse]:
    ensure_self_or_admin(current_user, student_id)

    try:
        fees = await service.list_student_fees(db, student_id)
        return [FeeResponse.model_validate(f) for f in fees]
    except Exception as e:
        logger.exception(f"Error listing fees for student {student_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR_DETAIL,
        ) from e


@router.put(
    "/fees/{fee_id}/payment",
    response_model=FeeResponse,
    summary="Record Fee Payment",
    description="""
Add a payment to a fee.

The amount is added to `paidAmount`. The fee becomes `paid` once fully
covered, `overdue` if still short after the due date, otherwise `partial`.

**Access:** Admin only
""",
    responses={
        404: {"description": "Fee not found"},
        409: {"description": "Fee already paid in full"},
    },
)
async def record_fee_payment(
    fee_id: UUID,
    data: FeePayment,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> FeeResponse:
    try:
        fee = await service.record_payment(db, fee_id, data)
        logger.info(f"Admin {admin.id} recorded payment on fee {fee_id}")
        return FeeResponse.model_validate(fee)

    except ServiceError as e:
        raise_for_service_error(e)
    except Exception as e:
        logger.exception(f"Error recording payment on fee {fee_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR_DETAIL,
        ) from e


@router.get("/fees-stats", response_model=FeeStats, summary="Fee Statistics")
async def get_stats(
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> FeeStats:
    try:
        return FeeStats(**await service.get_stats(db))
    except Exception as e:
        logger.exception(f"Error computing fee stats: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR_DETAIL,
        ) from e
