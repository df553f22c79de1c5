"""
Payments Router

Endpoints:
- POST /payments - Report a payment (student for themselves, or admin)
- GET /payments - List all payments (admin)
- PUT /payments/{id}/status - Confirm or reject (admin)
- GET /payments-stats - Totals per status (admin)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.auth import CurrentUser, ensure_self_or_admin, get_current_user, require_admin
from portal.core.database import get_db
from portal.core.exceptions import INTERNAL_ERROR_DETAIL, ServiceError, raise_for_service_error
from portal.modules.payments import service
from portal.modules.payments.models import PaymentStatus
from portal.modules.payments.schemas import (
    PaymentCreate,
    PaymentResponse,
    PaymentStats,
    PaymentStatusUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/payments",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit Payment",
    responses={
        403: {"description": "Students may only submit payments for themselves"},
        404: {"description": "Student not found"},
    },
)
async def create_payment(
    data: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> PaymentResponse:
    """Record a payment made outside the portal. Starts as `pending`."""
    ensure_self_or_admin(current_user, data.student_id)

    try:
        payment = await service.create_payment(db, data)
        return PaymentResponse.model_validate(payment)

    except ServiceError as e:
        raise_for_service_error(e)
    except Exception as e:
        logger.exception(f"Error creating payment: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR_DETAIL,
        ) from e


@router.get("/payments", response_model=list[PaymentResponse], summary="List Payments")
async def list_payments(
    status_filter: PaymentStatus | None = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> list[PaymentResponse]:
    """All payments with the student's username, name and email."""
    try:
        payments = await service.list_payments(db, status=status_filter)
        return [PaymentResponse.model_validate(p) for p in payments]
    except Exception as e:
        logger.exception(f"Error listing payments: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR_DETAIL,
        ) from e


@router.put(
    "/payments/{payment_id}/status",
    response_model=PaymentResponse,
    summary="Decide Payment",
    description="""
Confirm or reject a pending payment. The decision is final.

**Access:** Admin only
""",
    responses={
        400: {"description": "Status is not `confirmed` or `rejected`"},
        404: {"description": "Payment not found"},
        409: {"description": "Payment already decided"},
    },
)
async def update_payment_status(
    payment_id: UUID,
    data: PaymentStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> PaymentResponse:
    try:
        payment = await service.update_status(db, payment_id, data.status, admin.id)
        return PaymentResponse.model_validate(payment)

    except ServiceError as e:
        raise_for_service_error(e)
    except Exception as e:
        logger.exception(f"Error updating payment {payment_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR_DETAIL,
        ) from e


@router.get("/payments-stats", response_model=PaymentStats, summary="Payment Statistics")
async def get_stats(
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> PaymentStats:
    try:
        return PaymentStats(**await service.get_stats(db))
    except Exception as e:
        logger.exception(f"Error computing payment stats: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR_DETAIL,
        ) from e
