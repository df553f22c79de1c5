"""
Notifications Router

Lets admins check whether transactional emails were delivered.

Endpoints:
- GET /notifications - Recent deliveries, newest first
- GET /notifications/{id} - A single delivery
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from portal.core.auth import CurrentUser, require_admin
from portal.core.email import DeliveryStatus, get_delivery, list_deliveries
from portal.modules.notifications.schemas import DeliveryResponse

router = APIRouter()


@router.get("", response_model=list[DeliveryResponse], summary="List Email Deliveries")
async def list_notifications(
    status_filter: DeliveryStatus | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=500),
    admin: CurrentUser = Depends(require_admin),
) -> list[DeliveryResponse]:
    return [
        DeliveryResponse.model_validate(d, from_attributes=True)
        for d in list_deliveries(status=status_filter, limit=limit)
    ]


@router.get(
    "/{delivery_id}",
    response_model=DeliveryResponse,
    summary="Get Email Delivery",
    responses={404: {"description": "Delivery not found"}},
)
async def get_notification(
    delivery_id: UUID,
    admin: CurrentUser = Depends(require_admin),
) -> DeliveryResponse:
    delivery = get_delivery(delivery_id)
    if delivery is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "NOTIFICATION_NOT_FOUND",
                "message": f"Notification {delivery_id} not found",
            },
        )
    return DeliveryResponse.model_validate(delivery, from_attributes=True)
