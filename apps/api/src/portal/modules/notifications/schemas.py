"""
Notification Schemas
"""

from datetime import datetime
from uuid import UUID

from portal.core.email import DeliveryStatus
from portal.modules.shared.schemas import CamelModel


class DeliveryResponse(CamelModel):
    """Outcome of a queued email."""

    id: UUID
    to_email: str
    subject: str
    status: DeliveryStatus
    attempts: int
    error: str | None = None
    created_at: datetime
    updated_at: datetime
