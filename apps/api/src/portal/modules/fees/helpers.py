"""
Fee Helpers
"""

from datetime import date
from decimal import Decimal

from portal.modules.fees.models import FeeStatus


def compute_fee_status(
    amount: Decimal,
    paid_amount: Decimal,
    due_date: date,
    today: date,
) -> FeeStatus:
    """
    Status of a fee after a payment has been recorded against it.

    Fully covered fees are ``paid``; otherwise a fee past its due date is
    ``overdue`` and anything else is ``partial``.
    """
    if amount - paid_amount <= 0:
        return FeeStatus.PAID
    if today > due_date:
        return FeeStatus.OVERDUE
    return FeeStatus.PARTIAL
