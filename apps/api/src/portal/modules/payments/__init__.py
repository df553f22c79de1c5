"""
Payments module - Payments reported by students and decided by admins.
"""

from portal.modules.payments.models import Payment, PaymentStatus

__all__ = ["Payment", "PaymentStatus"]
