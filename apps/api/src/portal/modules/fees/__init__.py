"""
Fees module - Fee schedule items and partial payments.
"""

from portal.modules.fees.models import Fee, FeeStatus, FeeType

__all__ = ["Fee", "FeeStatus", "FeeType"]
