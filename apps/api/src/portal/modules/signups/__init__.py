"""
Signups module - Pending student accounts created from accepted admissions.
"""

from portal.modules.signups.models import PendingSignup, SignupStatus

__all__ = ["PendingSignup", "SignupStatus"]
