"""
Admissions module - Public applications and the admin review workflow.
"""

from portal.modules.admissions.models import Admission, AdmissionStatus, ApplicationCounter

__all__ = ["Admission", "AdmissionStatus", "ApplicationCounter"]
