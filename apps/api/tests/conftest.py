"""
Shared fixtures for portal tests.
"""

from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from portal.modules.admissions.models import (
    Admission,
    AdmissionStatus,
    FormLevel,
    Gender,
    GuardianRelationship,
)
from portal.modules.admissions.schemas import AdmissionCreate
from portal.modules.signups.models import PendingSignup, SignupStatus
from portal.modules.users.models import User, UserRole


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.flush = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def sample_admission_create():
    """Form payload for a Form 2 applicant."""
    return AdmissionCreate.model_validate(
        {
            "firstName": "Ama",
            "lastName": "Banda",
            "dateOfBirth": "2012-03-14",
            "gender": "female",
            "nationality": "Malawian",
            "address": "Area 47, Lilongwe",
            "phone": "",
            "email": "Ama.Banda@example.com",
            "applyingFor": "form2",
            "academicYear": "2026/2027",
            "previousSchool": "Lilongwe Primary",
            "guardianName": "Grace Banda",
            "relationship": "mother",
            "guardianPhone": "+265 991 234 567",
            "guardianEmail": "",
            "occupation": "Nurse",
            "allergies": "",
            "emergencyContact": "Grace Banda +265 991 234 567",
            "paymentMethod": ["bank_transfer"],
            "reference": "TXN-20260114-001",
        }
    )


@pytest.fixture
def sample_admission():
    """A pending admission as loaded from the database."""
    admission = MagicMock(spec=Admission)
    admission.id = uuid4()
    admission.application_number = "JJ20260001"
    admission.first_name = "Ama"
    admission.last_name = "Banda"
    admission.full_name = "Ama Banda"
    admission.date_of_birth = date(2012, 3, 14)
    admission.gender = Gender.FEMALE
    admission.nationality = "Malawian"
    admission.address = "Area 47, Lilongwe"
    admission.phone = None
    admission.email = "ama.banda@example.com"
    admission.applying_for = FormLevel.FORM2
    admission.academic_year = "2026/2027"
    admission.previous_school = "Lilongwe Primary"
    admission.guardian_name = "Grace Banda"
    admission.guardian_relationship = GuardianRelationship.MOTHER
    admission.guardian_phone = "+265 991 234 567"
    admission.guardian_email = None
    admission.occupation = "Nurse"
    admission.allergies = None
    admission.emergency_contact = "Grace Banda +265 991 234 567"
    admission.payment_methods = ["bank_transfer"]
    admission.payment_reference = "TXN-20260114-001"
    admission.status = AdmissionStatus.PENDING
    admission.date_submitted = datetime.now(UTC)
    admission.admin_notes = None
    admission.reviewed_by = None
    admission.reviewed_at = None
    return admission


@pytest.fixture
def sample_signup(sample_admission):
    """A pending signup with a valid one-time code."""
    signup = MagicMock(spec=PendingSignup)
    signup.id = uuid4()
    signup.application_id = sample_admission.id
    signup.email = sample_admission.email
    signup.full_name = "Ama Banda"
    signup.desired_username = "ama.banda"
    signup.otp = "482913"
    signup.otp_expires_at = datetime.now(UTC) + timedelta(minutes=30)
    signup.status = SignupStatus.PENDING
    signup.decided_at = None
    signup.rejection_reason = None
    signup.user_id = None
    signup.created_at = datetime.now(UTC)
    return signup


@pytest.fixture
def sample_student():
    """An active student account."""
    user = MagicMock(spec=User)
    user.id = uuid4()
    user.username = "ama.banda"
    user.email = "ama.banda@example.com"
    user.full_name = "Ama Banda"
    user.role = UserRole.STUDENT
    user.is_active = True
    user.requires_password_reset = False
    user.password_hash = "$2b$12$placeholder"
    user.last_login = None
    user.created_at = datetime.now(UTC)
    return user


@pytest.fixture
def sample_payment_amount():
    return Decimal("25000.00")
