"""
Admissions Schemas

Pydantic schemas for request validation and response serialization.
The submission body is flat, matching the public admissions form; responses
re-nest the fields into sections.
"""

import re
from datetime import UTC, date, datetime
from typing import Any
from uuid import UUID

from pydantic import ConfigDict, EmailStr, Field, field_validator, model_validator

from portal.modules.admissions.models import (
    Admission,
    AdmissionStatus,
    FormLevel,
    Gender,
    GuardianRelationship,
)
from portal.modules.shared.schemas import CamelModel

PHONE_PATTERN = re.compile(r"^\+?[0-9][0-9\s\-()]{5,19}$")

# Optional form fields the browser sends as "" when left blank
_OPTIONAL_FIELDS = ("phone", "guardianEmail", "guardian_email", "occupation", "allergies")


class AdmissionCreate(CamelModel):
    """Request body for POST /submit-application."""

    model_config = ConfigDict(str_strip_whitespace=True)

    # Personal information
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: date
    gender: Gender
    nationality: str = Field(..., min_length=1, max_length=100)

    # Contact information
    address: str = Field(..., min_length=1, max_length=500)
    phone: str | None = Field(None, max_length=30)
    email: EmailStr

    # Academic information
    applying_for: FormLevel
    academic_year: str = Field(..., min_length=1, max_length=20)
    previous_school: str = Field(..., min_length=1, max_length=200)

    # Guardian information
    guardian_name: str = Field(..., min_length=1, max_length=200)
    relationship: GuardianRelationship
    guardian_phone: str = Field(..., min_length=1, max_length=30)
    guardian_email: EmailStr | None = None
    occupation: str | None = Field(None, max_length=100)

    # Medical information
    allergies: str | None = Field(None, max_length=2000)
    emergency_contact: str = Field(..., min_length=1, max_length=200)

    # Payment information
    payment_method: list[str] = Field(default_factory=list)
    reference: str = Field(..., min_length=1, max_length=100)

    @model_validator(mode="before")
    @classmethod
    def blank_optionals_to_none(cls, data: Any) -> Any:
        """Treat empty optional form fields as absent."""
        if isinstance(data, dict):
            data = dict(data)
            for key in _OPTIONAL_FIELDS:
                if isinstance(data.get(key), str) and not data[key].strip():
                    data[key] = None
        return data

    @field_validator("date_of_birth")
    @classmethod
    def date_of_birth_in_past(cls, v: date) -> date:
        if v >= datetime.now(UTC).date():
            raise ValueError("Valid date of birth is required")
        return v

    @field_validator("phone", "guardian_phone")
    @classmethod
    def phone_shaped(cls, v: str | None) -> str | None:
        if v is not None and not PHONE_PATTERN.match(v):
            raise ValueError("Valid phone number is required")
        return v

    @field_validator("payment_method")
    @classmethod
    def strip_payment_methods(cls, v: list[str]) -> list[str]:
        return [method.strip() for method in v if method and method.strip()]


# ============================================
# Response sections
# ============================================


class PersonalInfo(CamelModel):
    first_name: str
    last_name: str
    date_of_birth: date
    gender: Gender
    nationality: str


class ContactInfo(CamelModel):
    address: str
    phone: str | None = None
    email: str


class AcademicInfo(CamelModel):
    applying_for: FormLevel
    academic_year: str
    previous_school: str


class ParentInfo(CamelModel):
    guardian_name: str
    relationship: GuardianRelationship
    guardian_phone: str
    guardian_email: str | None = None
    occupation: str | None = None


class MedicalInfo(CamelModel):
    allergies: str | None = None
    emergency_contact: str


class PaymentInfo(CamelModel):
    payment_method: list[str]
    reference: str


class AdmissionResponse(CamelModel):
    """Full admission record as returned to admins and the owning student."""

    id: UUID
    application_number: str
    status: AdmissionStatus
    date_submitted: datetime
    personal_info: PersonalInfo
    contact_info: ContactInfo
    academic_info: AcademicInfo
    parent_info: ParentInfo
    medical_info: MedicalInfo
    payment_info: PaymentInfo
    admin_notes: str | None = None
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None

    @classmethod
    def from_admission(cls, admission: Admission) -> "AdmissionResponse":
        """Re-nest the flat admission columns into form sections."""
        return cls(
            id=admission.id,
            application_number=admission.application_number,
            status=admission.status,
            date_submitted=admission.date_submitted,
            personal_info=PersonalInfo(
                first_name=admission.first_name,
                last_name=admission.last_name,
                date_of_birth=admission.date_of_birth,
                gender=admission.gender,
                nationality=admission.nationality,
            ),
            contact_info=ContactInfo(
                address=admission.address,
                phone=admission.phone,
                email=admission.email,
            ),
            academic_info=AcademicInfo(
                applying_for=admission.applying_for,
                academic_year=admission.academic_year,
                previous_school=admission.previous_school,
            ),
            parent_info=ParentInfo(
                guardian_name=admission.guardian_name,
                relationship=admission.guardian_relationship,
                guardian_phone=admission.guardian_phone,
                guardian_email=admission.guardian_email,
                occupation=admission.occupation,
            ),
            medical_info=MedicalInfo(
                allergies=admission.allergies,
                emergency_contact=admission.emergency_contact,
            ),
            payment_info=PaymentInfo(
                payment_method=list(admission.payment_methods or []),
                reference=admission.payment_reference,
            ),
            admin_notes=admission.admin_notes,
            reviewed_by=admission.reviewed_by,
            reviewed_at=admission.reviewed_at,
        )


class SubmittedApplication(CamelModel):
    id: UUID
    application_number: str
    status: AdmissionStatus
    date_submitted: datetime


class SubmitApplicationResponse(CamelModel):
    """Response for POST /submit-application."""

    message: str = "Application submitted successfully!"
    application_number: str
    data: SubmittedApplication


class AdmissionListResponse(CamelModel):
    """Paginated list of admissions."""

    applications: list[AdmissionResponse]
    total: int
    skip: int
    limit: int


class StatusUpdateRequest(CamelModel):
    """Request body for PUT /applications/{id}/status."""

    status: AdmissionStatus
    admin_notes: str | None = Field(None, max_length=2000)
    reviewed_by: str | None = Field(None, max_length=200)


class StatusUpdateResponse(CamelModel):
    message: str
    data: AdmissionResponse
    pending_signup_id: UUID | None = None


class AdmissionStats(CamelModel):
    """Response for GET /applications-stats."""

    total: int
    by_status: dict[str, int]
