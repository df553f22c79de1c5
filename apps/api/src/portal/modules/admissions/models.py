"""
Admissions Models

Database models for admission applications and the per-year application
number counter. The nested sections of the public form (personal, contact,
academic, guardian, medical, payment) are stored as flat columns.
"""

import enum
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Enum, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSON
from sqlalchemy.orm import Mapped, mapped_column

from portal.core.database import Base
from portal.modules.shared.models import BaseModel


class AdmissionStatus(str, enum.Enum):
    """Status of an admission application."""

    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Gender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"


class FormLevel(str, enum.Enum):
    """Secondary school year groups."""

    FORM1 = "form1"
    FORM2 = "form2"
    FORM3 = "form3"
    FORM4 = "form4"


class GuardianRelationship(str, enum.Enum):
    FATHER = "father"
    MOTHER = "mother"
    GUARDIAN = "guardian"
    OTHER = "other"


class Admission(BaseModel):
    """
    Admission application submitted through the public form.

    Created with status ``pending`` and an application number that never
    changes. Only the status workflow mutates it afterwards; rows are never
    deleted.
    """

    __tablename__ = "admissions"

    application_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)

    # Personal information
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    gender: Mapped[Gender] = mapped_column(Enum(Gender, name="gender"), nullable=False)
    nationality: Mapped[str] = mapped_column(String(100), nullable=False)

    # Contact information
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    # Academic information
    applying_for: Mapped[FormLevel] = mapped_column(
        Enum(FormLevel, name="form_level"), nullable=False
    )
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False)
    previous_school: Mapped[str] = mapped_column(String(200), nullable=False)

    # Guardian information
    guardian_name: Mapped[str] = mapped_column(String(200), nullable=False)
    guardian_relationship: Mapped[GuardianRelationship] = mapped_column(
        Enum(GuardianRelationship, name="guardian_relationship"), nullable=False
    )
    guardian_phone: Mapped[str] = mapped_column(String(30), nullable=False)
    guardian_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    occupation: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Medical information
    allergies: Mapped[str | None] = mapped_column(Text, nullable=True)
    emergency_contact: Mapped[str] = mapped_column(String(200), nullable=False)

    # Payment information
    payment_methods: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    payment_reference: Mapped[str] = mapped_column(String(100), nullable=False)

    # Review tracking
    status: Mapped[AdmissionStatus] = mapped_column(
        Enum(AdmissionStatus, name="admission_status"),
        nullable=False,
        default=AdmissionStatus.PENDING,
    )
    date_submitted: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_admissions_status", "status"),
        Index("ix_admissions_date_submitted", "date_submitted"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Admission {self.application_number} ({self.status.value})>"


class ApplicationCounter(Base):
    """
    Sequence source for application numbers, one row per year.

    Incremented with a single upsert statement so concurrent submissions
    never receive the same number.
    """

    __tablename__ = "application_counters"

    key: Mapped[str] = mapped_column(String(50), primary_key=True)
    seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
