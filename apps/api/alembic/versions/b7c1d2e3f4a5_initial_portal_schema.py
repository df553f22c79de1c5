"""initial portal schema

Revision ID: b7c1d2e3f4a5
Revises:
Create Date: 2026-10-19 12:00:00.000000

Creates the portal tables:
1. users - admin and student accounts
2. admissions + application_counters - applications and per-year numbering
3. pending_signups - one per accepted admission (unique application_id)
4. payments - student-reported payments
5. fees - fee schedule items with partial payment tracking

Enum types are created explicitly first because form_level is shared by
admissions and fees.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "b7c1d2e3f4a5"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# SQLAlchemy stores Python enum member names
ENUMS = {
    "user_role": ("ADMIN", "STUDENT"),
    "gender": ("MALE", "FEMALE"),
    "form_level": ("FORM1", "FORM2", "FORM3", "FORM4"),
    "guardian_relationship": ("FATHER", "MOTHER", "GUARDIAN", "OTHER"),
    "admission_status": ("PENDING", "UNDER_REVIEW", "ACCEPTED", "REJECTED"),
    "signup_status": ("PENDING", "APPROVED", "REJECTED"),
    "payment_status": ("PENDING", "CONFIRMED", "REJECTED"),
    "fee_type": ("TUITION", "BOARDING", "TRANSPORT", "UNIFORM", "BOOKS", "OTHER"),
    "fee_status": ("PENDING", "PAID", "OVERDUE", "PARTIAL"),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create enum types and all portal tables."""
    bind = op.get_bind()
    for name in ENUMS:
        _enum(name).create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.Column("username", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("role", _enum("user_role"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column(
            "requires_password_reset", sa.Boolean(), nullable=False, server_default="false"
        ),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_username"), "users", ["username"], unique=True)
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "application_counters",
        sa.Column("key", sa.String(length=50), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("key"),
    )

    op.create_table(
        "admissions",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.Column("application_number", sa.String(length=20), nullable=False),
        # Personal
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=False),
        sa.Column("gender", _enum("gender"), nullable=False),
        sa.Column("nationality", sa.String(length=100), nullable=False),
        # Contact
        sa.Column("address", sa.String(length=500), nullable=False),
        sa.Column("phone", sa.String(length=30), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        # Academic
        sa.Column("applying_for", _enum("form_level"), nullable=False),
        sa.Column("academic_year", sa.String(length=20), nullable=False),
        sa.Column("previous_school", sa.String(length=200), nullable=False),
        # Guardian
        sa.Column("guardian_name", sa.String(length=200), nullable=False),
        sa.Column("guardian_relationship", _enum("guardian_relationship"), nullable=False),
        sa.Column("guardian_phone", sa.String(length=30), nullable=False),
        sa.Column("guardian_email", sa.String(length=255), nullable=True),
        sa.Column("occupation", sa.String(length=100), nullable=True),
        # Medical
        sa.Column("allergies", sa.Text(), nullable=True),
        sa.Column("emergency_contact", sa.String(length=200), nullable=False),
        # Payment
        sa.Column("payment_methods", postgresql.JSON(astext_type=sa.Text()), nullable=False),
        sa.Column("payment_reference", sa.String(length=100), nullable=False),
        # Review
        sa.Column("status", _enum("admission_status"), nullable=False),
        sa.Column(
            "date_submitted",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("reviewed_by", sa.String(length=200), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("application_number", name="uq_admissions_application_number"),
    )
    op.create_index(op.f("ix_admissions_email"), "admissions", ["email"], unique=False)
    op.create_index("ix_admissions_status", "admissions", ["status"], unique=False)
    op.create_index(
        "ix_admissions_date_submitted", "admissions", ["date_submitted"], unique=False
    )

    op.create_table(
        "pending_signups",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.Column("application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("desired_username", sa.String(length=255), nullable=False),
        sa.Column("otp", sa.String(length=6), nullable=False),
        sa.Column("otp_expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", _enum("signup_status"), nullable=False),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["application_id"],
            ["admissions.id"],
            name="fk_pending_signups_application_id",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="fk_pending_signups_user_id",
            ondelete="SET NULL",
        ),
        # Exactly one signup per admission
        sa.UniqueConstraint("application_id", name="uq_pending_signups_application_id"),
    )
    op.create_index(
        op.f("ix_pending_signups_status"), "pending_signups", ["status"], unique=False
    )

    op.create_table(
        "payments",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.Column("student_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("payment_type", sa.String(length=50), nullable=False),
        sa.Column("method", sa.String(length=50), nullable=False),
        sa.Column("reference", sa.String(length=100), nullable=False),
        sa.Column("status", _enum("payment_status"), nullable=False),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("decided_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["student_id"],
            ["users.id"],
            name="fk_payments_student_id",
            ondelete="RESTRICT",
        ),
    )
    op.create_index(op.f("ix_payments_student_id"), "payments", ["student_id"], unique=False)
    op.create_index(op.f("ix_payments_status"), "payments", ["status"], unique=False)

    op.create_table(
        "fees",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.Column("student_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("academic_year", sa.String(length=20), nullable=False),
        sa.Column("form", _enum("form_level"), nullable=False),
        sa.Column("fee_type", _enum("fee_type"), nullable=False),
        sa.Column("amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("status", _enum("fee_status"), nullable=False),
        sa.Column("payment_method", sa.String(length=50), nullable=True),
        sa.Column("payment_reference", sa.String(length=100), nullable=True),
        sa.Column(
            "paid_amount",
            sa.Numeric(precision=12, scale=2),
            nullable=False,
            server_default="0",
        ),
        sa.Column("paid_date", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["student_id"],
            ["users.id"],
            name="fk_fees_student_id",
            ondelete="RESTRICT",
        ),
    )
    op.create_index(op.f("ix_fees_student_id"), "fees", ["student_id"], unique=False)
    op.create_index(op.f("ix_fees_status"), "fees", ["status"], unique=False)


def downgrade() -> None:
    """Drop all portal tables and enum types."""
    op.drop_table("fees")
    op.drop_table("payments")
    op.drop_table("pending_signups")
    op.drop_table("admissions")
    op.drop_table("application_counters")
    op.drop_table("users")

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        _enum(name).drop(bind, checkfirst=True)
