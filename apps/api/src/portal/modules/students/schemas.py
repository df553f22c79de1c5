"""
Student Schemas
"""

from pydantic import EmailStr, Field, model_validator

from portal.modules.shared.schemas import CamelModel


class StudentUpdate(CamelModel):
    """Profile fields a student or admin may change."""

    full_name: str | None = Field(None, min_length=1, max_length=200)
    email: EmailStr | None = None

    @model_validator(mode="after")
    def at_least_one_field(self) -> "StudentUpdate":
        if self.full_name is None and self.email is None:
            raise ValueError("Provide fullName or email to update")
        return self


class StudentStats(CamelModel):
    """Response for GET /students-stats."""

    total: int
    new_this_month: int
    payments_count: int
    payments_total_confirmed: float
