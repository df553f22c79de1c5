"""
User Models

Portal accounts: administrators and students.
"""

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from portal.modules.shared.models import BaseModel


class UserRole(str, enum.Enum):
    """Roles a portal account can hold."""

    ADMIN = "admin"
    STUDENT = "student"


class User(BaseModel):
    """
    Portal user account.

    Students are created when an admin approves a pending signup; admins are
    seeded on startup or registered by another admin. Deactivation is a soft
    delete (``is_active=False``), rows are never removed.
    """

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role"), nullable=False, default=UserRole.STUDENT
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    requires_password_reset: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<User {self.username} ({self.role.value})>"
