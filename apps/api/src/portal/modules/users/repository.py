"""
User Repository

Database operations for user accounts. Methods flush rather than commit so
callers can compose them into a larger transaction.
"""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.modules.users.models import User, UserRole


class UserRepository:
    """Data access for the users table."""

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: UUID) -> User | None:
        return await db.get(User, user_id)

    @staticmethod
    async def get_by_username(db: AsyncSession, username: str) -> User | None:
        result = await db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        result = await db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_usernames_like(db: AsyncSession, base: str) -> set[str]:
        """Return existing usernames equal to ``base`` or starting with it."""
        result = await db.execute(
            select(User.username).where(User.username.startswith(base, autoescape=True))
        )
        return set(result.scalars().all())

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        username: str,
        email: str,
        password_hash: str,
        full_name: str,
        role: UserRole,
        requires_password_reset: bool = False,
    ) -> User:
        user = User(
            username=username,
            email=email.lower(),
            password_hash=password_hash,
            full_name=full_name,
            role=role,
            is_active=True,
            requires_password_reset=requires_password_reset,
        )
        db.add(user)
        await db.flush()
        return user

    @staticmethod
    async def update_last_login(db: AsyncSession, user: User) -> None:
        user.last_login = datetime.now(UTC)
        await db.flush()

    @staticmethod
    async def set_password(
        db: AsyncSession,
        user: User,
        password_hash: str,
        requires_password_reset: bool,
    ) -> None:
        user.password_hash = password_hash
        user.requires_password_reset = requires_password_reset
        await db.flush()

    @staticmethod
    async def list_active_students(db: AsyncSession) -> list[User]:
        result = await db.execute(
            select(User)
            .where(User.role == UserRole.STUDENT, User.is_active == True)  # noqa: E712
            .order_by(User.created_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_student(db: AsyncSession, student_id: UUID) -> User | None:
        """Get a user only if it is a student account."""
        result = await db.execute(
            select(User).where(User.id == student_id, User.role == UserRole.STUDENT)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def count_active_students(db: AsyncSession, since: datetime | None = None) -> int:
        query = select(func.count(User.id)).where(
            User.role == UserRole.STUDENT,
            User.is_active == True,  # noqa: E712
        )
        if since is not None:
            query = query.where(User.created_at >= since)
        result = await db.execute(query)
        return result.scalar_one()
