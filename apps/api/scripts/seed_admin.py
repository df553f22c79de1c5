"""
Seed Default Admin User

Creates the configured default admin account (ADMIN_USERNAME, ADMIN_PASSWORD,
ADMIN_EMAIL) if it does not exist yet. The API also does this on startup;
the script is for environments where migrations and seeding run before the
first deploy.

Usage:
    cd apps/api
    python scripts/seed_admin.py
"""

import asyncio

from portal.core.config import settings
from portal.core.database import async_session_maker, close_db
from portal.modules.users.service import seed_default_admin


async def main() -> None:
    """Create the default admin user if it doesn't exist."""
    async with async_session_maker() as db:
        admin = await seed_default_admin(db)

    if admin is None:
        print(f"Default admin already exists: {settings.admin_username}")
    else:
        print("Default admin created successfully!")
        print(f"  Username: {admin.username}")
        print(f"  Email: {admin.email}")
        print(f"  ID: {admin.id}")
        print(f"  Role: {admin.role.value}")

    await close_db()


if __name__ == "__main__":
    asyncio.run(main())
