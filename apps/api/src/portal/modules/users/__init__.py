"""
Users module - Accounts, authentication and password management.
"""

from portal.modules.users.models import User, UserRole
from portal.modules.users.repository import UserRepository

__all__ = ["User", "UserRole", "UserRepository"]
