"""
Unit tests for password hashing, tokens and logout revocation.
"""

import time
from datetime import timedelta
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from portal.core import redis as redis_module
from portal.core.auth import CurrentUser, ensure_self_or_admin, get_current_user, require_admin
from portal.core.security import (
    create_access_token,
    decode_token,
    generate_otp,
    hash_password,
    verify_password,
)


class TestPasswordHashing:
    def test_hash_and_verify(self):
        password_hash = hash_password("adminPass1")

        assert password_hash != "adminPass1"
        assert verify_password("adminPass1", password_hash) is True
        assert verify_password("wrong", password_hash) is False

    def test_malformed_hash_is_mismatch(self):
        assert verify_password("adminPass1", "not-a-bcrypt-hash") is False


class TestTokens:
    def test_round_trip_claims(self):
        user_id = str(uuid4())
        token, _ = create_access_token(user_id, {"role": "admin", "username": "admin@jjmw"})

        claims = decode_token(token)
        assert claims["sub"] == user_id
        assert claims["role"] == "admin"
        assert claims["type"] == "access"
        assert claims["jti"]

    def test_expired_token_rejected(self):
        token, _ = create_access_token(str(uuid4()), expires_delta=timedelta(seconds=-5))
        assert decode_token(token) is None

    def test_tampered_token_rejected(self):
        token, _ = create_access_token(str(uuid4()))
        assert decode_token(token[:-2] + "xx") is None

    def test_each_token_has_unique_jti(self):
        first, _ = create_access_token("same")
        second, _ = create_access_token("same")
        assert decode_token(first)["jti"] != decode_token(second)["jti"]


class TestGenerateOtp:
    def test_six_digits(self):
        for _ in range(50):
            otp = generate_otp()
            assert len(otp) == 6
            assert otp.isdigit()
            assert otp[0] != "0"


def _bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


@pytest.fixture(autouse=True)
def no_redis():
    """Force the in-memory revocation store."""
    with patch.object(redis_module, "redis_client", None):
        redis_module._revoked_memory.clear()
        yield
        redis_module._revoked_memory.clear()


class TestGetCurrentUser:
    """Tests for the get_current_user dependency."""

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(None)

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail["error"] == "NOT_AUTHENTICATED"

    @pytest.mark.asyncio
    async def test_valid_token(self):
        user_id = uuid4()
        token, _ = create_access_token(
            str(user_id), {"role": "student", "username": "ama.banda"}
        )

        user = await get_current_user(_bearer(token))

        assert user.id == user_id
        assert user.username == "ama.banda"
        assert user.is_admin is False

    @pytest.mark.asyncio
    async def test_garbage_token(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(_bearer("not.a.jwt"))

        assert exc_info.value.detail["error"] == "INVALID_TOKEN"

    @pytest.mark.asyncio
    async def test_non_uuid_subject(self):
        token, _ = create_access_token("not-a-uuid", {"role": "admin"})

        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(_bearer(token))

        assert exc_info.value.detail["error"] == "INVALID_TOKEN_CLAIMS"

    @pytest.mark.asyncio
    async def test_revoked_token(self):
        token, expires_at = create_access_token(str(uuid4()), {"role": "student"})
        jti = decode_token(token)["jti"]
        await redis_module.revoke_token(jti, expires_at.timestamp())

        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(_bearer(token))

        assert exc_info.value.detail["error"] == "TOKEN_REVOKED"


class TestTokenRevocation:
    @pytest.mark.asyncio
    async def test_memory_entry_expires(self):
        await redis_module.revoke_token("old", time.time() - 1)
        assert await redis_module.is_token_revoked("old") is False

    @pytest.mark.asyncio
    async def test_redis_used_when_available(self):
        client = AsyncMock()
        client.exists = AsyncMock(return_value=1)

        with patch.object(redis_module, "redis_client", client):
            await redis_module.revoke_token("abc", time.time() + 60)
            assert await redis_module.is_token_revoked("abc") is True

        client.set.assert_awaited_once()
        assert client.set.call_args.args[0] == "revoked_token:abc"


def _user(role: str, user_id=None) -> CurrentUser:
    return CurrentUser(
        id=user_id or uuid4(),
        username="someone",
        role=role,
        jti="jti",
        expires_at=None,
    )


class TestRoleChecks:
    @pytest.mark.asyncio
    async def test_require_admin_rejects_student(self):
        with pytest.raises(HTTPException) as exc_info:
            await require_admin(_user("student"))

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail["error"] == "ADMIN_ACCESS_REQUIRED"

    @pytest.mark.asyncio
    async def test_require_admin_allows_admin(self):
        admin = _user("admin")
        assert await require_admin(admin) is admin

    def test_student_can_access_own_record(self):
        student_id = uuid4()
        ensure_self_or_admin(_user("student", student_id), student_id)

    def test_student_cannot_access_other_record(self):
        with pytest.raises(HTTPException) as exc_info:
            ensure_self_or_admin(_user("student"), uuid4())

        assert exc_info.value.status_code == 403

    def test_admin_can_access_any_record(self):
        ensure_self_or_admin(_user("admin"), uuid4())
