"""
Redis Configuration

Async Redis client used for rate limiting and the access-token denylist.
"""

import logging
import time

from redis.asyncio import Redis, from_url

from portal.core.config import settings

logger = logging.getLogger(__name__)

# Redis client instance
redis_client: Redis | None = None

# Revoked token ids kept in-process when Redis is unavailable
# Format: {jti: expires_at_epoch}
_revoked_memory: dict[str, float] = {}

REVOKED_TOKEN_PREFIX = "revoked_token:"


async def init_redis() -> Redis:
    """
    Initialize Redis connection.

    Call this on application startup.
    """
    global redis_client
    redis_client = from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    # Test connection
    await redis_client.ping()
    return redis_client


async def get_redis() -> Redis | None:
    """
    Get Redis client instance.

    Returns None if Redis is not available (optional dependency).
    """
    return redis_client


def is_redis_available() -> bool:
    """Check if Redis client is initialized and available."""
    return redis_client is not None


async def close_redis() -> None:
    """Close Redis connection."""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None


async def revoke_token(jti: str, expires_at: float) -> None:
    """
    Add a token id to the denylist until the token would have expired anyway.

    Args:
        jti: Token id from the ``jti`` claim
        expires_at: Token expiry as a unix timestamp
    """
    ttl = max(int(expires_at - time.time()), 1)

    if redis_client is not None:
        try:
            await redis_client.set(f"{REVOKED_TOKEN_PREFIX}{jti}", "1", ex=ttl)
            return
        except Exception as e:
            logger.warning(f"Redis unavailable for token revocation, using memory: {e}")

    _revoked_memory[jti] = expires_at


async def is_token_revoked(jti: str) -> bool:
    """Check whether a token id has been revoked by logout."""
    if redis_client is not None:
        try:
            if await redis_client.exists(f"{REVOKED_TOKEN_PREFIX}{jti}"):
                return True
        except Exception as e:
            logger.warning(f"Redis revocation lookup failed, checking memory: {e}")

    expires_at = _revoked_memory.get(jti)
    if expires_at is None:
        return False
    if expires_at <= time.time():
        _revoked_memory.pop(jti, None)
        return False
    return True
