"""
Redis client for the session store.

Provides a singleton async Upstash Redis client plus the key layout and
TTLs used by RedisSessionStore.
"""

import os
from typing import Optional

from upstash_redis.asyncio import Redis as AsyncRedis


# Upstash uses REST_URL and REST_TOKEN
UPSTASH_REDIS_REST_URL = os.environ.get("UPSTASH_REDIS_REST_URL", "")
UPSTASH_REDIS_REST_TOKEN = os.environ.get("UPSTASH_REDIS_REST_TOKEN", "")


_redis_client: Optional[AsyncRedis] = None


def get_redis() -> AsyncRedis:
    """
    Get async Upstash Redis client (singleton).

    Uses standard Upstash env var names:
    - UPSTASH_REDIS_REST_URL
    - UPSTASH_REDIS_REST_TOKEN
    """
    global _redis_client

    if _redis_client is None:
        if not UPSTASH_REDIS_REST_URL or not UPSTASH_REDIS_REST_TOKEN:
            raise ValueError("UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set")
        _redis_client = AsyncRedis(url=UPSTASH_REDIS_REST_URL, token=UPSTASH_REDIS_REST_TOKEN)

    return _redis_client


class RedisKeys:
    """Redis key prefixes."""

    CART_SESSION = "storefront:cart:"  # storefront:cart:{client_id}

    @staticmethod
    def cart_session_key(client_id: str) -> str:
        return f"{RedisKeys.CART_SESSION}{client_id}"


class TTL:
    """Time-to-live constants for Redis keys (seconds)."""

    CART_SESSION = 2592000  # 30 days
