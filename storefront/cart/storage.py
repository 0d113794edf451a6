"""Session Store - durable holder of the single cart identifier."""
import asyncio
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from storefront.config import get_client_id, get_session_backend, get_session_file
from storefront.db import RedisKeys, TTL, get_redis
from storefront.logging import get_logger, sanitize_id_for_logging

logger = get_logger(__name__)

CART_ID_KEY = "cart_id"


class SessionStore(ABC):
    """Holds at most one opaque cart identifier; absence means no active cart."""

    @abstractmethod
    async def get(self) -> Optional[str]:
        ...

    @abstractmethod
    async def set(self, cart_id: str) -> None:
        ...

    @abstractmethod
    async def clear(self) -> None:
        ...


class InMemorySessionStore(SessionStore):
    """Process-local store, for tests and short-lived scripts."""

    def __init__(self, cart_id: Optional[str] = None):
        self._cart_id = cart_id

    async def get(self) -> Optional[str]:
        return self._cart_id

    async def set(self, cart_id: str) -> None:
        self._cart_id = cart_id

    async def clear(self) -> None:
        self._cart_id = None


class FileSessionStore(SessionStore):
    """
    JSON file on local disk: {"cart_id": "..."}.

    A corrupted file is treated as "no active cart" and removed.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else get_session_file()

    def _read(self) -> Optional[str]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("Corrupted session file %s: %s", self.path, e)
            self.path.unlink(missing_ok=True)
            return None
        cart_id = data.get(CART_ID_KEY) if isinstance(data, dict) else None
        return cart_id or None

    def _write(self, cart_id: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps({CART_ID_KEY: cart_id}), encoding="utf-8")
        tmp_path.replace(self.path)

    async def get(self) -> Optional[str]:
        return await asyncio.to_thread(self._read)

    async def set(self, cart_id: str) -> None:
        await asyncio.to_thread(self._write, cart_id)
        logger.debug("Stored cart id %s in %s", sanitize_id_for_logging(cart_id), self.path)

    async def clear(self) -> None:
        await asyncio.to_thread(self.path.unlink, missing_ok=True)


class RedisSessionStore(SessionStore):
    """Upstash Redis key per client, refreshed to a 30-day TTL on write."""

    def __init__(self, client_id: Optional[str] = None, redis=None):
        self.client_id = client_id or get_client_id()
        self._redis = redis  # Lazy initialization

    @property
    def redis(self):
        if self._redis is None:
            self._redis = get_redis()
        return self._redis

    @property
    def key(self) -> str:
        return RedisKeys.cart_session_key(self.client_id)

    async def get(self) -> Optional[str]:
        value = await self.redis.get(self.key)
        return value or None

    async def set(self, cart_id: str) -> None:
        await self.redis.set(self.key, cart_id, ex=TTL.CART_SESSION)

    async def clear(self) -> None:
        await self.redis.delete(self.key)


def get_session_store() -> SessionStore:
    """Build the session store selected by STOREFRONT_SESSION_BACKEND."""
    backend = get_session_backend()
    if backend == "redis":
        return RedisSessionStore()
    if backend == "memory":
        return InMemorySessionStore()
    return FileSessionStore()
