import asyncio
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

import redis.asyncio as redis
from redis.exceptions import LockError, RedisError

from dailyshot.config import settings
from dailyshot.utils.logger import get_logger

logger = get_logger(__name__)


class StorageError(Exception):
    """Raised when the key-value backend fails to serve a read or a write."""


class KeyValueStorage(ABC):
    """
    Durable string key-value storage.

    Every operation is a suspension point and may fail independently.
    ``lock`` serializes writers of one logical key.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def remove(self, key: str) -> None:
        ...

    @abstractmethod
    def lock(self, name: str):
        """Async context manager held while a writer owns ``name``."""

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class MemoryStorage(KeyValueStorage):
    """In-process storage backed by a dict. Locks are only valid within one event loop."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._locks: Dict[str, asyncio.Lock] = {}

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    @asynccontextmanager
    async def lock(self, name: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(name, asyncio.Lock())
        async with lock:
            yield

    def keys(self) -> list:
        return list(self._data)


class RedisStorage(KeyValueStorage):
    """Redis-backed storage. Locks use the redis distributed lock so they hold across processes."""

    def __init__(self, client: Optional[redis.Redis] = None):
        self.client = client or redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            decode_responses=True,
            retry_on_timeout=True,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
        )

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.client.get(key)
        except RedisError as e:
            raise StorageError(f"Error reading key {key}: {e}") from e

    async def set(self, key: str, value: str) -> None:
        try:
            await self.client.set(key, value)
        except RedisError as e:
            raise StorageError(f"Error writing key {key}: {e}") from e

    async def remove(self, key: str) -> None:
        try:
            await self.client.delete(key)
        except RedisError as e:
            raise StorageError(f"Error removing key {key}: {e}") from e

    @asynccontextmanager
    async def lock(self, name: str) -> AsyncIterator[None]:
        lock = self.client.lock(
            name,
            timeout=settings.LOCK_TIMEOUT_SECONDS,
            blocking_timeout=settings.LOCK_BLOCKING_TIMEOUT_SECONDS,
        )
        try:
            acquired = await lock.acquire()
        except RedisError as e:
            raise StorageError(f"Error acquiring lock {name}: {e}") from e
        if not acquired:
            raise StorageError(f"Timed out waiting for lock {name}")
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError as e:
                # Lock expired before release; the next writer already owns it
                logger.warning(f"Lock {name} was released late: {e}")

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    async def close(self) -> None:
        await self.client.aclose()


def create_storage(backend: Optional[str] = None) -> KeyValueStorage:
    """Build the storage backend named in settings (``redis`` or ``memory``)."""
    backend = backend or settings.STORAGE_BACKEND
    if backend == "memory":
        logger.info("Using in-memory storage")
        return MemoryStorage()
    if backend == "redis":
        logger.info(f"Using Redis storage at {settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.REDIS_DB}")
        return RedisStorage()
    raise ValueError(f"Unknown storage backend: {backend}")
