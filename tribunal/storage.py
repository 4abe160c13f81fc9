"""
Module: tribunal/storage.py
Description: Keyed storage substrate for dispute and vote tables

Features:
- StorageBackend interface over get/put/delete keyed by string
- In-memory backend for tests and single-node runs
- Redis backend with MULTI/EXEC pipelines for atomic batches
- UnitOfWork buffering all writes of one operation, committed together
"""

import copy
import json
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, Dict, Iterable, Optional, Set

import redis.asyncio as redis
from redis.exceptions import RedisError

from .errors import ConfigurationError

logger = logging.getLogger("tribunal.storage")


class StorageBackend(ABC):
    """Keyed JSON-document storage."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def apply(self, puts: Dict[str, Dict[str, Any]], deletes: Iterable[str]) -> None:
        """Write ``puts`` and remove ``deletes`` as one atomic batch."""
        ...

    async def put(self, key: str, value: Dict[str, Any]) -> None:
        await self.apply({key: value}, ())

    async def delete(self, key: str) -> None:
        await self.apply({}, (key,))

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        pass


class InMemoryBackend(StorageBackend):
    """Process-local backend. Values are stored JSON-encoded so callers never share references."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    async def apply(self, puts: Dict[str, Dict[str, Any]], deletes: Iterable[str]) -> None:
        encoded = {key: json.dumps(value, sort_keys=True) for key, value in puts.items()}
        self._data.update(encoded)
        for key in deletes:
            self._data.pop(key, None)

    def keys(self) -> Set[str]:
        return set(self._data)


class RedisBackend(StorageBackend):
    """Redis backend; every batch runs inside a MULTI/EXEC transaction."""

    def __init__(self, redis_client: redis.Redis, key_prefix: str = "tribunal"):
        self.redis = redis_client
        self.key_prefix = key_prefix

    @classmethod
    def from_url(cls, redis_url: str, key_prefix: str = "tribunal") -> "RedisBackend":
        client = redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5.0,
            socket_timeout=5.0,
        )
        logger.info(f"RedisBackend created for {redis_url} (prefix={key_prefix})")
        return cls(client, key_prefix)

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}:{key}"

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        raw = await self.redis.get(self._key(key))
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return json.loads(raw)

    async def apply(self, puts: Dict[str, Dict[str, Any]], deletes: Iterable[str]) -> None:
        pipe = self.redis.pipeline(transaction=True)
        for key, value in puts.items():
            pipe.set(self._key(key), json.dumps(value, sort_keys=True))
        for key in deletes:
            pipe.delete(self._key(key))
        await pipe.execute()

    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    async def close(self) -> None:
        await self.redis.aclose()


class Table:
    """Namespace for one logical table inside a backend."""

    def __init__(self, name: str):
        self.name = name

    def key(self, case_id: str) -> str:
        return f"{self.name}:{case_id}"


class UnitOfWork:
    """
    Buffers the writes of one operation.

    Reads see the buffered writes first. Nothing reaches the backend
    until commit(), which hands every buffered write to one atomic batch.
    """

    def __init__(self, backend: StorageBackend):
        self._backend = backend
        self._puts: Dict[str, Dict[str, Any]] = {}
        self._deletes: Set[str] = set()

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        if key in self._deletes:
            return None
        if key in self._puts:
            return copy.deepcopy(self._puts[key])
        return await self._backend.get(key)

    def put(self, key: str, value: Dict[str, Any]) -> None:
        self._deletes.discard(key)
        self._puts[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._puts.pop(key, None)
        self._deletes.add(key)

    @property
    def has_pending(self) -> bool:
        return bool(self._puts or self._deletes)

    async def commit(self) -> None:
        if not self.has_pending:
            return
        await self._backend.apply(self._puts, sorted(self._deletes))
        self.discard()

    def discard(self) -> None:
        self._puts.clear()
        self._deletes.clear()


@asynccontextmanager
async def unit_of_work(backend: StorageBackend):
    """Commit on clean exit, drop every buffered write on error."""
    uow = UnitOfWork(backend)
    try:
        yield uow
    except Exception:
        uow.discard()
        raise
    await uow.commit()


def create_backend(cfg) -> StorageBackend:
    """Build the backend named by ``cfg.STORAGE_BACKEND``."""
    kind = cfg.STORAGE_BACKEND.lower()
    if kind == "memory":
        return InMemoryBackend()
    if kind == "redis":
        return RedisBackend.from_url(cfg.REDIS_URL, key_prefix=cfg.REDIS_KEY_PREFIX)
    raise ConfigurationError(f"Unknown storage backend: {cfg.STORAGE_BACKEND}")
