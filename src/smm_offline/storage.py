"""Key-value storage behind the offline mirror.

The mirror keeps each collection as one JSON string under a fixed key. A
mutation rewrites several keys; set_items() writes them in one step so a
reader never observes half of an operation.
"""

from typing import Protocol

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from src.smm_common.enums import StoreErrorKind
from src.smm_common.errors import StoreError


class KeyValueStorageProtocol(Protocol):
    async def get_item(self, key: str) -> str | None: ...

    async def set_items(self, items: dict[str, str]) -> None:
        """Write all items atomically."""
        ...


class InMemoryKeyValueStorage:
    """Process-local storage for development and tests."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    async def set_items(self, items: dict[str, str]) -> None:
        self._data.update(items)

    def snapshot(self) -> dict[str, str]:
        return dict(self._data)


class RedisKeyValueStorage:
    """Redis-backed storage; MSET makes multi-key writes atomic."""

    def __init__(self, redis: aioredis.Redis, prefix: str) -> None:
        self._redis = redis
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    async def get_item(self, key: str) -> str | None:
        try:
            return await self._redis.get(self._key(key))
        except RedisError as exc:
            raise _translate(exc) from exc

    async def set_items(self, items: dict[str, str]) -> None:
        if not items:
            return
        try:
            await self._redis.mset({self._key(k): v for k, v in items.items()})
        except RedisError as exc:
            raise _translate(exc) from exc


def _translate(exc: RedisError) -> StoreError:
    if isinstance(exc, (RedisConnectionError, RedisTimeoutError)):
        return StoreError(StoreErrorKind.NETWORK_UNAVAILABLE, f"Mirror storage unreachable: {exc}")
    return StoreError(StoreErrorKind.INTERNAL, f"Mirror storage error: {exc}")
