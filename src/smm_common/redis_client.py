"""Redis connection for the offline mirror's key-value storage.

Redis holds the mirror collections only; live wallet state is PostgreSQL.
Timeouts are short because the mirror is the path taken when something else
is already failing.
"""

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from config.settings import settings

_redis_pool: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is None:
        _redis_pool = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=settings.REDIS_TIMEOUT_SECONDS,
            socket_timeout=settings.REDIS_TIMEOUT_SECONDS,
        )
    return _redis_pool


async def mirror_reachable() -> bool:
    """Used at startup to warn early when neither store would be reachable."""
    try:
        return bool(await (await get_redis()).ping())
    except (RedisConnectionError, RedisTimeoutError, OSError):
        return False


async def close_redis() -> None:
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is not None:
        await _redis_pool.aclose()
        _redis_pool = None
