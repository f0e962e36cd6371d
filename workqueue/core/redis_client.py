from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Sequence, Tuple
import logging

import redis.asyncio as redis
from redis.asyncio import ConnectionPool
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, TimeoutError as RedisTimeoutError

from workqueue.core import scripts
from workqueue.core.config import settings
from workqueue.core.errors import StoreOperationFailed, StoreUnavailable

logger = logging.getLogger(__name__)


class RedisStore:
    """
    Redis implementation of QueueStore.

    Multi-structure transitions run as Lua scripts, so each one is atomic on
    the server. Redis errors are translated to StoreUnavailable or
    StoreOperationFailed and never retried here.
    """

    def __init__(self, url: Optional[str] = None, max_connections: Optional[int] = None,
                 client: Optional[redis.Redis] = None):
        self.pool = None
        if client is None:
            self.pool = ConnectionPool.from_url(
                url or settings.REDIS_URL,
                max_connections=max_connections or settings.REDIS_MAX_CONNECTIONS,
                decode_responses=True
            )
        self.client: Optional[redis.Redis] = client
        self._scripts = {}
        if client is not None:
            self._register_scripts()

    def _register_scripts(self):
        self._scripts = {
            "pop_batch": self.client.register_script(scripts.POP_BATCH),
            "pop_batch_with_ack": self.client.register_script(scripts.POP_BATCH_WITH_ACK),
            "promote_delayed": self.client.register_script(scripts.PROMOTE_DELAYED),
            "promote_expired_acks": self.client.register_script(scripts.PROMOTE_EXPIRED_ACKS),
            "acknowledge": self.client.register_script(scripts.ACKNOWLEDGE),
        }

    async def connect(self):
        """Initialize Redis connection."""
        if self.client is None:
            self.client = redis.Redis(connection_pool=self.pool)
            self._register_scripts()
        async with self._translate_errors("ping"):
            await self.client.ping()
        logger.info("Redis connection established")

    async def disconnect(self):
        """Close Redis connection."""
        if self.client:
            await self.client.aclose()
            logger.info("Redis connection closed")

    async def _ensure_connected(self) -> redis.Redis:
        if self.client is None:
            await self.connect()
        return self.client

    @asynccontextmanager
    async def _translate_errors(self, operation: str, key: Optional[str] = None):
        try:
            yield
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.error(f"Redis unavailable during {operation} on {key}: {e}")
            raise StoreUnavailable(f"Redis unavailable during {operation}: {e}") from e
        except RedisError as e:
            logger.error(f"Redis {operation} failed on {key}: {e}")
            raise StoreOperationFailed(f"Redis {operation} failed: {e}") from e

    async def append(self, key: str, values: Sequence[str]) -> None:
        """Append encoded messages to the tail of a list (RPUSH)."""
        client = await self._ensure_connected()
        async with self._translate_errors("append", key):
            await client.rpush(key, *values)
        logger.debug(f"Appended {len(values)} message(s) to {key}")

    async def schedule(self, key: str, scored: Dict[str, float]) -> None:
        """Add members to a sorted set with their ready-at score (ZADD)."""
        client = await self._ensure_connected()
        async with self._translate_errors("schedule", key):
            await client.zadd(key, scored)
        logger.debug(f"Scheduled {len(scored)} message(s) on {key}")

    async def read_range(self, key: str, count: int) -> List[str]:
        """Read from the head of a list without removing (LRANGE)."""
        client = await self._ensure_connected()
        async with self._translate_errors("read_range", key):
            return await client.lrange(key, 0, count - 1)

    async def pop_batch(self, queue: str, quantity: int) -> List[str]:
        await self._ensure_connected()
        async with self._translate_errors("pop_batch", queue):
            return await self._scripts["pop_batch"](keys=[queue], args=[quantity])

    async def pop_batch_with_ack(self, queue: str, ack_index: str, ack_storage: str,
                                 quantity: int, deadline: float, batch_size: int) -> List[str]:
        await self._ensure_connected()
        async with self._translate_errors("pop_batch_with_ack", queue):
            return await self._scripts["pop_batch_with_ack"](
                keys=[queue, ack_index, ack_storage],
                args=[quantity, repr(deadline), batch_size],
            )

    async def promote_delayed(self, delayed: str, queue: str, now: float, batch_size: int) -> int:
        await self._ensure_connected()
        async with self._translate_errors("promote_delayed", delayed):
            moved = await self._scripts["promote_delayed"](
                keys=[delayed, queue],
                args=[repr(now), batch_size],
            )
        return int(moved or 0)

    async def promote_expired_acks(self, ack_index: str, ack_storage: str, queue: str,
                                   now: float, batch_size: int) -> int:
        await self._ensure_connected()
        async with self._translate_errors("promote_expired_acks", ack_index):
            moved = await self._scripts["promote_expired_acks"](
                keys=[ack_index, ack_storage, queue],
                args=[repr(now), batch_size],
            )
        return int(moved or 0)

    async def acknowledge(self, ack_index: str, ack_storage: str, ids: Sequence[str],
                          batch_size: int) -> int:
        await self._ensure_connected()
        async with self._translate_errors("acknowledge", ack_index):
            removed = await self._scripts["acknowledge"](
                keys=[ack_index, ack_storage],
                args=[batch_size, *ids],
            )
        return int(removed or 0)

    async def delete(self, *keys: str) -> None:
        """Delete structures in a single DEL."""
        client = await self._ensure_connected()
        async with self._translate_errors("delete", ",".join(keys)):
            await client.delete(*keys)

    async def sizes(self, queue: str, delayed: str, ack_index: str) -> Tuple[int, int, int]:
        client = await self._ensure_connected()
        async with self._translate_errors("sizes", queue):
            async with client.pipeline(transaction=True) as pipe:
                pipe.llen(queue)
                pipe.zcard(delayed)
                pipe.zcard(ack_index)
                active, scheduled, in_flight = await pipe.execute()
        return int(active), int(scheduled), int(in_flight)
