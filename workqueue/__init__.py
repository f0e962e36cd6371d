"""Reliable work queue on Redis lists, sorted sets and hashes."""

from workqueue.core.errors import (
    MalformedEnvelope,
    QueueError,
    StoreError,
    StoreOperationFailed,
    StoreUnavailable,
)
from workqueue.core.memory_store import InMemoryStore
from workqueue.core.redis_client import RedisStore
from workqueue.schemas.envelope import QueueEnvelope
from workqueue.services.queue_service import QueueService

__version__ = "1.0.0"

__all__ = [
    "QueueService",
    "QueueEnvelope",
    "RedisStore",
    "InMemoryStore",
    "QueueError",
    "MalformedEnvelope",
    "StoreError",
    "StoreUnavailable",
    "StoreOperationFailed",
]
