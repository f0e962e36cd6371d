"""
Pytest configuration and fixtures for queue tests.
"""
import pytest
from unittest.mock import AsyncMock, MagicMock

from workqueue.core.memory_store import InMemoryStore
from workqueue.core.redis_client import RedisStore
from workqueue.schemas.envelope import create
from workqueue.services.queue_service import QueueService


class FakeClock:
    """Manually advanced clock standing in for time.time."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    """Simulated clock shared by the service under test."""
    return FakeClock()


@pytest.fixture
def memory_store():
    """Empty in-memory store."""
    return InMemoryStore()


@pytest.fixture
def service(memory_store, clock):
    """Queue service over an in-memory store with a 10 second ack timeout."""
    return QueueService(memory_store, ack_timeout=10, clock=clock)


@pytest.fixture
def queue_name():
    return "q:test:jobs"


@pytest.fixture
def sample_envelopes():
    """Three envelopes with fixed ids."""
    return [
        create({"task": "send_email", "to": "a@example.com"}, id="m1"),
        create({"task": "send_email", "to": "b@example.com"}, id="m2"),
        create({"task": "resize", "sizes": [64, 128]}, id="m3"),
    ]


@pytest.fixture
def mock_redis():
    """Mock redis.asyncio client whose registered scripts are AsyncMocks."""
    client = MagicMock()
    client.ping = AsyncMock(return_value=True)
    client.rpush = AsyncMock(return_value=1)
    client.zadd = AsyncMock(return_value=1)
    client.lrange = AsyncMock(return_value=[])
    client.delete = AsyncMock(return_value=4)
    client.aclose = AsyncMock()
    client.register_script = MagicMock(side_effect=lambda source: AsyncMock(name="script"))
    return client


@pytest.fixture
def redis_store(mock_redis):
    """RedisStore bound to the mock client."""
    return RedisStore(client=mock_redis)
