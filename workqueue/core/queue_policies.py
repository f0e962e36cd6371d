from dataclasses import dataclass
from typing import Dict

from workqueue.core.config import MAX_PROMOTION_BATCH_SIZE, settings


@dataclass(frozen=True)
class QueuePolicy:
    ack_timeout_seconds: float
    promotion_batch_size: int
    consumer_batch_size: int
    idle_backoff_seconds: float
    max_idle_backoff_seconds: float

    def __post_init__(self):
        if not 1 <= self.promotion_batch_size <= MAX_PROMOTION_BATCH_SIZE:
            raise ValueError(f"promotion_batch_size must be between 1 and {MAX_PROMOTION_BATCH_SIZE}")


DEFAULT_POLICY = QueuePolicy(
    ack_timeout_seconds=settings.QUEUE_ACK_TIMEOUT,
    promotion_batch_size=settings.QUEUE_PROMOTION_BATCH_SIZE,
    consumer_batch_size=settings.CONSUMER_BATCH_SIZE,
    idle_backoff_seconds=settings.CONSUMER_IDLE_BACKOFF,
    max_idle_backoff_seconds=settings.CONSUMER_MAX_IDLE_BACKOFF,
)


# Per-queue overrides, keyed by main queue name.
QUEUE_POLICIES: Dict[str, QueuePolicy] = {}


def get_policy(queue_name: str, policies: Dict[str, QueuePolicy] = None) -> QueuePolicy:
    """Return the policy registered for a queue, falling back to DEFAULT_POLICY."""
    registry = QUEUE_POLICIES if policies is None else policies
    return registry.get(queue_name, DEFAULT_POLICY)
