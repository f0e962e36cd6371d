import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from workqueue.core.errors import MalformedEnvelope
from workqueue.core.logging import get_logger
from workqueue.core.queue_policies import QueuePolicy, get_policy
from workqueue.core.store import QueueStore
from workqueue.schemas.envelope import QueueEnvelope, decode, encode
from workqueue.schemas.queue import PromotionResult, QueueStats


def delayed_queue(queue_name: str) -> str:
    """Name of the delay structure for a queue."""
    return f"{queue_name}:delayed"


def ack_queue(queue_name: str) -> str:
    """Name of the ack-index structure for a queue."""
    return f"{queue_name}:ack"


def ack_storage(queue_name: str) -> str:
    """Name of the ack payload store for a queue."""
    return f"{queue_name}:ack:storage"


@dataclass(frozen=True)
class QueueKeys:
    main: str
    delayed: str
    ack_index: str
    ack_storage: str

    @classmethod
    def for_queue(cls, queue_name: str) -> "QueueKeys":
        return cls(
            main=queue_name,
            delayed=delayed_queue(queue_name),
            ack_index=ack_queue(queue_name),
            ack_storage=ack_storage(queue_name),
        )

    def all(self) -> List[str]:
        return [self.main, self.delayed, self.ack_index, self.ack_storage]


class QueueService:
    """
    Reliable work queue over a key-value store.

    Messages are published to a FIFO list, optionally through a delay sorted
    set. Consumers may ask for acknowledgement: popped messages are then
    tracked with a deadline and put back at the tail of the queue by a later
    consume if they are not acknowledged in time (at-least-once delivery).

    Promotion of due delayed messages and of expired acknowledgements happens
    lazily at the start of every consume; there is no timer in this class.
    """

    def __init__(
        self,
        store: QueueStore,
        ack_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.time,
        policies: Optional[Dict[str, QueuePolicy]] = None,
    ):
        if ack_timeout is not None and ack_timeout <= 0:
            raise ValueError("ack_timeout must be greater than zero")
        self.store = store
        self.ack_timeout = ack_timeout
        self.clock = clock
        self.policies = policies
        self.logger = get_logger(self.__class__.__name__)

    def policy(self, queue_name: str) -> QueuePolicy:
        return get_policy(queue_name, self.policies)

    def ack_timeout_for(self, queue_name: str) -> float:
        if self.ack_timeout is not None:
            return self.ack_timeout
        return self.policy(queue_name).ack_timeout_seconds

    async def publish(self, queue_name: str, envelopes: Sequence[QueueEnvelope], delay_seconds: float = 0):
        """
        Publish envelopes to a queue.

        With no delay the encodings are appended to the main queue in one
        command. With a delay they are scheduled on the delay structure, scored
        with the time they become due. Identical encodings share one entry there.
        """
        if delay_seconds < 0:
            raise ValueError("delay_seconds cannot be negative")
        if not envelopes:
            return

        encoded = [encode(envelope) for envelope in envelopes]

        if not delay_seconds:
            await self.store.append(queue_name, encoded)
            self.logger.debug("Messages published", queue=queue_name, count=len(encoded))
            return

        ready_at = self.clock() + delay_seconds
        await self.store.schedule(delayed_queue(queue_name), {message: ready_at for message in encoded})
        self.logger.debug("Messages scheduled",
                          queue=queue_name,
                          count=len(encoded),
                          delay=delay_seconds)

    async def consume(self, queue_name: str, quantity: int = 1, require_ack: bool = False) -> List[QueueEnvelope]:
        """
        Consume up to ``quantity`` messages from the head of a queue.

        Due delayed messages and expired acknowledgements are promoted first.
        When ``require_ack`` is set every returned message must be acknowledged
        within the ack timeout, or it is delivered again later.
        Returns an empty list when nothing is available; never blocks.

        Raises:
            MalformedEnvelope: some popped entries could not be decoded. The
                envelopes that did decode are on the exception's ``decoded``.
        """
        if quantity < 1:
            raise ValueError("quantity must be at least 1")

        await self.promote(queue_name)

        keys = QueueKeys.for_queue(queue_name)
        if require_ack:
            deadline = self.clock() + self.ack_timeout_for(queue_name)
            raw_messages = await self.store.pop_batch_with_ack(
                keys.main,
                keys.ack_index,
                keys.ack_storage,
                quantity,
                deadline,
                self.policy(queue_name).promotion_batch_size,
            )
        else:
            raw_messages = await self.store.pop_batch(keys.main, quantity)

        if raw_messages:
            self.logger.debug("Messages consumed",
                              queue=queue_name,
                              count=len(raw_messages),
                              require_ack=require_ack)

        envelopes: List[QueueEnvelope] = []
        malformed: List[str] = []
        for message in raw_messages:
            try:
                envelopes.append(decode(message))
            except MalformedEnvelope:
                malformed.append(message)

        if malformed:
            self.logger.error("Malformed messages consumed",
                              queue=queue_name,
                              malformed=len(malformed),
                              decoded=len(envelopes),
                              require_ack=require_ack)
            raise MalformedEnvelope(
                f"{len(malformed)} of {len(raw_messages)} consumed messages could not be decoded",
                raw=malformed,
                decoded=envelopes,
            )

        return envelopes

    async def promote(self, queue_name: str) -> PromotionResult:
        """Move due delayed messages, then expired unacknowledged ones, to the tail of the queue."""
        keys = QueueKeys.for_queue(queue_name)
        batch_size = self.policy(queue_name).promotion_batch_size
        now = self.clock()

        delayed = await self.store.promote_delayed(keys.delayed, keys.main, now, batch_size)
        expired = await self.store.promote_expired_acks(keys.ack_index, keys.ack_storage, keys.main, now, batch_size)

        result = PromotionResult(queue=queue_name, delayed=delayed, expired=expired)
        if result.total:
            self.logger.info("Messages promoted", queue=queue_name, delayed=delayed, expired=expired)
        return result

    async def acknowledge(self, queue_name: str, envelopes: Sequence[QueueEnvelope]):
        """
        Acknowledge consumed messages so they are not delivered again.

        Unknown or already acknowledged ids are ignored.
        """
        if not envelopes:
            return

        keys = QueueKeys.for_queue(queue_name)
        ids = [envelope.id for envelope in envelopes]
        removed = await self.store.acknowledge(
            keys.ack_index,
            keys.ack_storage,
            ids,
            self.policy(queue_name).promotion_batch_size,
        )
        self.logger.debug("Messages acknowledged", queue=queue_name, count=len(ids), removed=removed)

    async def flush_queue(self, queue_name: str):
        """Flush all messages in a queue, including delayed and in-flight ones."""
        await self.store.delete(*QueueKeys.for_queue(queue_name).all())
        self.logger.info("Queue flushed", queue=queue_name)

    async def peek(self, queue_name: str, count: int = 10) -> List[QueueEnvelope]:
        """Peek at messages at the head of a queue without removing them."""
        if count < 1:
            return []
        raw_messages = await self.store.read_range(queue_name, count)
        return [decode(message) for message in raw_messages]

    async def get_queue_stats(self, queue_name: str) -> QueueStats:
        """Get depths of the main, delayed and in-flight structures of a queue."""
        keys = QueueKeys.for_queue(queue_name)
        active, delayed, in_flight = await self.store.sizes(keys.main, keys.delayed, keys.ack_index)
        return QueueStats(
            queue=queue_name,
            active_depth=active,
            delayed_depth=delayed,
            in_flight_depth=in_flight,
            total_depth=active + delayed + in_flight,
        )
