import asyncio
from typing import List, Optional

from workqueue.core.errors import MalformedEnvelope, StoreError
from workqueue.core.logging import get_logger
from workqueue.core.queue_policies import QueuePolicy
from workqueue.schemas.envelope import QueueEnvelope
from workqueue.services.queue_service import QueueService


class BaseConsumer:
    """
    Polling consumer with acknowledgement.

    Each pass consumes a batch with ``require_ack=True``, hands every envelope
    to ``process_message`` and acknowledges the ones that succeeded. Envelopes
    that fail are left unacknowledged and come back after the ack timeout.
    Empty polls back off exponentially up to the policy's maximum.
    """

    def __init__(self, queue_name: str, service: QueueService, policy: Optional[QueuePolicy] = None):
        self.queue_name = queue_name
        self.service = service
        self.policy = policy or service.policy(queue_name)
        self.logger = get_logger(self.__class__.__name__, queue=queue_name)
        # Created inside run_consumer so it belongs to the loop that runs it.
        self._stop: Optional[asyncio.Event] = None
        self._stop_requested = False
        self._idle_backoff = self.policy.idle_backoff_seconds

    async def process_message(self, envelope: QueueEnvelope) -> bool:
        """
        Process a single message. Override in subclasses.

        Returns:
            bool: True if successful, False to leave it for redelivery
        """
        raise NotImplementedError("Subclasses must implement process_message")

    async def run_once(self) -> int:
        """Consume and process one batch. Returns the number of messages acknowledged."""
        try:
            envelopes = await self.service.consume(
                self.queue_name,
                quantity=self.policy.consumer_batch_size,
                require_ack=True,
            )
        except MalformedEnvelope as e:
            # Undecodable entries stay unacknowledged; the rest of the batch is still handled.
            self.logger.error(f"Malformed message in queue: {e}", malformed=len(e.raw or []))
            envelopes = e.decoded
        if not envelopes:
            return 0

        processed: List[QueueEnvelope] = []
        for envelope in envelopes:
            try:
                if await self.process_message(envelope):
                    processed.append(envelope)
                else:
                    self.logger.warning("Message left for redelivery", message_id=envelope.id)
            except Exception as e:
                self.logger.error(f"Error processing message: {e}", message_id=envelope.id)

        await self.service.acknowledge(self.queue_name, processed)
        return len(processed)

    def _next_backoff(self) -> float:
        delay = self._idle_backoff
        self._idle_backoff = min(self._idle_backoff * 2, self.policy.max_idle_backoff_seconds)
        return delay

    def _reset_backoff(self):
        self._idle_backoff = self.policy.idle_backoff_seconds

    async def _sleep(self, delay: float):
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    async def run_consumer(self):
        """Main consumer loop; returns once stop() is called."""
        self._stop = asyncio.Event()
        if self._stop_requested:
            self._stop.set()
        self.logger.info(f"Starting consumer for queue: {self.queue_name}")

        while not self._stop.is_set():
            try:
                count = await self.run_once()
            except StoreError as e:
                self.logger.error(f"Error in consumer loop: {e}")
                count = 0

            if count:
                self._reset_backoff()
            else:
                await self._sleep(self._next_backoff())

        self.logger.info(f"Consumer stopped for queue: {self.queue_name}")

    def stop(self):
        self._stop_requested = True
        if self._stop is not None:
            self._stop.set()

    def run_sync_consumer(self):
        """Synchronous wrapper for the async consumer loop."""
        asyncio.run(self.run_consumer())
