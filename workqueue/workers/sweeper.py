import asyncio
from typing import Dict, Optional, Sequence

from workqueue.core.config import settings
from workqueue.core.errors import StoreError
from workqueue.core.logging import get_logger
from workqueue.services.queue_service import QueueService


class QueueSweeper:
    """
    Periodic promotion of delayed and timed-out messages.

    consume() already promotes lazily; running a sweeper as well makes due
    messages visible in the main queue (and in its depth) without waiting
    for the next consumer poll.
    """

    def __init__(self, service: QueueService, queue_names: Sequence[str], interval: Optional[float] = None):
        self.service = service
        self.queue_names = list(queue_names)
        self.interval = interval or settings.SWEEP_INTERVAL
        self.logger = get_logger(self.__class__.__name__)
        self._stop: Optional[asyncio.Event] = None
        self._stop_requested = False

    async def sweep_once(self) -> Dict[str, int]:
        """Promote every queue once. Returns messages moved per queue."""
        results = {}
        for queue_name in self.queue_names:
            try:
                result = await self.service.promote(queue_name)
            except StoreError as e:
                self.logger.error(f"Sweep failed: {e}", queue=queue_name)
                continue
            results[queue_name] = result.total
        return results

    async def run(self):
        self._stop = asyncio.Event()
        if self._stop_requested:
            self._stop.set()
        self.logger.info("Starting queue sweeper", queues=self.queue_names, interval=self.interval)
        while not self._stop.is_set():
            results = await self.sweep_once()
            moved = sum(results.values())
            if moved:
                self.logger.info("Sweeper promoted messages", results=results)
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
        self.logger.info("Queue sweeper stopped")

    def stop(self):
        self._stop_requested = True
        if self._stop is not None:
            self._stop.set()
