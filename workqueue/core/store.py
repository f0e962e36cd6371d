from typing import Dict, List, Protocol, Sequence, Tuple


class QueueStore(Protocol):
    """Key-value store contract consumed by QueueService.

    Structures per logical queue ``Q``:
      Q               list of encoded envelopes (FIFO, head = oldest)
      Q:delayed       sorted set, member = encoding, score = ready-at
      Q:ack           sorted set, member = envelope id, score = deadline
      Q:ack:storage   hash, envelope id -> encoding

    Every method that touches more than one structure must run as a single
    atomic unit on the backend: either all of its writes land or none do.
    """

    async def append(self, key: str, values: Sequence[str]) -> None:
        """Append values, in order, to the tail of a list."""

    async def schedule(self, key: str, scored: Dict[str, float]) -> None:
        """Insert members into a sorted set, overwriting the score of existing members."""

    async def read_range(self, key: str, count: int) -> List[str]:
        """Return up to count entries from the head of a list without removing them."""

    async def pop_batch(self, queue: str, quantity: int) -> List[str]:
        """Atomically read and remove up to quantity entries from the head of queue."""

    async def pop_batch_with_ack(
        self,
        queue: str,
        ack_index: str,
        ack_storage: str,
        quantity: int,
        deadline: float,
        batch_size: int,
    ) -> List[str]:
        """As pop_batch, also registering every popped entry in ack_index/ack_storage."""

    async def promote_delayed(self, delayed: str, queue: str, now: float, batch_size: int) -> int:
        """Move entries scored <= now from delayed to the tail of queue. Returns count moved."""

    async def promote_expired_acks(
        self,
        ack_index: str,
        ack_storage: str,
        queue: str,
        now: float,
        batch_size: int,
    ) -> int:
        """Move encodings of ids whose deadline <= now back to the tail of queue. Returns count moved."""

    async def acknowledge(self, ack_index: str, ack_storage: str, ids: Sequence[str], batch_size: int) -> int:
        """Remove ids from ack_index and ack_storage. Returns count removed from ack_index."""

    async def delete(self, *keys: str) -> None:
        """Delete the named structures."""

    async def sizes(self, queue: str, delayed: str, ack_index: str) -> Tuple[int, int, int]:
        """Return (main length, delayed cardinality, ack-index cardinality)."""
