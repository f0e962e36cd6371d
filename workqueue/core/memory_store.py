import json
import threading
from typing import Dict, List, Sequence, Tuple


def _message_id(message: str) -> str:
    """Id of an encoded envelope, or the raw encoding when no string id can be read."""
    try:
        decoded = json.loads(message)
    except ValueError:
        return message
    if isinstance(decoded, dict) and isinstance(decoded.get("id"), str):
        return decoded["id"]
    return message


class InMemoryStore:
    """Thread-safe in-memory QueueStore for local development and tests.

    Lists, sorted sets and hashes live in plain dicts. Every method holds a
    single lock for its whole body, which gives each transition the same
    all-or-nothing behaviour the Redis scripts have. Sorted sets order members
    by (score, member), as Redis does.
    """

    def __init__(self):
        self._lists: Dict[str, List[str]] = {}
        self._zsets: Dict[str, Dict[str, float]] = {}
        self._hashes: Dict[str, Dict[str, str]] = {}
        self._lock = threading.Lock()

    # Primitive helpers, called with the lock held

    def _drop_empty(self, key: str):
        for structures in (self._lists, self._zsets, self._hashes):
            if key in structures and not structures[key]:
                del structures[key]

    def _rpush(self, key: str, values: Sequence[str]):
        if values:
            self._lists.setdefault(key, []).extend(values)

    def _pop_head(self, key: str, quantity: int) -> List[str]:
        entries = self._lists.get(key, [])
        popped = entries[:quantity]
        del entries[:quantity]
        self._drop_empty(key)
        return popped

    def _range_by_score(self, key: str, upper: float) -> List[str]:
        zset = self._zsets.get(key, {})
        ranked = sorted(zset.items(), key=lambda item: (item[1], item[0]))
        return [member for member, score in ranked if score <= upper]

    def _zrem(self, key: str, members: Sequence[str]) -> int:
        zset = self._zsets.get(key, {})
        removed = 0
        for member in members:
            if zset.pop(member, None) is not None:
                removed += 1
        self._drop_empty(key)
        return removed

    def _hdel(self, key: str, fields: Sequence[str]) -> List[str]:
        mapping = self._hashes.get(key, {})
        values = [mapping.pop(field, None) for field in fields]
        self._drop_empty(key)
        return values

    # QueueStore

    async def append(self, key: str, values: Sequence[str]) -> None:
        with self._lock:
            self._rpush(key, list(values))

    async def schedule(self, key: str, scored: Dict[str, float]) -> None:
        with self._lock:
            if scored:
                self._zsets.setdefault(key, {}).update(
                    {member: float(score) for member, score in scored.items()}
                )

    async def read_range(self, key: str, count: int) -> List[str]:
        with self._lock:
            return list(self._lists.get(key, [])[:max(count, 0)])

    async def pop_batch(self, queue: str, quantity: int) -> List[str]:
        with self._lock:
            return self._pop_head(queue, quantity)

    async def pop_batch_with_ack(self, queue: str, ack_index: str, ack_storage: str,
                                 quantity: int, deadline: float, batch_size: int) -> List[str]:
        with self._lock:
            messages = self._pop_head(queue, quantity)
            if not messages:
                return messages
            index = self._zsets.setdefault(ack_index, {})
            storage = self._hashes.setdefault(ack_storage, {})
            for message in messages:
                message_id = _message_id(message)
                index[message_id] = float(deadline)
                storage[message_id] = message
            return messages

    async def promote_delayed(self, delayed: str, queue: str, now: float, batch_size: int) -> int:
        with self._lock:
            messages = self._range_by_score(delayed, now)
            if not messages:
                return 0
            self._zrem(delayed, messages)
            self._rpush(queue, messages)
            return len(messages)

    async def promote_expired_acks(self, ack_index: str, ack_storage: str, queue: str,
                                   now: float, batch_size: int) -> int:
        with self._lock:
            ids = self._range_by_score(ack_index, now)
            if not ids:
                return 0
            self._zrem(ack_index, ids)
            present = [message for message in self._hdel(ack_storage, ids) if message is not None]
            self._rpush(queue, present)
            return len(present)

    async def acknowledge(self, ack_index: str, ack_storage: str, ids: Sequence[str],
                          batch_size: int) -> int:
        with self._lock:
            removed = self._zrem(ack_index, ids)
            self._hdel(ack_storage, ids)
            return removed

    async def delete(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self._lists.pop(key, None)
                self._zsets.pop(key, None)
                self._hashes.pop(key, None)

    async def sizes(self, queue: str, delayed: str, ack_index: str) -> Tuple[int, int, int]:
        with self._lock:
            return (
                len(self._lists.get(queue, [])),
                len(self._zsets.get(delayed, {})),
                len(self._zsets.get(ack_index, {})),
            )

    def keys(self) -> List[str]:
        """Names of every structure currently holding data."""
        with self._lock:
            return sorted(set(self._lists) | set(self._zsets) | set(self._hashes))
