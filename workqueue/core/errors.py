"""Exception hierarchy for queue operations.

Empty results (nothing to consume, nothing to acknowledge) are never errors.
"""


class QueueError(Exception):
    """Base class for every error raised by the queue engine."""
    pass


class MalformedEnvelope(QueueError):
    """Raised when a stored or transported encoding cannot be decoded.

    When raised from a batch consume, ``raw`` holds the undecodable entries and
    ``decoded`` the envelopes that were popped alongside them and decoded fine.
    """

    def __init__(self, message: str, raw=None, decoded=None):
        super().__init__(message)
        self.raw = raw
        self.decoded = list(decoded or [])


class StoreError(QueueError):
    """The key-value store rejected or failed to execute an operation."""
    pass


class StoreUnavailable(StoreError):
    """The store could not be reached (connection refused, timeout)."""
    pass


class StoreOperationFailed(StoreError):
    """The store was reached but the command or script failed."""
    pass
