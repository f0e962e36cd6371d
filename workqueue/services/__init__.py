from .queue_service import QueueKeys, QueueService, ack_queue, ack_storage, delayed_queue

__all__ = [
    "QueueService",
    "QueueKeys",
    "delayed_queue",
    "ack_queue",
    "ack_storage",
]
