from .base_consumer import BaseConsumer
from .sweeper import QueueSweeper

__all__ = [
    "BaseConsumer",
    "QueueSweeper",
]
