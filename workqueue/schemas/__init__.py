from .envelope import QueueEnvelope, create, decode, encode
from .queue import PromotionResult, QueueStats

__all__ = [
    # Envelope
    "QueueEnvelope", "create", "encode", "decode",

    # Results
    "PromotionResult", "QueueStats",
]
