import json
import uuid
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from workqueue.core.errors import MalformedEnvelope

ID_KEY = "id"
MESSAGE_KEY = "message"


class QueueEnvelope(BaseModel):
    """
    Generic envelope for messages transported through a queue.

    The payload is opaque to the queue; only the id is ever inspected.
    Two envelopes are equal when their ids are equal.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    payload: Any = Field(..., alias=MESSAGE_KEY)

    class Config:
        frozen = True
        populate_by_name = True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QueueEnvelope):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


def create(payload: Any, id: Optional[str] = None) -> QueueEnvelope:
    """Wrap a payload, generating a fresh identifier when none is given."""
    if id is None:
        return QueueEnvelope(message=payload)
    return QueueEnvelope(id=id, message=payload)


def encode(envelope: QueueEnvelope) -> str:
    """Serialize an envelope to its two-field wire form."""
    return envelope.model_dump_json(by_alias=True)


def decode(raw: Union[str, bytes]) -> QueueEnvelope:
    """
    Rebuild an envelope from its wire form.

    Raises MalformedEnvelope when the text is not a JSON object carrying both
    a string ``id`` and a ``message``.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedEnvelope(f"Envelope is not valid JSON: {e}", raw=raw) from e

    if not isinstance(data, dict):
        raise MalformedEnvelope("Envelope must be a JSON object", raw=raw)

    missing = [key for key in (ID_KEY, MESSAGE_KEY) if key not in data]
    if missing:
        raise MalformedEnvelope(f"Envelope is missing field(s): {', '.join(missing)}", raw=raw)

    if not isinstance(data[ID_KEY], str):
        raise MalformedEnvelope("Envelope id must be a string", raw=raw)

    try:
        return QueueEnvelope(id=data[ID_KEY], message=data[MESSAGE_KEY])
    except ValidationError as e:
        raise MalformedEnvelope(f"Invalid envelope: {e}", raw=raw) from e
