"""Event models and their wire encoding."""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from synchub.core.exceptions import ProtocolError


class EventType(Enum):
    """Kinds of events consumed by the router."""
    JOIN = "join"
    UPDATE = "update"
    LEAVE = "leave"


@dataclass
class BaseEvent:
    """Base class for all router events."""

    type: EventType
    client_id: int

    def to_dict(self) -> dict:
        """Convert event to the dictionary published on the event log."""
        return {
            'type': self.type.value,
            'id': self.client_id
        }


class JoinEvent(BaseEvent):
    """Internal event inserting a freshly connected client."""

    def __init__(self, client_id: int, outward: Any):
        super().__init__(EventType.JOIN, client_id)
        self.outward = outward

    def __repr__(self) -> str:
        return f"JoinEvent(client_id={self.client_id!r})"


class UpdateEvent(BaseEvent):
    """Client `client_id` set its state to `text`."""

    def __init__(self, client_id: int, text: str):
        super().__init__(EventType.UPDATE, client_id)
        self.text = text

    def to_dict(self) -> dict:
        result = super().to_dict()
        result['text'] = self.text
        return result

    def to_wire(self) -> str:
        return json.dumps({"SetText": [self.client_id, self.text]}, ensure_ascii=False)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UpdateEvent):
            return NotImplemented
        return (self.client_id, self.text) == (other.client_id, other.text)

    def __repr__(self) -> str:
        return f"UpdateEvent(client_id={self.client_id!r}, text={self.text!r})"


class LeaveEvent(BaseEvent):
    """Client `client_id` disconnected."""

    def __init__(self, client_id: int):
        super().__init__(EventType.LEAVE, client_id)

    def to_wire(self) -> str:
        return json.dumps({"Remove": self.client_id})

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LeaveEvent):
            return NotImplemented
        return self.client_id == other.client_id

    def __repr__(self) -> str:
        return f"LeaveEvent(client_id={self.client_id!r})"


WireEvent = Union[UpdateEvent, LeaveEvent]


def decode_wire(raw: str) -> WireEvent:
    """
    Decode a wire payload emitted by the hub.

    Args:
        raw: JSON text frame, either ``{"SetText": [id, text]}`` or ``{"Remove": id}``

    Returns:
        The corresponding UpdateEvent or LeaveEvent

    Raises:
        ProtocolError: If the payload is not one of the two constructors
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ProtocolError(f"Invalid JSON payload: {str(e)}") from e

    if not isinstance(data, dict) or len(data) != 1:
        raise ProtocolError(f"Expected a single-key object, got: {raw!r}")

    tag, body = next(iter(data.items()))
    if tag == "SetText":
        if (not isinstance(body, list) or len(body) != 2
                or not _is_id(body[0]) or not isinstance(body[1], str)):
            raise ProtocolError(f"Malformed SetText body: {body!r}")
        return UpdateEvent(body[0], body[1])
    elif tag == "Remove":
        if not _is_id(body):
            raise ProtocolError(f"Malformed Remove body: {body!r}")
        return LeaveEvent(body)
    else:
        raise ProtocolError(f"Unknown event tag: {tag}")


def _is_id(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
