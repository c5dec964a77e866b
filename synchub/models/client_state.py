"""Client state model for connected clients."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ClientState:
    """Represents one connected client's shared state."""

    client_id: int
    outward: Any = field(repr=False, compare=False)
    text: str = ""
