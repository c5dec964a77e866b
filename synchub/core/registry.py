"""Authoritative registry of per-client state."""

from typing import Dict, List, Optional, Tuple

from synchub.models.client_state import ClientState
from synchub.core.exceptions import RegistryError


class Registry:
    """
    Mapping of client id to its current ClientState.

    Not thread-safe and not meant to be: every call happens from inside the
    router's serialized loop, which is what gives reads and writes their
    total order.
    """

    def __init__(self):
        self._clients: Dict[int, ClientState] = {}

    def __contains__(self, client_id: int) -> bool:
        return client_id in self._clients

    def __len__(self) -> int:
        return len(self._clients)

    def get(self, client_id: int) -> Optional[ClientState]:
        return self._clients.get(client_id)

    def insert(self, client_id: int, state: ClientState) -> None:
        """
        Add a new client entry.

        Args:
            client_id: Id assigned to the client
            state: Initial state of the client

        Raises:
            RegistryError: If the id is already registered
        """
        if client_id in self._clients:
            raise RegistryError(f"Client {client_id} is already registered")
        self._clients[client_id] = state

    def update(self, client_id: int, text: str) -> bool:
        """
        Replace a client's text.

        Returns:
            True if the client was present, False if it already left
        """
        state = self._clients.get(client_id)
        if state is None:
            return False
        state.text = text
        return True

    def remove(self, client_id: int) -> bool:
        """Remove a client entry, returning whether it existed."""
        return self._clients.pop(client_id, None) is not None

    def snapshot(self, exclude: Optional[int] = None) -> List[Tuple[int, str]]:
        """
        Point-in-time view of every client's text.

        Args:
            exclude: Client id to leave out, usually the one being answered

        Returns:
            List of (id, text) pairs ordered by id
        """
        return [
            (client_id, state.text)
            for client_id, state in sorted(self._clients.items())
            if client_id != exclude
        ]

    def targets(self, exclude: Optional[int] = None) -> List[ClientState]:
        """Copy of the delivery targets for a broadcast."""
        return [state for client_id, state in self._clients.items() if client_id != exclude]
