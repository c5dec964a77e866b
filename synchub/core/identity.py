"""Identity allocation for connecting clients."""

import threading


class IdentityAllocator:
    """
    Issues unique, strictly increasing client ids.

    Ids are never reused for the lifetime of the allocator, so a stale
    reference to a departed client can never alias a new one.
    """

    def __init__(self, start: int = 0):
        self._next = start
        self._lock = threading.Lock()

    def next(self) -> int:
        """Return a fresh id greater than every id returned before."""
        with self._lock:
            client_id = self._next
            self._next += 1
            return client_id

    def peek(self) -> int:
        """Return the id the next call to `next()` will hand out."""
        with self._lock:
            return self._next
