"""Custom exceptions for the hub."""


class SyncError(Exception):
    """Base exception for sync-related errors."""
    pass


class RegistryError(SyncError):
    """Exception raised when a registry invariant is violated."""
    pass


class DeliveryError(SyncError):
    """Exception raised when an event cannot be handed to a client's outward channel."""
    pass


class ProtocolError(SyncError):
    """Exception raised for payloads that are not valid wire events."""
    pass
