"""Exception taxonomy for the persistence layer."""

from __future__ import annotations

from typing import Optional


class MqstoreError(Exception):
    """Base class for every error raised by mqstore."""

    pass


class LifecycleError(MqstoreError):
    """Raised when an operation is attempted outside the READY state."""

    def __init__(self, operation: str, state: str):
        self.operation = operation
        self.state = state
        super().__init__(f"{operation}: persistence is {state}")


class NotReadyError(LifecycleError):
    """Raised before provisioning has completed."""

    pass


class ClosedError(LifecycleError):
    """Raised after the persistence has been closed."""

    pass


class NotFoundError(MqstoreError):
    """Expected, caller-visible outcome for lookups that match no row."""

    pass


class PacketNotFoundError(NotFoundError):
    def __init__(self, client_id: str, message_id: int):
        self.client_id = client_id
        self.message_id = message_id
        super().__init__(f"Packet not found: client_id={client_id} message_id={message_id}")


class BackingStoreError(MqstoreError):
    """Raised for any failure reported by the database or its driver.

    The message is the original error text; the original exception is kept
    on ``orig`` and chained as ``__cause__``.
    """

    def __init__(self, message: str, orig: Optional[BaseException] = None):
        self.orig = orig
        super().__init__(message)


class ProvisioningError(BackingStoreError):
    """Raised when the schema cannot be created at startup."""

    pass


class InvalidTopicFilterError(MqstoreError, ValueError):
    def __init__(self, topic_filter: str, reason: str):
        self.topic_filter = topic_filter
        self.reason = reason
        super().__init__(f"Invalid topic filter {topic_filter!r}: {reason}")


__all__ = [
    "MqstoreError",
    "LifecycleError",
    "NotReadyError",
    "ClosedError",
    "NotFoundError",
    "PacketNotFoundError",
    "BackingStoreError",
    "ProvisioningError",
    "InvalidTopicFilterError",
]
