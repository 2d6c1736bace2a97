"""Value types exchanged between the broker and the stores."""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Optional

from .enums import QoS


def _check_qos(qos: int) -> None:
    # bool is an int subclass but never a valid QoS
    if isinstance(qos, bool) or qos not in (QoS.AT_MOST_ONCE, QoS.AT_LEAST_ONCE, QoS.EXACTLY_ONCE):
        raise ValueError(f"qos must be 0, 1 or 2, got {qos!r}")


def _as_bytes(payload: bytes | bytearray | memoryview | str | None) -> bytes:
    if payload is None:
        return b""
    if isinstance(payload, str):
        return payload.encode("utf-8")
    return bytes(payload)


@dataclass(frozen=True)
class Packet:
    """A PUBLISH packet as seen by the persistence layer."""

    topic: str
    payload: bytes = b""
    qos: int = 0
    retain: bool = False
    dup: bool = False
    message_id: Optional[int] = None

    def __post_init__(self) -> None:
        _check_qos(self.qos)
        object.__setattr__(self, "payload", _as_bytes(self.payload))


@dataclass(frozen=True)
class RetainedMessage:
    topic: str
    payload: bytes
    qos: int

    def __post_init__(self) -> None:
        _check_qos(self.qos)
        object.__setattr__(self, "payload", _as_bytes(self.payload))


@dataclass(frozen=True)
class Subscription:
    """A topic filter registered by a client."""

    topic: str
    qos: int = 0

    def __post_init__(self) -> None:
        _check_qos(self.qos)


@dataclass(frozen=True)
class ClientSubscription:
    """A subscription row together with its owning client."""

    client_id: str
    topic: str
    qos: int = 0

    def __post_init__(self) -> None:
        _check_qos(self.qos)


@dataclass(frozen=True)
class WillMessage:
    client_id: str
    topic: str
    payload: bytes
    qos: int = 0
    retain: bool = False
    broker_id: Optional[str] = None

    def __post_init__(self) -> None:
        _check_qos(self.qos)
        object.__setattr__(self, "payload", _as_bytes(self.payload))

    def as_packet(self) -> Packet:
        return Packet(topic=self.topic, payload=self.payload, qos=self.qos, retain=self.retain)


class OfflineCounts(NamedTuple):
    subscriptions: int
    clients: int


__all__ = [
    "Packet",
    "RetainedMessage",
    "Subscription",
    "ClientSubscription",
    "WillMessage",
    "OfflineCounts",
]
