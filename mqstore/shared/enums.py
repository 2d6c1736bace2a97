from __future__ import annotations

from enum import Enum, IntEnum


class QoS(IntEnum):
    AT_MOST_ONCE = 0
    AT_LEAST_ONCE = 1
    EXACTLY_ONCE = 2


class LifecycleState(str, Enum):
    INITIALIZING = "initializing"
    READY = "ready"
    CLOSED = "closed"


__all__ = ["QoS", "LifecycleState"]
