"""Three-state readiness gate shared by every public operation."""

from __future__ import annotations

import logging

from mqstore.errors import ClosedError, NotReadyError
from mqstore.shared.enums import LifecycleState

logger = logging.getLogger(__name__)


class LifecycleGate:
    """INITIALIZING -> READY -> CLOSED.

    ``check`` is called before any I/O; it never touches the pool.
    """

    def __init__(self) -> None:
        self._state = LifecycleState.INITIALIZING

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def ready(self) -> bool:
        return self._state is LifecycleState.READY

    @property
    def closed(self) -> bool:
        return self._state is LifecycleState.CLOSED

    def check(self, operation: str) -> None:
        if self._state is LifecycleState.READY:
            return
        if self._state is LifecycleState.CLOSED:
            raise ClosedError(operation, self._state.value)
        raise NotReadyError(operation, self._state.value)

    def mark_ready(self) -> None:
        if self._state is LifecycleState.CLOSED:
            raise ClosedError("setup", self._state.value)
        self._state = LifecycleState.READY
        logger.info({"mqstore_lifecycle": {"state": self._state.value}})

    def close(self) -> bool:
        """Move to CLOSED. Returns False if already closed."""
        if self._state is LifecycleState.CLOSED:
            return False
        self._state = LifecycleState.CLOSED
        logger.info({"mqstore_lifecycle": {"state": self._state.value}})
        return True


__all__ = ["LifecycleGate", "LifecycleState"]
