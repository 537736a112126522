"""Connection lifecycle state machine with transition validation."""

from __future__ import annotations

import logging
from enum import Enum

from tinysocket.errors import InvalidStateError

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTING = "disconnecting"
    CLOSED = "closed"
    ERRORED = "errored"


VALID_TRANSITIONS: dict[ConnectionState, set[ConnectionState]] = {
    ConnectionState.IDLE: {ConnectionState.CONNECTING},
    ConnectionState.CONNECTING: {ConnectionState.CONNECTED, ConnectionState.ERRORED},
    ConnectionState.CONNECTED: {ConnectionState.DISCONNECTING, ConnectionState.ERRORED},
    ConnectionState.DISCONNECTING: {ConnectionState.CLOSED, ConnectionState.ERRORED},
    ConnectionState.CLOSED: set(),
    ConnectionState.ERRORED: set(),
}


class ConnectionStateTracker:
    """Tracks the lifecycle state of one stream connection."""

    def __init__(self, name: str = "connection"):
        self._name = name
        self._state = ConnectionState.IDLE

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return not VALID_TRANSITIONS[self._state]

    def transition(self, new_state: ConnectionState) -> bool:
        """Transition to new state. Returns True if valid, False if rejected."""
        if new_state == self._state:
            return True  # No-op

        valid = VALID_TRANSITIONS.get(self._state, set())
        if new_state not in valid:
            logger.warning(
                "Invalid %s state transition: %s -> %s (valid: %s)",
                self._name, self._state.value, new_state.value,
                sorted(s.value for s in valid),
            )
            return False

        old_state = self._state
        self._state = new_state
        logger.info("%s state: %s -> %s", self._name, old_state.value, new_state.value)
        return True

    def require(self, *allowed: ConnectionState, operation: str) -> None:
        """Raise InvalidStateError unless the current state is one of ``allowed``."""
        if self._state not in allowed:
            raise InvalidStateError(
                f"Cannot {operation}() while {self._name} is {self._state.value} "
                f"(expected: {', '.join(s.value for s in allowed)})"
            )
