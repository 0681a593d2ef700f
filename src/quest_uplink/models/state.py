"""
Connection State Models
=======================

Connection health shared by the uplink client and the health probe.

State Machine:
    UNKNOWN      → CONNECTED     (successful probe or send)
    UNKNOWN      → DISCONNECTED  (failed startup probe)
    CONNECTED    → DISCONNECTED  (failure threshold reached)
    DISCONNECTED → CONNECTED     (successful reprobe or send)

Mutation happens only from the event loop that drives the scheduler, so no
lock is taken. Status sinks are pushed (connected, message) whenever either
value changes.

Example:
    from quest_uplink.models.state import ConnectionState

    state = ConnectionState()
    state.add_sink(LoggingStatusSink())
    state.mark_connected("Server connected")
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Protocol


logger = logging.getLogger(__name__)


class ConnectionStatus(str, Enum):
    """
    Discrete connection states.

    Attributes:
        UNKNOWN: No probe or send has resolved yet
        CONNECTED: Server reachable
        DISCONNECTED: Server considered unreachable
    """

    UNKNOWN = "UNKNOWN"
    CONNECTED = "CONNECTED"
    DISCONNECTED = "DISCONNECTED"


class StatusSink(Protocol):
    """Consumer of connection status updates (e.g. a headset overlay)."""

    def update(self, connected: bool, message: str) -> None:
        ...


class LoggingStatusSink:
    """Status sink that writes every update to the log."""

    def update(self, connected: bool, message: str) -> None:
        if connected:
            logger.info(f"Status: connected | {message}")
        else:
            logger.warning(f"Status: disconnected | {message}")


class ConnectionState:
    """
    Connection health owned by one CaptureScheduler.

    Attributes:
        status: Current ConnectionStatus
        consecutive_failures: Sends failed since the last success or reprobe
        message: Last human-readable status message
    """

    def __init__(self) -> None:
        self.status: ConnectionStatus = ConnectionStatus.UNKNOWN
        self.consecutive_failures: int = 0
        self.message: str = ""
        self._sinks: List[StatusSink] = []

    @property
    def connected(self) -> bool:
        """Whether the server is currently considered reachable."""
        return self.status is ConnectionStatus.CONNECTED

    def add_sink(self, sink: StatusSink) -> None:
        self._sinks.append(sink)

    def mark_connected(self, message: str) -> None:
        """Transition to CONNECTED (from any state)."""
        self._set(ConnectionStatus.CONNECTED, message)

    def mark_disconnected(self, message: str) -> None:
        """Transition to DISCONNECTED (from any state)."""
        self._set(ConnectionStatus.DISCONNECTED, message)

    def record_success(self, message: str) -> None:
        """A send succeeded: clear failures and mark connected."""
        self.consecutive_failures = 0
        self._set(ConnectionStatus.CONNECTED, message)

    def record_failure(self, message: str) -> int:
        """
        A send failed: bump the failure counter without touching status.

        Returns:
            The updated consecutive failure count
        """
        self.consecutive_failures += 1
        self._set(self.status, message)
        return self.consecutive_failures

    def reset_failures(self) -> None:
        self.consecutive_failures = 0

    def to_dict(self) -> Dict[str, Any]:
        """Export state as dict."""
        return {
            "status": self.status.value,
            "connected": self.connected,
            "consecutive_failures": self.consecutive_failures,
            "message": self.message,
        }

    def _set(self, status: ConnectionStatus, message: str) -> None:
        was_connected = self.connected
        previous_message = self.message

        if status is not self.status:
            logger.info(f"Connection {self.status.value} -> {status.value}")
        self.status = status
        self.message = message

        if self.connected != was_connected or message != previous_message:
            for sink in self._sinks:
                sink.update(self.connected, message)
