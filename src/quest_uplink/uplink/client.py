"""
Uplink Client
=============

HTTP delivery of capture payloads to the processing server.

This client:
    - POSTs one serialized UplinkPayload per call as application/json
    - Counts frames sent and consecutive failures
    - Flips the connection to DISCONNECTED after repeated failures and
      schedules an out-of-band health reprobe

Design Rules:
    - Every send is independent; a failed payload is dropped, never resent
    - Failures below the threshold leave the connected flag untouched
    - Blocking HTTP runs in a worker thread; counters and connection
      state are only written back on the event loop
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional, Set

import requests

from quest_uplink.models.payload import UplinkPayload
from quest_uplink.models.state import ConnectionState
from quest_uplink.uplink.health import HealthProbe


logger = logging.getLogger(__name__)


class SendError(Exception):
    """
    Raised when a payload could not be delivered.

    Attributes:
        status_code: HTTP status of the response, None for network errors
    """

    def __init__(self, reason: str, status_code: Optional[int] = None) -> None:
        super().__init__(reason)
        self.status_code = status_code


@dataclass(frozen=True, slots=True)
class Ack:
    """
    Server acknowledgement of a delivered payload.

    Attributes:
        frame_number: Value of the sent-frame counter after this send
        status_code: HTTP status returned by the server
        elapsed_ms: Round-trip time in milliseconds
    """

    frame_number: int
    status_code: int
    elapsed_ms: float


class UplinkMetrics:
    """Metrics for UplinkClient observability."""

    __slots__ = (
        "frames_sent",
        "send_failures",
        "reprobes_triggered",
        "bytes_sent",
        "last_error",
        "last_round_trip_ms",
    )

    def __init__(self) -> None:
        self.frames_sent: int = 0
        self.send_failures: int = 0
        self.reprobes_triggered: int = 0
        self.bytes_sent: int = 0
        self.last_error: Optional[str] = None
        self.last_round_trip_ms: float = 0.0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "frames_sent": self.frames_sent,
            "send_failures": self.send_failures,
            "reprobes_triggered": self.reprobes_triggered,
            "bytes_sent": self.bytes_sent,
            "last_error": self.last_error,
            "last_round_trip_ms": round(self.last_round_trip_ms, 1),
        }


class UplinkClient:
    """
    POSTs payloads and maintains connection health.

    Attributes:
        url: Frame endpoint (e.g. http://10.0.0.5:5000/api/frame)
        connection: Shared ConnectionState
        probe: HealthProbe scheduled when the failure threshold is hit
        timeout_ms: Per-request timeout in milliseconds
        failure_threshold: Consecutive failures before a reprobe
        metrics: Operational metrics

    Example:
        client = UplinkClient(
            url="http://localhost:5000/api/frame",
            connection=connection,
            probe=probe,
        )
        try:
            ack = await client.send(payload)
        except SendError:
            pass  # already recorded; the frame is simply lost
    """

    def __init__(
        self,
        url: str,
        connection: ConnectionState,
        probe: Optional[HealthProbe] = None,
        timeout_ms: int = 5000,
        failure_threshold: int = 3,
        session: Optional[requests.Session] = None,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")

        self.url = url
        self.connection = connection
        self.probe = probe
        self.timeout_ms = timeout_ms
        self.failure_threshold = failure_threshold

        self._session = session or requests.Session()
        self._probe_tasks: Set[asyncio.Task] = set()

        self.metrics = UplinkMetrics()

    @property
    def frames_sent(self) -> int:
        """Monotonically increasing count of delivered payloads."""
        return self.metrics.frames_sent

    async def send(
        self,
        payload: UplinkPayload,
        url: Optional[str] = None,
        timeout_ms: Optional[int] = None,
    ) -> Ack:
        """
        Deliver one payload.

        Args:
            payload: Payload built for this capture cycle
            url: Override for the frame endpoint
            timeout_ms: Override for the request timeout

        Returns:
            Ack for the delivered payload

        Raises:
            SendError: On network error, timeout or non-2xx status. The
                failure has already been recorded when this is raised.
        """
        url = url or self.url
        timeout = (timeout_ms if timeout_ms is not None else self.timeout_ms) / 1000.0
        body = payload.to_json().encode("utf-8")

        started = time.perf_counter()
        try:
            # On timeout the worker thread is abandoned, not interrupted. The
            # requests timeout passed to _post bounds how long it lingers.
            status_code = await asyncio.wait_for(
                asyncio.to_thread(self._post, url, body, timeout),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            error = SendError(f"Request timed out after {timeout:.1f}s")
            self._record_failure(error)
            raise error
        except SendError as e:
            self._record_failure(e)
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000.0

        self.metrics.frames_sent += 1
        self.metrics.bytes_sent += len(body)
        self.metrics.last_round_trip_ms = elapsed_ms
        self.connection.record_success(f"Frames sent: {self.metrics.frames_sent}")

        logger.debug(
            f"Data sent successfully (frame {self.metrics.frames_sent}, "
            f"{len(body)} bytes, {elapsed_ms:.0f}ms)"
        )

        return Ack(
            frame_number=self.metrics.frames_sent,
            status_code=status_code,
            elapsed_ms=elapsed_ms,
        )

    def _post(self, url: str, body: bytes, timeout: float) -> int:
        try:
            response = self._session.post(
                url,
                data=body,
                headers={"Content-Type": "application/json"},
                timeout=timeout,
            )
        except requests.RequestException as e:
            raise SendError(str(e)) from e

        if not 200 <= response.status_code < 300:
            raise SendError(f"HTTP {response.status_code}", status_code=response.status_code)

        return response.status_code

    def _record_failure(self, error: SendError) -> None:
        self.metrics.send_failures += 1
        self.metrics.last_error = str(error)

        failures = self.connection.record_failure(f"Send error: {error}")
        logger.error(f"Error sending data: {error}. Failed requests: {failures}")

        if failures >= self.failure_threshold and self.connection.connected:
            logger.warning("Multiple request failures. Retesting server connection...")
            self.connection.reset_failures()
            self.connection.mark_disconnected("Server disconnected")
            self._schedule_probe()

    def _schedule_probe(self) -> None:
        if self.probe is None:
            return

        self.metrics.reprobes_triggered += 1
        task = asyncio.get_running_loop().create_task(
            self.probe.probe(),
            name="health_reprobe",
        )
        # Keep a reference until done so the task isn't garbage collected
        self._probe_tasks.add(task)
        task.add_done_callback(self._probe_tasks.discard)

    async def wait_idle(self) -> None:
        """Wait for outstanding threshold reprobes, if any."""
        if self._probe_tasks:
            await asyncio.gather(*list(self._probe_tasks), return_exceptions=True)

    def get_metrics(self) -> dict:
        """Get client metrics for observability."""
        return {
            **self.metrics.to_dict(),
            "consecutive_failures": self.connection.consecutive_failures,
            "failure_threshold": self.failure_threshold,
        }
