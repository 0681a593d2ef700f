"""
Health Probe
============

Lightweight reachability check against the processing server.

The probe issues a GET to the configured ping path. Any 2xx response within
the timeout marks the connection CONNECTED; anything else marks it
DISCONNECTED. Overlapping probes are allowed and the last one to resolve wins.

Design Rules:
    - Never raises to the caller; failures are recorded and logged
    - Blocking HTTP runs in a worker thread, state is written back on the loop
"""

import asyncio
import logging
from typing import Optional

import requests

from quest_uplink.models.state import ConnectionState


logger = logging.getLogger(__name__)


class ProbeError(Exception):
    """Raised when the ping request fails or returns a non-2xx status."""
    pass


class HealthProbe:
    """
    Reachability check that updates a shared ConnectionState.

    Attributes:
        url: Ping URL (e.g. http://10.0.0.5:5000/api/ping)
        timeout_ms: Request timeout in milliseconds
        connection: ConnectionState to update

    Example:
        probe = HealthProbe("http://localhost:5000/api/ping", connection)
        ok = await probe.probe()
    """

    def __init__(
        self,
        url: str,
        connection: ConnectionState,
        timeout_ms: int = 5000,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = url
        self.connection = connection
        self.timeout_ms = timeout_ms

        self._session = session or requests.Session()
        self._probe_count: int = 0
        self._failure_count: int = 0
        self._in_flight: int = 0
        self.last_error: Optional[str] = None

    @property
    def in_flight(self) -> bool:
        """Whether at least one probe is outstanding."""
        return self._in_flight > 0

    async def probe(self) -> bool:
        """
        Check reachability and update the connection state.

        Returns:
            True if the server answered with a 2xx status in time
        """
        self._probe_count += 1
        self._in_flight += 1
        try:
            await asyncio.to_thread(self._request)
        except ProbeError as e:
            self._failure_count += 1
            self.last_error = str(e)
            logger.warning(f"Could not reach server at {self.url}: {e}")
            self.connection.mark_disconnected("Server disconnected")
            return False
        finally:
            self._in_flight -= 1

        self.last_error = None
        logger.info(f"Server reachable at {self.url}")
        self.connection.mark_connected("Server connected")
        return True

    def _request(self) -> None:
        try:
            response = self._session.get(self.url, timeout=self.timeout_ms / 1000.0)
        except requests.RequestException as e:
            raise ProbeError(str(e)) from e

        if not 200 <= response.status_code < 300:
            raise ProbeError(f"HTTP {response.status_code}")

    @property
    def probe_count(self) -> int:
        return self._probe_count

    def get_metrics(self) -> dict:
        """Get probe metrics for observability."""
        return {
            "probe_count": self._probe_count,
            "probe_failures": self._failure_count,
            "last_probe_error": self.last_error,
        }
