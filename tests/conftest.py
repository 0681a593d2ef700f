"""
Test Configuration
==================

Pytest fixtures and test doubles for QuestUplink.

HTTP is never performed for real: clients and probes receive a FakeSession
that replays scripted outcomes in the requests.Session call shape.
"""

import time
from typing import List, Optional, Union

import numpy as np
import pytest
import requests

from quest_uplink.models.frame import FrameSample
from quest_uplink.models.state import ConnectionState


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code


Outcome = Union[int, Exception]


class FakeSession:
    """
    Scripted requests.Session replacement.

    Each call pops the next outcome: an int becomes the response status,
    an exception instance is raised. When the script runs out, the
    default outcome is used.
    """

    def __init__(self, outcomes: Optional[List[Outcome]] = None, default: Outcome = 200) -> None:
        self.outcomes = list(outcomes or [])
        self.default = default
        self.posts: List[dict] = []
        self.gets: List[dict] = []

    def post(self, url, data=None, headers=None, timeout=None):
        self.posts.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        return self._next()

    def get(self, url, timeout=None):
        self.gets.append({"url": url, "timeout": timeout})
        return self._next()

    def _next(self) -> FakeResponse:
        outcome = self.outcomes.pop(0) if self.outcomes else self.default
        if isinstance(outcome, Exception):
            raise outcome
        return FakeResponse(outcome)


class FakeProbe:
    """HealthProbe double that records calls and applies a fixed result."""

    url = "http://test-server:5000/api/ping"

    def __init__(self, connection: ConnectionState, result: bool = True) -> None:
        self.connection = connection
        self.result = result
        self.calls = 0
        self.in_flight = False

    async def probe(self) -> bool:
        self.calls += 1
        if self.result:
            self.connection.mark_connected("Server connected")
        else:
            self.connection.mark_disconnected("Server disconnected")
        return self.result


class RecordingSink:
    """Status sink that keeps every update."""

    def __init__(self) -> None:
        self.updates: List[tuple] = []

    def update(self, connected: bool, message: str) -> None:
        self.updates.append((connected, message))


def make_sample(width: int, height: int, seed: int = 0) -> FrameSample:
    """Random RGB sample backed by bytes."""
    rng = np.random.default_rng(seed)
    pixels = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    return FrameSample(
        width=width,
        height=height,
        pixels=pixels.tobytes(),
        timestamp=time.time(),
    )


@pytest.fixture
def connection():
    """Fresh ConnectionState in the UNKNOWN state."""
    return ConnectionState()


@pytest.fixture
def connected_state():
    """ConnectionState already marked connected."""
    state = ConnectionState()
    state.mark_connected("Server connected")
    return state


@pytest.fixture
def sample_factory():
    """Factory for random RGB FrameSamples."""
    return make_sample


@pytest.fixture
def fake_session():
    """FakeSession class, instantiate with scripted outcomes."""
    return FakeSession


@pytest.fixture
def fake_probe():
    """FakeProbe class, instantiate with a ConnectionState."""
    return FakeProbe


@pytest.fixture
def recording_sink():
    """Status sink that records updates."""
    return RecordingSink()


@pytest.fixture
def connection_error():
    """A network-level failure as raised by requests."""
    return requests.ConnectionError("Connection refused")
