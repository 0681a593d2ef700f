"""
Capture Scheduler Tests
=======================

Timing, single-flight gating, trigger cooldown and cycle error handling.
"""

import asyncio
import base64
import json
from typing import List, Optional

import cv2
import numpy as np
import pytest

from quest_uplink.capture.encoder import ImageEncoder
from quest_uplink.capture.scheduler import CaptureScheduler, TriggerMode
from quest_uplink.models.frame import FrameSample
from quest_uplink.sources.base import TrackedJoint
from quest_uplink.sources.game_state import PoseSequenceGameState
from quest_uplink.sources.mock import MockPoseSource, StaticMotionSource, SyntheticFrameSource
from quest_uplink.uplink.client import SendError, UplinkClient
from quest_uplink.uplink.payload import PayloadBuilder


class GatedClient:
    """UplinkClient double whose sends stay outstanding until released."""

    def __init__(self) -> None:
        self.sent: List = []
        self.concurrent = 0
        self.max_concurrent = 0
        self.release = asyncio.Event()

    async def send(self, payload):
        self.concurrent += 1
        self.max_concurrent = max(self.max_concurrent, self.concurrent)
        try:
            await self.release.wait()
            self.sent.append(payload)
        finally:
            self.concurrent -= 1

    async def wait_idle(self) -> None:
        pass


class RecordingClient:
    """UplinkClient double that completes immediately."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: List = []
        self.fail = fail

    async def send(self, payload):
        self.sent.append(payload)
        if self.fail:
            raise SendError("HTTP 500", status_code=500)

    async def wait_idle(self) -> None:
        pass


class BrokenFrameSource:
    """Frame source whose buffer never matches its dimensions."""

    available = True

    def read(self) -> Optional[FrameSample]:
        return FrameSample(width=8, height=8, pixels=b"\x00" * 10, timestamp=0.0)


class FixedPoseSource:
    """Pose source reporting a fixed joint list."""

    def __init__(self, joints, active: bool = True) -> None:
        self._joints = joints
        self.active = active

    def joints(self):
        return self._joints


def make_scheduler(connection, probe, client, **kwargs) -> CaptureScheduler:
    kwargs.setdefault("frame_source", SyntheticFrameSource(width=32, height=24))
    return CaptureScheduler(
        connection=connection,
        encoder=ImageEncoder(quality=70),
        builder=PayloadBuilder(),
        client=client,
        probe=probe,
        **kwargs,
    )


class TestStartup:
    """Tests for the startup probe gate."""

    def test_no_cycle_before_start(self, connected_state, fake_probe):
        async def scenario():
            client = RecordingClient()
            scheduler = make_scheduler(connected_state, fake_probe(connected_state), client)
            return scheduler.tick(1.0)

        assert asyncio.run(scenario()) is False

    def test_failed_startup_probe_blocks_captures(self, connection, fake_probe):
        async def scenario():
            client = RecordingClient()
            scheduler = make_scheduler(
                connection, fake_probe(connection, result=False), client, reprobe_interval=0
            )
            reachable = await scheduler.start()
            return reachable, scheduler.tick(1.0), client

        reachable, initiated, client = asyncio.run(scenario())

        assert reachable is False
        assert initiated is False
        assert client.sent == []

    def test_requires_a_source(self, connection, fake_probe):
        with pytest.raises(ValueError):
            make_scheduler(connection, fake_probe(connection), RecordingClient(), frame_source=None)


class TestIntervalMode:
    """Tests for interval-driven capture."""

    def test_fires_when_interval_elapsed(self, connection, fake_probe):
        async def scenario():
            client = RecordingClient()
            scheduler = make_scheduler(connection, fake_probe(connection), client, send_interval=0.1)
            await scheduler.start()

            first = scheduler.tick(0.06)
            second = scheduler.tick(0.06)
            await scheduler.wait_idle()
            return first, second, client, scheduler

        first, second, client, scheduler = asyncio.run(scenario())

        assert first is False
        assert second is True
        assert len(client.sent) == 1
        assert scheduler.metrics.cycles_completed == 1
        assert not scheduler.in_flight

    def test_single_flight(self, connection, fake_probe):
        async def scenario():
            client = GatedClient()
            scheduler = make_scheduler(connection, fake_probe(connection), client, send_interval=0.1)
            await scheduler.start()

            results = []
            for _ in range(5):
                results.append(scheduler.tick(0.2))
                await asyncio.sleep(0)

            in_flight = scheduler.in_flight
            client.release.set()
            await scheduler.wait_idle()
            after = scheduler.tick(0.2)
            await scheduler.wait_idle()
            return results, in_flight, after, client, scheduler

        results, in_flight, after, client, scheduler = asyncio.run(scenario())

        assert results == [True, False, False, False, False]
        assert in_flight is True
        assert after is True
        assert client.max_concurrent == 1
        assert len(client.sent) == 2
        assert scheduler.metrics.cycles_dropped == 4

    def test_no_capture_while_disconnected(self, connection, fake_probe):
        async def scenario():
            client = RecordingClient()
            probe = fake_probe(connection)
            scheduler = make_scheduler(connection, probe, client, reprobe_interval=0)
            await scheduler.start()
            connection.mark_disconnected("Server disconnected")
            return scheduler.tick(1.0), client

        initiated, client = asyncio.run(scenario())

        assert initiated is False
        assert client.sent == []

    def test_no_capture_without_frame(self, connection, fake_probe):
        async def scenario():
            source = SyntheticFrameSource(width=8, height=8)
            source.available = False
            scheduler = make_scheduler(
                connection, fake_probe(connection), RecordingClient(), frame_source=source
            )
            await scheduler.start()
            return scheduler.tick(1.0)

        assert asyncio.run(scenario()) is False


class TestTriggerMode:
    """Tests for discrete trigger capture."""

    def test_two_triggers_in_cooldown_start_one_cycle(self, connection, fake_probe):
        async def scenario():
            client = RecordingClient()
            scheduler = make_scheduler(
                connection,
                fake_probe(connection),
                client,
                trigger_mode=TriggerMode.TRIGGER,
                trigger_cooldown=0.5,
            )
            await scheduler.start()

            honored = [scheduler.trigger(), scheduler.trigger()]
            initiated = [scheduler.tick(0.016), scheduler.tick(0.016)]
            await scheduler.wait_idle()
            return honored, initiated, client, scheduler

        honored, initiated, client, scheduler = asyncio.run(scenario())

        assert honored == [True, False]
        assert initiated == [True, False]
        assert len(client.sent) == 1
        assert scheduler.metrics.triggers_ignored == 1

    def test_trigger_within_cooldown_after_cycle_is_ignored(self, connection, fake_probe):
        async def scenario():
            scheduler = make_scheduler(
                connection,
                fake_probe(connection),
                RecordingClient(),
                trigger_mode=TriggerMode.TRIGGER,
                trigger_cooldown=0.5,
            )
            await scheduler.start()

            scheduler.trigger()
            scheduler.tick(0.2)
            await scheduler.wait_idle()
            early = scheduler.trigger()
            scheduler.tick(0.4)
            late = scheduler.trigger()
            return early, late

        early, late = asyncio.run(scenario())

        assert early is False
        assert late is True

    def test_interval_does_not_fire_in_trigger_mode(self, connection, fake_probe):
        async def scenario():
            scheduler = make_scheduler(
                connection,
                fake_probe(connection),
                RecordingClient(),
                trigger_mode=TriggerMode.TRIGGER,
            )
            await scheduler.start()
            return scheduler.tick(10.0)

        assert asyncio.run(scenario()) is False

    def test_trigger_before_startup_probe_is_not_buffered(self, connection, fake_probe):
        async def scenario():
            client = RecordingClient()
            scheduler = make_scheduler(
                connection,
                fake_probe(connection),
                client,
                trigger_mode=TriggerMode.TRIGGER,
                trigger_cooldown=0.5,
            )
            early = scheduler.trigger()
            scheduler.tick(0.016)
            await scheduler.start()
            initiated = scheduler.tick(0.016)
            await scheduler.wait_idle()
            return early, initiated, client, scheduler

        early, initiated, client, scheduler = asyncio.run(scenario())

        assert early is False
        assert initiated is False
        assert client.sent == []
        assert scheduler.metrics.triggers_ignored == 1

    def test_trigger_ignored_in_interval_mode(self, connection, fake_probe):
        scheduler = make_scheduler(connection, fake_probe(connection), RecordingClient())

        assert scheduler.trigger() is False


class TestCycleFailures:
    """Tests that every cycle failure releases the single-flight gate."""

    def test_encoding_error_aborts_cycle(self, connection, fake_probe):
        async def scenario():
            client = RecordingClient()
            scheduler = make_scheduler(
                connection, fake_probe(connection), client, frame_source=BrokenFrameSource()
            )
            await scheduler.start()
            scheduler.tick(1.0)
            await scheduler.wait_idle()
            return client, scheduler

        client, scheduler = asyncio.run(scenario())

        assert client.sent == []
        assert scheduler.metrics.encoding_errors == 1
        assert not scheduler.in_flight

    def test_send_error_releases_gate(self, connection, fake_probe):
        async def scenario():
            client = RecordingClient(fail=True)
            scheduler = make_scheduler(connection, fake_probe(connection), client)
            await scheduler.start()
            scheduler.tick(1.0)
            await scheduler.wait_idle()
            again = scheduler.tick(1.0)
            await scheduler.wait_idle()
            return again, scheduler

        again, scheduler = asyncio.run(scenario())

        assert again is True
        assert scheduler.metrics.send_errors == 2
        assert not scheduler.in_flight


class TestPoseCollection:
    """Tests for pose snapshot assembly."""

    def run_pose_cycle(self, connection, probe, pose_source, **kwargs):
        async def scenario():
            client = RecordingClient()
            scheduler = make_scheduler(
                connection, probe, client, frame_source=None, pose_source=pose_source, **kwargs
            )
            await scheduler.start()
            scheduler.tick(1.0)
            await scheduler.wait_idle()
            return client, scheduler

        return asyncio.run(scenario())

    def test_empty_pose_sent_while_active(self, connection, fake_probe):
        client, _ = self.run_pose_cycle(
            connection, fake_probe(connection), MockPoseSource(tracking=False)
        )

        (payload,) = client.sent
        assert payload.to_dict() == {"blazepose_detections": {"keypoints": []}}

    def test_empty_pose_suppressed_when_configured(self, connection, fake_probe):
        client, scheduler = self.run_pose_cycle(
            connection,
            fake_probe(connection),
            MockPoseSource(tracking=False),
            send_empty_pose=False,
        )

        assert client.sent == []
        assert scheduler.metrics.empty_cycles == 1

    def test_inactive_pose_source_blocks_pose_only_capture(self, connection, fake_probe):
        client, scheduler = self.run_pose_cycle(
            connection, fake_probe(connection), MockPoseSource(active=False)
        )

        assert client.sent == []
        assert scheduler.metrics.cycles_started == 0

    def test_indices_follow_joint_order_and_skip_missing(self, connection, fake_probe):
        joints = [
            TrackedJoint((0.0, 1.7, 0.0), True),
            None,
            TrackedJoint((0.1, 1.5, 0.0), False),
        ]
        client, _ = self.run_pose_cycle(connection, fake_probe(connection), FixedPoseSource(joints))

        keypoints = client.sent[0].blazepose_detections.keypoints
        assert [(kp.index, kp.active) for kp in keypoints] == [(0, True), (2, False)]

    def test_send_only_active_keypoints(self, connection, fake_probe):
        joints = [
            TrackedJoint((0.0, 1.7, 0.0), True),
            TrackedJoint((0.1, 1.5, 0.0), False),
        ]
        client, _ = self.run_pose_cycle(
            connection,
            fake_probe(connection),
            FixedPoseSource(joints),
            send_only_active_keypoints=True,
        )

        keypoints = client.sent[0].blazepose_detections.keypoints
        assert [kp.index for kp in keypoints] == [0]


class TestReprobe:
    """Tests for periodic probing while disconnected."""

    def test_probes_again_after_interval(self, connection, fake_probe):
        async def scenario():
            probe = fake_probe(connection, result=False)
            scheduler = make_scheduler(connection, probe, RecordingClient(), reprobe_interval=5.0)
            await scheduler.start()

            scheduler.tick(3.0)
            await asyncio.sleep(0)
            calls_before = probe.calls

            probe.result = True
            scheduler.tick(3.0)
            await scheduler.wait_idle()
            return calls_before, probe, scheduler

        calls_before, probe, scheduler = asyncio.run(scenario())

        assert calls_before == 1
        assert probe.calls == 2
        assert scheduler.metrics.periodic_reprobes == 1
        assert connection.connected

    def test_disabled_reprobe(self, connection, fake_probe):
        async def scenario():
            probe = fake_probe(connection, result=False)
            scheduler = make_scheduler(connection, probe, RecordingClient(), reprobe_interval=0)
            await scheduler.start()
            for _ in range(10):
                scheduler.tick(10.0)
            await scheduler.wait_idle()
            return probe

        assert asyncio.run(scenario()).calls == 1


class SlowProbe:
    """Probe double that takes a while to resolve."""

    url = "http://test-server:5000/api/ping"

    def __init__(self, connection, delay: float = 0.05) -> None:
        self.connection = connection
        self.delay = delay
        self.calls = 0
        self.completed = 0
        self.in_flight = False

    async def probe(self) -> bool:
        self.calls += 1
        await asyncio.sleep(self.delay)
        self.connection.mark_connected("Server connected")
        self.completed += 1
        return True


class TestFullPipeline:
    """End-to-end cycle through the real UplinkClient."""

    def test_payload_on_the_wire(self, connection, fake_session, fake_probe):
        session = fake_session()

        async def scenario():
            probe = fake_probe(connection)
            client = UplinkClient(
                "http://test-server:5000/api/frame", connection, probe, session=session
            )
            scheduler = CaptureScheduler(
                connection=connection,
                encoder=ImageEncoder(quality=75, max_dimension=640),
                builder=PayloadBuilder(),
                client=client,
                probe=probe,
                frame_source=SyntheticFrameSource(width=1280, height=720),
                pose_source=MockPoseSource(),
                game_state_source=PoseSequenceGameState(),
                motion_source=StaticMotionSource(),
            )
            await scheduler.start()
            scheduler.tick(0.2)
            await scheduler.wait_idle()
            return client, scheduler

        client, scheduler = asyncio.run(scenario())

        assert client.frames_sent == 1
        assert scheduler.pixel_buffer.allocations == 1

        body = json.loads(session.posts[0]["data"])
        assert body["game_state"] == "Relax"
        assert len(body["blazepose_detections"]["keypoints"]) == 33
        assert body["quest_values"]["headsetPosition"]["y"] == 1.6

        jpeg = base64.b64decode(body["image_for_opencv"])
        image = cv2.imdecode(np.frombuffer(jpeg, np.uint8), cv2.IMREAD_COLOR)
        assert image.shape == (360, 640, 3)

    def test_stop_waits_for_threshold_reprobe(self, connection, fake_session):
        session = fake_session(default=500)

        async def scenario():
            probe = SlowProbe(connection)
            client = UplinkClient(
                "http://test-server:5000/api/frame",
                connection,
                probe,
                failure_threshold=1,
                session=session,
            )
            scheduler = make_scheduler(connection, probe, client)
            await scheduler.start()
            scheduler.tick(1.0)
            await scheduler.wait_idle()
            before_stop = probe.completed
            await scheduler.stop()
            return before_stop, probe, client

        before_stop, probe, client = asyncio.run(scenario())

        assert client.metrics.reprobes_triggered == 1
        assert before_stop == 1
        assert probe.completed == 2
        assert connection.connected
