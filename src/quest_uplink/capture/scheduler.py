"""
Capture Scheduler
=================

Tick-driven loop that decides when to capture and orchestrates one
Encode → Build → Send cycle at a time.

Scheduling:
    - interval mode: elapsed time accumulates against send_interval; a
      cycle starts on the first tick at or past the interval
    - trigger mode: discrete trigger events start cycles; only the first
      trigger inside a cooldown window is honored, later ones are ignored

Gates (all must pass for a cycle to start):
    - no cycle in flight (single-flight; overlapping cycles are dropped)
    - connection is CONNECTED
    - a frame is available, or the pose source is active

Design Rules:
    - tick() never blocks and never raises into the host loop
    - the in-flight flag is set synchronously in tick() and cleared when
      the cycle task finishes, whatever the outcome
    - every failure degrades to "skip this cycle"
"""

import asyncio
import logging
from enum import Enum
from typing import Optional, Set

from quest_uplink.capture.buffer import PixelBuffer
from quest_uplink.capture.encoder import EncodingError, ImageEncoder
from quest_uplink.models.frame import EncodedImage
from quest_uplink.models.motion import MotionSnapshot
from quest_uplink.models.pose import KeypointRecord, PoseSnapshot
from quest_uplink.models.state import ConnectionState
from quest_uplink.sources.base import (
    FrameSource,
    GameStateSource,
    MotionSource,
    PoseSource,
)
from quest_uplink.uplink.client import SendError, UplinkClient
from quest_uplink.uplink.health import HealthProbe
from quest_uplink.uplink.payload import PayloadBuilder, PayloadError


logger = logging.getLogger(__name__)


class TriggerMode(str, Enum):
    """How capture cycles are started."""

    INTERVAL = "interval"
    TRIGGER = "trigger"


class SchedulerMetrics:
    """Metrics for CaptureScheduler observability."""

    __slots__ = (
        "ticks",
        "cycles_started",
        "cycles_completed",
        "cycles_dropped",
        "encoding_errors",
        "send_errors",
        "empty_cycles",
        "triggers_honored",
        "triggers_ignored",
        "periodic_reprobes",
    )

    def __init__(self) -> None:
        self.ticks: int = 0
        self.cycles_started: int = 0
        self.cycles_completed: int = 0
        self.cycles_dropped: int = 0
        self.encoding_errors: int = 0
        self.send_errors: int = 0
        self.empty_cycles: int = 0
        self.triggers_honored: int = 0
        self.triggers_ignored: int = 0
        self.periodic_reprobes: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {name: getattr(self, name) for name in self.__slots__}


class CaptureScheduler:
    """
    Single-flight capture loop.

    Attributes:
        connection: Shared ConnectionState
        in_flight: Whether a capture cycle is outstanding
        started: Whether the startup probe has resolved
        metrics: Operational metrics

    Example:
        scheduler = CaptureScheduler(
            connection=connection,
            encoder=ImageEncoder(quality=75, max_dimension=640),
            builder=PayloadBuilder(),
            client=client,
            probe=probe,
            frame_source=SyntheticFrameSource(),
        )
        await scheduler.start()

        while True:
            scheduler.tick(1 / 72)
            await asyncio.sleep(1 / 72)
    """

    def __init__(
        self,
        connection: ConnectionState,
        encoder: ImageEncoder,
        builder: PayloadBuilder,
        client: UplinkClient,
        probe: HealthProbe,
        frame_source: Optional[FrameSource] = None,
        pose_source: Optional[PoseSource] = None,
        game_state_source: Optional[GameStateSource] = None,
        motion_source: Optional[MotionSource] = None,
        send_interval: float = 0.1,
        trigger_mode: TriggerMode = TriggerMode.INTERVAL,
        trigger_cooldown: float = 0.5,
        reprobe_interval: float = 5.0,
        send_only_active_keypoints: bool = False,
        send_empty_pose: bool = True,
    ) -> None:
        if frame_source is None and pose_source is None:
            raise ValueError("At least one of frame_source or pose_source is required")
        if send_interval <= 0:
            raise ValueError("send_interval must be > 0")

        self.connection = connection
        self.encoder = encoder
        self.builder = builder
        self.client = client
        self.probe = probe

        self.frame_source = frame_source
        self.pose_source = pose_source
        self.game_state_source = game_state_source
        self.motion_source = motion_source

        self.send_interval = send_interval
        self.trigger_mode = TriggerMode(trigger_mode)
        self.trigger_cooldown = trigger_cooldown
        self.reprobe_interval = reprobe_interval
        self.send_only_active_keypoints = send_only_active_keypoints
        self.send_empty_pose = send_empty_pose

        self._pixel_buffer = PixelBuffer()

        # Timing state, advanced only by tick()
        self._since_last_send: float = 0.0
        self._since_last_trigger: float = trigger_cooldown
        self._since_last_reprobe: float = 0.0
        self._trigger_pending: bool = False

        self._in_flight: bool = False
        self._started: bool = False
        self._tasks: Set[asyncio.Task] = set()

        self.metrics = SchedulerMetrics()

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def started(self) -> bool:
        return self._started

    @property
    def pixel_buffer(self) -> PixelBuffer:
        return self._pixel_buffer

    async def start(self) -> bool:
        """
        Run the startup probe.

        No capture cycle is allowed before this resolves.

        Returns:
            Result of the startup probe
        """
        logger.info(f"Testing server connection: {self.probe.url}")
        reachable = await self.probe.probe()
        self._started = True
        return reachable

    def trigger(self) -> bool:
        """
        Feed one discrete trigger event (e.g. a controller button press).

        Only honored in trigger mode, after the startup probe has resolved,
        and when the cooldown since the last honored trigger has passed.
        Ignored triggers are not buffered.

        Returns:
            True if the trigger was honored
        """
        if (
            self.trigger_mode is not TriggerMode.TRIGGER
            or not self._started
            or self._trigger_pending
            or self._since_last_trigger < self.trigger_cooldown
        ):
            self.metrics.triggers_ignored += 1
            return False

        self._since_last_trigger = 0.0
        self._trigger_pending = True
        self.metrics.triggers_honored += 1
        return True

    def tick(self, elapsed: float) -> bool:
        """
        Advance the scheduler by elapsed seconds.

        Must be called from the event loop that owns the connection state.

        Returns:
            True if a capture cycle was initiated on this tick
        """
        self.metrics.ticks += 1
        self._since_last_send += elapsed
        self._since_last_trigger += elapsed

        if not self._started:
            return False

        self._maybe_reprobe(elapsed)

        if self.trigger_mode is TriggerMode.TRIGGER:
            due = self._trigger_pending
            # A trigger is consumed by this tick whether or not it captures
            self._trigger_pending = False
        else:
            due = self._since_last_send >= self.send_interval

        if not due:
            return False

        if self._in_flight:
            self.metrics.cycles_dropped += 1
            return False

        if not self.connection.connected or not self._source_ready():
            return False

        self._since_last_send = 0.0
        self._in_flight = True
        self.metrics.cycles_started += 1

        task = asyncio.get_running_loop().create_task(
            self._run_cycle(),
            name=f"capture_cycle_{self.metrics.cycles_started}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def wait_idle(self) -> None:
        """Wait for the outstanding capture cycle, if any."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def stop(self) -> None:
        """Let outstanding cycles and reprobes finish, then release the pixel buffer."""
        await self.wait_idle()
        await self.client.wait_idle()
        self._pixel_buffer.release()
        logger.info("CaptureScheduler stopped")

    def _source_ready(self) -> bool:
        if self.frame_source is not None and self.frame_source.available:
            return True
        return self.pose_source is not None and self.pose_source.active

    def _maybe_reprobe(self, elapsed: float) -> None:
        if self.connection.connected or self.reprobe_interval <= 0:
            self._since_last_reprobe = 0.0
            return

        self._since_last_reprobe += elapsed
        if self._since_last_reprobe < self.reprobe_interval or self.probe.in_flight:
            return

        self._since_last_reprobe = 0.0
        self.metrics.periodic_reprobes += 1
        logger.info("Server still disconnected, probing again")

        task = asyncio.get_running_loop().create_task(
            self.probe.probe(),
            name="periodic_reprobe",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_cycle(self) -> None:
        try:
            image = self._capture_image()
            pose = self._collect_pose()
            state = (
                self.game_state_source.current_state()
                if self.game_state_source is not None
                else None
            )
            motion = self._collect_motion()

            payload = self.builder.build(image=image, pose=pose, state=state, motion=motion)
            logger.debug(
                f"Built payload (image={payload.has_image}, pose={payload.has_pose})"
            )
            await self.client.send(payload)
            self.metrics.cycles_completed += 1

        except EncodingError as e:
            self.metrics.encoding_errors += 1
            logger.error(f"Capture cycle aborted, frame not encodable: {e}")
        except PayloadError as e:
            self.metrics.empty_cycles += 1
            logger.debug(f"Capture cycle skipped: {e}")
        except SendError:
            # Already recorded by the client; the frame is dropped
            self.metrics.send_errors += 1
        except Exception as e:
            logger.exception(f"Unexpected capture cycle error: {e}")
        finally:
            self._in_flight = False

    def _capture_image(self) -> Optional[EncodedImage]:
        if self.frame_source is None or not self.frame_source.available:
            return None

        sample = self.frame_source.read()
        if sample is None:
            return None

        staged = self._pixel_buffer.stage(sample)
        return self.encoder.encode(staged)

    def _collect_pose(self) -> Optional[PoseSnapshot]:
        if self.pose_source is None or not self.pose_source.active:
            return None

        pose = PoseSnapshot(
            keypoints=[
                KeypointRecord.from_position(index, joint.position, joint.active)
                for index, joint in enumerate(self.pose_source.joints())
                if joint is not None
            ]
        )
        if self.send_only_active_keypoints:
            pose = pose.active_only()

        logger.debug(f"Collected pose data: {len(pose.keypoints)} keypoints")

        if pose.is_empty and not self.send_empty_pose:
            return None
        return pose

    def _collect_motion(self) -> Optional[MotionSnapshot]:
        if self.motion_source is None:
            return None
        return self.motion_source.snapshot()

    def get_metrics(self) -> dict:
        """Get scheduler metrics for observability."""
        return {
            **self.metrics.to_dict(),
            "in_flight": self._in_flight,
            "trigger_mode": self.trigger_mode.value,
            "pixel_buffer_allocations": self._pixel_buffer.allocations,
            "encoder": self.encoder.get_metrics(),
        }
