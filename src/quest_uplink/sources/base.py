"""
Collaborator Interfaces
=======================

Protocols for the read-only sources polled once per capture cycle.

These sources stand in for the host runtime (camera feed, pose detector,
game logic, XR tracking). The pipeline only ever reads from them.

Example:
    class MyPoseSource:
        @property
        def active(self) -> bool:
            return True

        def joints(self) -> Sequence[Optional[TrackedJoint]]:
            return [TrackedJoint((0.0, 1.6, 0.2), True)]
"""

from typing import NamedTuple, Optional, Protocol, Sequence, Tuple

from quest_uplink.models.frame import FrameSample
from quest_uplink.models.motion import MotionSnapshot


class TrackedJoint(NamedTuple):
    """One joint as reported by the pose detector."""

    position: Tuple[float, float, float]
    active: bool


class FrameSource(Protocol):
    """Camera feed exposing frame availability and pixel access."""

    @property
    def available(self) -> bool:
        """Whether a current frame can be read."""
        ...

    def read(self) -> Optional[FrameSample]:
        """Return the current frame, or None if none is available."""
        ...


class PoseSource(Protocol):
    """
    Pose detector output.

    joints() is indexable in pose-model joint order. Slots the detector
    has not populated are None and are skipped when building snapshots.
    """

    @property
    def active(self) -> bool:
        """Whether the pose subsystem is running."""
        ...

    def joints(self) -> Sequence[Optional[TrackedJoint]]:
        ...


class GameStateSource(Protocol):
    """Game logic exposing the current state label."""

    def current_state(self) -> Optional[str]:
        ...


class MotionSource(Protocol):
    """XR tracking exposing headset and hand transforms."""

    def snapshot(self) -> MotionSnapshot:
        ...
