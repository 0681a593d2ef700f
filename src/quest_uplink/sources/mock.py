"""
Mock Sources
============

Deterministic stand-ins for the headset collaborators.

Used for development without a headset and throughout the test suite.
Outputs vary smoothly with an internal counter so successive payloads are
distinguishable but reproducible across runs.
"""

import logging
import math
import time
from typing import List, Optional, Sequence

import numpy as np

from quest_uplink.models.frame import RGB_CHANNELS, FrameSample
from quest_uplink.models.motion import MotionSnapshot, Quaternion, Transform, Vector3
from quest_uplink.sources.base import TrackedJoint


logger = logging.getLogger(__name__)


# BlazePose full-body model
BLAZEPOSE_KEYPOINT_COUNT = 33


class SyntheticFrameSource:
    """
    Generates a moving RGB gradient.

    Attributes:
        width: Frame width in pixels
        height: Frame height in pixels
        available: Whether frames can be read (toggle to simulate camera loss)
    """

    def __init__(self, width: int = 1280, height: int = 720) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid synthetic frame size: {width}x{height}")

        self.width = width
        self.height = height
        self.available = True
        self._frame_counter: int = 0

        rows, cols = np.indices((height, width))
        self._base = np.empty((height, width, RGB_CHANNELS), dtype=np.uint8)
        self._base[..., 0] = (cols * 255 // max(1, width - 1)).astype(np.uint8)
        self._base[..., 1] = (rows * 255 // max(1, height - 1)).astype(np.uint8)
        self._base[..., 2] = 128

        logger.info(f"SyntheticFrameSource initialized: {width}x{height}")

    def read(self) -> Optional[FrameSample]:
        if not self.available:
            return None

        self._frame_counter += 1
        shift = (self._frame_counter * 8) % self.width
        pixels = np.roll(self._base, shift, axis=1)

        return FrameSample(
            width=self.width,
            height=self.height,
            pixels=pixels,
            timestamp=time.time(),
        )


class MockPoseSource:
    """
    Generates a standing skeleton that sways slowly.

    Attributes:
        active: Whether the pose subsystem is running
        tracking: Whether a person is currently detected
        keypoint_count: Number of joints reported
    """

    def __init__(
        self,
        keypoint_count: int = BLAZEPOSE_KEYPOINT_COUNT,
        active: bool = True,
        tracking: bool = True,
    ) -> None:
        self.keypoint_count = keypoint_count
        self.active = active
        self.tracking = tracking
        self._sample_counter: int = 0

    def joints(self) -> Sequence[Optional[TrackedJoint]]:
        if not self.tracking:
            return []

        self._sample_counter += 1
        sway = 0.05 * math.sin(self._sample_counter / 10.0)

        joints: List[Optional[TrackedJoint]] = []
        for i in range(self.keypoint_count):
            # Head joints high, feet low, alternating left/right
            y = 1.7 - 1.7 * i / max(1, self.keypoint_count - 1)
            x = (0.2 if i % 2 else -0.2) + sway
            # Lower-body joints drop in and out of tracking
            active = i < 25 or self._sample_counter % 2 == 0
            joints.append(TrackedJoint((round(x, 4), round(y, 4), 0.0), active))

        return joints


class StaticMotionSource:
    """Headset at standing height with both hands held forward."""

    def __init__(self) -> None:
        self.headset = Transform(position=Vector3(x=0.0, y=1.6, z=0.0))
        self.left_hand = Transform(
            position=Vector3(x=-0.25, y=1.1, z=0.3),
            rotation=Quaternion(),
        )
        self.right_hand = Transform(
            position=Vector3(x=0.25, y=1.1, z=0.3),
            rotation=Quaternion(),
        )

    def snapshot(self) -> MotionSnapshot:
        return MotionSnapshot.from_transforms(
            headset=self.headset,
            left_hand=self.left_hand,
            right_hand=self.right_hand,
        )
