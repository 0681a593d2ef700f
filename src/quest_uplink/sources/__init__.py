"""
Sources Module
==============

Read-only collaborators polled once per capture cycle.

Components:
    - FrameSource, PoseSource, GameStateSource, MotionSource: Protocols
    - SyntheticFrameSource, MockPoseSource, StaticMotionSource: Deterministic mocks
    - CameraFrameSource: OpenCV VideoCapture camera feed
    - PoseSequenceGameState: Tick-driven pose routine
"""

from quest_uplink.sources.base import (
    FrameSource,
    GameStateSource,
    MotionSource,
    PoseSource,
    TrackedJoint,
)
from quest_uplink.sources.mock import (
    BLAZEPOSE_KEYPOINT_COUNT,
    MockPoseSource,
    StaticMotionSource,
    SyntheticFrameSource,
)
from quest_uplink.sources.camera import CameraFrameSource
from quest_uplink.sources.game_state import (
    RELAX_STATE,
    SURYA_NAMASKAR_POSES,
    PoseSequenceGameState,
)

__all__ = [
    "FrameSource",
    "PoseSource",
    "GameStateSource",
    "MotionSource",
    "TrackedJoint",
    "SyntheticFrameSource",
    "MockPoseSource",
    "StaticMotionSource",
    "BLAZEPOSE_KEYPOINT_COUNT",
    "CameraFrameSource",
    "PoseSequenceGameState",
    "RELAX_STATE",
    "SURYA_NAMASKAR_POSES",
]
