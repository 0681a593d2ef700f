"""
Data Models
===========

Typed models for the QuestUplink pipeline.

This module re-exports all data models for convenient access.

Models:
    Frame:
        - FrameSample: Raw RGB frame from the camera collaborator
        - EncodedImage: Compressed JPEG ready for uplink

    Pose / Motion:
        - KeypointRecord, PoseSnapshot: Ordered pose keypoints
        - Vector3, Quaternion, Transform, MotionSnapshot: Device transforms

    Payload:
        - UplinkPayload: JSON body sent to the processing server

    State:
        - ConnectionStatus, ConnectionState: Connection health
        - StatusSink, LoggingStatusSink: Status consumers
"""

from quest_uplink.models.frame import EncodedImage, FrameSample
from quest_uplink.models.motion import MotionSnapshot, Quaternion, Transform, Vector3
from quest_uplink.models.payload import UplinkPayload
from quest_uplink.models.pose import KeypointRecord, PoseSnapshot
from quest_uplink.models.state import (
    ConnectionState,
    ConnectionStatus,
    LoggingStatusSink,
    StatusSink,
)

__all__ = [
    # Frame
    "FrameSample",
    "EncodedImage",
    # Pose / Motion
    "KeypointRecord",
    "PoseSnapshot",
    "Vector3",
    "Quaternion",
    "Transform",
    "MotionSnapshot",
    # Payload
    "UplinkPayload",
    # State
    "ConnectionStatus",
    "ConnectionState",
    "StatusSink",
    "LoggingStatusSink",
]
