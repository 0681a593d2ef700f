"""
Pose Data Models
================

Body-pose keypoints as uplinked to the processing server.

Wire Contract (per keypoint):
    {"index": 0, "x": 0.12, "y": 1.54, "z": 0.30, "active": true}

Keypoints are ordered by the pose model's joint ordering (index 0 is the
nose for BlazePose). Order is significant and duplicates are not expected.
"""

from typing import List, Sequence

from pydantic import BaseModel, Field


class KeypointRecord(BaseModel):
    """
    A single tracked pose keypoint.

    Attributes:
        index: Stable joint identifier from the pose model
        x: World-space X coordinate
        y: World-space Y coordinate
        z: World-space Z coordinate
        active: Whether the joint is currently tracked
    """

    index: int = Field(..., ge=0, description="Pose-model joint index")
    x: float = Field(default=0.0, description="Position X")
    y: float = Field(default=0.0, description="Position Y")
    z: float = Field(default=0.0, description="Position Z")
    active: bool = Field(default=True, description="Joint currently tracked")

    @classmethod
    def from_position(
        cls,
        index: int,
        position: Sequence[float],
        active: bool = True,
    ) -> "KeypointRecord":
        """Build a record from an (x, y, z) position."""
        x, y, z = position
        return cls(index=index, x=x, y=y, z=z, active=active)


class PoseSnapshot(BaseModel):
    """
    Ordered keypoints sampled in one capture cycle.

    An empty list is meaningful: the pose subsystem is active but is not
    tracking anybody right now.
    """

    keypoints: List[KeypointRecord] = Field(
        default_factory=list,
        description="Keypoints in pose-model joint order",
    )

    @property
    def is_empty(self) -> bool:
        return not self.keypoints

    def active_only(self) -> "PoseSnapshot":
        """Return a snapshot holding only the tracked keypoints."""
        return PoseSnapshot(keypoints=[kp for kp in self.keypoints if kp.active])
