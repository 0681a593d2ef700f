"""
Motion Data Models
==================

Headset and controller transforms sampled at send time.

Wire Contract (field names follow the processing server):
    {
        "headsetPosition": {"x": 0, "y": 1.6, "z": 0},
        "headsetRotation": {"x": 0, "y": 0, "z": 0, "w": 1},
        "leftHandPosition": {...},
        "leftHandRotation": {...},
        "rightHandPosition": {...},
        "rightHandRotation": {...}
    }
"""

from pydantic import BaseModel, ConfigDict, Field


class Vector3(BaseModel):
    """World-space position."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class Quaternion(BaseModel):
    """Rotation as a unit quaternion (identity by default)."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0


class Transform(BaseModel):
    """Position plus orientation of a tracked device."""

    position: Vector3 = Field(default_factory=Vector3)
    rotation: Quaternion = Field(default_factory=Quaternion)


class MotionSnapshot(BaseModel):
    """
    Headset and hand transforms captured atomically.

    Attributes:
        headset_position: HMD position
        headset_rotation: HMD orientation
        left_hand_position: Left controller position
        left_hand_rotation: Left controller orientation
        right_hand_position: Right controller position
        right_hand_rotation: Right controller orientation
    """

    model_config = ConfigDict(populate_by_name=True)

    headset_position: Vector3 = Field(
        default_factory=Vector3, alias="headsetPosition"
    )
    headset_rotation: Quaternion = Field(
        default_factory=Quaternion, alias="headsetRotation"
    )
    left_hand_position: Vector3 = Field(
        default_factory=Vector3, alias="leftHandPosition"
    )
    left_hand_rotation: Quaternion = Field(
        default_factory=Quaternion, alias="leftHandRotation"
    )
    right_hand_position: Vector3 = Field(
        default_factory=Vector3, alias="rightHandPosition"
    )
    right_hand_rotation: Quaternion = Field(
        default_factory=Quaternion, alias="rightHandRotation"
    )

    @classmethod
    def from_transforms(
        cls,
        headset: Transform,
        left_hand: Transform,
        right_hand: Transform,
    ) -> "MotionSnapshot":
        """Assemble a snapshot from three device transforms."""
        return cls(
            headset_position=headset.position,
            headset_rotation=headset.rotation,
            left_hand_position=left_hand.position,
            left_hand_rotation=left_hand.rotation,
            right_hand_position=right_hand.position,
            right_hand_rotation=right_hand.rotation,
        )
