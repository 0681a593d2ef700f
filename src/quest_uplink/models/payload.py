"""
Uplink Payload Schema
=====================

Pydantic model for the JSON body POSTed to the processing server.

Output Contract (to the processing server):
    {
        "image_for_opencv": "<base64 JPEG>",
        "blazepose_detections": {"keypoints": [...]},
        "game_state": "Pranamasana",
        "quest_values": {...}
    }

Every field is optional on the wire. Null fields are omitted entirely rather
than sent as placeholders, but a present pose snapshot with no keypoints is
still emitted as {"keypoints": []}.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from quest_uplink.models.motion import MotionSnapshot
from quest_uplink.models.pose import PoseSnapshot


class UplinkPayload(BaseModel):
    """
    Serializable payload for one capture cycle.

    Attributes:
        image_for_opencv: Base64-encoded JPEG frame
        blazepose_detections: Pose keypoints, if the pose subsystem is active
        game_state: Current game-state label
        quest_values: Headset and hand transforms
    """

    image_for_opencv: Optional[str] = Field(
        default=None,
        description="Base64-encoded JPEG frame data",
    )

    blazepose_detections: Optional[PoseSnapshot] = Field(
        default=None,
        description="Ordered pose keypoints",
    )

    game_state: Optional[str] = Field(
        default=None,
        description="Current game-state label",
    )

    quest_values: Optional[MotionSnapshot] = Field(
        default=None,
        description="Headset and controller transforms",
    )

    @property
    def has_image(self) -> bool:
        return self.image_for_opencv is not None

    @property
    def has_pose(self) -> bool:
        return self.blazepose_detections is not None

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation with null fields omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_json(self) -> str:
        """Serialized JSON body."""
        return self.model_dump_json(by_alias=True, exclude_none=True)
