"""
Payload Builder
===============

Assembles the JSON payload for one capture cycle.

Design Rules:
    - Pure and deterministic: no I/O, no clocks, no shared state
    - Null optional fields are omitted from the serialized form
    - A present-but-empty pose snapshot is kept (serialized as [])
    - A payload must carry an image or pose data to be worth sending
"""

from typing import Optional

from quest_uplink.models.frame import EncodedImage
from quest_uplink.models.motion import MotionSnapshot
from quest_uplink.models.payload import UplinkPayload
from quest_uplink.models.pose import PoseSnapshot


class PayloadError(ValueError):
    """Raised when a payload would carry neither image nor pose data."""
    pass


class PayloadBuilder:
    """
    Builds UplinkPayload objects from the parts of a capture cycle.

    Example:
        builder = PayloadBuilder()
        payload = builder.build(image=encoded, pose=PoseSnapshot())
        body = payload.to_json()
    """

    def build(
        self,
        image: Optional[EncodedImage] = None,
        pose: Optional[PoseSnapshot] = None,
        state: Optional[str] = None,
        motion: Optional[MotionSnapshot] = None,
    ) -> UplinkPayload:
        """
        Build a payload.

        Args:
            image: Encoded camera frame
            pose: Pose keypoints (None = pose subsystem inactive)
            state: Game-state label
            motion: Headset and hand transforms

        Returns:
            UplinkPayload ready for serialization

        Raises:
            PayloadError: If both image and pose are missing
        """
        if image is None and pose is None:
            raise PayloadError("Payload needs an image or pose data")

        return UplinkPayload(
            image_for_opencv=image.to_base64() if image is not None else None,
            blazepose_detections=pose,
            game_state=state,
            quest_values=motion,
        )
