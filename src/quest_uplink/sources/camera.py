"""
Camera Frame Source
===================

OpenCV VideoCapture source for running the pipeline off a local camera
(e.g. a passthrough camera exposed as a V4L2 device).

Frames are converted from OpenCV's BGR order to row-major RGB.
"""

import logging
import time
from typing import Optional

import cv2

from quest_uplink.models.frame import FrameSample


logger = logging.getLogger(__name__)


class CameraFrameSource:
    """
    Frame source backed by cv2.VideoCapture.

    Attributes:
        device_index: Camera index passed to VideoCapture
    """

    def __init__(self, device_index: int = 0) -> None:
        self.device_index = device_index
        self._capture = cv2.VideoCapture(device_index)

        if self._capture.isOpened():
            logger.info(f"Camera {device_index} opened")
        else:
            logger.warning(f"Camera {device_index} could not be opened")

    @property
    def available(self) -> bool:
        return self._capture is not None and self._capture.isOpened()

    def read(self) -> Optional[FrameSample]:
        if not self.available:
            return None

        ok, bgr = self._capture.read()
        if not ok or bgr is None:
            logger.debug(f"Camera {self.device_index} returned no frame")
            return None

        rgb = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)
        height, width = rgb.shape[:2]

        return FrameSample(
            width=width,
            height=height,
            pixels=rgb,
            timestamp=time.time(),
        )

    def close(self) -> None:
        """Release the camera device."""
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.info(f"Camera {self.device_index} released")
