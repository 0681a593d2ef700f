"""
Pixel Buffer
============

Reusable capture buffer owned by the CaptureScheduler.

Camera frames are copied into this buffer once per capture cycle, like
reading a webcam texture into a persistent readback texture. The buffer is
only reallocated when the source dimensions change, and the old array is
released before the new one is created so two buffers are never live at once.

Design Rules:
    - Exactly one owner (the scheduler); not shared across cycles in flight
    - Reallocates only on dimension change
    - Does NOT encode or otherwise interpret pixels
"""

import logging
from typing import Optional, Tuple

import numpy as np

from quest_uplink.capture.encoder import sample_to_array
from quest_uplink.models.frame import RGB_CHANNELS, FrameSample


logger = logging.getLogger(__name__)


class PixelBuffer:
    """
    Persistent (H, W, 3) uint8 staging buffer.

    Attributes:
        shape: Current (height, width), or None before the first frame
        allocations: Number of times the backing array was (re)allocated

    Example:
        buffer = PixelBuffer()
        staged = buffer.stage(sample)   # FrameSample backed by the buffer
        encoded = encoder.encode(staged)
    """

    def __init__(self) -> None:
        self._array: Optional[np.ndarray] = None
        self._allocations: int = 0

    @property
    def shape(self) -> Optional[Tuple[int, int]]:
        """Current (height, width) of the buffer."""
        if self._array is None:
            return None
        return self._array.shape[:2]

    @property
    def allocations(self) -> int:
        """Number of allocations performed so far."""
        return self._allocations

    def stage(self, sample: FrameSample) -> FrameSample:
        """
        Copy a sample's pixels into the buffer.

        Args:
            sample: Frame from the camera collaborator

        Returns:
            A FrameSample whose pixels view this buffer

        Raises:
            EncodingError: If the sample buffer is malformed
        """
        source = sample_to_array(sample)
        self._ensure(sample.width, sample.height)
        np.copyto(self._array, source)

        return FrameSample(
            width=sample.width,
            height=sample.height,
            pixels=self._array,
            timestamp=sample.timestamp,
        )

    def release(self) -> None:
        """Drop the backing array."""
        self._array = None

    def _ensure(self, width: int, height: int) -> None:
        if self._array is not None and self._array.shape[:2] == (height, width):
            return

        if self._array is not None:
            logger.info(
                f"Source dimensions changed "
                f"{self._array.shape[1]}x{self._array.shape[0]} -> {width}x{height}, "
                f"reallocating pixel buffer"
            )
            # Release before allocating so only one buffer is ever live
            self.release()

        self._array = np.empty((height, width, RGB_CHANNELS), dtype=np.uint8)
        self._allocations += 1
