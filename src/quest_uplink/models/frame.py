"""
Frame Data Models
=================

Raw and encoded frame representations for the capture pipeline.

Design Rules:
    - FrameSample is produced by the camera collaborator and owned by the
      scheduler for the duration of one capture cycle
    - EncodedImage is immutable once produced
    - Neither type decodes or manipulates pixel data
"""

import base64
from dataclasses import dataclass
from typing import Union

import numpy as np


PixelData = Union[bytes, bytearray, memoryview, np.ndarray]

# Channels per pixel in a row-major RGB buffer
RGB_CHANNELS = 3


@dataclass(frozen=True, slots=True)
class FrameSample:
    """
    Raw camera frame sampled from the headset.

    Attributes:
        width: Frame width in pixels
        height: Frame height in pixels
        pixels: Row-major RGB buffer (bytes or uint8 array)
        timestamp: Capture time in seconds
    """

    width: int
    height: int
    pixels: PixelData
    timestamp: float

    @property
    def expected_size(self) -> int:
        """Number of bytes a well-formed buffer must hold."""
        return self.width * self.height * RGB_CHANNELS

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the pixel buffer."""
        return (
            f"FrameSample(width={self.width}, "
            f"height={self.height}, "
            f"timestamp={self.timestamp:.3f})"
        )


@dataclass(frozen=True, slots=True)
class EncodedImage:
    """
    Compressed frame ready for serialization.

    Attributes:
        data: Compressed JPEG byte stream
        quality: JPEG quality used (0-100)
        width: Final width after optional resampling
        height: Final height after optional resampling
    """

    data: bytes
    quality: int
    width: int
    height: int

    def to_base64(self) -> str:
        """Transport-encode the compressed bytes as ASCII text."""
        return base64.b64encode(self.data).decode("ascii")

    def __repr__(self) -> str:
        return (
            f"EncodedImage({self.width}x{self.height}, "
            f"quality={self.quality}, bytes={len(self.data)})"
        )
