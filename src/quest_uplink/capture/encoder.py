"""
Image Encoder
=============

Dedicated module for turning raw RGB frames into compressed JPEG bytes.

Design Rules:
    - This is the ONLY place in the codebase that encodes images
    - Never mutates the input sample
    - Validates buffer size against the stated dimensions
    - Resamples (bilinear) only when the larger side exceeds the limit
    - Output dimensions equal input dimensions when no resampling happens
"""

import logging
import math
from typing import Optional, Tuple

import cv2
import numpy as np

from quest_uplink.models.frame import RGB_CHANNELS, EncodedImage, FrameSample


logger = logging.getLogger(__name__)


class EncodingError(Exception):
    """Raised when a frame cannot be encoded."""
    pass


def target_dimensions(
    width: int,
    height: int,
    max_dimension: Optional[int] = None,
) -> Tuple[int, int]:
    """
    Compute output dimensions for a size-bounded resample.

    The larger side becomes exactly max_dimension and the other side is
    scaled by the same factor and rounded to the nearest integer.

    Args:
        width: Source width in pixels
        height: Source height in pixels
        max_dimension: Upper bound for the larger side (None/0 = unbounded)

    Returns:
        Tuple of (width, height)
    """
    if not max_dimension or max(width, height) <= max_dimension:
        return width, height

    if width >= height:
        scaled = height * max_dimension / width
        return max_dimension, max(1, int(math.floor(scaled + 0.5)))

    scaled = width * max_dimension / height
    return max(1, int(math.floor(scaled + 0.5))), max_dimension


def resample_bilinear(image: np.ndarray, width: int, height: int) -> np.ndarray:
    """
    Resample an (H, W, C) uint8 image with bilinear interpolation.

    Pixel centers are aligned and coordinates are clamped at the borders.

    Args:
        image: Source image as np.ndarray (H, W, C), dtype=uint8
        width: Destination width
        height: Destination height

    Returns:
        Resampled image as np.ndarray (height, width, C), dtype=uint8
    """
    return cv2.resize(
        np.ascontiguousarray(image),
        (width, height),
        interpolation=cv2.INTER_LINEAR,
    )


def sample_to_array(sample: FrameSample) -> np.ndarray:
    """
    View a FrameSample buffer as an (H, W, 3) uint8 array.

    The returned array shares memory with the sample where possible and
    must be treated as read-only.

    Raises:
        EncodingError: If the buffer is empty or its size does not
            match width x height x 3
    """
    if sample.width <= 0 or sample.height <= 0:
        raise EncodingError(
            f"Invalid frame dimensions: {sample.width}x{sample.height}"
        )

    pixels = sample.pixels
    if isinstance(pixels, np.ndarray):
        if pixels.dtype != np.uint8:
            raise EncodingError(f"Invalid pixel dtype: {pixels.dtype}")
        flat = pixels.reshape(-1)
    else:
        flat = np.frombuffer(pixels, dtype=np.uint8)

    if flat.size == 0:
        raise EncodingError("Frame buffer is empty")

    if flat.size != sample.expected_size:
        raise EncodingError(
            f"Frame buffer holds {flat.size} bytes, expected "
            f"{sample.expected_size} for {sample.width}x{sample.height} RGB"
        )

    return flat.reshape(sample.height, sample.width, RGB_CHANNELS)


def encode_frame(
    sample: FrameSample,
    quality: int,
    max_dimension: Optional[int] = None,
) -> EncodedImage:
    """
    Encode a raw RGB frame to JPEG.

    Args:
        sample: Frame with a row-major RGB buffer
        quality: JPEG quality (0-100)
        max_dimension: Optional bound on the larger side (None/0 = no resize)

    Returns:
        EncodedImage with the compressed bytes and final dimensions

    Raises:
        EncodingError: If the sample is malformed or encoding fails
    """
    if not 0 <= quality <= 100:
        raise EncodingError(f"JPEG quality must be within 0..100, got {quality}")

    rgb = sample_to_array(sample)

    width, height = target_dimensions(sample.width, sample.height, max_dimension)
    if (width, height) != (sample.width, sample.height):
        rgb = resample_bilinear(rgb, width, height)
        logger.debug(
            f"Resampled frame {sample.width}x{sample.height} -> {width}x{height}"
        )

    # OpenCV expects BGR; cvtColor allocates, so the sample is untouched
    bgr = cv2.cvtColor(np.ascontiguousarray(rgb), cv2.COLOR_RGB2BGR)

    try:
        ok, buffer = cv2.imencode(".jpg", bgr, [cv2.IMWRITE_JPEG_QUALITY, int(quality)])
    except cv2.error as e:
        raise EncodingError(f"JPEG encode failed: {e}") from e

    if not ok:
        raise EncodingError("JPEG encode failed: cv2.imencode returned False")

    return EncodedImage(
        data=buffer.tobytes(),
        quality=int(quality),
        width=width,
        height=height,
    )


class ImageEncoder:
    """
    Frame encoder bound to configured quality and size limits.

    Attributes:
        quality: Default JPEG quality (0-100)
        max_dimension: Default bound on the larger side (None = no resize)

    Example:
        encoder = ImageEncoder(quality=75, max_dimension=640)
        encoded = encoder.encode(sample)
        print(encoded.width, encoded.height)
    """

    def __init__(self, quality: int = 75, max_dimension: Optional[int] = None) -> None:
        if not 0 <= quality <= 100:
            raise ValueError(f"quality must be within 0..100, got {quality}")

        self.quality = quality
        self.max_dimension = max_dimension or None

        self._frames_encoded: int = 0
        self._frames_resampled: int = 0
        self._bytes_encoded: int = 0

    def encode(
        self,
        sample: FrameSample,
        quality: Optional[int] = None,
        max_dimension: Optional[int] = None,
    ) -> EncodedImage:
        """
        Encode a frame, falling back to the configured defaults.

        Raises:
            EncodingError: If the sample is malformed or encoding fails
        """
        quality = self.quality if quality is None else quality
        max_dimension = self.max_dimension if max_dimension is None else max_dimension

        encoded = encode_frame(sample, quality, max_dimension)

        self._frames_encoded += 1
        self._bytes_encoded += len(encoded.data)
        if (encoded.width, encoded.height) != (sample.width, sample.height):
            self._frames_resampled += 1

        return encoded

    @property
    def frames_encoded(self) -> int:
        return self._frames_encoded

    def get_metrics(self) -> dict:
        """Get encoder metrics for observability."""
        return {
            "frames_encoded": self._frames_encoded,
            "frames_resampled": self._frames_resampled,
            "bytes_encoded": self._bytes_encoded,
            "quality": self.quality,
            "max_dimension": self.max_dimension,
        }
