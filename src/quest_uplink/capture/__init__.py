"""
Capture Module
==============

Frame capture, encoding and scheduling.

This module provides the producing side of the pipeline:
    - ImageEncoder: JPEG compression with optional bilinear downscaling
    - PixelBuffer: Reusable staging buffer for camera frames
    - CaptureScheduler: Tick-driven, single-flight capture loop
"""

from quest_uplink.capture.encoder import (
    EncodingError,
    ImageEncoder,
    encode_frame,
    resample_bilinear,
    target_dimensions,
)
from quest_uplink.capture.buffer import PixelBuffer
from quest_uplink.capture.scheduler import CaptureScheduler, SchedulerMetrics, TriggerMode


__all__ = [
    "EncodingError",
    "ImageEncoder",
    "encode_frame",
    "resample_bilinear",
    "target_dimensions",
    "PixelBuffer",
    "CaptureScheduler",
    "SchedulerMetrics",
    "TriggerMode",
]
