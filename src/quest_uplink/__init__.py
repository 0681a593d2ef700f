"""
QuestUplink
===========

Capture-and-uplink pipeline for a VR headset telemetry stream.

This package samples the headset camera feed and body-pose keypoints on a
fixed cadence, compresses and serializes them into JSON payloads, and POSTs
them to a remote processing server while tracking connection health.

Components:
    - capture: Image encoding, pixel buffer reuse, capture scheduling
    - uplink: Payload building, HTTP delivery, health probing
    - sources: Collaborator protocols (camera, pose, game state, motion)
    - models: Typed data models shared across the pipeline

Example:
    from quest_uplink.config import settings
    from quest_uplink.capture import CaptureScheduler

    # The scheduler is driven by the FastAPI service
    # See main.py for entry point
"""

__version__ = "0.1.0"
__author__ = "QuestUplink Project"

__all__ = [
    "__version__",
]
