#!/usr/bin/env python3
"""
Local Receiver
==============

Minimal processing-server stand-in for developing against the uplink.

Endpoints:
    GET  /api/ping   - Health check
    POST /api/frame  - Accepts an uplink payload and logs a summary

Usage:
    python scripts/receiver.py --port 5000
"""

import argparse
import base64
import logging
from typing import Any, Dict

import cv2
import numpy as np
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger("receiver")

app = FastAPI(title="QuestUplink Receiver")

_frames_received: int = 0


@app.get("/api/ping")
async def ping() -> JSONResponse:
    return JSONResponse({"status": "ok"})


@app.post("/api/frame")
async def frame(request: Request) -> JSONResponse:
    global _frames_received

    body: Dict[str, Any] = await request.json()
    _frames_received += 1

    shape = None
    if image_b64 := body.get("image_for_opencv"):
        jpeg = np.frombuffer(base64.b64decode(image_b64), np.uint8)
        image = cv2.imdecode(jpeg, cv2.IMREAD_COLOR)
        shape = None if image is None else image.shape

    keypoints = body.get("blazepose_detections", {}).get("keypoints")
    logger.info(
        f"Frame {_frames_received}: image={shape}, "
        f"keypoints={None if keypoints is None else len(keypoints)}, "
        f"game_state={body.get('game_state')}"
    )

    return JSONResponse({"received": _frames_received})


if __name__ == "__main__":
    import uvicorn

    parser = argparse.ArgumentParser(description="Local uplink receiver")
    parser.add_argument("--host", type=str, default="0.0.0.0")
    parser.add_argument("--port", type=int, default=5000)
    args = parser.parse_args()

    uvicorn.run(app, host=args.host, port=args.port)
