"""
QuestUplink Main Application
============================

FastAPI entry point hosting the capture-and-uplink pipeline.

The lifespan starts a driver task that probes the processing server once,
then ticks the CaptureScheduler (and the game-state sequencer) at the
configured cadence, standing in for the headset's per-frame update.

Endpoints:
    GET  /         - Service information
    GET  /health   - Liveness probe (is process alive?)
    GET  /status   - Connection state as data (connected, failures, message)
    GET  /metrics  - Uplink, probe and scheduler counters
    POST /trigger  - Feed one discrete trigger event (controller button)
"""

import asyncio
import logging
import os
import signal
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from quest_uplink import __version__
from quest_uplink.config import Settings, settings
from quest_uplink.capture import CaptureScheduler, ImageEncoder
from quest_uplink.models.state import ConnectionState, LoggingStatusSink
from quest_uplink.sources import (
    CameraFrameSource,
    MockPoseSource,
    PoseSequenceGameState,
    StaticMotionSource,
    SyntheticFrameSource,
)
from quest_uplink.sources.base import FrameSource
from quest_uplink.uplink import HealthProbe, PayloadBuilder, UplinkClient


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

# Shutdown flag
_shutdown_flag: bool = False

_connection: Optional[ConnectionState] = None
_probe: Optional[HealthProbe] = None
_client: Optional[UplinkClient] = None
_scheduler: Optional[CaptureScheduler] = None
_game_state: Optional[PoseSequenceGameState] = None
_frame_source: Optional[FrameSource] = None

_driver_task: Optional[asyncio.Task] = None
_startup_time: float = 0.0


# =============================================================================
# Getters
# =============================================================================

def get_connection() -> Optional[ConnectionState]:
    return _connection

def get_client() -> Optional[UplinkClient]:
    return _client

def get_scheduler() -> Optional[CaptureScheduler]:
    return _scheduler


# =============================================================================
# Signal Handlers
# =============================================================================

def _handle_sigterm(signum, frame):
    """Handle SIGTERM for graceful shutdown."""
    global _shutdown_flag
    logger.info("Received SIGTERM, initiating graceful shutdown...")
    _shutdown_flag = True


# =============================================================================
# Component Factories
# =============================================================================

def create_frame_source(config: Settings) -> Optional[FrameSource]:
    """
    Create the frame source based on config.

    Fails fast on an unknown backend.
    """
    backend = config.source.backend

    if backend == "mock":
        logger.info("Using SyntheticFrameSource")
        return SyntheticFrameSource(
            width=config.source.mock_width,
            height=config.source.mock_height,
        )

    elif backend == "camera":
        logger.info(f"Using CameraFrameSource (device {config.source.camera_index})")
        return CameraFrameSource(device_index=config.source.camera_index)

    elif backend == "none":
        logger.info("No frame source, uplinking pose data only")
        return None

    else:
        raise ValueError(f"Unknown frame source backend: {backend}")


def create_scheduler(
    config: Settings,
    connection: ConnectionState,
    frame_source: Optional[FrameSource],
    game_state: Optional[PoseSequenceGameState],
) -> CaptureScheduler:
    """Wire encoder, builder, client and probe into a scheduler."""
    global _probe, _client

    _probe = HealthProbe(
        url=config.server.ping_url,
        connection=connection,
        timeout_ms=config.server.timeout_ms,
    )
    _client = UplinkClient(
        url=config.server.endpoint_url,
        connection=connection,
        probe=_probe,
        timeout_ms=config.server.timeout_ms,
        failure_threshold=config.uplink.failure_threshold,
    )

    return CaptureScheduler(
        connection=connection,
        encoder=ImageEncoder(
            quality=config.capture.image_quality,
            max_dimension=config.capture.max_image_dimension,
        ),
        builder=PayloadBuilder(),
        client=_client,
        probe=_probe,
        frame_source=frame_source,
        pose_source=(
            MockPoseSource(keypoint_count=config.pose.keypoint_count)
            if config.pose.enabled
            else None
        ),
        game_state_source=game_state,
        motion_source=StaticMotionSource() if config.motion.enabled else None,
        send_interval=config.capture.send_interval_seconds,
        trigger_mode=config.capture.trigger_mode,
        trigger_cooldown=config.capture.trigger_cooldown_seconds,
        reprobe_interval=config.uplink.reprobe_interval_seconds,
        send_only_active_keypoints=config.pose.send_only_active_keypoints,
        send_empty_pose=config.pose.send_empty_pose,
    )


# =============================================================================
# Tick Driver
# =============================================================================

async def drive_ticks() -> None:
    """Probe once, then tick the scheduler until shutdown."""
    if _scheduler is None:
        logger.error("Capture pipeline not initialized")
        return

    await _scheduler.start()

    loop = asyncio.get_running_loop()
    tick_interval = settings.capture.tick_interval_seconds
    last = loop.time()

    logger.info(f"Tick driver started ({1.0 / tick_interval:.0f} Hz)")

    while not _shutdown_flag:
        try:
            await asyncio.sleep(tick_interval)
            now = loop.time()
            elapsed = now - last
            last = now

            if _game_state is not None:
                _game_state.tick(elapsed)
            _scheduler.tick(elapsed)

        except asyncio.CancelledError:
            logger.info("Tick driver cancelled")
            break
        except Exception as e:
            logger.error(f"Tick error: {e}")

    logger.info("Tick driver stopped")


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager with graceful shutdown."""
    global _connection, _scheduler, _game_state, _frame_source
    global _driver_task, _startup_time

    signal.signal(signal.SIGTERM, _handle_sigterm)

    _startup_time = time.time()
    logger.info(f"Starting {settings.service.name} {__version__}")
    logger.info(f"Sending images and pose data to: {settings.server.endpoint_url}")

    _connection = ConnectionState()
    _connection.add_sink(LoggingStatusSink())

    _frame_source = create_frame_source(settings)
    _game_state = (
        PoseSequenceGameState(
            poses=settings.game.poses,
            pose_duration=settings.game.pose_duration_seconds,
            relax_duration=settings.game.relax_duration_seconds,
        )
        if settings.game.enabled
        else None
    )
    _scheduler = create_scheduler(settings, _connection, _frame_source, _game_state)

    _driver_task = asyncio.create_task(drive_ticks(), name="tick_driver")

    yield

    logger.info("Shutting down gracefully...")

    global _shutdown_flag
    _shutdown_flag = True

    if _driver_task:
        _driver_task.cancel()
        try:
            await _driver_task
        except asyncio.CancelledError:
            pass

    if _scheduler:
        await _scheduler.stop()

    if isinstance(_frame_source, CameraFrameSource):
        _frame_source.close()

    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="QuestUplink",
    description="Headset capture-and-uplink pipeline",
    version=__version__,
    lifespan=lifespan,
)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "QuestUplink",
        "version": __version__,
        "name": settings.service.name,
        "endpoint": settings.server.endpoint_url,
        "trigger_mode": settings.capture.trigger_mode.value,
        "source_backend": settings.source.backend,
    })


@app.get("/health")
async def health() -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/status")
async def status() -> JSONResponse:
    """Connection state for display on the headset overlay."""
    connection = get_connection()

    if connection is None:
        return JSONResponse({"error": "Pipeline not started"}, status_code=503)

    return JSONResponse({
        **connection.to_dict(),
        "endpoint": settings.server.endpoint_url,
        "frames_sent": _client.frames_sent if _client else 0,
        "game_countdown": _game_state.countdown_text if _game_state else None,
    })


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Detailed metrics for observability."""
    client = get_client()
    scheduler = get_scheduler()

    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "uplink": client.get_metrics() if client else {},
        "probe": _probe.get_metrics() if _probe else {},
        "scheduler": scheduler.get_metrics() if scheduler else {},
        "game_state": _game_state.current_state() if _game_state else None,
    })


@app.post("/trigger")
async def trigger() -> JSONResponse:
    """Feed one discrete trigger event into the scheduler."""
    scheduler = get_scheduler()

    if scheduler is None:
        return JSONResponse({"error": "Pipeline not started"}, status_code=503)

    honored = scheduler.trigger()
    return JSONResponse({"honored": honored, "in_flight": scheduler.in_flight})


# =============================================================================
# Main Entry Point
# =============================================================================

def run() -> None:
    """Console entry point."""
    import uvicorn

    port = int(os.environ.get("PORT", settings.service.port))

    uvicorn.run(
        "quest_uplink.main:app",
        host=settings.service.host,
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    run()
