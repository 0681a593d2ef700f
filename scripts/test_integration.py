#!/usr/bin/env python3
"""
Uplink Integration Test Script
==============================

Standalone script to exercise the capture-and-uplink pipeline against a
running processing server.

This script:
    1. Probes the server once
    2. Ticks the CaptureScheduler with synthetic frames and mock pose data
    3. Logs uplink stats every few seconds
    4. Reports final summary

Prerequisites:
    - A processing server must be reachable (scripts/receiver.py works)
    - Install dependencies: pip install -e .

Usage:
    python scripts/test_integration.py --duration 60
    python scripts/test_integration.py --host 10.0.55.172 --port 5000 --max-dimension 640
"""

import argparse
import asyncio
import logging
import os
import sys
import time

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from quest_uplink.capture import CaptureScheduler, ImageEncoder
from quest_uplink.models.state import ConnectionState, LoggingStatusSink
from quest_uplink.sources import (
    MockPoseSource,
    PoseSequenceGameState,
    StaticMotionSource,
    SyntheticFrameSource,
)
from quest_uplink.uplink import HealthProbe, PayloadBuilder, UplinkClient


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


async def run_test(
    base_url: str,
    duration: int,
    send_interval: float,
    max_dimension: int,
    report_interval: int,
) -> dict:
    """
    Run the integration test.

    Args:
        base_url: Server base URL (scheme://host:port)
        duration: Test duration in seconds
        send_interval: Seconds between captures
        max_dimension: Bound on the larger image side (0 = no resize)
        report_interval: Seconds between progress reports

    Returns:
        Final metrics dict
    """
    logger.info("=" * 60)
    logger.info("Uplink Integration Test")
    logger.info("=" * 60)
    logger.info(f"Server: {base_url}")
    logger.info(f"Duration: {duration} seconds")
    logger.info(f"Send interval: {send_interval} seconds")
    logger.info(f"Max dimension: {max_dimension or 'unbounded'}")
    logger.info("=" * 60)

    connection = ConnectionState()
    connection.add_sink(LoggingStatusSink())

    probe = HealthProbe(f"{base_url}/api/ping", connection)
    client = UplinkClient(f"{base_url}/api/frame", connection, probe)
    game = PoseSequenceGameState()

    scheduler = CaptureScheduler(
        connection=connection,
        encoder=ImageEncoder(quality=75, max_dimension=max_dimension),
        builder=PayloadBuilder(),
        client=client,
        probe=probe,
        frame_source=SyntheticFrameSource(),
        pose_source=MockPoseSource(),
        game_state_source=game,
        motion_source=StaticMotionSource(),
        send_interval=send_interval,
    )

    await scheduler.start()

    loop = asyncio.get_running_loop()
    start_time = time.time()
    last_report_time = start_time
    last_frame_count = 0
    last_tick = loop.time()

    try:
        while True:
            elapsed = time.time() - start_time

            if elapsed >= duration:
                logger.info(f"Test duration ({duration}s) reached")
                break

            await asyncio.sleep(1.0 / 72.0)
            now = loop.time()
            game.tick(now - last_tick)
            scheduler.tick(now - last_tick)
            last_tick = now

            time_since_report = time.time() - last_report_time
            if time_since_report >= report_interval:
                metrics = client.metrics

                frames_since_last = metrics.frames_sent - last_frame_count
                fps = frames_since_last / time_since_report if time_since_report > 0 else 0

                logger.info("-" * 40)
                logger.info(f"Progress Report (elapsed: {elapsed:.0f}s)")
                logger.info(f"  Connected: {connection.connected}")
                logger.info(f"  Frames sent: {metrics.frames_sent}")
                logger.info(f"  Current FPS: {fps:.1f}")
                logger.info(f"  Send failures: {metrics.send_failures}")
                logger.info(f"  Reprobes: {metrics.reprobes_triggered}")
                logger.info(f"  Last round trip: {metrics.last_round_trip_ms:.0f}ms")
                logger.info(f"  Game state: {game.current_state()}")

                last_report_time = time.time()
                last_frame_count = metrics.frames_sent

    except KeyboardInterrupt:
        logger.info("Test interrupted by user")
    finally:
        await scheduler.stop()

    total_time = time.time() - start_time
    metrics = client.metrics
    avg_fps = metrics.frames_sent / total_time if total_time > 0 else 0

    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Total runtime: {total_time:.1f} seconds")
    logger.info(f"Frames sent: {metrics.frames_sent}")
    logger.info(f"Average FPS: {avg_fps:.1f}")
    logger.info(f"Send failures: {metrics.send_failures}")
    logger.info(f"Reprobes: {metrics.reprobes_triggered}")
    logger.info(f"Cycles dropped (in flight): {scheduler.metrics.cycles_dropped}")
    logger.info(f"Bytes sent: {metrics.bytes_sent}")
    logger.info("=" * 60)

    if metrics.frames_sent > 0:
        logger.info("TEST PASSED - Frames delivered successfully")
    else:
        logger.error("TEST FAILED - No frames delivered")

    return {
        "duration": total_time,
        "frames_sent": metrics.frames_sent,
        "avg_fps": avg_fps,
        "send_failures": metrics.send_failures,
        "reprobes": metrics.reprobes_triggered,
    }


def main():
    parser = argparse.ArgumentParser(
        description="Integration test for the capture-and-uplink pipeline"
    )
    parser.add_argument(
        "--host",
        type=str,
        default=os.environ.get("QUEST_UPLINK_SERVER_HOST", "127.0.0.1"),
        help="Processing server host",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("QUEST_UPLINK_SERVER_PORT", "5000")),
        help="Processing server port",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=60,
        help="Test duration in seconds (default: 60)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=0.1,
        help="Seconds between captures (default: 0.1)",
    )
    parser.add_argument(
        "--max-dimension",
        type=int,
        default=0,
        help="Bound on the larger image side, 0 = no resize (default: 0)",
    )
    parser.add_argument(
        "--report-interval",
        type=int,
        default=10,
        help="Seconds between progress reports (default: 10)",
    )

    args = parser.parse_args()

    result = asyncio.run(run_test(
        base_url=f"http://{args.host}:{args.port}",
        duration=args.duration,
        send_interval=args.interval,
        max_dimension=args.max_dimension,
        report_interval=args.report_interval,
    ))

    sys.exit(0 if result["frames_sent"] > 0 else 1)


if __name__ == "__main__":
    main()
