"""
QuestUplink Configuration
=========================

This module handles configuration loading for the uplink service.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    QUEST_UPLINK_SERVER_HOST       -> server.host
    QUEST_UPLINK_SERVER_PORT       -> server.port
    QUEST_UPLINK_TIMEOUT_MS        -> server.timeout_ms
    QUEST_UPLINK_SEND_INTERVAL     -> capture.send_interval_seconds
    QUEST_UPLINK_IMAGE_QUALITY     -> capture.image_quality
    QUEST_UPLINK_MAX_DIMENSION     -> capture.max_image_dimension
    QUEST_UPLINK_TRIGGER_MODE      -> capture.trigger_mode
    QUEST_UPLINK_FAILURE_THRESHOLD -> uplink.failure_threshold
    QUEST_UPLINK_SOURCE_BACKEND    -> source.backend
    QUEST_UPLINK_LOG_LEVEL         -> logging.level
    PORT                           -> service.port

Example:
    from quest_uplink.config import settings

    print(settings.server.endpoint_url)
    print(settings.capture.image_quality)
    print(settings.uplink.failure_threshold)
"""

import os
import logging
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field

from quest_uplink.capture.scheduler import TriggerMode
from quest_uplink.sources.game_state import SURYA_NAMASKAR_POSES
from quest_uplink.sources.mock import BLAZEPOSE_KEYPOINT_COUNT


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ServerConfig(BaseModel):
    """Remote processing server connection configuration."""

    scheme: str = Field(default="http", description="URL scheme")
    host: str = Field(default="127.0.0.1", description="Processing server host")
    port: int = Field(default=5000, ge=1, le=65535, description="Processing server port")
    frame_path: str = Field(default="/api/frame", description="Payload POST path")
    ping_path: str = Field(default="/api/ping", description="Health-check GET path")
    timeout_ms: int = Field(
        default=5000,
        gt=0,
        description="Timeout for sends and probes in milliseconds",
    )

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"

    @property
    def endpoint_url(self) -> str:
        """Full URL payloads are POSTed to."""
        return f"{self.base_url}/{self.frame_path.lstrip('/')}"

    @property
    def ping_url(self) -> str:
        """Full URL of the health check."""
        return f"{self.base_url}/{self.ping_path.lstrip('/')}"


class CaptureConfig(BaseModel):
    """Capture cadence and image encoding configuration."""

    send_interval_seconds: float = Field(
        default=0.1,
        gt=0,
        description="Seconds between captures in interval mode (0.1 = 10 fps)",
    )
    image_quality: int = Field(
        default=75,
        ge=0,
        le=100,
        description="JPEG compression quality",
    )
    max_image_dimension: int = Field(
        default=0,
        ge=0,
        description="Bound on the larger image side in pixels (0 = no resize)",
    )
    trigger_mode: TriggerMode = Field(
        default=TriggerMode.INTERVAL,
        description="'interval' for a fixed cadence, 'trigger' for discrete events",
    )
    trigger_cooldown_seconds: float = Field(
        default=0.5,
        ge=0,
        description="Minimum time between honored triggers",
    )
    tick_interval_seconds: float = Field(
        default=1.0 / 72.0,
        gt=0,
        description="Cadence of the driving tick loop (headset refresh rate)",
    )


class UplinkConfig(BaseModel):
    """Failure handling configuration."""

    failure_threshold: int = Field(
        default=3,
        ge=1,
        description="Consecutive send failures before a reprobe",
    )
    reprobe_interval_seconds: float = Field(
        default=5.0,
        ge=0,
        description="Probe period while disconnected (0 = only on threshold)",
    )


class PoseConfig(BaseModel):
    """Pose keypoint configuration."""

    enabled: bool = Field(default=True, description="Include pose keypoints")
    send_only_active_keypoints: bool = Field(
        default=False,
        description="Drop keypoints that are not currently tracked",
    )
    send_empty_pose: bool = Field(
        default=True,
        description="Send an empty keypoint list while the pose source is active",
    )
    keypoint_count: int = Field(
        default=BLAZEPOSE_KEYPOINT_COUNT,
        ge=1,
        description="Joints reported by the mock pose source",
    )


class GameConfig(BaseModel):
    """Pose routine configuration."""

    enabled: bool = Field(default=True, description="Include the game-state label")
    poses: List[str] = Field(
        default_factory=lambda: list(SURYA_NAMASKAR_POSES),
        min_length=1,
        description="Pose names in routine order",
    )
    pose_duration_seconds: float = Field(default=5.0, gt=0, description="Hold time per pose")
    relax_duration_seconds: float = Field(default=2.0, gt=0, description="Rest between poses")


class MotionConfig(BaseModel):
    """Headset/controller transform configuration."""

    enabled: bool = Field(default=True, description="Include headset and hand transforms")


class SourceConfig(BaseModel):
    """Frame source configuration."""

    backend: str = Field(
        default="mock",
        description="Frame source: 'mock', 'camera' or 'none' (pose only)",
    )
    camera_index: int = Field(default=0, ge=0, description="cv2.VideoCapture index")
    mock_width: int = Field(default=1280, ge=1, description="Synthetic frame width")
    mock_height: int = Field(default=720, ge=1, description="Synthetic frame height")


class ServiceConfig(BaseModel):
    """Status API configuration."""

    name: str = Field(default="quest-uplink", description="Service name")
    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8002, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for QuestUplink.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    uplink: UplinkConfig = Field(default_factory=UplinkConfig)
    pose: PoseConfig = Field(default_factory=PoseConfig)
    game: GameConfig = Field(default_factory=GameConfig)
    motion: MotionConfig = Field(default_factory=MotionConfig)
    source: SourceConfig = Field(default_factory=SourceConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("/app/config.yaml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Server settings
    if env_host := os.environ.get("QUEST_UPLINK_SERVER_HOST"):
        config_data.setdefault("server", {})["host"] = env_host
    if env_port := os.environ.get("QUEST_UPLINK_SERVER_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    if env_timeout := os.environ.get("QUEST_UPLINK_TIMEOUT_MS"):
        config_data.setdefault("server", {})["timeout_ms"] = int(env_timeout)

    # Capture settings
    if env_interval := os.environ.get("QUEST_UPLINK_SEND_INTERVAL"):
        config_data.setdefault("capture", {})["send_interval_seconds"] = float(env_interval)
    if env_quality := os.environ.get("QUEST_UPLINK_IMAGE_QUALITY"):
        config_data.setdefault("capture", {})["image_quality"] = int(env_quality)
    if env_dim := os.environ.get("QUEST_UPLINK_MAX_DIMENSION"):
        config_data.setdefault("capture", {})["max_image_dimension"] = int(env_dim)
    if env_mode := os.environ.get("QUEST_UPLINK_TRIGGER_MODE"):
        config_data.setdefault("capture", {})["trigger_mode"] = env_mode

    # Uplink settings
    if env_threshold := os.environ.get("QUEST_UPLINK_FAILURE_THRESHOLD"):
        config_data.setdefault("uplink", {})["failure_threshold"] = int(env_threshold)

    # Source settings
    if env_backend := os.environ.get("QUEST_UPLINK_SOURCE_BACKEND"):
        config_data.setdefault("source", {})["backend"] = env_backend

    # Status API port (container platforms use PORT)
    if env_service_port := os.environ.get("PORT"):
        config_data.setdefault("service", {})["port"] = int(env_service_port)

    # Logging settings
    if env_log := os.environ.get("QUEST_UPLINK_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)
