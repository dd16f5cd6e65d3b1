"""
Frame Ingest Configuration
==========================

This module handles configuration loading for the ingest service.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    RTSP_URL                    -> stream.url
    OUTPUT_DIR                  -> output.directory
    TARGET_FPS                  -> capture.target_fps
    FRAME_INTERVAL              -> capture.frame_interval
    JPEG_QUALITY                -> output.jpeg_quality
    INGEST_MAX_CONNECT_ATTEMPTS -> stream.max_connect_attempts
    INGEST_LOG_LEVEL            -> logging.level
    INGEST_LOG_FORMAT           -> logging.format
    INGEST_CONFIG               -> path of the YAML file

Example:
    from frame_ingest.config import load_config

    settings = load_config()
    print(settings.stream.url)
    print(settings.capture.resolved_fps)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from frame_ingest.errors import ConfigurationError


logger = logging.getLogger(__name__)


DEFAULT_TARGET_FPS = 30.0


# =============================================================================
# Configuration Models
# =============================================================================

class StreamConfig(BaseModel):
    """Video stream connection configuration."""

    url: str = Field(
        default="rtsp://localhost:8554/stream",
        min_length=1,
        description="URI of the video stream",
    )
    max_connect_attempts: int = Field(
        default=10,
        ge=1,
        description="Attempt budget for the initial connection",
    )
    connect_backoff_seconds: float = Field(
        default=3.0,
        ge=0,
        description="Wait after a failed initial connection attempt",
    )
    reconnect_settle_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Wait between releasing a failed handle and reopening",
    )
    reconnect_backoff_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Wait after a failed reopen before the loop retries",
    )
    buffer_size: int = Field(
        default=1,
        ge=1,
        description="Decoder buffer depth requested after every open",
    )
    default_fps: float = Field(
        default=30.0,
        gt=0,
        description="Native FPS assumed when the source reports garbage",
    )
    max_valid_fps: float = Field(
        default=120.0,
        gt=0,
        description="Upper bound of a plausible native FPS",
    )


class CaptureConfig(BaseModel):
    """Output rate configuration."""

    target_fps: Optional[float] = Field(
        default=None,
        gt=0,
        description="Frames per second to persist",
    )
    frame_interval: Optional[float] = Field(
        default=None,
        description="Seconds between persisted frames (used when target_fps is unset)",
    )

    @property
    def resolved_fps(self) -> float:
        """Effective target FPS after applying the fallback rules."""
        return resolve_target_fps(self.target_fps, self.frame_interval)


class OutputConfig(BaseModel):
    """Frame output configuration."""

    directory: str = Field(
        default="/app/frames",
        min_length=1,
        description="Directory receiving the JPEG files",
    )
    jpeg_quality: int = Field(
        default=90,
        ge=1,
        le=100,
        description="JPEG quality factor",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")

    @field_validator("format")
    @classmethod
    def check_format(cls, value: str) -> str:
        if value not in ("json", "text"):
            raise ValueError(f"Unknown log format: {value}")
        return value


class Settings(BaseModel):
    """
    Main settings class for the ingest service.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    stream: StreamConfig = Field(default_factory=StreamConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Rate Resolution
# =============================================================================

def resolve_target_fps(
    target_fps: Optional[float] = None,
    frame_interval: Optional[float] = None,
) -> float:
    """
    Derive the target FPS from the configured values.

    An explicit target FPS wins. Otherwise a positive frame interval is
    inverted. A missing or non-positive interval falls back to 30 FPS.

    Args:
        target_fps: Explicit FPS, or None
        frame_interval: Seconds between frames, or None

    Returns:
        Target frames per second (always > 0)
    """
    if target_fps is not None:
        if target_fps <= 0:
            raise ValueError("target_fps must be positive")
        return float(target_fps)
    if frame_interval is not None and frame_interval > 0:
        return 1.0 / frame_interval
    return DEFAULT_TARGET_FPS


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
        config_path: Path to config.yaml. If None, INGEST_CONFIG is used,
            then common locations are searched.

    Returns:
        Settings: Loaded configuration

    Raises:
        ConfigurationError: If the file or an override cannot be parsed,
            or the merged values fail validation
    """
    if config_path is None:
        config_path = os.environ.get("INGEST_CONFIG")

    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("/app/config.yaml"),
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        try:
            with open(config_path, "r") as f:
                config_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot read config file {config_path}: {e}") from e
        if not isinstance(config_data, dict):
            raise ConfigurationError(f"Config file {config_path} must contain a mapping")
    elif config_path:
        raise ConfigurationError(f"Config file not found: {config_path}")
    else:
        logger.debug("No config file found, using defaults and environment variables")

    try:
        _apply_env_overrides(config_data)
        settings = Settings.model_validate(config_data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
    except ValueError as e:
        raise ConfigurationError(f"Invalid environment override: {e}") from e

    return settings


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Stream settings
    if env_url := os.environ.get("RTSP_URL"):
        config_data.setdefault("stream", {})["url"] = env_url
    if env_attempts := os.environ.get("INGEST_MAX_CONNECT_ATTEMPTS"):
        config_data.setdefault("stream", {})["max_connect_attempts"] = int(env_attempts)

    # Output settings
    if env_dir := os.environ.get("OUTPUT_DIR"):
        config_data.setdefault("output", {})["directory"] = env_dir
    if env_quality := os.environ.get("JPEG_QUALITY"):
        config_data.setdefault("output", {})["jpeg_quality"] = int(env_quality)

    # Rate settings (TARGET_FPS shadows FRAME_INTERVAL during resolution)
    if env_fps := os.environ.get("TARGET_FPS"):
        config_data.setdefault("capture", {})["target_fps"] = float(env_fps)
    if env_interval := os.environ.get("FRAME_INTERVAL"):
        config_data.setdefault("capture", {})["frame_interval"] = float(env_interval)

    # Logging settings
    if env_log := os.environ.get("INGEST_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log
    if env_format := os.environ.get("INGEST_LOG_FORMAT"):
        config_data.setdefault("logging", {})["format"] = env_format


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
