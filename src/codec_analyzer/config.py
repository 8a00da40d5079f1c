"""
Codec Analyzer Configuration
============================

This module handles configuration loading for the codec analyzer.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    CODEC_ANALYZER_ENABLE_PSNR      -> quality.enable_psnr
    CODEC_ANALYZER_PSNR_CEILING     -> quality.psnr_ceiling_db
    CODEC_ANALYZER_BIT_DEPTH        -> quality.bit_depth
    CODEC_ANALYZER_REFERENCE_PATH   -> reference.yuv_path
    CODEC_ANALYZER_FLUSH_TIMEOUT    -> executor.flush_timeout_seconds
    CODEC_ANALYZER_LOG_LEVEL        -> logging.level

Example:
    from codec_analyzer.config import load_config, setup_logging

    settings = load_config("harness.yaml")
    setup_logging(settings)
    analyzer = VideoCodecAnalyzer.from_settings(settings)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from codec_analyzer.quality.metrics import DEFAULT_PSNR_CEILING_DB
from codec_analyzer.quality.reference import RTP_CLOCK_RATE_HZ, YuvFileReferenceSource


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class QualityConfig(BaseModel):
    """Quality metric configuration."""

    enable_psnr: bool = Field(
        default=True,
        description="Compute PSNR when a reference source is available",
    )
    psnr_ceiling_db: float = Field(
        default=DEFAULT_PSNR_CEILING_DB,
        gt=0,
        description="PSNR reported for identical planes (dB)",
    )
    bit_depth: int = Field(
        default=8,
        ge=8,
        le=16,
        description="Bits per sample of reference clips",
    )


class ExecutorConfig(BaseModel):
    """Serialized executor configuration."""

    thread_name: str = Field(
        default="codec-analyzer",
        description="Name of the executor worker thread",
    )
    flush_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Maximum time to wait for pending events on shutdown",
    )


class ReferenceConfig(BaseModel):
    """Reference clip configuration."""

    yuv_path: Optional[str] = Field(
        default=None,
        description="Path to a raw 8-bit I420 reference clip",
    )
    width: int = Field(default=1280, gt=0, description="Native clip width")
    height: int = Field(default=720, gt=0, description="Native clip height")
    framerate: float = Field(default=30.0, gt=0, description="Clip framerate")
    clock_rate_hz: int = Field(
        default=RTP_CLOCK_RATE_HZ,
        gt=0,
        description="RTP clock rate used to map timestamps to frames",
    )
    base_timestamp_rtp: Optional[int] = Field(
        default=None,
        ge=0,
        description="RTP timestamp of frame 0 (None = first lookup)",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the codec analyzer.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    quality: QualityConfig = Field(default_factory=QualityConfig)
    executor: ExecutorConfig = Field(default_factory=ExecutorConfig)
    reference: ReferenceConfig = Field(default_factory=ReferenceConfig)
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
    # Find config file
    if config_path is None:
        search_paths = [
            Path("codec_analyzer.yaml"),
            Path("config.yaml"),
            Path("config.yml"),
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    # Load from YAML if exists
    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.debug("No config file found, using defaults and environment variables")

    # Apply environment variable overrides
    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Quality settings
    if env_psnr := os.environ.get("CODEC_ANALYZER_ENABLE_PSNR"):
        config_data.setdefault("quality", {})["enable_psnr"] = _parse_bool(env_psnr)
    if env_ceiling := os.environ.get("CODEC_ANALYZER_PSNR_CEILING"):
        config_data.setdefault("quality", {})["psnr_ceiling_db"] = float(env_ceiling)
    if env_depth := os.environ.get("CODEC_ANALYZER_BIT_DEPTH"):
        config_data.setdefault("quality", {})["bit_depth"] = int(env_depth)

    # Reference settings
    if env_ref := os.environ.get("CODEC_ANALYZER_REFERENCE_PATH"):
        config_data.setdefault("reference", {})["yuv_path"] = env_ref

    # Executor settings
    if env_timeout := os.environ.get("CODEC_ANALYZER_FLUSH_TIMEOUT"):
        config_data.setdefault("executor", {})["flush_timeout_seconds"] = float(env_timeout)

    # Logging settings
    if env_log := os.environ.get("CODEC_ANALYZER_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "thread": "%(threadName)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


def create_reference_source(settings: Settings) -> Optional[YuvFileReferenceSource]:
    """
    Create the configured reference source.

    Returns:
        YuvFileReferenceSource if reference.yuv_path is set, else None
    """
    ref = settings.reference
    if not ref.yuv_path:
        return None

    if settings.quality.bit_depth != 8:
        raise ValueError(
            f"YUV reference clips must be 8-bit, got bit_depth={settings.quality.bit_depth}"
        )

    logger.info(f"Using YUV reference clip: {ref.yuv_path}")
    return YuvFileReferenceSource(
        ref.yuv_path,
        width=ref.width,
        height=ref.height,
        framerate=ref.framerate,
        clock_rate_hz=ref.clock_rate_hz,
        base_timestamp_rtp=ref.base_timestamp_rtp,
    )
