"""
Fire & Smoke Watch
Real-time color-based fire/smoke detection with a debounced alarm

This package provides:
- Per-pixel fire/smoke color classification
- Frame analysis with flicker smoothing
- Consecutive-frame confirmation and debounce
- Alert lifecycle (cooldown, silence, auto-stop) on injectable timers
"""

__version__ = "1.0.0"
__author__ = "Firewatch Team"

import logging
from pathlib import Path
from typing import Union

import yaml

from .detection.color_classifier import (
    rgb_to_hsl,
    classify_fire,
    classify_smoke,
)

from .detection.types import (
    Frame,
    FrameHistory,
    FrameMetrics,
    ConfidenceResult,
    DetectionEvent,
    HazardCategory,
    Region,
    SensitivityLevel,
    SensitivityProfile,
)

from .detection.frame_analyzer import FrameAnalyzer, draw_regions
from .detection.confirmation import DetectionConfirmer

from .alerts.alert_manager import AlertManager, AlertPhase, AlertState
from .alerts.alarm_output import AlarmOutput, LoggingAlarmOutput

from .runtime.clock import ManualClock, MonotonicClock
from .runtime.timers import SingleShotTimer, TimerQueue
from .runtime.events import EventChannel, Subscription
from .runtime.frame_source import FrameSource, StaticFrameSource, VideoCaptureSource
from .runtime.detection_loop import DetectorConfig, FireDetectionSystem


def load_config_file(path: Union[str, Path]) -> dict:
    """
    Load a YAML configuration file

    Args:
        path: Path to the YAML file

    Returns:
        Configuration dictionary
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    return config


def load_config(config_name: str = "detection_config") -> dict:
    """
    Load a packaged configuration

    Args:
        config_name: Name of config file (without .yaml extension)

    Returns:
        Configuration dictionary
    """
    return load_config_file(Path(__file__).parent / "config" / f"{config_name}.yaml")


def create_detection_system(
    frame_source: FrameSource,
    config_name: str = "detection_config",
    **overrides
) -> FireDetectionSystem:
    """
    Quick setup from the packaged config

    Args:
        frame_source: Where frames come from
        config_name: Name of packaged config file
        **overrides: DetectorConfig fields to override

    Returns:
        Configured FireDetectionSystem
    """
    config = DetectorConfig.from_dict(load_config(config_name))
    for key, value in overrides.items():
        if not hasattr(config, key):
            raise ValueError(f"Unknown config option: {key}")
        setattr(config, key, value)

    return FireDetectionSystem(frame_source, config=config)


__all__ = [
    # Classification
    'rgb_to_hsl',
    'classify_fire',
    'classify_smoke',

    # Data model
    'Frame',
    'FrameHistory',
    'FrameMetrics',
    'ConfidenceResult',
    'DetectionEvent',
    'HazardCategory',
    'Region',
    'SensitivityLevel',
    'SensitivityProfile',

    # Detection
    'FrameAnalyzer',
    'DetectionConfirmer',
    'draw_regions',

    # Alerts
    'AlertManager',
    'AlertPhase',
    'AlertState',
    'AlarmOutput',
    'LoggingAlarmOutput',

    # Runtime
    'ManualClock',
    'MonotonicClock',
    'TimerQueue',
    'SingleShotTimer',
    'EventChannel',
    'Subscription',
    'FrameSource',
    'StaticFrameSource',
    'VideoCaptureSource',
    'DetectorConfig',
    'FireDetectionSystem',

    # Utilities
    'load_config',
    'load_config_file',
    'create_detection_system',
]

logging.getLogger(__name__).addHandler(logging.NullHandler())
