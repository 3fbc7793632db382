"""
Detection Package
Color classification, frame analysis and temporal confirmation
"""

from .types import (
    Frame,
    FrameHistory,
    FrameMetrics,
    ConfidenceResult,
    DetectionEvent,
    HazardCategory,
    Region,
    SensitivityLevel,
    SensitivityProfile,
    DEFAULT_PROFILES,
    profile_for,
)

from .color_classifier import (
    rgb_to_hsl,
    classify_fire,
    classify_smoke,
)

from .frame_analyzer import (
    FrameAnalyzer,
    draw_regions,
)

from .confirmation import DetectionConfirmer

__all__ = [
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
    'DEFAULT_PROFILES',
    'profile_for',

    # Classifier
    'rgb_to_hsl',
    'classify_fire',
    'classify_smoke',

    # Analysis
    'FrameAnalyzer',
    'draw_regions',
    'DetectionConfirmer',
]
