"""
Detection Data Model
Frames, sensitivity profiles, per-frame results and detection events
"""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Dict, Iterator, List, Optional

import numpy as np


class HazardCategory(str, Enum):
    """Kinds of hazard the detector reports"""
    FIRE = "fire"
    SMOKE = "smoke"


class SensitivityLevel(IntEnum):
    """User-selectable sensitivity"""
    LOW = 1
    MEDIUM = 2
    HIGH = 3


@dataclass(frozen=True)
class SensitivityProfile:
    """Thresholds applied by the confirmer for one sensitivity level"""
    level: SensitivityLevel
    fire_threshold: float
    smoke_threshold: float
    min_pixel_ratio: float

    @property
    def name(self) -> str:
        return self.level.name.capitalize()


DEFAULT_PROFILES: Dict[SensitivityLevel, SensitivityProfile] = {
    SensitivityLevel.LOW: SensitivityProfile(SensitivityLevel.LOW, 0.35, 0.60, 0.008),
    SensitivityLevel.MEDIUM: SensitivityProfile(SensitivityLevel.MEDIUM, 0.25, 0.50, 0.005),
    SensitivityLevel.HIGH: SensitivityProfile(SensitivityLevel.HIGH, 0.15, 0.40, 0.003),
}


@dataclass
class Frame:
    """
    One RGBA frame borrowed from a frame source.

    pixels is a uint8 array of shape (height, width, 4), row-major.
    """
    width: int
    height: int
    pixels: np.ndarray

    @classmethod
    def from_rgb(cls, image: np.ndarray) -> "Frame":
        """Wrap an (H, W, 3) RGB image, adding an opaque alpha channel"""
        if image.ndim != 3 or image.shape[2] not in (3, 4):
            raise ValueError(f"Expected (H, W, 3) or (H, W, 4) image, got {image.shape}")

        if image.shape[2] == 3:
            alpha = np.full(image.shape[:2] + (1,), 255, dtype=np.uint8)
            image = np.concatenate([image.astype(np.uint8, copy=False), alpha], axis=2)

        height, width = image.shape[:2]
        return cls(width=width, height=height, pixels=image)

    @property
    def is_valid(self) -> bool:
        """Check the buffer matches the declared geometry"""
        pixels = self.pixels
        return (
            isinstance(pixels, np.ndarray)
            and pixels.dtype == np.uint8
            and self.width > 0
            and self.height > 0
            and pixels.shape == (self.height, self.width, 4)
        )


@dataclass(frozen=True)
class FrameMetrics:
    """Per-frame pixel ratios kept for temporal smoothing"""
    fire_ratio: float
    smoke_ratio: float
    timestamp_ms: float


class FrameHistory:
    """Bounded FIFO of recent FrameMetrics (oldest evicted first)"""

    MAX_FRAMES = 5

    def __init__(self, max_frames: int = MAX_FRAMES):
        if not 1 <= max_frames <= self.MAX_FRAMES:
            raise ValueError(f"History holds 1..{self.MAX_FRAMES} frames, got {max_frames}")
        self._frames: deque = deque(maxlen=max_frames)

    def append(self, metrics: FrameMetrics) -> None:
        self._frames.append(metrics)

    def clear(self) -> None:
        self._frames.clear()

    def count_deltas_above(self, attribute: str, threshold: float) -> int:
        """Count adjacent pairs whose `attribute` changed by more than threshold"""
        frames = list(self._frames)
        return sum(
            1
            for previous, current in zip(frames, frames[1:])
            if abs(getattr(current, attribute) - getattr(previous, attribute)) > threshold
        )

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self) -> Iterator[FrameMetrics]:
        return iter(self._frames)

    def __getitem__(self, index: int) -> FrameMetrics:
        return self._frames[index]


@dataclass(frozen=True)
class Region:
    """Coarse cluster of matching pixels, for overlays only"""
    x: int
    y: int
    size: int


@dataclass
class ConfidenceResult:
    """Per-frame analysis output"""
    fire_confidence: float
    smoke_confidence: float
    fire_pixel_ratio: float
    smoke_pixel_ratio: float
    fire_regions: List[Region] = field(default_factory=list)
    smoke_regions: List[Region] = field(default_factory=list)
    timestamp_ms: float = 0.0

    @property
    def max_confidence(self) -> float:
        return max(self.fire_confidence, self.smoke_confidence)


@dataclass(frozen=True)
class DetectionEvent:
    """Confirmed, debounced detection"""
    category: HazardCategory
    confidence_percent: int
    timestamp_ms: float


def profile_for(
    level: int,
    profiles: Optional[Dict[SensitivityLevel, SensitivityProfile]] = None
) -> SensitivityProfile:
    """Resolve a 1..3 level (clamped) to its profile"""
    profiles = profiles or DEFAULT_PROFILES
    clamped = SensitivityLevel(max(1, min(3, int(level))))
    return profiles[clamped]
