"""
Frame Analyzer
Samples a frame through the color classifier and turns pixel ratios into
fire/smoke confidence scores with flicker smoothing
"""

import logging
from typing import List, Optional

import cv2
import numpy as np

from ..runtime.clock import Clock, MonotonicClock
from .color_classifier import classify_fire, classify_smoke, rgb_to_hsl
from .types import (
    ConfidenceResult,
    Frame,
    FrameHistory,
    FrameMetrics,
    Region,
    SensitivityProfile,
)

logger = logging.getLogger(__name__)


class FrameAnalyzer:
    """
    Per-frame color analysis.

    Produces a ConfidenceResult and records the frame's ratios in the
    shared history. No detection decision is made here.
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        sample_stride: int = 4,
        fire_floor: float = 0.02,
        fire_gain: float = 8.0,
        smoke_floor: float = 0.05,
        smoke_gain: float = 5.0,
        flicker_delta: float = 0.01,
        flicker_min_bonus: float = 0.3,
        flicker_weight: float = 0.5,
        cluster_cell_size: int = 50,
        cluster_min_members: int = 2,
        cluster_max_size: int = 80,
        max_clusters: int = 10
    ):
        """
        Initialize analyzer

        Args:
            clock: Time source for history timestamps when analyze() is
                not given one (monotonic by default)
            sample_stride: Classify every Nth pixel of the flat buffer
            fire_floor: Fire pixel ratio below which confidence is 0
            fire_gain: Linear multiplier from fire ratio to confidence
            smoke_floor: Smoke pixel ratio below which confidence is 0
            smoke_gain: Linear multiplier from smoke ratio to confidence
            flicker_delta: Minimum fire ratio change counted as flicker
            flicker_min_bonus: Flicker bonus must exceed this to boost
            flicker_weight: Boost factor applied to the flicker bonus
            cluster_cell_size: Grid cell size in pixels
            cluster_min_members: Cells need more than this many hits
            cluster_max_size: Upper bound on a cluster's display size
            max_clusters: Clusters emitted per category
        """
        if sample_stride < 1:
            raise ValueError(f"sample_stride must be >= 1, got {sample_stride}")

        self.clock = clock or MonotonicClock()
        self.sample_stride = sample_stride
        self.fire_floor = fire_floor
        self.fire_gain = fire_gain
        self.smoke_floor = smoke_floor
        self.smoke_gain = smoke_gain
        self.flicker_delta = flicker_delta
        self.flicker_min_bonus = flicker_min_bonus
        self.flicker_weight = flicker_weight
        self.cluster_cell_size = cluster_cell_size
        self.cluster_min_members = cluster_min_members
        self.cluster_max_size = cluster_max_size
        self.max_clusters = max_clusters

    def analyze(
        self,
        frame: Frame,
        profile: SensitivityProfile,
        history: FrameHistory,
        now_ms: Optional[float] = None
    ) -> ConfidenceResult:
        """
        Analyze one frame

        Args:
            frame: RGBA frame (must be valid)
            profile: Active sensitivity profile (thresholds are applied
                later by the confirmer)
            history: Rolling history, appended to in place
            now_ms: Timestamp recorded for this frame (the analyzer's clock
                when omitted)

        Returns:
            ConfidenceResult for this frame
        """
        if not frame.is_valid:
            raise ValueError(
                f"Invalid frame {frame.width}x{frame.height}, "
                f"pixels shape {getattr(frame.pixels, 'shape', None)}"
            )

        timestamp = float(now_ms) if now_ms is not None else self.clock.now_ms()

        # Step 1: strided sample of the flat RGBA buffer
        flat = frame.pixels.reshape(-1, 4)
        indices = np.arange(0, flat.shape[0], self.sample_stride)
        samples = flat[indices]
        sampled_count = len(indices)

        r = samples[:, 0]
        g = samples[:, 1]
        b = samples[:, 2]

        # Step 2: classification
        fire_mask = classify_fire(r, g, b)
        hue, saturation, lightness = rgb_to_hsl(r, g, b)
        smoke_mask = classify_smoke(hue, saturation, lightness)

        # Step 3: ratios
        fire_ratio = float(np.count_nonzero(fire_mask)) / sampled_count
        smoke_ratio = float(np.count_nonzero(smoke_mask)) / sampled_count

        # Steps 4-5: floor-gated linear confidence
        fire_confidence = self._gated_confidence(fire_ratio, self.fire_floor, self.fire_gain)
        smoke_confidence = self._gated_confidence(smoke_ratio, self.smoke_floor, self.smoke_gain)

        # Step 6: flicker boost, computed before this frame joins the history
        flicker_bonus = self.flicker_bonus(history)
        if flicker_bonus > self.flicker_min_bonus:
            fire_confidence = float(
                np.clip(fire_confidence * (1 + flicker_bonus * self.flicker_weight), 0.0, 1.0)
            )

        # Step 7: history
        history.append(FrameMetrics(fire_ratio, smoke_ratio, timestamp))

        # Step 8: presentation clusters
        xs = indices % frame.width
        ys = indices // frame.width
        fire_regions = self.cluster_regions(xs[fire_mask], ys[fire_mask], frame.width, frame.height)
        smoke_regions = self.cluster_regions(xs[smoke_mask], ys[smoke_mask], frame.width, frame.height)

        logger.debug(
            f"Frame analyzed: fire_ratio={fire_ratio:.4f} smoke_ratio={smoke_ratio:.4f} "
            f"fire_conf={fire_confidence:.3f} smoke_conf={smoke_confidence:.3f} "
            f"flicker={flicker_bonus:.2f} profile={profile.name}"
        )

        return ConfidenceResult(
            fire_confidence=fire_confidence,
            smoke_confidence=smoke_confidence,
            fire_pixel_ratio=fire_ratio,
            smoke_pixel_ratio=smoke_ratio,
            fire_regions=fire_regions,
            smoke_regions=smoke_regions,
            timestamp_ms=timestamp,
        )

    @staticmethod
    def _gated_confidence(ratio: float, floor: float, gain: float) -> float:
        if ratio < floor:
            return 0.0
        return float(min(1.0, max(0.0, ratio * gain)))

    def flicker_bonus(self, history: FrameHistory) -> float:
        """Fraction of adjacent history pairs whose fire ratio jumped"""
        if len(history) < 3:
            return 0.0

        variations = history.count_deltas_above("fire_ratio", self.flicker_delta)
        return variations / (len(history) - 1)

    def cluster_regions(
        self,
        xs: np.ndarray,
        ys: np.ndarray,
        width: int,
        height: int
    ) -> List[Region]:
        """
        Bucket pixel coordinates into a flat grid and emit dense cells

        Cells are reported in the order their first member was sampled,
        positioned at that first member.
        """
        if xs.size == 0:
            return []

        cell = self.cluster_cell_size
        grid_cols = (width + cell - 1) // cell
        grid_rows = (height + cell - 1) // cell

        cell_index = (ys // cell) * grid_cols + (xs // cell)
        counts = np.bincount(cell_index, minlength=grid_cols * grid_rows)
        occupied, first_seen = np.unique(cell_index, return_index=True)

        regions: List[Region] = []
        for position in np.argsort(first_seen, kind="stable"):
            count = int(counts[occupied[position]])
            if count <= self.cluster_min_members:
                continue

            first = first_seen[position]
            regions.append(Region(
                x=int(xs[first]),
                y=int(ys[first]),
                size=min(self.cluster_max_size, count * 5),
            ))
            if len(regions) >= self.max_clusters:
                break

        return regions


def draw_regions(image: np.ndarray, result: ConfidenceResult) -> np.ndarray:
    """
    Create visualization with region overlays

    Args:
        image: RGB or RGBA image (H, W, C), uint8
        result: Analysis result for the same frame

    Returns:
        Annotated copy of the image
    """
    annotated = np.ascontiguousarray(image.copy())
    channels = annotated.shape[2] if annotated.ndim == 3 else 1

    def color(rgb):
        return rgb + (255,) if channels == 4 else rgb

    for region in result.fire_regions:
        cv2.circle(annotated, (region.x, region.y), max(1, region.size // 2), color((255, 69, 0)), 2)

    for region in result.smoke_regions:
        cv2.circle(annotated, (region.x, region.y), max(1, region.size // 2), color((160, 160, 160)), 2)

    return annotated
