"""
Temporal Confirmation
Turns the per-frame confidence stream into discrete, debounced detection events
"""

import logging
import math
from typing import Dict, List, Optional

from ..runtime.clock import Clock
from .types import (
    ConfidenceResult,
    DetectionEvent,
    FrameHistory,
    HazardCategory,
    SensitivityProfile,
)

logger = logging.getLogger(__name__)


class DetectionConfirmer:
    """
    Consecutive-frame confirmation with per-category debounce.

    A category's counter grows on every qualifying frame and decays by one
    (never below zero) otherwise. Reaching the streak length resets the
    counter and emits an event unless the same category fired within the
    debounce window.
    """

    def __init__(
        self,
        clock: Clock,
        history: FrameHistory,
        streak_length: int = 3,
        smoke_extra_frames: int = 2,
        debounce_ms: float = 5000.0,
        motion_delta: float = 0.005,
        motion_min_changes: int = 2
    ):
        """
        Initialize confirmer

        Args:
            clock: Time source for event timestamps and debounce
            history: Frame history shared with the analyzer (read only here)
            streak_length: Consecutive qualifying frames needed for fire
            smoke_extra_frames: Extra frames smoke needs on top of fire's
            debounce_ms: Same-category suppression window
            motion_delta: Smoke ratio change counted as movement
            motion_min_changes: Movements needed to call it billowing
        """
        self.clock = clock
        self.history = history
        self.streak_length = streak_length
        self.smoke_extra_frames = smoke_extra_frames
        self.debounce_ms = debounce_ms
        self.motion_delta = motion_delta
        self.motion_min_changes = motion_min_changes

        self._counters: Dict[HazardCategory, int] = {
            HazardCategory.FIRE: 0,
            HazardCategory.SMOKE: 0,
        }
        self.last_detection: Optional[DetectionEvent] = None

    @property
    def fire_streak(self) -> int:
        return self._counters[HazardCategory.FIRE]

    @property
    def smoke_streak(self) -> int:
        return self._counters[HazardCategory.SMOKE]

    def required_streak(self, category: HazardCategory) -> int:
        if category is HazardCategory.SMOKE:
            return self.streak_length + self.smoke_extra_frames
        return self.streak_length

    def has_motion(self) -> bool:
        """Smoke ratio must keep changing (billowing) over recent frames"""
        if len(self.history) < 3:
            return False
        return self.history.count_deltas_above("smoke_ratio", self.motion_delta) >= self.motion_min_changes

    def update(
        self,
        result: ConfidenceResult,
        profile: SensitivityProfile
    ) -> List[DetectionEvent]:
        """
        Advance counters by one analyzed frame

        Args:
            result: This cycle's analysis output
            profile: Active sensitivity profile

        Returns:
            Events confirmed this cycle (zero, one or two)
        """
        events = []

        fire_ok = (
            result.fire_confidence >= profile.fire_threshold
            and result.fire_pixel_ratio >= profile.min_pixel_ratio
        )
        event = self._advance(HazardCategory.FIRE, fire_ok, result.fire_confidence)
        if event is not None:
            events.append(event)

        smoke_ok = (
            result.smoke_confidence >= profile.smoke_threshold
            and result.smoke_pixel_ratio >= profile.min_pixel_ratio
            and self.has_motion()
        )
        event = self._advance(HazardCategory.SMOKE, smoke_ok, result.smoke_confidence)
        if event is not None:
            events.append(event)

        return events

    def _advance(
        self,
        category: HazardCategory,
        qualifying: bool,
        confidence: float
    ) -> Optional[DetectionEvent]:
        if not qualifying:
            self._counters[category] = max(0, self._counters[category] - 1)
            return None

        self._counters[category] += 1
        if self._counters[category] < self.required_streak(category):
            return None

        self._counters[category] = 0
        return self._emit(category, confidence)

    def _emit(self, category: HazardCategory, confidence: float) -> Optional[DetectionEvent]:
        now = self.clock.now_ms()

        last = self.last_detection
        if last is not None and last.category is category and now - last.timestamp_ms < self.debounce_ms:
            logger.debug(
                f"{category.value} detection debounced "
                f"({now - last.timestamp_ms:.0f}ms since last)"
            )
            return None

        # Half-up rounding, not banker's
        percent = int(math.floor(min(1.0, max(0.0, confidence)) * 100 + 0.5))
        event = DetectionEvent(category=category, confidence_percent=percent, timestamp_ms=now)
        self.last_detection = event

        logger.info(f"{category.value.upper()} confirmed at {percent}% confidence")
        return event

    def reset(self) -> None:
        """Zero counters and forget the last detection"""
        for category in self._counters:
            self._counters[category] = 0
        self.last_detection = None
