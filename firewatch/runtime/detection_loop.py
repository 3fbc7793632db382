"""
Real-time Detection Loop
Cooperative pipeline: frame source -> analyzer -> confirmer -> alert manager
"""

import logging
import time
from collections import deque
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

from ..alerts.alarm_output import AlarmOutput
from ..alerts.alert_manager import AlertManager, AlertPhase
from ..detection.confirmation import DetectionConfirmer
from ..detection.frame_analyzer import FrameAnalyzer
from ..detection.types import (
    DEFAULT_PROFILES,
    ConfidenceResult,
    DetectionEvent,
    FrameHistory,
    HazardCategory,
    SensitivityLevel,
    SensitivityProfile,
    profile_for,
)
from .clock import Clock, MonotonicClock
from .events import EventChannel
from .frame_source import FrameSource
from .timers import TimerQueue

logger = logging.getLogger(__name__)


@dataclass
class DetectorConfig:
    """Configuration for the detection system"""
    # Sensitivity
    sensitivity: int = 2
    profiles: Dict[SensitivityLevel, SensitivityProfile] = field(
        default_factory=lambda: dict(DEFAULT_PROFILES)
    )

    # Frame analysis
    sample_stride: int = 4
    fire_floor: float = 0.02
    fire_gain: float = 8.0
    smoke_floor: float = 0.05
    smoke_gain: float = 5.0
    flicker_delta: float = 0.01
    flicker_min_bonus: float = 0.3
    flicker_weight: float = 0.5
    cluster_cell_size: int = 50
    max_clusters: int = 10

    # Confirmation
    streak_length: int = 3
    smoke_extra_frames: int = 2
    debounce_ms: float = 5000.0
    motion_delta: float = 0.005
    motion_min_changes: int = 2

    # Alerts
    sound_enabled: bool = True
    flash_enabled: bool = True
    cooldown_ms: float = 3000.0
    auto_stop_ms: float = 10000.0
    presence_threshold: float = 0.30

    # Runtime
    cycle_interval_ms: float = 66.0
    history_size: int = 50
    warning_threshold: float = 0.50

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "DetectorConfig":
        """
        Build config from the YAML layout (detection / sensitivity_profiles /
        alerts / runtime sections). Missing keys keep their defaults.
        """
        known = {f.name for f in fields(cls)} - {"profiles"}
        values: Dict[str, Any] = {}

        for section in ("detection", "alerts", "runtime"):
            for key, value in (config.get(section) or {}).items():
                if key not in known:
                    logger.warning(f"Ignoring unknown config key '{section}.{key}'")
                    continue
                values[key] = value

        profiles = dict(DEFAULT_PROFILES)
        for level, thresholds in (config.get("sensitivity_profiles") or {}).items():
            try:
                sensitivity = SensitivityLevel(int(level))
            except ValueError as exc:
                raise ValueError(f"Unknown sensitivity level in config: {level}") from exc
            profiles[sensitivity] = SensitivityProfile(
                level=sensitivity,
                fire_threshold=float(thresholds["fire_threshold"]),
                smoke_threshold=float(thresholds["smoke_threshold"]),
                min_pixel_ratio=float(thresholds["min_pixel_ratio"]),
            )

        return cls(profiles=profiles, **values)


class FireDetectionSystem:
    """
    Owns one detection pipeline and its alarm.

    Single-threaded: step() runs due timers, then one analysis cycle, so
    timer callbacks always land between cycles.
    """

    def __init__(
        self,
        frame_source: FrameSource,
        config: Optional[DetectorConfig] = None,
        clock: Optional[Clock] = None,
        timers: Optional[TimerQueue] = None,
        alarm_output: Optional[AlarmOutput] = None
    ):
        """
        Initialize detection system

        Args:
            frame_source: Supplies frames; None means skip this cycle
            config: Detector configuration
            clock: Time source (monotonic by default)
            timers: Timer queue; built on `clock` when omitted
            alarm_output: Audio/visual sink for the alert manager
        """
        self.config = config or DetectorConfig()
        self.frame_source = frame_source
        self.timers = timers or TimerQueue(clock or MonotonicClock())
        self.clock = self.timers.clock

        self.profile = profile_for(self.config.sensitivity, self.config.profiles)
        self.frame_history = FrameHistory()

        self.analyzer = FrameAnalyzer(
            clock=self.clock,
            sample_stride=self.config.sample_stride,
            fire_floor=self.config.fire_floor,
            fire_gain=self.config.fire_gain,
            smoke_floor=self.config.smoke_floor,
            smoke_gain=self.config.smoke_gain,
            flicker_delta=self.config.flicker_delta,
            flicker_min_bonus=self.config.flicker_min_bonus,
            flicker_weight=self.config.flicker_weight,
            cluster_cell_size=self.config.cluster_cell_size,
            max_clusters=self.config.max_clusters,
        )
        self.confirmer = DetectionConfirmer(
            clock=self.clock,
            history=self.frame_history,
            streak_length=self.config.streak_length,
            smoke_extra_frames=self.config.smoke_extra_frames,
            debounce_ms=self.config.debounce_ms,
            motion_delta=self.config.motion_delta,
            motion_min_changes=self.config.motion_min_changes,
        )
        self.alerts = AlertManager(
            timers=self.timers,
            output=alarm_output,
            cooldown_ms=self.config.cooldown_ms,
            auto_stop_ms=self.config.auto_stop_ms,
            sound_enabled=self.config.sound_enabled,
            flash_enabled=self.config.flash_enabled,
        )

        self.on_confidence = EventChannel("confidence")
        self.on_detection = EventChannel("detection")

        self.running = False
        self.frame_count = 0
        self.skipped_frames = 0
        self.last_result: Optional[ConfidenceResult] = None
        self._detections: deque = deque(maxlen=self.config.history_size)
        self._counts: Dict[HazardCategory, int] = {c: 0 for c in HazardCategory}

        logger.info(f"FireDetectionSystem initialized (sensitivity={self.profile.name})")

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self.running:
            logger.warning("Detection already running")
            return

        self.frame_history.clear()
        self.confirmer.reset()
        self.last_result = None
        self.running = True
        logger.info("Detection started")

    def stop(self) -> None:
        if not self.running:
            return

        self.running = False
        self.frame_history.clear()
        self.confirmer.reset()
        self.alerts.reset()
        self.last_result = None
        logger.info("Detection stopped")

    def silence(self) -> None:
        self.alerts.silence()

    def set_sensitivity(self, level: int) -> SensitivityProfile:
        """Select a sensitivity level (clamped to 1..3); applies next cycle"""
        self.profile = profile_for(level, self.config.profiles)
        self.config.sensitivity = int(self.profile.level)
        logger.info(f"Sensitivity set to {self.profile.name}")
        return self.profile

    def set_sound_enabled(self, enabled: bool) -> None:
        self.alerts.set_sound_enabled(enabled)

    def set_flash_enabled(self, enabled: bool) -> None:
        self.alerts.set_flash_enabled(enabled)

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    def step(self) -> Optional[ConfidenceResult]:
        """
        Run one detection cycle

        Returns:
            This cycle's ConfidenceResult, or None if the cycle was skipped
        """
        self.timers.run_due()

        if not self.running:
            return None

        frame = self.frame_source.get_frame()
        if frame is None:
            self.skipped_frames += 1
            return None
        if not frame.is_valid:
            logger.warning(f"Skipping invalid frame ({frame.width}x{frame.height})")
            self.skipped_frames += 1
            return None

        result = self.analyzer.analyze(
            frame,
            self.profile,
            self.frame_history,
            now_ms=self.clock.now_ms(),
        )
        self.frame_count += 1
        self.last_result = result
        self.on_confidence.emit(result)

        present = (
            result.fire_confidence > self.config.presence_threshold
            or result.smoke_confidence > self.config.presence_threshold
        )
        self.alerts.update_hazard_status(present)

        for event in self.confirmer.update(result, self.profile):
            self._handle_detection(event)

        return result

    def run(self, max_cycles: Optional[int] = None) -> int:
        """
        Blocking loop at the configured cadence

        Args:
            max_cycles: Stop after this many cycles (if None, runs until
                stop() or until a finite frame source is exhausted)

        Returns:
            Number of cycles executed
        """
        if not self.running:
            self.start()

        interval = self.config.cycle_interval_ms / 1000.0
        cycles = 0

        while self.running and (max_cycles is None or cycles < max_cycles):
            started = time.monotonic()
            self.step()
            cycles += 1

            if self.source_exhausted:
                logger.info("Frame source exhausted, stopping loop")
                break

            elapsed = time.monotonic() - started
            if elapsed < interval:
                time.sleep(interval - elapsed)

        return cycles

    @property
    def source_exhausted(self) -> bool:
        """True once a finite frame source has no more frames"""
        return bool(getattr(self.frame_source, "exhausted", False))

    def _handle_detection(self, event: DetectionEvent) -> None:
        self._detections.appendleft(event)
        self._counts[event.category] += 1

        self.on_detection.emit(event)
        self.alerts.trigger(event.category, event.confidence_percent)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def history(self) -> List[DetectionEvent]:
        """Recent detections, newest first"""
        return list(self._detections)

    def clear_history(self) -> None:
        self._detections.clear()
        for category in self._counts:
            self._counts[category] = 0

    @property
    def stats(self) -> Dict[str, int]:
        return {category.value: count for category, count in self._counts.items()}

    @property
    def status(self) -> str:
        """UI status level: idle, danger, warning or safe"""
        if not self.running:
            return "idle"
        if self.alerts.phase is AlertPhase.ACTIVE:
            return "danger"
        if self.last_result is not None and self.last_result.max_confidence >= self.config.warning_threshold:
            return "warning"
        return "safe"

    def get_summary(self) -> Dict[str, Any]:
        """Summary of the current session"""
        state = self.alerts.state
        return {
            'running': self.running,
            'status': self.status,
            'sensitivity': self.profile.name,
            'frames_analyzed': self.frame_count,
            'frames_skipped': self.skipped_frames,
            'detections': self.stats,
            'alert_phase': state.phase.value,
            'current_alert': (
                state.current_alert.category.value if state.current_alert else None
            ),
        }
