"""
Alert Lifecycle Manager
Idle -> Active -> Silenced state machine driving the alarm cadence,
trigger cooldown, manual silence and auto-stop
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Union

from ..detection.types import HazardCategory
from ..runtime.events import EventChannel
from ..runtime.timers import SingleShotTimer, TimerQueue
from .alarm_output import AlarmOutput, LoggingAlarmOutput

logger = logging.getLogger(__name__)


class AlertPhase(Enum):
    """Alarm lifecycle phases"""
    IDLE = "idle"
    ACTIVE = "active"
    SILENCED = "silenced"


@dataclass(frozen=True)
class BeepPattern:
    """Tone and rhythm of the repeating alarm"""
    frequency_hz: int
    duration_ms: int
    gap_ms: int

    @property
    def period_ms(self) -> int:
        return self.duration_ms + self.gap_ms


BEEP_PATTERNS: Dict[HazardCategory, BeepPattern] = {
    HazardCategory.FIRE: BeepPattern(frequency_hz=880, duration_ms=200, gap_ms=100),
    HazardCategory.SMOKE: BeepPattern(frequency_hz=660, duration_ms=300, gap_ms=200),
}

FLASH_PULSE_MS = 500
FLASH_GAP_MS = 100


@dataclass(frozen=True)
class ActiveAlert:
    """The alert currently owning the alarm"""
    category: HazardCategory
    confidence: float
    timestamp_ms: float


@dataclass(frozen=True)
class AlertState:
    """Snapshot of the manager's state"""
    phase: AlertPhase
    current_alert: Optional[ActiveAlert]
    last_trigger_ms: Optional[float]
    last_hazard_seen_ms: Optional[float]
    sound_enabled: bool
    flash_enabled: bool


class AlertManager:
    """
    Alarm state machine.

    All deferred behaviour (beep cadence, flash pulses, auto-stop) runs on
    single-shot timers from the injected TimerQueue, so the whole machine
    can be driven by a virtual clock.
    """

    def __init__(
        self,
        timers: TimerQueue,
        output: Optional[AlarmOutput] = None,
        cooldown_ms: float = 3000.0,
        auto_stop_ms: float = 10000.0,
        sound_enabled: bool = True,
        flash_enabled: bool = True
    ):
        """
        Initialize alert manager

        Args:
            timers: Queue used for every deferred action
            output: Audio/visual sink (logs by default)
            cooldown_ms: Minimum time between accepted triggers, any category
            auto_stop_ms: Hazard absence after which the alarm silences itself
            sound_enabled: Play the beep cadence on trigger
            flash_enabled: Pulse the visual flash on trigger
        """
        self.timers = timers
        self.clock = timers.clock
        self.output = output if output is not None else LoggingAlarmOutput()
        self.cooldown_ms = cooldown_ms
        self.auto_stop_ms = auto_stop_ms

        self._phase = AlertPhase.IDLE
        self._current_alert: Optional[ActiveAlert] = None
        self._last_trigger_ms: Optional[float] = None
        self._last_hazard_seen_ms: Optional[float] = None
        self._sound_enabled = sound_enabled
        self._flash_enabled = flash_enabled
        self._sounding = False

        self._auto_stop_timer = SingleShotTimer(timers, "auto-stop")
        self._beep_timer = SingleShotTimer(timers, "beep")
        self._flash_timer = SingleShotTimer(timers, "flash")

        self.on_phase_change = EventChannel("phase_change")
        self.on_auto_stop = EventChannel("auto_stop")

        logger.info(
            f"AlertManager initialized: cooldown={cooldown_ms:.0f}ms, "
            f"auto_stop={auto_stop_ms:.0f}ms"
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def phase(self) -> AlertPhase:
        return self._phase

    @property
    def current_alert(self) -> Optional[ActiveAlert]:
        return self._current_alert

    @property
    def is_silenced(self) -> bool:
        return self._phase is AlertPhase.SILENCED

    @property
    def is_sounding(self) -> bool:
        return self._sounding

    @property
    def auto_stop_pending(self) -> bool:
        return self._auto_stop_timer.pending

    @property
    def state(self) -> AlertState:
        return AlertState(
            phase=self._phase,
            current_alert=self._current_alert,
            last_trigger_ms=self._last_trigger_ms,
            last_hazard_seen_ms=self._last_hazard_seen_ms,
            sound_enabled=self._sound_enabled,
            flash_enabled=self._flash_enabled,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def trigger(self, category: Union[HazardCategory, str], confidence: float) -> bool:
        """
        Raise the alarm for a confirmed detection

        Args:
            category: 'fire' or 'smoke'
            confidence: Detection confidence (percent or fraction, stored as given)

        Returns:
            False when rejected by the cooldown, True otherwise
        """
        category = HazardCategory(category)
        now = self.clock.now_ms()

        if self._last_trigger_ms is not None and now - self._last_trigger_ms < self.cooldown_ms:
            logger.debug(
                f"Trigger for {category.value} rejected: "
                f"{now - self._last_trigger_ms:.0f}ms into {self.cooldown_ms:.0f}ms cooldown"
            )
            return False

        self._last_trigger_ms = now
        self._current_alert = ActiveAlert(category=category, confidence=confidence, timestamp_ms=now)
        self._set_phase(AlertPhase.ACTIVE)

        logger.warning(f"ALERT: {category.value.upper()} ({confidence})")

        if self._sound_enabled:
            self._start_sound(category)
        if self._flash_enabled:
            self._flash()

        return True

    def update_hazard_status(self, present: bool) -> None:
        """
        Report whether the hazard is still visible; call once per cycle

        Args:
            present: True if fire or smoke confidence is above the presence level
        """
        now = self.clock.now_ms()

        if present:
            self._last_hazard_seen_ms = now
            self._auto_stop_timer.cancel()
            return

        if self._phase is not AlertPhase.ACTIVE or self._auto_stop_timer.pending:
            return

        # Never seen since start: count absence from the trigger instead
        reference = self._last_hazard_seen_ms
        if reference is None:
            reference = self._last_trigger_ms if self._last_trigger_ms is not None else now

        remaining = max(0.0, self.auto_stop_ms - (now - reference))
        self._auto_stop_timer.arm(remaining, self._auto_stop)
        logger.debug(f"Auto-stop armed for {remaining:.0f}ms")

    def silence(self) -> None:
        """Acknowledge the alarm: stop sound and cancel auto-stop"""
        self._auto_stop_timer.cancel()
        self._stop_sound()
        self._flash_timer.cancel()
        self.output.set_flash(False)

        if self._phase is not AlertPhase.SILENCED:
            self._set_phase(AlertPhase.SILENCED)
            logger.info("Alarm silenced")

    def reset(self) -> None:
        """Cancel all timers, drop the current alert and return to Idle"""
        self._auto_stop_timer.cancel()
        self._stop_sound()
        self._flash_timer.cancel()
        self.output.set_flash(False)

        self._current_alert = None
        self._last_trigger_ms = None
        self._last_hazard_seen_ms = None
        self._set_phase(AlertPhase.IDLE)

    def set_sound_enabled(self, enabled: bool) -> None:
        """Toggle audio; turning it off stops the beeps without changing phase"""
        self._sound_enabled = enabled

        if not enabled:
            self._stop_sound()
        elif self._phase is AlertPhase.ACTIVE and self._current_alert is not None:
            self._start_sound(self._current_alert.category)

    def set_flash_enabled(self, enabled: bool) -> None:
        """Toggle the visual flash for future pulses"""
        self._flash_enabled = enabled

    @property
    def sound_enabled(self) -> bool:
        return self._sound_enabled

    @property
    def flash_enabled(self) -> bool:
        return self._flash_enabled

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _set_phase(self, phase: AlertPhase) -> None:
        previous = self._phase
        self._phase = phase
        if previous is not phase:
            self.on_phase_change.emit(previous, phase)

    def _auto_stop(self) -> None:
        logger.info("Auto-stopping alarm: hazard no longer detected")
        self.silence()
        self.on_auto_stop.emit()

    def _start_sound(self, category: HazardCategory) -> None:
        self._beep_timer.cancel()
        self._sounding = True
        self._beep(BEEP_PATTERNS[category])

    def _beep(self, pattern: BeepPattern) -> None:
        if not self._sounding or self._phase is not AlertPhase.ACTIVE:
            return

        self.output.beep(pattern.frequency_hz, pattern.duration_ms)
        self._beep_timer.arm(pattern.period_ms, lambda: self._beep(pattern))

    def _stop_sound(self) -> None:
        was_sounding = self._sounding
        self._sounding = False
        self._beep_timer.cancel()
        if was_sounding:
            self.output.stop_sound()

    def _flash(self) -> None:
        # pulse 1 on -> off at 500ms -> pulse 2 at 600ms if still allowed -> off at 1100ms
        self.output.set_flash(True)

        def first_off():
            self.output.set_flash(False)
            self._flash_timer.arm(FLASH_GAP_MS, second_on)

        def second_on():
            if self._flash_enabled and self._phase is AlertPhase.ACTIVE:
                self.output.set_flash(True)
                self._flash_timer.arm(FLASH_PULSE_MS, lambda: self.output.set_flash(False))

        self._flash_timer.arm(FLASH_PULSE_MS, first_off)
