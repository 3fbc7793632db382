"""
Alarm Outputs
Sinks for the audible beep cadence and the visual flash
"""

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class AlarmOutput(Protocol):
    """Audio/visual hardware driven by the alert manager"""

    def beep(self, frequency_hz: int, duration_ms: int) -> None: ...

    def stop_sound(self) -> None: ...

    def set_flash(self, active: bool) -> None: ...


class LoggingAlarmOutput:
    """Default output: writes alarm activity to the log"""

    def __init__(self):
        self.beeps = 0
        self.flash_active = False

    def beep(self, frequency_hz: int, duration_ms: int) -> None:
        self.beeps += 1
        logger.debug(f"BEEP {frequency_hz}Hz {duration_ms}ms")

    def stop_sound(self) -> None:
        logger.debug("Alarm sound stopped")

    def set_flash(self, active: bool) -> None:
        if active != self.flash_active:
            logger.debug(f"Flash {'on' if active else 'off'}")
        self.flash_active = active
