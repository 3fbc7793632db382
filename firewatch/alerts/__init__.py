"""
Alerts Package
Alarm lifecycle state machine and output sinks
"""

from .alert_manager import (
    AlertManager,
    AlertPhase,
    AlertState,
    ActiveAlert,
    BeepPattern,
    BEEP_PATTERNS,
)

from .alarm_output import (
    AlarmOutput,
    LoggingAlarmOutput,
)

__all__ = [
    'AlertManager',
    'AlertPhase',
    'AlertState',
    'ActiveAlert',
    'BeepPattern',
    'BEEP_PATTERNS',
    'AlarmOutput',
    'LoggingAlarmOutput',
]
