"""
Runtime Package
Clocks, timers and event channels; the detection loop and frame sources
live in their own modules (firewatch.runtime.detection_loop / frame_source)
"""

from .clock import Clock, ManualClock, MonotonicClock
from .timers import SingleShotTimer, TimerHandle, TimerQueue
from .events import EventChannel, Subscription

__all__ = [
    'Clock',
    'ManualClock',
    'MonotonicClock',
    'TimerQueue',
    'TimerHandle',
    'SingleShotTimer',
    'EventChannel',
    'Subscription',
]
