"""
Pytest Configuration
Shared fixtures and configuration for all tests
"""

import pytest
import numpy as np
import sys
from pathlib import Path
import logging

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from firewatch.detection.types import Frame, FrameHistory
from firewatch.runtime.clock import ManualClock
from firewatch.runtime.timers import TimerQueue

# Configure logging for tests
logging.basicConfig(
    level=logging.WARNING,  # Reduce noise during tests
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


# ============================================
# HELPERS
# ============================================

FIRE_RGB = (255, 0, 0)
SMOKE_RGB = (128, 128, 128)
BACKGROUND_RGB = (0, 0, 0)


def solid_frame(rgb, width=100, height=100):
    """Frame filled with one color"""
    image = np.empty((height, width, 3), dtype=np.uint8)
    image[:, :] = rgb
    return Frame.from_rgb(image)


def banded_frame(rows, rgb=FIRE_RGB, width=100, height=100, background=BACKGROUND_RGB):
    """Frame whose first `rows` rows are `rgb`, rest background"""
    image = np.empty((height, width, 3), dtype=np.uint8)
    image[:, :] = background
    image[:rows, :] = rgb
    return Frame.from_rgb(image)


class RecordingAlarmOutput:
    """Alarm output that records every call"""

    def __init__(self, clock=None):
        self.clock = clock
        self.beeps = []
        self.flash_changes = []
        self.stop_calls = 0

    def _now(self):
        return self.clock.now_ms() if self.clock is not None else None

    def beep(self, frequency_hz, duration_ms):
        self.beeps.append((self._now(), frequency_hz, duration_ms))

    def stop_sound(self):
        self.stop_calls += 1

    def set_flash(self, active):
        self.flash_changes.append((self._now(), active))


# ============================================
# GLOBAL FIXTURES
# ============================================

@pytest.fixture
def clock():
    """Virtual clock starting at t=0"""
    return ManualClock()


@pytest.fixture
def timers(clock):
    """Timer queue on the virtual clock"""
    return TimerQueue(clock)


@pytest.fixture
def alarm_output(clock):
    """Recording alarm output"""
    return RecordingAlarmOutput(clock)


@pytest.fixture
def history():
    """Empty frame history"""
    return FrameHistory()


@pytest.fixture
def fire_frame():
    """Solid bright red frame"""
    return solid_frame(FIRE_RGB)


@pytest.fixture
def smoke_frame():
    """Solid mid-gray frame"""
    return solid_frame(SMOKE_RGB)


@pytest.fixture
def empty_frame():
    """Solid black frame (neither fire nor smoke)"""
    return solid_frame(BACKGROUND_RGB)


# ============================================
# TEST MARKERS
# ============================================

def pytest_configure(config):
    """Configure custom markers"""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


# ============================================
# TEST COLLECTION
# ============================================

def pytest_collection_modifyitems(config, items):
    """Modify test collection"""
    for item in items:
        if "system" in str(item.fspath):
            item.add_marker(pytest.mark.integration)

        if "performance" in item.name.lower():
            item.add_marker(pytest.mark.slow)
