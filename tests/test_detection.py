"""
Detection Tests
Tests for color classification, frame analysis and temporal confirmation
"""

import pytest
import numpy as np

from firewatch.detection.color_classifier import rgb_to_hsl, classify_fire, classify_smoke
from firewatch.detection.frame_analyzer import FrameAnalyzer, draw_regions
from firewatch.detection.confirmation import DetectionConfirmer
from firewatch.detection.types import (
    DEFAULT_PROFILES,
    ConfidenceResult,
    Frame,
    FrameHistory,
    FrameMetrics,
    HazardCategory,
    Region,
    SensitivityLevel,
    profile_for,
)

from tests.conftest import FIRE_RGB, SMOKE_RGB, banded_frame, solid_frame


# ============================================
# FIXTURES
# ============================================

@pytest.fixture
def analyzer():
    """Create frame analyzer with default tuning"""
    return FrameAnalyzer()


@pytest.fixture
def medium_profile():
    """Default (Medium) sensitivity profile"""
    return DEFAULT_PROFILES[SensitivityLevel.MEDIUM]


@pytest.fixture
def confirmer(clock, history):
    """Create confirmer on the virtual clock"""
    return DetectionConfirmer(clock=clock, history=history)


def fire_result(confidence=0.8, ratio=0.1):
    return ConfidenceResult(
        fire_confidence=confidence,
        smoke_confidence=0.0,
        fire_pixel_ratio=ratio,
        smoke_pixel_ratio=0.0,
    )


def smoke_result(confidence=0.9, ratio=0.3):
    return ConfidenceResult(
        fire_confidence=0.0,
        smoke_confidence=confidence,
        fire_pixel_ratio=0.0,
        smoke_pixel_ratio=ratio,
    )


QUIET_RESULT = ConfidenceResult(0.0, 0.0, 0.0, 0.0)


def fill_history(history, smoke_ratios):
    for i, ratio in enumerate(smoke_ratios):
        history.append(FrameMetrics(fire_ratio=0.0, smoke_ratio=ratio, timestamp_ms=i * 66.0))


# ============================================
# COLOR CLASSIFIER TESTS
# ============================================

class TestRgbToHsl:
    """Test RGB -> HSL conversion"""

    def test_pure_red(self):
        """Pure red is hue 0, fully saturated, half lightness"""
        h, s, l = rgb_to_hsl(255, 0, 0)

        assert h == pytest.approx(0.0)
        assert s == pytest.approx(100.0)
        assert l == pytest.approx(50.0)

    def test_primary_hues(self):
        """Green and blue land on 120 and 240 degrees"""
        assert rgb_to_hsl(0, 255, 0)[0] == pytest.approx(120.0)
        assert rgb_to_hsl(0, 0, 255)[0] == pytest.approx(240.0)

    def test_achromatic_has_zero_saturation(self):
        """Grays have hue 0 and saturation 0"""
        for value in (0, 64, 128, 200, 255):
            h, s, l = rgb_to_hsl(value, value, value)
            assert h == 0.0
            assert s == 0.0
            assert l == pytest.approx(value / 255 * 100)

    def test_mid_gray_lightness(self):
        """(128,128,128) is about 50.2% lightness"""
        _, _, l = rgb_to_hsl(128, 128, 128)
        assert l == pytest.approx(50.196, abs=0.01)

    def test_output_ranges(self):
        """All RGB triples map into valid HSL ranges"""
        rng = np.random.default_rng(7)
        rgb = rng.integers(0, 256, size=(3, 5000))
        h, s, l = rgb_to_hsl(rgb[0], rgb[1], rgb[2])

        assert h.min() >= 0.0 and h.max() < 360.0
        assert s.min() >= 0.0 and s.max() <= 100.0
        assert l.min() >= 0.0 and l.max() <= 100.0

    def test_scalar_returns_floats(self):
        """Scalar input gives plain floats"""
        result = rgb_to_hsl(10, 20, 30)
        assert all(isinstance(value, float) for value in result)

    def test_magenta_red_wraps_below_360(self):
        """Red with a touch of blue sits just under 360"""
        h, _, _ = rgb_to_hsl(255, 0, 20)
        assert 350.0 <= h < 360.0


class TestFireClassifier:
    """Test fire color rule"""

    def test_pure_red_is_fire(self):
        """Bright red qualifies"""
        assert classify_fire(255, 0, 0) is True

    def test_orange_flame_is_fire(self):
        """Saturated orange qualifies"""
        assert classify_fire(255, 120, 0) is True

    def test_wraparound_red_is_fire(self):
        """Hue >= 350 counts as red"""
        assert classify_fire(255, 0, 30) is True

    def test_yellow_is_not_fire(self):
        """g/r above 0.85 is excluded"""
        assert classify_fire(255, 230, 0) is False

    def test_dark_red_is_not_fire(self):
        """Red channel must exceed 120"""
        assert classify_fire(110, 0, 0) is False

    def test_skin_tone_is_not_fire(self):
        """Desaturated warm tones fail the saturation cue"""
        assert classify_fire(210, 150, 120) is False

    def test_gray_is_not_fire(self):
        """Achromatic pixels never qualify"""
        assert classify_fire(128, 128, 128) is False

    def test_blue_is_not_fire(self):
        """Red must dominate"""
        assert classify_fire(0, 0, 255) is False

    def test_vectorised(self):
        """Arrays give element-wise masks"""
        r = np.array([255, 110, 255])
        g = np.array([0, 0, 230])
        b = np.array([0, 0, 0])

        mask = classify_fire(r, g, b)

        assert mask.tolist() == [True, False, False]


class TestSmokeClassifier:
    """Test smoke color rule"""

    def test_mid_gray_is_smoke(self):
        """Pure gray mid-tone qualifies by color alone"""
        assert classify_smoke(*rgb_to_hsl(*SMOKE_RGB)) is True

    def test_dark_gray_is_not_smoke(self):
        """Lightness below 45% is excluded"""
        assert classify_smoke(*rgb_to_hsl(80, 80, 80)) is False

    def test_light_gray_is_not_smoke(self):
        """Lightness above 70% is excluded"""
        assert classify_smoke(*rgb_to_hsl(220, 220, 220)) is False

    def test_blue_gray_is_smoke(self):
        """Slight blue tint within saturation limit qualifies"""
        h, s, l = rgb_to_hsl(120, 128, 140)
        assert 5.0 <= s <= 12.0
        assert classify_smoke(h, s, l) is True

    def test_warm_gray_is_not_smoke(self):
        """Tinted gray outside the blue band is excluded"""
        h, s, l = rgb_to_hsl(140, 128, 118)
        assert s >= 5.0
        assert classify_smoke(h, s, l) is False

    def test_saturated_is_not_smoke(self):
        """Saturation above 12% is excluded"""
        assert classify_smoke(210.0, 30.0, 55.0) is False


# ============================================
# FRAME ANALYZER TESTS
# ============================================

class TestFrameAnalyzer:
    """Test frame analysis"""

    def test_solid_fire_frame(self, analyzer, medium_profile, history, fire_frame):
        """Full red frame saturates fire confidence"""
        result = analyzer.analyze(fire_frame, medium_profile, history, now_ms=0)

        assert result.fire_pixel_ratio == pytest.approx(1.0)
        assert result.fire_confidence == pytest.approx(1.0)
        assert result.smoke_confidence == 0.0

    def test_solid_smoke_frame(self, analyzer, medium_profile, history, smoke_frame):
        """Full gray frame saturates smoke confidence"""
        result = analyzer.analyze(smoke_frame, medium_profile, history, now_ms=0)

        assert result.smoke_pixel_ratio == pytest.approx(1.0)
        assert result.smoke_confidence == pytest.approx(1.0)
        assert result.fire_confidence == 0.0

    def test_fire_floor(self, analyzer, medium_profile):
        """Below 2% coverage, fire confidence is forced to zero"""
        below = analyzer.analyze(banded_frame(1), medium_profile, FrameHistory())
        at_floor = analyzer.analyze(banded_frame(2), medium_profile, FrameHistory())

        assert below.fire_pixel_ratio == pytest.approx(0.01)
        assert below.fire_confidence == 0.0
        assert at_floor.fire_pixel_ratio == pytest.approx(0.02)
        assert at_floor.fire_confidence == pytest.approx(0.16)

    def test_fire_linear_scaling(self, analyzer, medium_profile):
        """Above the floor, confidence is ratio * 8"""
        result = analyzer.analyze(banded_frame(10), medium_profile, FrameHistory())

        assert result.fire_pixel_ratio == pytest.approx(0.10)
        assert result.fire_confidence == pytest.approx(0.80)

    def test_smoke_floor(self, analyzer, medium_profile):
        """Smoke needs 5% coverage before scoring"""
        below = analyzer.analyze(banded_frame(4, SMOKE_RGB), medium_profile, FrameHistory())
        above = analyzer.analyze(banded_frame(10, SMOKE_RGB), medium_profile, FrameHistory())

        assert below.smoke_confidence == 0.0
        assert above.smoke_confidence == pytest.approx(0.5)

    def test_fire_confidence_monotonic(self, analyzer, medium_profile):
        """More fire pixels never lower confidence"""
        confidences = [
            analyzer.analyze(banded_frame(rows), medium_profile, FrameHistory()).fire_confidence
            for rows in range(0, 101, 5)
        ]

        assert confidences == sorted(confidences)
        assert all(0.0 <= c <= 1.0 for c in confidences)

    def test_ratios_in_unit_range(self, analyzer, medium_profile, history):
        """Ratios stay in [0, 1] on random frames"""
        rng = np.random.default_rng(3)
        image = rng.integers(0, 256, size=(64, 80, 3), dtype=np.uint8)
        result = analyzer.analyze(Frame.from_rgb(image), medium_profile, history)

        assert 0.0 <= result.fire_pixel_ratio <= 1.0
        assert 0.0 <= result.smoke_pixel_ratio <= 1.0
        assert 0.0 <= result.fire_confidence <= 1.0
        assert 0.0 <= result.smoke_confidence <= 1.0

    def test_history_bounded(self, analyzer, medium_profile, history, fire_frame):
        """History keeps only the 5 most recent frames"""
        for i in range(8):
            analyzer.analyze(fire_frame, medium_profile, history, now_ms=i * 66.0)

        assert len(history) == 5
        assert history[0].timestamp_ms == pytest.approx(3 * 66.0)
        assert history[-1].timestamp_ms == pytest.approx(7 * 66.0)

    def test_history_timestamp_from_clock(self, medium_profile, history, clock):
        """Without an explicit time, history is stamped from the analyzer's clock"""
        analyzer = FrameAnalyzer(clock=clock)
        clock.set(1234)

        result = analyzer.analyze(banded_frame(10), medium_profile, history)

        assert history[-1].timestamp_ms == 1234
        assert result.timestamp_ms == 1234

    def test_history_length_capped(self):
        """History can never be configured longer than 5 frames"""
        with pytest.raises(ValueError):
            FrameHistory(20)
        with pytest.raises(ValueError):
            FrameHistory(0)

    def test_history_records_ratios(self, analyzer, medium_profile, history):
        """Each analysis appends its ratios"""
        analyzer.analyze(banded_frame(10), medium_profile, history, now_ms=42.0)

        assert len(history) == 1
        assert history[0].fire_ratio == pytest.approx(0.1)
        assert history[0].smoke_ratio == 0.0
        assert history[0].timestamp_ms == 42.0

    def test_flicker_bonus_needs_three_frames(self, analyzer, history):
        """Fewer than 3 history entries give no bonus"""
        history.append(FrameMetrics(0.1, 0.0, 0.0))
        history.append(FrameMetrics(0.3, 0.0, 66.0))

        assert analyzer.flicker_bonus(history) == 0.0

    def test_flicker_boosts_fire_confidence(self, analyzer, medium_profile, history):
        """Flickering fire ratio boosts confidence by (1 + bonus * 0.5)"""
        for i, ratio in enumerate((0.1, 0.3, 0.1)):
            history.append(FrameMetrics(ratio, 0.0, i * 66.0))

        assert analyzer.flicker_bonus(history) == pytest.approx(1.0)

        result = analyzer.analyze(banded_frame(5), medium_profile, history)
        assert result.fire_confidence == pytest.approx(0.6)

    def test_static_fire_gets_no_boost(self, analyzer, medium_profile, history):
        """Constant fire ratio leaves confidence untouched"""
        for i in range(4):
            history.append(FrameMetrics(0.05, 0.0, i * 66.0))

        result = analyzer.analyze(banded_frame(5), medium_profile, history)
        assert result.fire_confidence == pytest.approx(0.4)

    def test_flicker_boost_clamped(self, analyzer, medium_profile, history):
        """Boosted confidence never exceeds 1"""
        for i, ratio in enumerate((0.1, 0.5, 0.1, 0.5)):
            history.append(FrameMetrics(ratio, 0.0, i * 66.0))

        result = analyzer.analyze(banded_frame(12), medium_profile, history)
        assert result.fire_confidence == 1.0

    def test_invalid_frame_rejected(self, analyzer, medium_profile, history):
        """Mismatched geometry raises and leaves history alone"""
        bad = Frame(width=10, height=10, pixels=np.zeros((5, 5, 4), dtype=np.uint8))

        with pytest.raises(ValueError):
            analyzer.analyze(bad, medium_profile, history)
        assert len(history) == 0


class TestClustering:
    """Test region clustering"""

    def test_solid_frame_clusters(self, analyzer, medium_profile, history, fire_frame):
        """100x100 red frame fills four 50px cells in first-seen order"""
        result = analyzer.analyze(fire_frame, medium_profile, history)

        assert result.fire_regions == [
            Region(0, 0, 80),
            Region(52, 0, 80),
            Region(0, 50, 80),
            Region(52, 50, 80),
        ]
        assert result.smoke_regions == []

    def test_sparse_cells_dropped(self, analyzer):
        """Cells need more than 2 members"""
        xs = np.array([0, 4, 100, 104, 108])
        ys = np.array([0, 0, 0, 0, 0])

        regions = analyzer.cluster_regions(xs, ys, width=200, height=10)

        assert regions == [Region(100, 0, 15)]

    def test_cluster_count_capped(self, analyzer, medium_profile, history):
        """At most 10 clusters per category"""
        frame = solid_frame(FIRE_RGB, width=1000, height=1000)
        result = analyzer.analyze(frame, medium_profile, history)

        assert len(result.fire_regions) == 10

    def test_empty_input(self, analyzer):
        """No coordinates, no clusters"""
        assert analyzer.cluster_regions(np.array([], dtype=int), np.array([], dtype=int), 10, 10) == []

    def test_draw_regions(self, analyzer, medium_profile, history, fire_frame):
        """Overlay keeps shape and does not touch the input"""
        result = analyzer.analyze(fire_frame, medium_profile, history)
        original = fire_frame.pixels.copy()

        annotated = draw_regions(fire_frame.pixels, result)

        assert annotated.shape == fire_frame.pixels.shape
        assert annotated.dtype == np.uint8
        assert np.array_equal(fire_frame.pixels, original)


# ============================================
# SENSITIVITY TESTS
# ============================================

class TestSensitivity:
    """Test sensitivity profiles"""

    def test_profiles_get_stricter_when_lower(self):
        """Low demands more than High"""
        low = DEFAULT_PROFILES[SensitivityLevel.LOW]
        high = DEFAULT_PROFILES[SensitivityLevel.HIGH]

        assert low.fire_threshold > high.fire_threshold
        assert low.smoke_threshold > high.smoke_threshold
        assert low.min_pixel_ratio > high.min_pixel_ratio

    def test_profile_for_clamps(self):
        """Out-of-range levels clamp to 1..3"""
        assert profile_for(0).level is SensitivityLevel.LOW
        assert profile_for(7).level is SensitivityLevel.HIGH
        assert profile_for(2).name == "Medium"


# ============================================
# CONFIRMATION TESTS
# ============================================

class TestDetectionConfirmer:
    """Test consecutive-frame confirmation and debounce"""

    def test_fire_needs_three_frames(self, confirmer, medium_profile):
        """Two qualifying frames are not enough, the third emits"""
        assert confirmer.update(fire_result(), medium_profile) == []
        assert confirmer.update(fire_result(), medium_profile) == []

        events = confirmer.update(fire_result(), medium_profile)

        assert len(events) == 1
        assert events[0].category is HazardCategory.FIRE
        assert events[0].confidence_percent == 80
        assert confirmer.fire_streak == 0

    def test_interrupted_streak(self, confirmer, medium_profile):
        """A miss decays the streak by one, so the event lands on the second hit after it"""
        early = []
        for result in (fire_result(), fire_result(), QUIET_RESULT):
            early.extend(confirmer.update(result, medium_profile))

        assert early == []
        assert confirmer.fire_streak == 1

        late = [len(confirmer.update(fire_result(), medium_profile)) for _ in range(3)]

        assert late == [0, 1, 0]

    def test_counter_never_negative(self, confirmer, medium_profile):
        """Misses decay the counter but floor at zero"""
        for _ in range(5):
            confirmer.update(QUIET_RESULT, medium_profile)

        assert confirmer.fire_streak == 0
        assert confirmer.smoke_streak == 0

    def test_below_threshold_does_not_count(self, confirmer, medium_profile):
        """Confidence under the profile threshold is a miss"""
        for _ in range(5):
            assert confirmer.update(fire_result(confidence=0.2), medium_profile) == []

    def test_below_min_pixel_ratio_does_not_count(self, confirmer, medium_profile):
        """Pixel ratio under the profile minimum is a miss"""
        for _ in range(5):
            assert confirmer.update(fire_result(ratio=0.004), medium_profile) == []

    def test_debounce_same_category(self, confirmer, clock, medium_profile):
        """Second fire event within 5000ms is suppressed, at 5000ms it fires"""
        for _ in range(3):
            first = confirmer.update(fire_result(), medium_profile)
        assert len(first) == 1

        clock.set(4999)
        suppressed = []
        for _ in range(3):
            suppressed.extend(confirmer.update(fire_result(), medium_profile))
        assert suppressed == []
        assert confirmer.fire_streak == 0

        clock.set(5000)
        for _ in range(3):
            second = confirmer.update(fire_result(), medium_profile)
        assert len(second) == 1
        assert second[0].timestamp_ms == 5000

    def test_smoke_requires_motion(self, confirmer, history, medium_profile):
        """Static smoke ratio never confirms"""
        fill_history(history, [0.3, 0.3, 0.3, 0.3, 0.3])

        for _ in range(10):
            assert confirmer.update(smoke_result(), medium_profile) == []

    def test_smoke_needs_five_frames(self, confirmer, history, medium_profile):
        """Billowing smoke confirms after fire streak + 2 frames"""
        fill_history(history, [0.2, 0.3, 0.2, 0.3, 0.2])
        assert confirmer.has_motion()

        for _ in range(4):
            assert confirmer.update(smoke_result(), medium_profile) == []

        events = confirmer.update(smoke_result(), medium_profile)

        assert len(events) == 1
        assert events[0].category is HazardCategory.SMOKE
        assert events[0].confidence_percent == 90

    def test_motion_needs_three_frames(self, confirmer, history):
        """Motion signal needs at least 3 history entries"""
        fill_history(history, [0.1, 0.3])
        assert not confirmer.has_motion()

    def test_debounce_is_per_category(self, confirmer, history, medium_profile):
        """A smoke event does not suppress a following fire event"""
        fill_history(history, [0.2, 0.3, 0.2, 0.3, 0.2])
        for _ in range(5):
            confirmer.update(smoke_result(), medium_profile)
        assert confirmer.last_detection.category is HazardCategory.SMOKE

        events = []
        for _ in range(3):
            events.extend(confirmer.update(fire_result(), medium_profile))
        assert [e.category for e in events] == [HazardCategory.FIRE]

    def test_confidence_percent_rounds_half_up(self, confirmer, medium_profile):
        """37.5% rounds up to 38"""
        for _ in range(3):
            events = confirmer.update(fire_result(confidence=0.375), medium_profile)
        assert events[0].confidence_percent == 38

    def test_reset(self, confirmer, medium_profile):
        """Reset clears counters and debounce memory"""
        confirmer.update(fire_result(), medium_profile)
        for _ in range(3):
            confirmer.update(fire_result(), medium_profile)
        confirmer.reset()

        assert confirmer.fire_streak == 0
        assert confirmer.last_detection is None
