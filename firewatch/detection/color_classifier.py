"""
Fire/Smoke Color Classifier
Pure per-pixel color rules, vectorised over numpy arrays
"""

from typing import Tuple, Union

import numpy as np

ArrayLike = Union[int, float, np.ndarray]

# Fire: saturated warm red/orange, red dominant, not yellow, not dark
FIRE_HUE_MAX = 45.0
FIRE_HUE_WRAP_MIN = 350.0
FIRE_SATURATION_MIN = 55.0
FIRE_LIGHTNESS_MIN = 40.0
FIRE_LIGHTNESS_MAX = 95.0
FIRE_GREEN_RED_RATIO_MAX = 0.85
FIRE_RED_MIN = 120

# Smoke: near-gray, mid lightness, pure gray or blue-gray tint
SMOKE_SATURATION_MAX = 12.0
SMOKE_PURE_GRAY_SATURATION = 5.0
SMOKE_LIGHTNESS_MIN = 45.0
SMOKE_LIGHTNESS_MAX = 70.0
SMOKE_HUE_MIN = 180.0
SMOKE_HUE_MAX = 260.0


def _is_scalar(*values: ArrayLike) -> bool:
    return all(np.ndim(value) == 0 for value in values)


def rgb_to_hsl(r: ArrayLike, g: ArrayLike, b: ArrayLike) -> Tuple:
    """
    Convert RGB (0-255) to HSL

    Args:
        r, g, b: Channel values as scalars or equally shaped arrays

    Returns:
        (hue in [0, 360), saturation in [0, 100], lightness in [0, 100]);
        floats for scalar input, float64 arrays otherwise
    """
    scalar = _is_scalar(r, g, b)

    r = np.asarray(r, dtype=np.float64) / 255.0
    g = np.asarray(g, dtype=np.float64) / 255.0
    b = np.asarray(b, dtype=np.float64) / 255.0

    cmax = np.maximum(np.maximum(r, g), b)
    cmin = np.minimum(np.minimum(r, g), b)
    delta = cmax - cmin
    lightness = (cmax + cmin) / 2.0

    chromatic = delta > 0
    # Denominators are only used where chromatic, so 1.0 keeps them finite
    safe_delta = np.where(chromatic, delta, 1.0)
    sat_denominator = np.where(lightness > 0.5, 2.0 - cmax - cmin, cmax + cmin)
    sat_denominator = np.where(chromatic, sat_denominator, 1.0)
    saturation = np.where(chromatic, delta / sat_denominator, 0.0)

    # Ties resolve red first, then green
    hue_sixths = np.select(
        [cmax == r, cmax == g],
        [
            np.mod((g - b) / safe_delta, 6.0),
            (b - r) / safe_delta + 2.0,
        ],
        default=(r - g) / safe_delta + 4.0,
    )
    hue = np.where(chromatic, hue_sixths * 60.0, 0.0)
    hue = np.where(hue >= 360.0, hue - 360.0, hue)

    saturation = np.clip(saturation * 100.0, 0.0, 100.0)
    lightness = np.clip(lightness * 100.0, 0.0, 100.0)

    if scalar:
        return float(hue), float(saturation), float(lightness)
    return hue, saturation, lightness


def classify_fire(r: ArrayLike, g: ArrayLike, b: ArrayLike):
    """
    Multi-cue fire color test.

    All cues must hold: warm hue (0-45 or wrap-around >= 350), saturation
    >= 55%, lightness 40-95%, red strictly dominant, g/r < 0.85 and
    red > 120.
    """
    scalar = _is_scalar(r, g, b)

    r = np.asarray(r, dtype=np.float64)
    g = np.asarray(g, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    hue, saturation, lightness = rgb_to_hsl(r, g, b)

    warm_hue = (hue <= FIRE_HUE_MAX) | (hue >= FIRE_HUE_WRAP_MIN)
    saturated = saturation >= FIRE_SATURATION_MIN
    lit = (lightness >= FIRE_LIGHTNESS_MIN) & (lightness <= FIRE_LIGHTNESS_MAX)
    red_dominant = (r > g) & (r > b)
    bright_red = r > FIRE_RED_MIN
    green_ratio = np.divide(g, r, out=np.ones_like(r), where=r > 0)
    not_yellow = green_ratio < FIRE_GREEN_RED_RATIO_MAX

    mask = warm_hue & saturated & lit & red_dominant & not_yellow & bright_red

    if scalar:
        return bool(mask)
    return mask


def classify_smoke(h: ArrayLike, s: ArrayLike, l: ArrayLike):
    """
    Strict gray test for smoke.

    Near-gray (saturation <= 12%), mid lightness (45-70%), and either pure
    gray (saturation < 5%) or a blue-gray hue (180-260).
    """
    scalar = _is_scalar(h, s, l)

    h = np.asarray(h, dtype=np.float64)
    s = np.asarray(s, dtype=np.float64)
    l = np.asarray(l, dtype=np.float64)

    low_saturation = s <= SMOKE_SATURATION_MAX
    mid_lightness = (l >= SMOKE_LIGHTNESS_MIN) & (l <= SMOKE_LIGHTNESS_MAX)
    gray_or_blue = (s < SMOKE_PURE_GRAY_SATURATION) | (
        (h >= SMOKE_HUE_MIN) & (h <= SMOKE_HUE_MAX)
    )

    mask = low_saturation & mid_lightness & gray_or_blue

    if scalar:
        return bool(mask)
    return mask
