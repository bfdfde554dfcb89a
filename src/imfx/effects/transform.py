"""Parameter transformer: user units -> engine parameters.

Every function here is pure. Given the same validated options (and image
geometry, where an effect depends on it) they return the same frozen
parameter record. Values the engine cannot accept raise ParameterError
before anything is executed.

Unit conventions
----------------
- ``-modulate`` takes 100 as "no change"; user percentages are offsets
  from that, so ``native = 100 + percent``.
- Hue in the modulate scale spans 0..200 for -180..+180 degrees, i.e.
  ``native = 100 + 200 * degrees / 360``.
- A gaussian of radius r is treated as sigma = r / 3.
"""

import math
from typing import Optional

import numpy as np
from pydantic import ConfigDict

from imfx.contracts import ParameterError
from imfx.schemas.base import ImfxBaseModel
from imfx.schemas.options import (
    UNIT_MAX,
    CurvesOptions,
    EndpointsOptions,
    GlowOptions,
    HueOptions,
    MeltOptions,
    PassFilterOptions,
    PolarBlurOptions,
    RangeThreshOptions,
    RipplesOptions,
    TileOptions,
    VibranceOptions,
)

HUE_ANCHORS = {
    "red": 0.0,
    "yellow": 60.0,
    "green": 120.0,
    "cyan": 180.0,
    "blue": 240.0,
    "magenta": 300.0,
}

# Blur spread of a 1-D angular blur: angle (degrees) over the unrolled width, / 3
ANGULAR_DIVISOR = 1080.0
RADIAL_DIVISOR = 3.0

MELT_OFFSETS = {
    "down": (0, -1),
    "up": (0, 1),
    "right": (-1, 0),
    "left": (1, 0),
}


class DerivedParams(ImfxBaseModel):
    """Immutable result of a transformation."""
    model_config = ConfigDict(
        extra='forbid',
        frozen=True,
    )


def _require_finite(**values) -> None:
    for name, value in values.items():
        if value is None or not math.isfinite(value):
            raise ParameterError(f"derived {name} is not a finite number ({value})")


# =============================================================================
# Scalar conversions
# =============================================================================

def percent_to_native(percent: float) -> float:
    """Offset percentage -> modulate value (100 = unchanged)."""
    return 100.0 + percent


def degrees_to_native(degrees: float) -> float:
    """Hue rotation in degrees -> modulate hue value."""
    return 100.0 + 200.0 * degrees / 360.0


def wrap_native_hue(value: float) -> float:
    """Wrap a native hue offset into [-100, 100)."""
    return ((value + 100.0) % 200.0) - 100.0


def hue_anchor_offset(color: str) -> float:
    """Position of an anchor colour on the native +-100 hue scale.

    >>> hue_anchor_offset("green")
    66.66666666666667
    >>> hue_anchor_offset("blue")
    -66.66666666666666
    """
    return wrap_native_hue(200.0 * HUE_ANCHORS[color] / 360.0)


def radius_to_sigma(radius: float) -> float:
    return radius / 3.0


def to_percent(value: float, units: str) -> float:
    return value * 100.0 / UNIT_MAX[units]


def to_8bit(value: float, units: str) -> float:
    return value * 255.0 / UNIT_MAX[units]


# =============================================================================
# Hue / lightness / saturation
# =============================================================================

class ModulateParams(DerivedParams):
    brightness: float
    saturation: float
    hue: float


def modulate_params(opts: HueOptions) -> ModulateParams:
    """Derive ``-modulate B,S,H``.

    Relative mode rotates every hue by the given amount. Absolute mode
    rotates so that the anchor colour lands on the target hue.
    """
    brightness = percent_to_native(opts.lightness)
    saturation = percent_to_native(opts.saturation)

    if opts.mode == "relative":
        if opts.units == "percent":
            hue = percent_to_native(opts.hue)
        else:
            hue = degrees_to_native(opts.hue)
    else:
        if opts.units == "percent":
            target = 2.0 * opts.hue           # 100% of the circle = 200 native
        else:
            target = 200.0 * opts.hue / 360.0
        hue = 100.0 + wrap_native_hue(target - hue_anchor_offset(opts.color))

    _require_finite(brightness=brightness, saturation=saturation, hue=hue)
    if not 0.0 <= hue <= 200.0:
        raise ParameterError(f"modulate hue {hue:g} outside 0..200")
    if brightness < 0 or saturation < 0:
        raise ParameterError(f"modulate brightness/saturation must be >= 0 ({brightness:g}, {saturation:g})")
    return ModulateParams(brightness=brightness, saturation=saturation, hue=hue)


# =============================================================================
# Tone mapping
# =============================================================================

class LinearMap(DerivedParams):
    """``out = slope * in + intercept`` on normalized values."""
    slope: float
    intercept: float

    @property
    def coefficients(self) -> tuple[float, float]:
        return (self.slope, self.intercept)


def linear_map(low: tuple[float, float], high: tuple[float, float], units: str) -> LinearMap:
    """Line through two (in, out) endpoints.

    Both points are converted to percent first, so the intercept divided by
    100 lands on the engine's 0..1 scale.

    Raises
    ------
    ParameterError
        If both endpoints share the same input value.
    """
    low_in, low_out = (to_percent(v, units) for v in low)
    high_in, high_out = (to_percent(v, units) for v in high)

    if high_in == low_in:
        raise ParameterError(
            f"endpoints share the same input value ({low[0]:g}); slope is undefined"
        )

    slope = (high_out - low_out) / (high_in - low_in)
    intercept = (low_out - slope * low_in) / 100.0
    _require_finite(slope=slope, intercept=intercept)
    return LinearMap(slope=slope, intercept=intercept)


def endpoint_map(opts: EndpointsOptions) -> LinearMap:
    return linear_map(opts.low, opts.high_point, opts.units)


class CurveParams(DerivedParams):
    """Polynomial coefficients, highest power first."""
    coefficients: tuple[float, ...]


def curve_coefficients(opts: CurvesOptions) -> CurveParams:
    """Interpolating polynomial through the control points.

    Degree is one less than the number of points, so the curve passes
    through every point exactly.
    """
    top = UNIT_MAX[opts.units]
    xs = np.array([p[0] for p in opts.points], dtype=float) / top
    ys = np.array([p[1] for p in opts.points], dtype=float) / top

    if len(np.unique(xs)) != len(xs):
        raise ParameterError("curve control points must have distinct input values")

    coefficients = np.polyfit(xs, ys, deg=len(xs) - 1)
    if not np.all(np.isfinite(coefficients)):
        raise ParameterError("curve fit did not produce finite coefficients")

    # round away fitting noise and negative zeros
    cleaned = tuple(float(round(c, 12)) + 0.0 for c in coefficients)
    return CurveParams(coefficients=cleaned)


# =============================================================================
# Spatial filters
# =============================================================================

class PassFilterParams(DerivedParams):
    type: str
    sigma: float
    mix: float


def pass_filter_params(opts: PassFilterOptions) -> PassFilterParams:
    sigma = radius_to_sigma(opts.radius)
    _require_finite(sigma=sigma)
    return PassFilterParams(type=opts.type, sigma=sigma, mix=opts.mix)


class GlowParams(DerivedParams):
    color: str
    glow_color: str
    fuzz: float
    sigma: float
    scale: float
    seed: Optional[tuple[int, int]]


def glow_params(opts: GlowOptions, width: int, height: int) -> GlowParams:
    if opts.seed is not None:
        x, y = opts.seed
        if x >= width or y >= height:
            raise ParameterError(f"seed {x},{y} lies outside the {width}x{height} image")
    return GlowParams(
        color=opts.color,
        glow_color=opts.glow_color or opts.color,
        fuzz=opts.fuzz,
        sigma=opts.blur,
        scale=opts.strength / 100.0,
        seed=opts.seed,
    )


class MeltParams(DerivedParams):
    iterations: int
    viewport: str


def melt_params(opts: MeltOptions, width: int, height: int) -> MeltParams:
    """Viewport that samples the image shifted one pixel against the melt."""
    dx, dy = MELT_OFFSETS[opts.direction]
    return MeltParams(iterations=opts.length, viewport=f"{width}x{height}{dx:+d}{dy:+d}")


# =============================================================================
# Polar-domain effects
# =============================================================================

class PolarBlurParams(DerivedParams):
    sigma: float
    angle: float  # 0 = along the angle axis, 90 = along the radius axis


def polar_blur_params(opts: PolarBlurOptions, width: int) -> PolarBlurParams:
    """Gaussian sigma for a blur in the unrolled polar image.

    Radial: ``sigma = amount / 3`` along the radius axis.
    Angular: the angle covers ``amount / 360`` of the unrolled width, so
    ``sigma = amount * width / 1080`` along the angle axis.
    """
    if opts.type == "radial":
        sigma, angle = opts.amount / RADIAL_DIVISOR, 90.0
    else:
        sigma, angle = opts.amount * width / ANGULAR_DIVISOR, 0.0
    _require_finite(sigma=sigma)
    return PolarBlurParams(sigma=sigma, angle=angle)


class RippleParams(DerivedParams):
    amplitude: int
    wavelength: float


def ripple_params(opts: RipplesOptions, width: int, height: int) -> RippleParams:
    wavelength = width / opts.count
    if wavelength < 2:
        raise ParameterError(
            f"{opts.count} ripples do not fit in a {width} pixel wide image"
        )
    if opts.amplitude >= height:
        raise ParameterError(f"amplitude {opts.amplitude} must be smaller than the image height {height}")
    return RippleParams(amplitude=opts.amplitude, wavelength=wavelength)


# =============================================================================
# Range threshold
# =============================================================================

class RangeBounds(DerivedParams):
    """Normalized per-channel bounds, widened by half an 8-bit level."""
    low: tuple[float, float, float]
    high: tuple[float, float, float]
    colorspace: str


def range_bounds(opts: RangeThreshOptions) -> RangeBounds:
    lows, highs = [], []
    for lo, hi in zip(opts.lower_values, opts.upper_values):
        lo8, hi8 = to_8bit(lo, opts.units), to_8bit(hi, opts.units)
        lows.append(max(0.0, (lo8 - 0.5) / 255.0))
        highs.append((hi8 + 0.5) / 255.0)
    return RangeBounds(low=tuple(lows), high=tuple(highs), colorspace=opts.colorspace)


# =============================================================================
# Colour
# =============================================================================

class VibranceParams(DerivedParams):
    amount: float
    channel: str = "G"


def vibrance_params(opts: VibranceOptions) -> VibranceParams:
    return VibranceParams(amount=opts.amount)


class TileParams(DerivedParams):
    width: int
    height: int
    arrangement: str


def tile_params(opts: TileOptions) -> TileParams:
    width, height = opts.size
    return TileParams(width=width, height=height, arrangement=opts.arrangement)
