"""Option Sets: validated, typed options for each effect.

Each effect accepts a small set of single-letter flags. The raw strings
collected by the command line parser are validated here; nothing downstream
re-checks ranges or formats. Each model maps its flags to fields through the
``FLAGS`` class variable so errors can name the flag the user typed.

Values that look like another flag (a leading ``-`` on something that is
not a number) are rejected outright.
"""

import re
from typing import ClassVar, Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from imfx.contracts import UsageError, ValidationError
from imfx.schemas.base import ImfxBaseModel


_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")

# "-u: message" or "-l/-u: message" raised by model validators
_FLAG_PREFIX_RE = re.compile(r"^(-[A-Za-z](?:/-[A-Za-z])*):\s*(.*)$", re.S)

_COLOR_RE = re.compile(
    r"^("
    r"[a-zA-Z]+[0-9]*"
    r"|#([0-9a-fA-F]{3}|[0-9a-fA-F]{4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8}|[0-9a-fA-F]{12}|[0-9a-fA-F]{16})"
    r"|(rgb|rgba|srgb|srgba|hsl|hsla|hsb|hsba|gray|graya|cmyk|cmyka)\(\s*[0-9.%,\s]+\)"
    r")$"
)

UNIT_MAX = {"8bit": 255.0, "percent": 100.0}

HUE_COLORS = ("red", "yellow", "green", "cyan", "blue", "magenta")


def reject_flag_like(value):
    """Refuse non-numeric strings with a leading dash."""
    if isinstance(value, str):
        text = value.strip()
        if text.startswith("-") and not _NUMBER_RE.match(text):
            raise ValueError(f"value {value!r} looks like a flag")
    return value


def parse_number_list(value, count: Optional[int] = None, sep: str = ","):
    """Split ``"a,b,c"`` into a tuple of floats."""
    if isinstance(value, str):
        reject_flag_like(value)
        parts = [p.strip() for p in value.split(sep)]
        if any(not _NUMBER_RE.match(p) for p in parts):
            raise ValueError(f"expected comma separated numbers, got {value!r}")
        value = tuple(float(p) for p in parts)
    if count is not None and value is not None and len(value) != count:
        raise ValueError(f"expected {count} comma separated values, got {len(value)}")
    return value


def parse_color(value):
    """Accept engine colour specs: names, #hex, rgb()/hsl()/gray() forms."""
    if value is None:
        return value
    reject_flag_like(value)
    text = str(value).strip()
    if not _COLOR_RE.match(text):
        raise ValueError(f"invalid color specification {value!r}")
    return text


def _lower(value):
    if isinstance(value, str):
        reject_flag_like(value)
        return value.lower().strip()
    return value


class EffectOptions(ImfxBaseModel):
    """Base class for every Option Set.

    ``FLAGS`` maps each command-line flag to the field it fills.
    """

    FLAGS: ClassVar[dict[str, str]] = {}

    @field_validator("*", mode="before")
    @classmethod
    def no_flag_like_values(cls, v):
        """Applies to every field before type coercion."""
        return reject_flag_like(v)

    @classmethod
    def flag_for(cls, field: str) -> str:
        """Command-line flag that fills ``field`` (the field name if none)."""
        for flag, name in cls.FLAGS.items():
            if name == field:
                return flag
        return field

    @classmethod
    def from_flags(cls, raw: dict) -> "EffectOptions":
        """Build the Option Set from ``{flag: raw string}``.

        Raises
        ------
        UsageError
            If a flag is not one this effect accepts.
        ValidationError
            If a value is malformed or out of range; names the flag.
        """
        values = {}
        for flag, value in raw.items():
            if flag not in cls.FLAGS:
                raise UsageError(f"unknown option {flag}")
            values[cls.FLAGS[flag]] = value
        try:
            return cls(**values)
        except PydanticValidationError as e:
            raise cls.explain(e) from None

    @classmethod
    def explain(cls, error: PydanticValidationError) -> ValidationError:
        """Translate the first pydantic error into a flag-named ValidationError."""
        first = error.errors()[0]
        message = first["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        loc = first.get("loc") or ()
        if loc:
            return ValidationError(cls.flag_for(str(loc[0])), message)
        m = _FLAG_PREFIX_RE.match(message)
        if m:
            return ValidationError(m.group(1), m.group(2))
        return ValidationError("options", message)


# =============================================================================
# Glow
# =============================================================================

class GlowOptions(EffectOptions):
    """Glow around regions selected by colour."""

    FLAGS: ClassVar[dict[str, str]] = {
        "-c": "color", "-f": "fuzz", "-p": "seed",
        "-b": "blur", "-s": "strength", "-g": "glow_color",
    }

    color: str = Field("white", description="color of the region to glow")
    fuzz: float = Field(10.0, ge=0, le=100, description="color match tolerance in percent")
    seed: Optional[tuple[int, int]] = Field(
        None, description="x,y seed for flood fill; whole image when omitted"
    )
    blur: float = Field(3.0, ge=0, le=100, description="glow spread (blur sigma) in pixels")
    strength: float = Field(100.0, ge=0, le=500, description="glow strength in percent")
    glow_color: Optional[str] = Field(None, description="glow color; defaults to -c")

    @field_validator("color", "glow_color", mode="before")
    @classmethod
    def check_color(cls, v):
        return parse_color(v)

    @field_validator("seed", mode="before")
    @classmethod
    def parse_seed(cls, v):
        """Accept ``"x,y"`` with non-negative integer coordinates."""
        if isinstance(v, str):
            values = parse_number_list(v, 2)
            if any(c < 0 or c != int(c) for c in values):
                raise ValueError(f"seed must be two non-negative integers, got {v!r}")
            return tuple(int(c) for c in values)
        return v


# =============================================================================
# Low / high / edge pass
# =============================================================================

class PassFilterOptions(EffectOptions):
    """Low, high or edge pass filtering blended with the original."""

    FLAGS: ClassVar[dict[str, str]] = {"-t": "type", "-r": "radius", "-m": "mix"}

    type: Literal["low", "high", "edge"] = Field("high", description="low, high or edge")
    radius: float = Field(5.0, gt=0, le=1000, description="filter radius in pixels")
    mix: float = Field(100.0, ge=0, le=100, description="percent of filtered image in the blend")

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        return _lower(v)


# =============================================================================
# Melt
# =============================================================================

class MeltOptions(EffectOptions):
    """Directional melt built from repeated 1-pixel lighten passes."""

    FLAGS: ClassVar[dict[str, str]] = {"-l": "length", "-d": "direction"}

    length: int = Field(10, ge=0, le=10000, description="number of melt passes")
    direction: Literal["down", "up", "left", "right"] = Field(
        "down", description="down, up, left or right"
    )

    @field_validator("direction", mode="before")
    @classmethod
    def normalize_direction(cls, v):
        return _lower(v)


# =============================================================================
# Polar-domain effects
# =============================================================================

class RipplesOptions(EffectOptions):
    """Ripples around the image centre."""

    FLAGS: ClassVar[dict[str, str]] = {"-a": "amplitude", "-n": "count"}

    amplitude: int = Field(4, ge=0, le=1000, description="ripple amplitude in pixels")
    count: int = Field(8, ge=1, le=1000, description="number of ripples around the circle")


class PolarBlurOptions(EffectOptions):
    """Angular (spin) or radial (zoom) blur through a polar round-trip."""

    FLAGS: ClassVar[dict[str, str]] = {"-t": "type", "-a": "amount"}

    type: Literal["angular", "radial"] = Field("angular", description="angular or radial")
    amount: float = Field(
        10.0, ge=0, description="angle in degrees (angular) or pixels (radial)"
    )

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        return _lower(v)

    @model_validator(mode="after")
    def angular_amount_is_an_angle(self):
        if self.type == "angular" and self.amount > 360:
            raise ValueError(f"-a: angular amount must be within 0..360 degrees, got {self.amount:g}")
        return self


# =============================================================================
# Range threshold
# =============================================================================

class RangeThreshOptions(EffectOptions):
    """Binary mask of pixels whose every channel lies within a range."""

    FLAGS: ClassVar[dict[str, str]] = {
        "-l": "lower", "-u": "upper", "-t": "units", "-c": "colorspace",
    }

    lower: Optional[tuple[float, float, float]] = Field(
        None, description="c1,c2,c3 lower bounds; defaults to 0,0,0"
    )
    upper: Optional[tuple[float, float, float]] = Field(
        None, description="c1,c2,c3 upper bounds; defaults to the unit maximum"
    )
    units: Literal["8bit", "percent"] = Field("8bit", description="8bit or percent")
    colorspace: Literal["rgb", "hsl", "hsb", "hcl", "lab", "ycbcr", "xyz"] = Field(
        "rgb", description="colorspace the bounds refer to"
    )

    @field_validator("lower", "upper", mode="before")
    @classmethod
    def parse_triple(cls, v):
        return parse_number_list(v, 3)

    @field_validator("units", "colorspace", mode="before")
    @classmethod
    def normalize_name(cls, v):
        return _lower(v)

    @property
    def lower_values(self) -> tuple[float, float, float]:
        return self.lower if self.lower is not None else (0.0, 0.0, 0.0)

    @property
    def upper_values(self) -> tuple[float, float, float]:
        top = UNIT_MAX[self.units]
        return self.upper if self.upper is not None else (top, top, top)

    @model_validator(mode="after")
    def check_bounds(self):
        top = UNIT_MAX[self.units]
        for lo, hi in zip(self.lower_values, self.upper_values):
            if not (0 <= lo <= top and 0 <= hi <= top):
                raise ValueError(f"-l/-u: bounds must be within 0..{top:g} for {self.units} units")
            if lo > hi:
                raise ValueError(f"-l/-u: lower bound {lo:g} exceeds upper bound {hi:g}")
        return self


# =============================================================================
# Endpoints and curves
# =============================================================================

class EndpointsOptions(EffectOptions):
    """Linear tone mapping through two endpoints."""

    FLAGS: ClassVar[dict[str, str]] = {"-l": "low", "-u": "high", "-t": "units"}

    low: tuple[float, float] = Field((0.0, 0.0), description="in,out for the low endpoint")
    high: Optional[tuple[float, float]] = Field(
        None, description="in,out for the high endpoint; defaults to max,max"
    )
    units: Literal["8bit", "percent"] = Field("8bit", description="8bit or percent")

    @field_validator("low", "high", mode="before")
    @classmethod
    def parse_point(cls, v):
        return parse_number_list(v, 2)

    @field_validator("units", mode="before")
    @classmethod
    def normalize_units(cls, v):
        return _lower(v)

    @property
    def high_point(self) -> tuple[float, float]:
        top = UNIT_MAX[self.units]
        return self.high if self.high is not None else (top, top)

    @model_validator(mode="after")
    def check_range(self):
        top = UNIT_MAX[self.units]
        for value in (*self.low, *self.high_point):
            if not 0 <= value <= top:
                raise ValueError(f"-l/-u: endpoint values must be within 0..{top:g} for {self.units} units")
        return self


class CurvesOptions(EffectOptions):
    """Tone curve through up to eight control points."""

    FLAGS: ClassVar[dict[str, str]] = {"-p": "points", "-t": "units"}

    points: tuple[tuple[float, float], ...] = Field(
        description='control points "x1,y1 x2,y2 ..."'
    )
    units: Literal["8bit", "percent"] = Field("8bit", description="8bit or percent")

    @field_validator("points", mode="before")
    @classmethod
    def parse_points(cls, v):
        if isinstance(v, str):
            chunks = [c for c in re.split(r"[\s;]+", v.strip()) if c]
            return tuple(parse_number_list(c, 2) for c in chunks)
        return v

    @field_validator("units", mode="before")
    @classmethod
    def normalize_units(cls, v):
        return _lower(v)

    @model_validator(mode="after")
    def check_points(self):
        if not 2 <= len(self.points) <= 8:
            raise ValueError(f"-p: need 2 to 8 control points, got {len(self.points)}")
        top = UNIT_MAX[self.units]
        for x, y in self.points:
            if not (0 <= x <= top and 0 <= y <= top):
                raise ValueError(f"-p: control points must be within 0..{top:g} for {self.units} units")
        return self


# =============================================================================
# Colour adjustments
# =============================================================================

class HueOptions(EffectOptions):
    """Hue rotation with lightness and saturation changes.

    Relative mode shifts the hue by ``hue`` (percent or degrees, both within
    -100..100). Absolute mode moves pixels of anchor ``color`` to the target
    hue ``hue`` (0..360 degrees or 0..100 percent).
    """

    FLAGS: ClassVar[dict[str, str]] = {
        "-u": "hue", "-t": "units", "-l": "lightness",
        "-s": "saturation", "-m": "mode", "-c": "color",
    }

    hue: float = Field(0.0, description="hue shift, or target hue in absolute mode")
    units: Literal["percent", "degrees"] = Field("percent", description="percent or degrees")
    lightness: float = Field(0.0, ge=-100, le=100, description="lightness change in percent")
    saturation: float = Field(0.0, ge=-100, le=100, description="saturation change in percent")
    mode: Literal["relative", "absolute"] = Field("relative", description="relative or absolute")
    color: Optional[Literal["red", "yellow", "green", "cyan", "blue", "magenta"]] = Field(
        None, description="anchor color for absolute mode"
    )

    @field_validator("units", "mode", "color", mode="before")
    @classmethod
    def normalize_name(cls, v):
        return _lower(v)

    @model_validator(mode="after")
    def check_hue(self):
        if self.mode == "relative":
            if not -100 <= self.hue <= 100:
                raise ValueError(f"-u: relative hue must be within -100..100 {self.units}, got {self.hue:g}")
        else:
            if self.color is None:
                raise ValueError("-c: absolute mode requires an anchor color")
            top = 360.0 if self.units == "degrees" else 100.0
            if not 0 <= self.hue <= top:
                raise ValueError(f"-u: absolute hue must be within 0..{top:g} {self.units}, got {self.hue:g}")
        return self


class VibranceOptions(EffectOptions):
    """Chroma-selective contrast (vibrance)."""

    FLAGS: ClassVar[dict[str, str]] = {"-a": "amount"}

    amount: float = Field(3.0, ge=-10, le=10, description="vibrance amount; negative mutes")


# =============================================================================
# Tiling
# =============================================================================

class TileOptions(EffectOptions):
    """Tile the image (optionally mirrored or rotated) to a given size."""

    FLAGS: ClassVar[dict[str, str]] = {"-d": "size", "-a": "arrangement"}

    size: tuple[int, int] = Field(description="output dimensions WxH")
    arrangement: Literal["normal", "mirror", "rotate"] = Field(
        "normal", description="normal, mirror or rotate"
    )

    @field_validator("size", mode="before")
    @classmethod
    def parse_size(cls, v):
        """Accept ``"WxH"`` with positive integers."""
        if isinstance(v, str):
            m = re.fullmatch(r"\s*(\d+)\s*[xX]\s*(\d+)\s*", v)
            if not m:
                raise ValueError(f"invalid size {v!r} (expected WxH)")
            v = (int(m.group(1)), int(m.group(2)))
        if v is not None and (v[0] <= 0 or v[1] <= 0):
            raise ValueError("W and H must be > 0")
        return v

    @field_validator("arrangement", mode="before")
    @classmethod
    def normalize_arrangement(cls, v):
        return _lower(v)
