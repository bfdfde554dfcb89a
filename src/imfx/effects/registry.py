"""Effect registry.

Each effect ties together its Option Set, its parameter transformation and
its composer. The command line front end and the runner look effects up
here by name; adding an effect means adding one entry.
"""

import dataclasses
import logging
from typing import Any, Callable

from imfx.contracts import UsageError
from imfx.effects import composers, transform
from imfx.pipeline.stager import StagedImage
from imfx.pipeline.steps import Pipeline
from imfx.schemas.options import (
    CurvesOptions,
    EffectOptions,
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

__all__ = ['Effect', 'EFFECTS', 'get_effect', 'effect_names']

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Effect:
    """One effect family.

    Attributes
    ----------
    name : str
        Command name (``imfx <name>`` / ``imfx-<name>``).
    options : type of EffectOptions
        Option Set that validates the user's flags.
    derive : callable
        ``derive(options, staged) -> DerivedParams``.
    composer : callable
        ``composer(params, staged) -> Pipeline``.
    summary : str
        One line shown by ``imfx list`` and in usage text.
    """
    name: str
    options: type
    derive: Callable[[Any, StagedImage], Any]
    composer: Callable[[Any, StagedImage], Pipeline]
    summary: str

    def validate(self, raw) -> EffectOptions:
        """Option Set from raw ``{flag: value}`` pairs, or a pre-built one."""
        if isinstance(raw, EffectOptions):
            if not isinstance(raw, self.options):
                raise UsageError(f"{type(raw).__name__} does not configure {self.name}")
            return raw
        return self.options.from_flags(raw)

    def compose(self, opts: EffectOptions, staged: StagedImage) -> Pipeline:
        params = self.derive(opts, staged)
        logger.debug("%s parameters: %s", self.name, params)
        pipeline = self.composer(params, staged)
        logger.debug("%s pipeline: %d steps", self.name, len(pipeline))
        return pipeline


_ENTRIES = (
    Effect(
        name="glow",
        options=GlowOptions,
        derive=lambda o, s: transform.glow_params(o, s.width, s.height),
        composer=composers.compose_glow,
        summary="make regions of a chosen colour glow",
    ),
    Effect(
        name="passfilter",
        options=PassFilterOptions,
        derive=lambda o, s: transform.pass_filter_params(o),
        composer=composers.compose_pass_filter,
        summary="low, high or edge pass filter",
    ),
    Effect(
        name="melt",
        options=MeltOptions,
        derive=lambda o, s: transform.melt_params(o, s.width, s.height),
        composer=composers.compose_melt,
        summary="smear bright pixels in one direction",
    ),
    Effect(
        name="ripples",
        options=RipplesOptions,
        derive=lambda o, s: transform.ripple_params(o, s.width, s.height),
        composer=composers.compose_ripples,
        summary="concentric ripples around the image centre",
    ),
    Effect(
        name="polarblur",
        options=PolarBlurOptions,
        derive=lambda o, s: transform.polar_blur_params(o, s.width),
        composer=composers.compose_polar_blur,
        summary="angular (rotational) or radial (zoom) blur",
    ),
    Effect(
        name="rangethresh",
        options=RangeThreshOptions,
        derive=lambda o, s: transform.range_bounds(o),
        composer=composers.compose_range_threshold,
        summary="binary mask of pixels inside per-channel ranges",
    ),
    Effect(
        name="endpoints",
        options=EndpointsOptions,
        derive=lambda o, s: transform.endpoint_map(o),
        composer=composers.compose_endpoints,
        summary="linear tone map through two endpoints",
    ),
    Effect(
        name="curves",
        options=CurvesOptions,
        derive=lambda o, s: transform.curve_coefficients(o),
        composer=composers.compose_curves,
        summary="polynomial tone curve through control points",
    ),
    Effect(
        name="hue",
        options=HueOptions,
        derive=lambda o, s: transform.modulate_params(o),
        composer=composers.compose_hue,
        summary="shift hue, lightness and saturation",
    ),
    Effect(
        name="vibrance",
        options=VibranceOptions,
        derive=lambda o, s: transform.vibrance_params(o),
        composer=composers.compose_vibrance,
        summary="boost or mute low-saturation colours",
    ),
    Effect(
        name="tile",
        options=TileOptions,
        derive=lambda o, s: transform.tile_params(o),
        composer=composers.compose_tile,
        summary="tile the image onto a larger canvas",
    ),
)

EFFECTS: dict[str, Effect] = {e.name: e for e in _ENTRIES}


def effect_names() -> list[str]:
    return sorted(EFFECTS)


def get_effect(name: str) -> Effect:
    """Look up an effect by name.

    Raises
    ------
    UsageError
        If no effect has that name.
    """
    try:
        return EFFECTS[name]
    except KeyError:
        raise UsageError(f"unknown effect '{name}' (choose from {', '.join(effect_names())})")
