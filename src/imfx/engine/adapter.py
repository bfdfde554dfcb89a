"""Render pipeline steps into engine command lines.

All version-dependent behaviour of the engine lives here. Composers emit
engine-neutral steps; an adapter chosen once from EngineCapabilities turns
each step into an argv. Callers never branch on the engine version.

Adapters
--------
IM7Adapter
    ImageMagick 7 (``magick``).
IM6Adapter
    ImageMagick 6.7.7-7 and later (non-linear sRGB is the default RGB).
LegacyIM6Adapter
    ImageMagick 6.4.2 up to 6.7.7-6 (``RGB`` meant sRGB, older operators).
"""

import logging
from typing import Sequence

from imfx.contracts import ExecutionError
from imfx.engine.capabilities import EngineCapabilities
from imfx.pipeline.steps import PipelineStep, StepKind

__all__ = ['EngineAdapter', 'IM7Adapter', 'IM6Adapter', 'LegacyIM6Adapter', 'select_adapter']

logger = logging.getLogger(__name__)

MINIMUM_VERSION = (6, 4, 2, 0)

# Logical colourspace names used by composers -> engine names
_COLORSPACES = {
    "hsl": "HSL",
    "hsb": "HSB",
    "hcl": "HCL",
    "lab": "Lab",
    "ycbcr": "YCbCr",
    "xyz": "XYZ",
    "gray": "Gray",
}

_FLIPS = {
    "horizontal": ["-flop"],
    "vertical": ["-flip"],
    "both": ["-flip", "-flop"],
}


def _num(value: float) -> str:
    """Compact, locale-free number formatting for engine arguments."""
    return f"{value:.10g}"


def _exact(value: float) -> str:
    """Shortest round-tripping form, for comparisons against pixel values."""
    return repr(float(value))


class EngineAdapter:
    """Base renderer: the behaviour shared by every supported engine.

    Parameters
    ----------
    caps : EngineCapabilities
        Detected engine.
    quiet : bool
        Pass ``-quiet`` so warnings about unknown metadata are suppressed.
    """

    name = "base"
    rgb_colorspace = "sRGB"
    interpolate_nearest = "Nearest"

    def __init__(self, caps: EngineCapabilities, quiet: bool = True):
        self.caps = caps
        self.quiet = quiet

    # ------------------------------------------------------------------
    # Version-dependent hooks
    # ------------------------------------------------------------------

    @property
    def chroma_colorspace(self) -> str:
        """Cylindrical colourspace whose second channel is chroma/saturation."""
        return "LCHuv"

    def selection_mask_tokens(self) -> list[str]:
        """Turn transparent (selected) pixels white and the rest black."""
        return ["-alpha", "extract", "-negate"]

    def normalize_tokens(self) -> list[str]:
        return ["-auto-level"]

    def grayscale_tokens(self) -> list[str]:
        return ["-colorspace", "Gray"]

    def colorspace_name(self, logical: str) -> str:
        if logical == "rgb":
            return self.rgb_colorspace
        if logical == "chroma":
            return self.chroma_colorspace
        return _COLORSPACES[logical]

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def command(self) -> list[str]:
        cmd = list(self.caps.convert)
        if self.quiet:
            cmd.append("-quiet")
        return cmd

    def stage_command(self, source: str, cached: str) -> list[str]:
        """Copy the first frame of ``source`` into the cache format."""
        return self.command() + [f"{source}[0]", "+repage", cached]

    def identify_command(self, path: str) -> list[str]:
        return list(self.caps.identify) + [
            "-ping", "-format", "%w|%h|%[channels]|%A|%[colorspace]\n", path
        ]

    def finalize_command(self, buffer: str, destination: str) -> list[str]:
        return self.command() + [buffer, destination]

    def render(self, step_: PipelineStep, inputs: Sequence[str], output: str) -> list[str]:
        """Render one step as a complete argv.

        Parameters
        ----------
        step_ : PipelineStep
            Step to render.
        inputs : sequence of str
            Files bound to ``step_.inputs``, same order.
        output : str
            File bound to ``step_.output``.
        """
        handler = getattr(self, f"_render_{step_.kind.value}", None)
        if handler is None:
            raise ExecutionError(f"{self.name} adapter cannot render {step_.kind.value}", step=step_)
        argv = self.command() + list(inputs) + handler(step_) + [output]
        logger.debug("Rendered %s: %s", step_.kind.value, " ".join(argv))
        return argv

    # ------------------------------------------------------------------
    # Operators
    # ------------------------------------------------------------------

    def _render_clone(self, s: PipelineStep) -> list[str]:
        return []

    def _render_blur(self, s: PipelineStep) -> list[str]:
        tokens = []
        if s.param("virtual_pixel"):
            tokens += ["-virtual-pixel", s.param("virtual_pixel")]
        sigma = _num(s.param("sigma"))
        angle = s.param("angle")
        if angle is None:
            return tokens + ["-blur", f"0x{sigma}"]
        # 1-D gaussian along ``angle`` (0 = horizontal, 90 = vertical)
        return tokens + ["-morphology", "Convolve", f"Blur:0x{sigma},{_num(angle)}"]

    def _render_composite(self, s: PipelineStep) -> list[str]:
        tokens = ["-compose", s.param("compose")]
        if s.param("args") is not None:
            tokens += ["-define", f"compose:args={s.param('args')}"]
        return tokens + ["-composite"]

    def _render_distort(self, s: PipelineStep) -> list[str]:
        tokens = ["-virtual-pixel", s.param("virtual_pixel", "edge")]
        if s.param("point"):
            tokens += ["-filter", "point", "-interpolate", self.interpolate_nearest]
        if s.param("viewport"):
            tokens += ["-define", f"distort:viewport={s.param('viewport')}"]
        return tokens + ["-distort", s.param("method"), s.param("args"), "+repage"]

    def _render_threshold(self, s: PipelineStep) -> list[str]:
        low, high = _exact(s.param("low")), _exact(s.param("high"))
        return ["-fx", f"(u>={low})*(u<={high})"]

    def _render_colorize(self, s: PipelineStep) -> list[str]:
        return ["-fill", s.param("color"), "-colorize", "100%"]

    def _render_crop(self, s: PipelineStep) -> list[str]:
        return ["-crop", s.param("geometry"), "+repage"]

    def _render_tile(self, s: PipelineStep) -> list[str]:
        size = f"{s.param('width')}x{s.param('height')}"
        return ["-write", "mpr:tile", "+delete", "-size", size, "tile:mpr:tile"]

    def _render_mask(self, s: PipelineStep) -> list[str]:
        tokens = ["-alpha", "set", "-fuzz", f"{_num(s.param('fuzz'))}%"]
        seed = s.param("seed")
        if seed is not None:
            x, y = seed
            tokens += ["-fill", "none", "-floodfill", f"+{x}+{y}", s.param("color")]
        else:
            tokens += ["-transparent", s.param("color")]
        return tokens + self.selection_mask_tokens()

    def _render_evaluate(self, s: PipelineStep) -> list[str]:
        return ["-evaluate", s.param("operator"), _num(s.param("value"))]

    def _render_modulate(self, s: PipelineStep) -> list[str]:
        values = ",".join(_num(s.param(k)) for k in ("brightness", "saturation", "hue"))
        return ["-modulate", values]

    def _render_function(self, s: PipelineStep) -> list[str]:
        coefficients = ",".join(_num(c) for c in s.param("coefficients"))
        return ["-function", s.param("name"), coefficients]

    def _render_separate(self, s: PipelineStep) -> list[str]:
        return ["-channel", s.param("channel"), "-separate", "+channel"]

    def _render_colorspace(self, s: PipelineStep) -> list[str]:
        return ["-colorspace", self.colorspace_name(s.param("colorspace"))]

    def _render_normalize(self, s: PipelineStep) -> list[str]:
        return self.normalize_tokens()

    def _render_grayscale(self, s: PipelineStep) -> list[str]:
        return self.grayscale_tokens()

    def _render_wave(self, s: PipelineStep) -> list[str]:
        amplitude = s.param("amplitude")
        # -wave grows the canvas by 2*amplitude rows; crop back to the input.
        # Rows near the centre sample above row 0, so replicate the edge.
        geometry = f"{s.param('width')}x{s.param('height')}+0+{amplitude}"
        return [
            "-virtual-pixel", "edge",
            "-wave", f"{amplitude}x{_num(s.param('wavelength'))}",
            "-crop", geometry, "+repage",
        ]

    def _render_sigmoidal(self, s: PipelineStep) -> list[str]:
        amount = s.param("amount")
        operator = "-sigmoidal-contrast" if amount > 0 else "+sigmoidal-contrast"
        return [
            "-colorspace", self.colorspace_name(s.param("colorspace")),
            "-channel", s.param("channel"),
            operator, f"{_num(abs(amount))},{_num(s.param('midpoint', 0))}%",
            "+channel",
            "-colorspace", self.rgb_colorspace,
        ]

    def _render_flip(self, s: PipelineStep) -> list[str]:
        return list(_FLIPS[s.param("axis")])

    def _render_append(self, s: PipelineStep) -> list[str]:
        return ["-append"] if s.param("vertical") else ["+append"]


class IM7Adapter(EngineAdapter):
    """ImageMagick 7: one ``magick`` binary, sRGB default, LCHuv available."""
    name = "im7"


class IM6Adapter(EngineAdapter):
    """ImageMagick 6.7.7-7 and later."""
    name = "im6"

    @property
    def chroma_colorspace(self) -> str:
        if self.caps.at_least(6, 8, 6, 4):
            return "LCHuv"
        return "HCL"


class LegacyIM6Adapter(EngineAdapter):
    """ImageMagick before 6.7.7-7, where ``RGB`` named the non-linear space."""
    name = "im6-legacy"
    rgb_colorspace = "RGB"
    interpolate_nearest = "integer"

    @property
    def chroma_colorspace(self) -> str:
        # HSL saturation stands in for chroma; still the second channel
        return "HSL"

    def selection_mask_tokens(self) -> list[str]:
        if self.caps.at_least(6, 4, 3, 7):
            return super().selection_mask_tokens()
        # the matte channel separates as opacity: transparent is already white
        return ["-channel", "matte", "-separate", "+channel"]

    def normalize_tokens(self) -> list[str]:
        if self.caps.at_least(6, 5, 5, 1):
            return super().normalize_tokens()
        return ["-contrast-stretch", "0"]


def select_adapter(caps: EngineCapabilities, quiet: bool = True) -> EngineAdapter:
    """Pick the adapter for the detected engine.

    Raises
    ------
    ExecutionError
        If the engine predates the oldest supported release.
    """
    if caps.major >= 7:
        adapter = IM7Adapter(caps, quiet)
    elif caps.at_least(6, 7, 7, 7):
        adapter = IM6Adapter(caps, quiet)
    elif caps.at_least(*MINIMUM_VERSION):
        adapter = LegacyIM6Adapter(caps, quiet)
    else:
        raise ExecutionError(
            f"ImageMagick {caps.version_string} is too old; "
            f"6.{MINIMUM_VERSION[1]}.{MINIMUM_VERSION[2]} or newer is required"
        )
    logger.debug("Using %s adapter for ImageMagick %s", adapter.name, caps.version_string)
    return adapter
