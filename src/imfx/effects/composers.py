"""Effect composers: derived parameters -> pipeline.

A composer is a pure function of its derived parameters and the staged
image metadata. It returns an ordered Pipeline of engine-neutral steps and
never touches files or the engine. Buffer names are local to a pipeline;
``source`` is always the staged input and is never written.
"""

from imfx.effects.transform import (
    CurveParams,
    GlowParams,
    LinearMap,
    MeltParams,
    ModulateParams,
    PassFilterParams,
    PolarBlurParams,
    RangeBounds,
    RippleParams,
    TileParams,
    VibranceParams,
)
from imfx.pipeline.stager import StagedImage
from imfx.pipeline.steps import Pipeline, StepKind, step

__all__ = [
    'compose_glow',
    'compose_pass_filter',
    'compose_melt',
    'compose_ripples',
    'compose_polar_blur',
    'compose_range_threshold',
    'compose_endpoints',
    'compose_curves',
    'compose_hue',
    'compose_vibrance',
    'compose_tile',
]

SOURCE = "source"
RESULT = "result"

# Unroll/re-roll around the image centre, full circle, max radius to corners
_POLAR_ARGS = "-1"


def compose_glow(params: GlowParams, staged: StagedImage) -> Pipeline:
    """Select the region matching ``color``, blur it and light it over the source.

    Steps:
      1. copy the source
      2. selection mask: white where the colour matches (flood fill from
         the seed, or every matching pixel when no seed is given)
      3. spread the mask with a gaussian blur
      4. scale the mask by the strength
      5. solid layer in the glow colour
      6. composite the layer over the source through the mask
    """
    steps = [
        step(StepKind.CLONE, SOURCE, "base"),
        step(StepKind.MASK, "base", "mask",
             color=params.color, fuzz=params.fuzz, seed=params.seed),
    ]
    if params.sigma > 0:
        steps.append(step(StepKind.BLUR, "mask", "mask", sigma=params.sigma))
    steps += [
        step(StepKind.EVALUATE, "mask", "mask", operator="multiply", value=params.scale),
        step(StepKind.COLORIZE, "base", "fill", color=params.glow_color),
        step(StepKind.COMPOSITE, (SOURCE, "fill", "mask"), RESULT, compose="over"),
    ]
    return Pipeline(steps=tuple(steps), result=RESULT)


def compose_pass_filter(params: PassFilterParams, staged: StagedImage) -> Pipeline:
    """Low, high or edge pass, blended with the source by ``mix`` percent.

    low  = blur(source)
    high = normalize(|source - blur(source)|)
    edge = normalize(gray(|source - blur(source)|))
    """
    steps = [step(StepKind.BLUR, SOURCE, "lowpass", sigma=params.sigma)]
    filtered = "lowpass"
    if params.type in ("high", "edge"):
        steps.append(step(StepKind.COMPOSITE, (SOURCE, "lowpass"), "highpass", compose="difference"))
        filtered = "highpass"
        if params.type == "edge":
            steps.append(step(StepKind.GRAYSCALE, filtered, filtered))
        steps.append(step(StepKind.NORMALIZE, filtered, filtered))

    if params.mix >= 100:
        steps.append(step(StepKind.CLONE, filtered, RESULT))
    else:
        # blend args are source (filtered) percent, then destination percent
        args = f"{params.mix:g},{100 - params.mix:g}"
        steps.append(step(StepKind.COMPOSITE, (SOURCE, filtered), RESULT, compose="blend", args=args))
    return Pipeline(steps=tuple(steps), result=RESULT)


def compose_melt(params: MeltParams, staged: StagedImage) -> Pipeline:
    """Repeatedly lighten the image with itself shifted one pixel.

    Each pass is a point-sampled SRT distortion through a shifted viewport
    followed by a lighten composite, so bright pixels run ``length`` pixels
    in the melt direction. Zero passes leaves the image unchanged.
    """
    steps = [step(StepKind.CLONE, SOURCE, "current")]
    for _ in range(params.iterations):
        steps.append(step(StepKind.DISTORT, "current", "shifted",
                          method="SRT", args="0", point=True,
                          virtual_pixel="edge", viewport=params.viewport))
        steps.append(step(StepKind.COMPOSITE, ("current", "shifted"), "current", compose="lighten"))
    return Pipeline(steps=tuple(steps), result="current")


def compose_ripples(params: RippleParams, staged: StagedImage) -> Pipeline:
    """Concentric ripples: unroll to polar, wave the rows, roll back."""
    steps = (
        step(StepKind.DISTORT, SOURCE, "unrolled",
             method="DePolar", args=_POLAR_ARGS, virtual_pixel="edge"),
        step(StepKind.WAVE, "unrolled", "rippled",
             amplitude=params.amplitude, wavelength=params.wavelength,
             width=staged.width, height=staged.height),
        step(StepKind.DISTORT, "rippled", RESULT,
             method="Polar", args=_POLAR_ARGS, virtual_pixel="horizontal-tile"),
    )
    return Pipeline(steps=steps, result=RESULT)


def compose_polar_blur(params: PolarBlurParams, staged: StagedImage) -> Pipeline:
    """Angular (rotational) or radial (zoom) blur via a 1-D blur in polar space."""
    if params.sigma <= 0:
        return Pipeline(steps=(step(StepKind.CLONE, SOURCE, RESULT),), result=RESULT)
    steps = (
        step(StepKind.DISTORT, SOURCE, "unrolled",
             method="DePolar", args=_POLAR_ARGS, virtual_pixel="edge"),
        step(StepKind.BLUR, "unrolled", "blurred",
             sigma=params.sigma, angle=params.angle, virtual_pixel="horizontal-tile"),
        step(StepKind.DISTORT, "blurred", RESULT,
             method="Polar", args=_POLAR_ARGS, virtual_pixel="horizontal-tile"),
    )
    return Pipeline(steps=steps, result=RESULT)


def compose_range_threshold(params: RangeBounds, staged: StagedImage) -> Pipeline:
    """White where every channel lies within its bounds, black elsewhere.

    Channels are taken in the requested colourspace, thresholded
    independently and combined with a multiply (logical AND).
    """
    steps = []
    working = SOURCE
    if params.colorspace != "rgb":
        steps.append(step(StepKind.COLORSPACE, SOURCE, "converted", colorspace=params.colorspace))
        working = "converted"

    masks = []
    for index, channel in enumerate(("R", "G", "B")):
        plane = f"ch_{channel.lower()}"
        steps.append(step(StepKind.SEPARATE, working, plane, channel=channel))
        steps.append(step(StepKind.THRESHOLD, plane, plane,
                          low=params.low[index], high=params.high[index]))
        masks.append(plane)

    steps.append(step(StepKind.COMPOSITE, (masks[0], masks[1]), RESULT, compose="multiply"))
    steps.append(step(StepKind.COMPOSITE, (RESULT, masks[2]), RESULT, compose="multiply"))
    return Pipeline(steps=tuple(steps), result=RESULT)


def compose_endpoints(params: LinearMap, staged: StagedImage) -> Pipeline:
    return Pipeline(
        steps=(step(StepKind.FUNCTION, SOURCE, RESULT,
                    name="polynomial", coefficients=params.coefficients),),
        result=RESULT,
    )


def compose_curves(params: CurveParams, staged: StagedImage) -> Pipeline:
    return Pipeline(
        steps=(step(StepKind.FUNCTION, SOURCE, RESULT,
                    name="polynomial", coefficients=params.coefficients),),
        result=RESULT,
    )


def compose_hue(params: ModulateParams, staged: StagedImage) -> Pipeline:
    return Pipeline(
        steps=(step(StepKind.MODULATE, SOURCE, RESULT,
                    brightness=params.brightness,
                    saturation=params.saturation,
                    hue=params.hue),),
        result=RESULT,
    )


def compose_vibrance(params: VibranceParams, staged: StagedImage) -> Pipeline:
    """Sigmoidal contrast on the chroma channel; low-chroma pixels move most."""
    if params.amount == 0:
        return Pipeline(steps=(step(StepKind.CLONE, SOURCE, RESULT),), result=RESULT)
    return Pipeline(
        steps=(step(StepKind.SIGMOIDAL, SOURCE, RESULT,
                    colorspace="chroma", channel=params.channel,
                    amount=params.amount, midpoint=0),),
        result=RESULT,
    )


def compose_tile(params: TileParams, staged: StagedImage) -> Pipeline:
    """Fill a WxH canvas with copies of the image.

    normal  repeats the image as is.
    mirror  repeats a 2x2 block of the image and its horizontal/vertical mirrors.
    rotate  repeats a 2x2 block of the image and its 180 degree rotation.
    """
    steps = []
    if params.arrangement == "mirror":
        steps += [
            step(StepKind.FLIP, SOURCE, "flopped", axis="horizontal"),
            step(StepKind.APPEND, (SOURCE, "flopped"), "row", vertical=False),
            step(StepKind.FLIP, "row", "row_flipped", axis="vertical"),
            step(StepKind.APPEND, ("row", "row_flipped"), "block", vertical=True),
        ]
        block = "block"
    elif params.arrangement == "rotate":
        steps += [
            step(StepKind.FLIP, SOURCE, "rotated", axis="both"),
            step(StepKind.APPEND, (SOURCE, "rotated"), "row1", vertical=False),
            step(StepKind.APPEND, ("rotated", SOURCE), "row2", vertical=False),
            step(StepKind.APPEND, ("row1", "row2"), "block", vertical=True),
        ]
        block = "block"
    else:
        block = SOURCE

    steps.append(step(StepKind.TILE, block, RESULT, width=params.width, height=params.height))
    return Pipeline(steps=tuple(steps), result=RESULT)
