"""Pipeline steps: the unit of work handed to the engine.

A pipeline is an ordered tuple of steps. Each step names the buffers it
reads and the single buffer it writes; the executor binds those names to
files in the staging arena. Steps carry only typed parameters, never engine
syntax, so the same pipeline renders for any supported engine version.
"""

import dataclasses
from enum import Enum
from typing import Any, Iterable

__all__ = ['StepKind', 'PipelineStep', 'Pipeline', 'step']


class StepKind(str, Enum):
    """Operations a composer may emit."""
    CLONE = "clone"
    BLUR = "blur"
    COMPOSITE = "composite"
    DISTORT = "distort"
    THRESHOLD = "threshold"
    COLORIZE = "colorize"
    CROP = "crop"
    TILE = "tile"
    MASK = "mask"
    EVALUATE = "evaluate"
    MODULATE = "modulate"
    FUNCTION = "function"
    SEPARATE = "separate"
    COLORSPACE = "colorspace"
    NORMALIZE = "normalize"
    GRAYSCALE = "grayscale"
    WAVE = "wave"
    SIGMOIDAL = "sigmoidal"
    FLIP = "flip"
    APPEND = "append"


@dataclasses.dataclass(frozen=True)
class PipelineStep:
    """One engine operation.

    Attributes
    ----------
    kind : StepKind
        The operation tag.
    inputs : tuple of str
        Buffer names read, in engine order (destination first for composites).
    output : str
        Buffer name written.
    params : tuple of (str, value) pairs
        Typed parameters, kept as sorted pairs so steps hash and compare.
    """
    kind: StepKind
    inputs: tuple[str, ...]
    output: str
    params: tuple[tuple[str, Any], ...] = ()

    def param(self, name: str, default=None):
        for key, value in self.params:
            if key == name:
                return value
        return default

    @property
    def param_dict(self) -> dict:
        return dict(self.params)

    def __str__(self):
        args = ", ".join(f"{k}={v}" for k, v in self.params)
        return f"{self.kind.value}({', '.join(self.inputs)} -> {self.output}; {args})"


def step(kind: StepKind, inputs: Iterable[str] | str, output: str, **params) -> PipelineStep:
    """Build a PipelineStep; a single input may be given as a string."""
    if isinstance(inputs, str):
        inputs = (inputs,)
    return PipelineStep(
        kind=StepKind(kind),
        inputs=tuple(inputs),
        output=output,
        params=tuple(sorted(params.items())),
    )


@dataclasses.dataclass(frozen=True)
class Pipeline:
    """Ordered steps plus the buffer that holds the final image."""
    steps: tuple[PipelineStep, ...]
    result: str

    def __len__(self):
        return len(self.steps)

    def __iter__(self):
        return iter(self.steps)

    def kinds(self) -> list[StepKind]:
        return [s.kind for s in self.steps]

    def describe(self) -> list[str]:
        return [str(s) for s in self.steps]