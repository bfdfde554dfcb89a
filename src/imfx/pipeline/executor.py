"""Pipeline execution.

Runs a composed pipeline step by step against buffers in the staging arena
and publishes the result to the destination with a single atomic rename.
The destination is never opened for writing until every step has
succeeded, and a failed finalize leaves no partial file behind.
"""

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from imfx.contracts import ExecutionError
from imfx.pipeline.stager import StagedImage

if TYPE_CHECKING:
    from imfx.engine.adapter import EngineAdapter
    from imfx.engine.runner import EngineRunner
    from imfx.pipeline.stager import StagingArena
    from imfx.pipeline.steps import Pipeline

__all__ = ['PipelineExecutor', 'partial_path']

logger = logging.getLogger(__name__)


def partial_path(destination: Path) -> Path:
    """Hidden sibling the result is written to before the rename.

    Keeps the destination suffix so the engine picks the same output format.
    """
    return destination.with_name(f".{destination.stem}.imfx-partial{destination.suffix}")


class PipelineExecutor:
    """Bind buffer names to arena files and run each step in order.

    Parameters
    ----------
    arena : StagingArena
        Open arena that holds all buffers.
    adapter : EngineAdapter
        Renders steps into command lines.
    runner : EngineRunner
        Executes the command lines.
    """

    def __init__(self, arena: "StagingArena", adapter: "EngineAdapter", runner: "EngineRunner"):
        self.arena = arena
        self.adapter = adapter
        self.runner = runner
        self.bindings: dict[str, Path] = {}
        self._staged: set[str] = set()

    def bind_staged(self, staged: Iterable[StagedImage]) -> None:
        for image in staged:
            self.bindings[image.name] = image.path
            self._staged.add(image.name)

    def run(self, pipeline: "Pipeline") -> Path:
        """Execute every step; return the file holding the result buffer."""
        total = len(pipeline)
        for index, step_ in enumerate(pipeline, start=1):
            inputs = [str(self.bindings[name]) for name in step_.inputs]
            output = self.arena.allocate(step_.output)
            argv = self.adapter.render(step_, inputs, str(output))
            logger.debug("Step %d/%d: %s", index, total, step_)
            self.runner.run(argv, step=step_)

            superseded = self.bindings.get(step_.output)
            self.bindings[step_.output] = output
            if superseded is not None and step_.output not in self._staged:
                self.arena.discard(superseded)

        return self.bindings[pipeline.result]

    def finalize(self, result: Path, destination) -> Path:
        """Write ``result`` to ``destination`` atomically.

        The engine encodes into a hidden sibling of the destination, which is
        then renamed over it. On any failure the sibling is removed and the
        destination is left as it was.
        """
        destination = Path(destination)
        partial = partial_path(destination)
        try:
            self.runner.run(self.adapter.finalize_command(str(result), str(partial)))
            try:
                os.replace(partial, destination)
            except OSError as e:
                raise ExecutionError(f"cannot move result into place at {destination}", str(e)) from e
        except BaseException:
            partial.unlink(missing_ok=True)
            raise
        logger.info("Wrote %s", destination)
        return destination

    def execute(self, pipeline: "Pipeline", staged: Iterable[StagedImage], destination) -> Path:
        self.bind_staged(staged)
        result = self.run(pipeline)
        return self.finalize(result, destination)
