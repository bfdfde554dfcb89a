"""Subprocess boundary to the external engine.

Every engine invocation in imfx goes through EngineRunner.run(). It blocks
until the process exits and turns any failure into an ExecutionError that
carries the engine's own diagnostic text.
"""

import logging
import subprocess
from typing import Sequence

from imfx.contracts import ExecutionError

__all__ = ['EngineRunner']

logger = logging.getLogger(__name__)


class EngineRunner:
    """Run engine commands synchronously.

    No timeout is applied; wall-clock limits belong to the caller's shell
    or job environment.

    Example usage::

        runner = EngineRunner()
        out = runner.run(["convert", "-version"])
    """

    def __init__(self):
        self.invocations = 0

    def run(self, argv: Sequence[str], step=None) -> str:
        """Execute ``argv`` and return its stdout.

        Parameters
        ----------
        argv : sequence of str
            Complete command line.
        step : PipelineStep, optional
            Step being executed, attached to the error on failure.

        Raises
        ------
        ExecutionError
            If the binary cannot be started or exits non-zero.
        """
        self.invocations += 1
        logger.debug("$ %s", " ".join(argv))
        try:
            proc = subprocess.run(list(argv), capture_output=True, text=True)
        except OSError as e:
            raise ExecutionError(f"cannot run {argv[0]}", str(e), step=step)

        if proc.returncode != 0:
            what = f"step '{step}'" if step is not None else argv[0]
            logger.error("Engine failed (%d) on %s", proc.returncode, what)
            raise ExecutionError(
                f"engine exited with status {proc.returncode} on {what}",
                proc.stderr,
                step=step,
            )

        if proc.stderr.strip():
            logger.debug("Engine stderr: %s", proc.stderr.strip())
        return proc.stdout
