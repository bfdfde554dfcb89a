"""Run orchestration.

Drives one effect invocation through the state machine

    Init -> Validating -> Staging -> Composing -> Executing -> Success | Failed

and owns the scoped staging arena, so cleanup happens on every exit path,
including termination signals.
"""

import contextlib
import logging
import signal
import threading
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from imfx.contracts import (
    InputError,
    InterruptedRun,
    assert_composed,
    assert_staged,
)
from imfx.effects.registry import get_effect
from imfx.engine.adapter import EngineAdapter, select_adapter
from imfx.engine.capabilities import detect_capabilities
from imfx.engine.runner import EngineRunner
from imfx.pipeline.executor import PipelineExecutor
from imfx.pipeline.stager import StagingArena, check_input
from imfx.schemas.internal import InternalConfig
from imfx.schemas.options import EffectOptions

__all__ = ['EffectRunner', 'RunState']

logger = logging.getLogger(__name__)

_TERMINATING_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGINT", "SIGTERM", "SIGHUP") if hasattr(signal, name)
)


class RunState(str, Enum):
    INIT = "init"
    VALIDATING = "validating"
    STAGING = "staging"
    COMPOSING = "composing"
    EXECUTING = "executing"
    SUCCESS = "success"
    FAILED = "failed"


def _raise_interrupted(signum, frame):
    raise InterruptedRun(signum)


@contextlib.contextmanager
def _signals_unwind():
    """Turn termination signals into InterruptedRun for the duration.

    Handlers can only be installed from the main thread; elsewhere the
    block runs with whatever handling the process already has.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = {}
    for signum in _TERMINATING_SIGNALS:
        previous[signum] = signal.signal(signum, _raise_interrupted)
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


class EffectRunner:
    """Runs one effect from raw options to a written output file.

    The engine is detected lazily, the first time a run reaches staging,
    unless an adapter is supplied. Every state entered is appended to
    ``history`` so callers and tests can check that none was skipped.

    Example usage::

        from imfx.pipeline.orchestrator import EffectRunner
        from imfx.schemas.resolve import resolve_config

        runner = EffectRunner(resolve_config())
        runner.run("melt", {"-l": "5", "-d": "down"}, "in.png", "out.png")

    Parameters
    ----------
    config : InternalConfig
        Resolved runtime configuration.
    adapter : EngineAdapter, optional
        Pre-selected adapter; skips engine detection.
    runner : EngineRunner, optional
        Subprocess boundary; a fresh EngineRunner by default.
    """

    def __init__(self, config: InternalConfig,
                 adapter: Optional[EngineAdapter] = None,
                 runner: Optional[EngineRunner] = None):
        self.config = config
        self.adapter = adapter
        self.runner = runner or EngineRunner()
        self.state = RunState.INIT
        self.history: list[RunState] = [RunState.INIT]

    def setup_logging(self):
        """Configure the root logger from ``config.logging``.

        Messages go to stderr and, when ``log_file`` is set, to that file as
        well. Existing root handlers are replaced.
        """
        log_level = getattr(logging, self.config.logging.level.upper(), logging.WARNING)

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        fh = None
        if self.config.logging.log_file:
            log_path = Path(self.config.logging.log_file)
            try:
                log_path.parent.mkdir(parents=True, exist_ok=True)
                fh = logging.FileHandler(log_path)
            except OSError as e:
                raise InputError(log_path, f"cannot open log file ({e.strerror or e})") from e
            fh.setLevel(log_level)
            fh.setFormatter(formatter)

        root = logging.getLogger()
        root.setLevel(log_level)
        for handler in root.handlers[:]:
            root.removeHandler(handler)
        if fh is not None:
            root.addHandler(fh)

        # Console handler (stderr; stdout stays free for `imfx list`)
        ch = logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(formatter)
        root.addHandler(ch)

        logger.debug("Logging: level=%s, file=%s",
                     self.config.logging.level, self.config.logging.log_file)

    def _enter(self, state: RunState):
        self.state = state
        self.history.append(state)
        logger.info("State: %s", state.value)

    def _engine(self) -> EngineAdapter:
        if self.adapter is None:
            caps = detect_capabilities(self.config.engine.binary)
            self.adapter = select_adapter(caps, quiet=self.config.engine.quiet)
        return self.adapter

    def run(self, effect: str, options: Union[dict, EffectOptions], infile, outfile) -> Path:
        """Apply ``effect`` to ``infile`` and write ``outfile``.

        Parameters
        ----------
        effect : str
            Registered effect name.
        options : dict or EffectOptions
            ``{flag: raw value}`` as collected from the command line, or an
            already validated Option Set.
        infile, outfile : str or Path
            Source image and destination. They may be the same file.

        Returns
        -------
        Path
            The written destination.

        Raises
        ------
        ImfxError
            Any failure; the destination is left untouched and the staging
            arena is removed before this propagates.
        """
        try:
            with _signals_unwind():
                return self._run(effect, options, Path(infile), Path(outfile))
        except BaseException:
            self._enter(RunState.FAILED)
            raise

    def _run(self, effect_name: str, options, infile: Path, outfile: Path) -> Path:
        self._enter(RunState.VALIDATING)
        effect = get_effect(effect_name)
        opts = effect.validate(options)
        logger.debug("Options: %s", opts.model_dump())

        if not outfile.parent.is_dir():
            raise InputError(outfile, "output directory does not exist")

        with StagingArena(self.config.staging.tmp_dir, self.config.staging.cache_format) as arena:
            self._enter(RunState.STAGING)
            check_input(infile)
            adapter = self._engine()
            staged = arena.stage(infile, adapter, self.runner)
            assert_staged(staged)

            self._enter(RunState.COMPOSING)
            pipeline = effect.compose(opts, staged)
            assert_composed(pipeline, [staged.name])
            for line in pipeline.describe():
                logger.debug("  %s", line)

            self._enter(RunState.EXECUTING)
            executor = PipelineExecutor(arena, adapter, self.runner)
            written = executor.execute(pipeline, [staged], outfile)

        self._enter(RunState.SUCCESS)
        logger.info("%s: %s -> %s (%d engine calls)",
                    effect_name, infile, written, self.runner.invocations)
        return written
