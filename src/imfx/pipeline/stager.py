"""Image staging: private cached copies in a scoped temporary arena.

The arena is a fresh directory created for one run and removed when the run
ends, whether it succeeded, failed or was interrupted. Every buffer of the
pipeline (staged inputs and intermediates) is a file inside it; nothing is
written beside the user's files except the final atomic rename.
"""

import dataclasses
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from imfx.contracts import ExecutionError, InputError

if TYPE_CHECKING:
    from imfx.engine.adapter import EngineAdapter
    from imfx.engine.runner import EngineRunner

__all__ = ['StagedImage', 'StagingArena', 'check_input']

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class StagedImage:
    """Cached copy of one input plus the metadata composers depend on.

    Attributes
    ----------
    name : str
        Buffer name composers refer to (``source`` for single-input effects).
    path : Path
        Cached copy inside the arena.
    width, height : int
        Pixel dimensions of the first frame.
    channels : str
        Engine channel description, e.g. ``srgb`` or ``srgba``.
    alpha : bool
        Whether the image carries an alpha channel.
    colorspace : str
        Engine colourspace name.
    """
    name: str
    path: Path
    width: int
    height: int
    channels: str = "srgb"
    alpha: bool = False
    colorspace: str = "sRGB"


def check_input(path) -> Path:
    """Verify ``path`` is an existing, regular, readable, non-empty file.

    Raises
    ------
    InputError
        Naming the first failed condition.
    """
    path = Path(path)
    if not path.exists():
        raise InputError(path, "file does not exist")
    if not path.is_file():
        raise InputError(path, "not a regular file")
    if not os.access(path, os.R_OK):
        raise InputError(path, "file is not readable")
    if path.stat().st_size == 0:
        raise InputError(path, "file is empty")
    return path


def _parse_identify(output: str, source) -> tuple[int, int, str, bool, str]:
    """Parse ``%w|%h|%[channels]|%A|%[colorspace]`` for the first frame."""
    line = output.strip().splitlines()[0] if output.strip() else ""
    fields = line.split("|")
    if len(fields) < 5:
        raise ExecutionError(f"cannot read dimensions of {source}", output)
    try:
        width, height = int(fields[0]), int(fields[1])
    except ValueError:
        raise ExecutionError(f"cannot read dimensions of {source}", output)
    alpha = fields[3].strip().lower() not in ("false", "undefined", "")
    return width, height, fields[2].strip(), alpha, fields[4].strip()


class StagingArena:
    """Scoped temporary directory that holds all pipeline buffers.

    Use as a context manager; the directory and everything in it is
    removed on exit.

    Example usage::

        with StagingArena(tmp_dir=None, cache_format="mpc") as arena:
            staged = arena.stage("in.png", adapter, runner)
            out = arena.allocate("blurred")
    """

    def __init__(self, tmp_dir: Optional[str] = None, cache_format: str = "mpc"):
        self.tmp_dir = tmp_dir
        self.cache_format = cache_format
        self.root: Optional[Path] = None
        self._counter = 0

    def __enter__(self) -> "StagingArena":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def open(self) -> Path:
        try:
            if self.tmp_dir is not None:
                Path(self.tmp_dir).mkdir(parents=True, exist_ok=True)
            self.root = Path(tempfile.mkdtemp(prefix="imfx-", dir=self.tmp_dir))
        except OSError as e:
            raise InputError(self.tmp_dir or tempfile.gettempdir(),
                             f"cannot create staging directory ({e.strerror or e})") from e
        logger.debug("Staging arena: %s", self.root)
        return self.root

    def close(self) -> None:
        if self.root is not None and self.root.exists():
            shutil.rmtree(self.root, ignore_errors=True)
            logger.debug("Removed staging arena %s", self.root)
        self.root = None

    @property
    def is_open(self) -> bool:
        return self.root is not None

    def allocate(self, name: str) -> Path:
        """Unique file path for a new version of buffer ``name``."""
        if self.root is None:
            raise RuntimeError("staging arena is not open")
        self._counter += 1
        return self.root / f"{self._counter:03d}-{name}.{self.cache_format}"

    def discard(self, path: Path) -> None:
        """Delete a superseded buffer (and the pixel cache of an MPC file)."""
        path = Path(path)
        path.unlink(missing_ok=True)
        if path.suffix == ".mpc":
            path.with_suffix(".cache").unlink(missing_ok=True)

    def stage(self, source, adapter: "EngineAdapter", runner: "EngineRunner",
              name: str = "source") -> StagedImage:
        """Copy ``source`` into the arena and read its metadata.

        Only the first frame of multi-frame inputs is staged.

        Raises
        ------
        InputError
            If ``source`` fails the file checks.
        ExecutionError
            If the engine cannot decode it.
        """
        source = check_input(source)
        cached = self.allocate(name)
        runner.run(adapter.stage_command(str(source), str(cached)))
        output = runner.run(adapter.identify_command(str(cached)))
        width, height, channels, alpha, colorspace = _parse_identify(output, source)
        staged = StagedImage(
            name=name,
            path=cached,
            width=width,
            height=height,
            channels=channels,
            alpha=alpha,
            colorspace=colorspace,
        )
        logger.info("Staged %s as %s (%dx%d %s)", source, name, width, height, channels)
        return staged
