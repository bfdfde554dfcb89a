"""Engine capability detection.

The engine is probed exactly once per run. The resulting EngineCapabilities
record is immutable and passed down explicitly; only the adapter factory
looks at the version to choose how steps are rendered.
"""

import dataclasses
import logging
import re
import shutil
import subprocess
from pathlib import Path
from typing import Optional

from imfx.contracts import ExecutionError

__all__ = ['EngineCapabilities', 'detect_capabilities', 'parse_version_banner']

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"ImageMagick\s+(\d+)\.(\d+)\.(\d+)(?:-(\d+))?")
_QUANTUM_RE = re.compile(r"\bQ(8|16|32|64)\b")


@dataclasses.dataclass(frozen=True)
class EngineCapabilities:
    """What the installed engine is and how to call it.

    Attributes
    ----------
    version : tuple of int
        (major, minor, micro, patch), e.g. (6, 9, 12, 98).
    convert : tuple of str
        Command prefix for image processing (``("magick",)`` or ``("convert",)``).
    identify : tuple of str
        Command prefix for metadata queries.
    quantum_depth : int
        Bits per channel the engine computes with (8, 16, ...).
    hdri : bool
        Whether the engine was built with HDRI (floating point pixels).
    """
    version: tuple[int, int, int, int]
    convert: tuple[str, ...]
    identify: tuple[str, ...]
    quantum_depth: int = 16
    hdri: bool = False

    @property
    def major(self) -> int:
        return self.version[0]

    @property
    def version_string(self) -> str:
        major, minor, micro, patch = self.version
        return f"{major}.{minor}.{micro}-{patch}"

    def at_least(self, *version: int) -> bool:
        """True if the engine version is >= ``version`` (padded with zeros)."""
        wanted = tuple(version) + (0,) * (4 - len(version))
        return self.version >= wanted


def parse_version_banner(banner: str) -> tuple[tuple[int, int, int, int], int, bool]:
    """Extract version, quantum depth and HDRI flag from ``-version`` output.

    Examples
    --------
    >>> parse_version_banner("Version: ImageMagick 6.9.12-98 Q16 x86_64")
    ((6, 9, 12, 98), 16, False)
    """
    m = _VERSION_RE.search(banner)
    if not m:
        raise ExecutionError("unrecognised engine version banner", banner[:200])
    version = tuple(int(g) if g is not None else 0 for g in m.groups())
    q = _QUANTUM_RE.search(banner)
    quantum_depth = int(q.group(1)) if q else 16
    hdri = "HDRI" in banner
    return version, quantum_depth, hdri


def _probe(command: list[str]) -> str:
    try:
        proc = subprocess.run(command + ["-version"], capture_output=True, text=True)
    except OSError as e:
        raise ExecutionError(f"cannot run {command[0]}", str(e))
    if proc.returncode != 0:
        raise ExecutionError(f"{command[0]} -version failed", proc.stderr)
    return proc.stdout


def detect_capabilities(binary: Optional[str] = None) -> EngineCapabilities:
    """Probe the engine and describe it.

    Parameters
    ----------
    binary : str, optional
        Explicit engine binary. A binary named ``magick`` (IM7) is used as
        the prefix for both processing and identify; anything else is taken
        as an IM6 ``convert`` with ``identify`` looked up beside it.
        If None, ``magick`` is preferred over ``convert`` on PATH.

    Raises
    ------
    ExecutionError
        If no engine is found or its version cannot be read.
    """
    if binary is None:
        magick = shutil.which("magick")
        convert = shutil.which("convert")
        if magick:
            binary = magick
        elif convert:
            binary = convert
        else:
            raise ExecutionError("missing ImageMagick (need `magick` or `convert` on PATH)")

    banner = _probe([binary])
    version, quantum_depth, hdri = parse_version_banner(banner)

    convert_cmd = (binary,)
    if version[0] >= 7 and Path(binary).stem == "magick":
        identify_cmd = (binary, "identify")
    else:
        sibling = Path(binary).with_name("identify")
        identify_cmd = (str(sibling) if sibling.exists() else shutil.which("identify") or "identify",)

    caps = EngineCapabilities(
        version=version,
        convert=convert_cmd,
        identify=identify_cmd,
        quantum_depth=quantum_depth,
        hdri=hdri,
    )
    logger.info("Engine: ImageMagick %s Q%d%s (%s)",
                caps.version_string, quantum_depth, " HDRI" if hdri else "", binary)
    return caps
