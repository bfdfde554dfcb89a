"""Root-level pytest fixtures for the imfx test suite.

Provides shared configuration fixtures following the Pydantic-based
architecture, engine capability records for each supported ImageMagick
generation, and a fake engine runner so pipelines can be staged and
executed without ImageMagick installed.
"""

import shutil
import tempfile
from pathlib import Path

import pytest

from imfx.contracts import ExecutionError
from imfx.engine.adapter import select_adapter
from imfx.engine.capabilities import EngineCapabilities
from imfx.schemas import CLIConfig, ParamConfig, resolve_config


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults."""
    return ParamConfig()


@pytest.fixture
def internal_config(param_config):
    """Fully validated runtime configuration (no overrides)."""
    return resolve_config(param_config, None)


@pytest.fixture
def make_config(param_config):
    """Factory fixture for creating custom test configs.

    Accepts CLIConfig-compatible kwargs.

    Examples
    --------
    >>> def test_custom_tmpdir(make_config, temp_dir):
    ...     config = make_config(tmpdir=str(temp_dir))
    ...     assert config.staging.tmp_dir == str(temp_dir)
    """
    def _make(**cli_overrides):
        if cli_overrides:
            return resolve_config(param_config, CLIConfig(**cli_overrides))
        return resolve_config(param_config, None)

    return _make


# =============================================================================
# Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def input_image(temp_dir):
    """A non-empty file that stands in for an image when the engine is faked."""
    path = temp_dir / "input.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\n fake pixels")
    return path


# =============================================================================
# Engine Fixtures
# =============================================================================

@pytest.fixture
def im7_caps():
    return EngineCapabilities(
        version=(7, 1, 1, 26),
        convert=("magick",),
        identify=("magick", "identify"),
        quantum_depth=16,
        hdri=True,
    )


@pytest.fixture
def im6_caps():
    return EngineCapabilities(
        version=(6, 9, 12, 98),
        convert=("convert",),
        identify=("identify",),
    )


@pytest.fixture
def legacy_caps():
    return EngineCapabilities(
        version=(6, 5, 4, 2),
        convert=("convert",),
        identify=("identify",),
    )


class FakeRunner:
    """Stands in for EngineRunner.

    Records every argv, creates the output file named by the last argument
    and answers identify queries with fixed metadata. ``fail_on`` makes the
    first step of that kind fail; ``fail_finalize`` makes the final write
    fail after the partial file was created.
    """

    def __init__(self, width=64, height=48, fail_on=None, fail_finalize=False):
        self.width = width
        self.height = height
        self.fail_on = fail_on
        self.fail_finalize = fail_finalize
        self.calls = []
        self.steps = []
        self.invocations = 0

    def run(self, argv, step=None):
        self.invocations += 1
        argv = list(argv)
        self.calls.append(argv)

        if "-ping" in argv:
            return f"{self.width}|{self.height}|srgb|False|sRGB\n"

        if step is not None:
            self.steps.append(step)
            if self.fail_on is not None and step.kind == self.fail_on:
                raise ExecutionError(
                    "engine exited with status 1 on step", "convert: boom", step=step
                )

        target = Path(argv[-1])
        target.write_bytes(b"pixels")
        if self.fail_finalize and ".imfx-partial" in target.name:
            raise ExecutionError("engine exited with status 1", "convert: no encoder")
        return ""


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def make_fake_runner():
    """Factory for FakeRunner with custom dimensions or failures."""
    return FakeRunner


@pytest.fixture
def im6_adapter(im6_caps):
    return select_adapter(im6_caps)


@pytest.fixture
def im7_adapter(im7_caps):
    return select_adapter(im7_caps)


@pytest.fixture
def legacy_adapter(legacy_caps):
    return select_adapter(legacy_caps)
