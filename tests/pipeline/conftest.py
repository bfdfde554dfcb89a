import pytest

from imfx.pipeline.stager import StagingArena


@pytest.fixture
def arena(temp_dir):
    """Open staging arena under the test's temp directory."""
    with StagingArena(tmp_dir=str(temp_dir / "staging")) as a:
        yield a


@pytest.fixture
def output_dir(temp_dir):
    d = temp_dir / "out"
    d.mkdir()
    return d
