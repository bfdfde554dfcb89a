"""Tests for input checks and the scoped staging arena."""

import os

import pytest

from imfx.contracts import ExecutionError, InputError
from imfx.pipeline.stager import StagingArena, check_input

pytestmark = [pytest.mark.unit, pytest.mark.pipeline]


class TestCheckInput:

    def test_missing_file(self, temp_dir):
        with pytest.raises(InputError, match="does not exist") as exc:
            check_input(temp_dir / "nope.png")
        assert exc.value.path.endswith("nope.png")

    def test_directory_is_not_regular_file(self, temp_dir):
        with pytest.raises(InputError, match="not a regular file"):
            check_input(temp_dir)

    def test_empty_file(self, temp_dir):
        path = temp_dir / "empty.png"
        path.write_bytes(b"")
        with pytest.raises(InputError, match="empty"):
            check_input(path)

    @pytest.mark.skipif(os.name != "posix" or os.geteuid() == 0,
                        reason="permission bits are not enforced for root")
    def test_unreadable_file(self, temp_dir):
        path = temp_dir / "locked.png"
        path.write_bytes(b"data")
        path.chmod(0)
        try:
            with pytest.raises(InputError, match="not readable"):
                check_input(path)
        finally:
            path.chmod(0o644)

    def test_valid_file(self, input_image):
        assert check_input(str(input_image)) == input_image


class TestArenaLifecycle:

    def test_arena_created_and_removed(self, temp_dir):
        with StagingArena(tmp_dir=str(temp_dir)) as arena:
            root = arena.root
            assert root.is_dir()
            assert root.parent == temp_dir
            assert root.name.startswith("imfx-")
        assert not root.exists()
        assert not arena.is_open

    def test_arena_removed_on_error(self, temp_dir):
        with pytest.raises(RuntimeError):
            with StagingArena(tmp_dir=str(temp_dir)) as arena:
                root = arena.root
                (root / "junk.mpc").write_bytes(b"x")
                raise RuntimeError("fail mid-run")
        assert not root.exists()

    def test_concurrent_arenas_are_private(self, temp_dir):
        with StagingArena(tmp_dir=str(temp_dir)) as a, StagingArena(tmp_dir=str(temp_dir)) as b:
            assert a.root != b.root

    def test_allocate_is_unique_and_versioned(self, arena):
        first = arena.allocate("current")
        second = arena.allocate("current")
        assert first != second
        assert first.parent == arena.root
        assert first.suffix == ".mpc"

    def test_allocate_uses_cache_format(self, temp_dir):
        with StagingArena(tmp_dir=str(temp_dir), cache_format="miff") as arena:
            assert arena.allocate("x").suffix == ".miff"

    def test_allocate_requires_open_arena(self):
        with pytest.raises(RuntimeError):
            StagingArena().allocate("x")

    def test_discard_removes_pixel_cache(self, arena):
        path = arena.allocate("old")
        path.write_bytes(b"header")
        path.with_suffix(".cache").write_bytes(b"pixels")
        arena.discard(path)
        assert not path.exists()
        assert not path.with_suffix(".cache").exists()

    def test_missing_tmp_dir_is_created(self, temp_dir):
        parent = temp_dir / "a" / "b"
        with StagingArena(tmp_dir=str(parent)) as arena:
            assert arena.root.parent == parent

    def test_unusable_tmp_dir_is_input_error(self, temp_dir):
        blocker = temp_dir / "blocker"
        blocker.write_bytes(b"not a directory")
        arena = StagingArena(tmp_dir=str(blocker / "sub"))
        with pytest.raises(InputError, match="cannot create staging directory") as exc:
            arena.open()
        assert exc.value.path == str(blocker / "sub")
        assert not arena.is_open


class TestStage:

    def test_stage_reads_metadata(self, arena, input_image, im6_adapter, make_fake_runner):
        runner = make_fake_runner(width=320, height=200)
        staged = arena.stage(input_image, im6_adapter, runner)

        assert staged.name == "source"
        assert (staged.width, staged.height) == (320, 200)
        assert staged.alpha is False
        assert staged.path.exists()
        assert staged.path.parent == arena.root
        stage_argv = runner.calls[0]
        assert stage_argv[-2:] == ["+repage", str(staged.path)]
        assert stage_argv[-3].endswith("input.png[0]")

    def test_stage_missing_input_never_runs_engine(self, arena, temp_dir, im6_adapter, fake_runner):
        with pytest.raises(InputError):
            arena.stage(temp_dir / "missing.png", im6_adapter, fake_runner)
        assert fake_runner.calls == []

    def test_unparseable_identify_output(self, arena, input_image, im6_adapter, fake_runner, monkeypatch):
        original = fake_runner.run

        def run(argv, step=None):
            if "-ping" in argv:
                return "garbage"
            return original(argv, step)

        monkeypatch.setattr(fake_runner, "run", run)
        with pytest.raises(ExecutionError, match="dimensions"):
            arena.stage(input_image, im6_adapter, fake_runner)
