"""Tests for the command line front end (exit codes and stderr)."""

import inspect

import pytest

from imfx.cli import main as cli_main
from imfx.effects.registry import effect_names
from imfx.pipeline.orchestrator import EffectRunner
from imfx.pipeline.steps import StepKind

pytestmark = pytest.mark.unit


def test_cli_package_exposes_main_module():
    assert inspect.ismodule(cli_main)
    assert callable(cli_main.main)


@pytest.fixture
def fake_engine(monkeypatch, im6_adapter, make_fake_runner):
    """Route CLI runs through the fake runner and leave logging alone."""
    fake = make_fake_runner()
    seen = {}

    class TestRunner(EffectRunner):
        def __init__(self, config):
            seen["config"] = config
            super().__init__(config, adapter=im6_adapter, runner=fake)

        def setup_logging(self):
            pass

    monkeypatch.setattr(cli_main, "EffectRunner", TestRunner)
    fake.seen = seen
    return fake


@pytest.fixture
def paths(input_image, temp_dir):
    return str(input_image), str(temp_dir / "out.png")


class TestHelp:

    @pytest.mark.parametrize("flag", ["-h", "-help", "-H"])
    def test_effect_help_goes_to_stderr(self, flag, capsys):
        assert cli_main.main(["glow", flag]) == 0
        out, err = capsys.readouterr()
        assert out == ""
        assert "usage: imfx glow" in err
        assert "-c COLOR" in err

    def test_console_script_help(self, capsys):
        assert cli_main.tile(["-H"]) == 0
        assert "usage: imfx-tile" in capsys.readouterr().err

    def test_top_level_help(self, capsys):
        assert cli_main.main(["-help"]) == 0
        err = capsys.readouterr().err
        assert "imfx list" in err
        assert "melt" in err

    def test_no_arguments_is_usage_error(self, capsys):
        assert cli_main.main([]) == 1
        assert "usage:" in capsys.readouterr().err


def test_list_prints_every_effect(capsys):
    assert cli_main.main(["list"]) == 0
    out = capsys.readouterr().out
    for name in effect_names():
        assert name in out


class TestUsageErrors:

    def test_too_few_positionals(self, fake_engine, capsys):
        assert cli_main.main(["melt", "in.png"]) == 1
        err = capsys.readouterr().err
        assert "outfile" in err
        assert "usage:" in err

    def test_too_many_positionals(self, fake_engine, paths, capsys):
        assert cli_main.main(["melt", *paths, "extra.png"]) == 1
        assert "unrecognized arguments" in capsys.readouterr().err

    def test_unknown_flag(self, fake_engine, paths, capsys):
        assert cli_main.main(["melt", "-z", "1", *paths]) == 1
        assert fake_engine.calls == []

    def test_flag_without_value(self, fake_engine, paths, capsys):
        assert cli_main.main(["melt", "-d", "-l", "5", *paths]) == 1
        assert "expected one argument" in capsys.readouterr().err

    def test_unknown_effect(self, capsys):
        assert cli_main.main(["sparkle", "a.png", "b.png"]) == 1
        assert "unknown effect" in capsys.readouterr().err


class TestValidation:

    @pytest.mark.parametrize("units", ["percent", "degrees"])
    def test_relative_hue_150_rejected_before_io(self, units, fake_engine, paths, capsys):
        infile, outfile = paths
        assert cli_main.main(["hue", "-u", "150", "-t", units, infile, outfile]) == 1

        err = capsys.readouterr().err
        assert "-u:" in err
        assert "usage:" in err
        assert fake_engine.calls == []

    def test_negative_values_are_not_flags(self, fake_engine, paths):
        assert cli_main.main(["hue", "-u", "-30", *paths]) == 0
        assert fake_engine.steps[0].kind == StepKind.MODULATE
        assert fake_engine.steps[0].param("hue") == 70


class TestRuns:

    def test_missing_input_exit_1_no_output(self, fake_engine, temp_dir, capsys):
        outfile = temp_dir / "out.png"
        code = cli_main.main(["melt", str(temp_dir / "missing.png"), str(outfile)])

        assert code == 1
        assert "does not exist" in capsys.readouterr().err
        assert not outfile.exists()

    def test_successful_run(self, fake_engine, paths, capsys):
        infile, outfile = paths
        assert cli_main.main(["melt", "-l", "2", "-d", "up", infile, outfile]) == 0
        assert capsys.readouterr().err == ""
        assert [s.kind for s in fake_engine.steps].count(StepKind.DISTORT) == 2

    def test_console_script_entry(self, fake_engine, paths):
        assert cli_main.vibrance(["-a", "2", *paths]) == 0

    def test_global_options_before_effect(self, fake_engine, paths, temp_dir):
        code = cli_main.main([
            "--engine", "/opt/im/bin/convert", "--tmpdir", str(temp_dir), "--verbose",
            "tile", "-d", "100x80", *paths,
        ])
        assert code == 0
        config = fake_engine.seen["config"]
        assert config.engine.binary == "/opt/im/bin/convert"
        assert config.staging.tmp_dir == str(temp_dir)
        assert config.logging.level == "DEBUG"

    def test_global_options_among_effect_options(self, fake_engine, paths):
        assert cli_main.main(["passfilter", "-t", "edge", "--log-level", "info", *paths]) == 0
        assert fake_engine.seen["config"].logging.level == "INFO"

    def test_engine_failure_reported(self, fake_engine, paths, capsys):
        fake_engine.fail_on = StepKind.MODULATE
        assert cli_main.main(["hue", "-u", "10", *paths]) == 1
        err = capsys.readouterr().err
        assert "convert: boom" in err

    def test_unusable_tmpdir_reported_not_raised(self, fake_engine, paths, temp_dir, capsys):
        blocker = temp_dir / "blocker"
        blocker.write_bytes(b"x")
        code = cli_main.main(["--tmpdir", str(blocker / "sub"), "melt", *paths])

        assert code == 1
        err = capsys.readouterr().err
        assert "cannot create staging directory" in err
        assert "usage:" in err
        assert fake_engine.calls == []
