"""Command line front end.

    imfx [global options] EFFECT [options] infile outfile
    imfx list
    imfx-EFFECT [options] infile outfile

Argument parsing only; the run itself is EffectRunner. Every ImfxError is
caught here once, reported on stderr with abbreviated usage and turned into
the exit status.
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from imfx.contracts import ImfxError, UsageError
from imfx.effects.registry import EFFECTS, Effect, effect_names, get_effect
from imfx.pipeline.orchestrator import EffectRunner
from imfx.schemas.cli import CLIConfig
from imfx.schemas.param import ParamConfig
from imfx.schemas.resolve import resolve_config

__all__ = ['main', 'build_parser']

logger = logging.getLogger(__name__)

HELP_FLAGS = ("-h", "-help", "-H", "--help")

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Global long options that take a value
_VALUED_GLOBALS = ("--engine", "--tmpdir", "--log-level")

TOP_USAGE = (
    "usage: imfx [--engine PATH] [--tmpdir DIR] [--log-level LEVEL] [--verbose]"
    " EFFECT [options] infile outfile\n"
    "       imfx list\n"
)


class ImfxArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises UsageError instead of exiting."""

    def error(self, message):
        raise UsageError(message)


def _add_global_options(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("global options")
    group.add_argument("--engine", metavar="PATH", help="ImageMagick binary (magick or convert)")
    group.add_argument("--tmpdir", metavar="DIR", help="parent directory for staging files")
    group.add_argument("--log-level", type=str.upper, choices=LOG_LEVELS,
                       help="logging level (default WARNING)")
    group.add_argument("--verbose", action="store_true", help="debug logging")


def build_parser(effect: Effect, prog: Optional[str] = None) -> ImfxArgumentParser:
    """Parser for one effect: its single-letter flags plus the global options."""
    parser = ImfxArgumentParser(
        prog=prog or f"imfx {effect.name}",
        description=effect.summary,
        add_help=False,
        allow_abbrev=False,
    )
    group = parser.add_argument_group("effect options")
    for flag, field in effect.options.FLAGS.items():
        info = effect.options.model_fields[field]
        default = "required" if info.is_required() else f"default {info.default}"
        group.add_argument(
            flag,
            dest=field,
            metavar=field.upper(),
            default=argparse.SUPPRESS,
            help=f"{info.description} ({default})",
        )
    _add_global_options(parser)
    parser.add_argument("infile", help="input image")
    parser.add_argument("outfile", help="output image (may be the input)")
    return parser


def _split_effect(argv: list[str]) -> tuple[str, list[str]]:
    """Separate the effect name from global options given before it."""
    leading = []
    i = 0
    while i < len(argv):
        token = argv[i]
        if not token.startswith("--"):
            return token, leading + argv[i + 1:]
        leading.append(token)
        if token in _VALUED_GLOBALS and i + 1 < len(argv):
            leading.append(argv[i + 1])
            i += 1
        i += 1
    raise UsageError("no effect given")


def _print_list(stream=None) -> None:
    stream = stream or sys.stdout
    width = max(len(name) for name in EFFECTS)
    for name in effect_names():
        stream.write(f"{name:<{width}}  {EFFECTS[name].summary}\n")


def _run_effect(effect: Effect, argv: list[str], prog: str) -> int:
    parser = build_parser(effect, prog)
    if any(token in HELP_FLAGS for token in argv):
        sys.stderr.write(parser.format_help())
        return 0

    try:
        args = vars(parser.parse_args(argv))
        raw = {
            flag: args[field]
            for flag, field in effect.options.FLAGS.items()
            if field in args
        }

        cli_cfg = CLIConfig(
            engine=args["engine"],
            tmpdir=args["tmpdir"],
            log_level=args["log_level"],
            verbose=args["verbose"],
        )
        config = resolve_config(ParamConfig(), cli_cfg)

        runner = EffectRunner(config)
        runner.setup_logging()
        runner.run(effect.name, raw, args["infile"], args["outfile"])
        return 0

    except ImfxError as e:
        logger.debug("%s failed", prog, exc_info=True)
        sys.stderr.write(f"{prog}: {e}\n")
        if e.show_usage:
            sys.stderr.write(parser.format_usage())
        return e.exit_code


def main(argv: Optional[Sequence[str]] = None, effect: Optional[str] = None) -> int:
    """Entry point; returns the process exit status.

    Parameters
    ----------
    argv : sequence of str, optional
        Arguments without the program name (``sys.argv[1:]`` by default).
    effect : str, optional
        Fixed effect for the per-effect ``imfx-<name>`` scripts. When None
        the effect name is the first non-option argument.
    """
    argv = list(sys.argv[1:] if argv is None else argv)

    if effect is not None:
        return _run_effect(get_effect(effect), argv, f"imfx-{effect}")

    if not argv or argv[0] in HELP_FLAGS:
        sys.stderr.write(TOP_USAGE)
        sys.stderr.write("\neffects:\n")
        _print_list(sys.stderr)
        return 0 if argv else 1

    try:
        name, rest = _split_effect(argv)
        if name == "list":
            _print_list()
            return 0
        chosen = get_effect(name)
    except UsageError as e:
        sys.stderr.write(f"imfx: {e}\n")
        sys.stderr.write(TOP_USAGE)
        return e.exit_code

    return _run_effect(chosen, rest, f"imfx {name}")


def _entry(name: str):
    def entry(argv: Optional[Sequence[str]] = None) -> int:
        return main(argv, effect=name)
    entry.__name__ = name
    entry.__doc__ = f"Console script ``imfx-{name}``."
    return entry


glow = _entry("glow")
passfilter = _entry("passfilter")
melt = _entry("melt")
ripples = _entry("ripples")
polarblur = _entry("polarblur")
rangethresh = _entry("rangethresh")
endpoints = _entry("endpoints")
curves = _entry("curves")
hue = _entry("hue")
vibrance = _entry("vibrance")
tile = _entry("tile")


if __name__ == "__main__":
    sys.exit(main())
