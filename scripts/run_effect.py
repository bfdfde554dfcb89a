#!/usr/bin/env python3
"""Run one imfx effect from a recipe file.

Usage:
    python scripts/run_effect.py scripts/recipe.py
    python scripts/run_effect.py scripts/recipe.py --infile in.png --outfile out.png
    python scripts/run_effect.py scripts/recipe.py --engine /opt/im7/bin/magick -v

Note: the recipe names the effect and its flags; engine and staging defaults
are in src/imfx/schemas/param.py
"""

import sys
import argparse
import importlib.util
from pathlib import Path

# Add src to path
project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root / "src"))

from imfx.contracts import ImfxError
from imfx.pipeline.orchestrator import EffectRunner
from imfx.schemas import resolve_config, ParamConfig, CLIConfig


def load_recipe_dict(recipe_path: str) -> dict:
    """Load the RECIPE dict from a Python file."""
    path = Path(recipe_path)
    if not path.exists():
        raise FileNotFoundError(f"Recipe not found: {path}")

    spec = importlib.util.spec_from_file_location("recipe_module", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    recipe = getattr(module, "RECIPE", None)
    if not isinstance(recipe, dict):
        raise ValueError(f"No RECIPE dict found in {path}")
    return recipe


def main():
    parser = argparse.ArgumentParser(description="Run an imfx effect from a recipe file")
    parser.add_argument("recipe", help="Path to recipe file")
    parser.add_argument("--infile", help="Override input image")
    parser.add_argument("--outfile", help="Override output image")
    parser.add_argument("--engine", help="ImageMagick binary")
    parser.add_argument("--tmpdir", help="Parent directory for staging files")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    recipe = load_recipe_dict(args.recipe)
    infile = args.infile or recipe["infile"]
    outfile = args.outfile or recipe["outfile"]
    options = {flag: str(value) for flag, value in recipe.get("options", {}).items()}

    cli_cfg = CLIConfig.model_validate({
        k: v
        for k, v in {
            "engine": args.engine,
            "tmpdir": args.tmpdir,
            "verbose": args.verbose,
        }.items()
        if v is not None
    })
    config = resolve_config(ParamConfig(), cli_cfg)

    print(f"\n{'='*60}")
    print("imfx effect runner")
    print('='*60)
    print(f"Recipe: {args.recipe}")
    print(f"Effect: {recipe['effect']} {' '.join(f'{k} {v}' for k, v in options.items())}")
    print(f"Input:  {infile}")
    print(f"Output: {outfile}")
    print('='*60)

    runner = EffectRunner(config)
    runner.setup_logging()
    try:
        runner.run(recipe["effect"], options, infile, outfile)
    except ImfxError as e:
        print(f"Failed in {runner.history[-2].value}: {e}", file=sys.stderr)
        sys.exit(e.exit_code)
    print(f"Wrote {outfile}")


if __name__ == "__main__":
    main()
