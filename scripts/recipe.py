"""Example imfx recipe.

Usage:
    python scripts/run_effect.py scripts/recipe.py
    python scripts/run_effect.py scripts/recipe.py --outfile /tmp/glow.png

Flags are the same single-letter options the command line takes.
"""

RECIPE = {
    "effect": "glow",
    "options": {
        "-c": "white",    # seed color that glows
        "-f": 20,         # fuzz percent around the seed color
        "-b": 8,          # halo spread (blur sigma)
        "-s": 150,        # halo strength percent
    },
    "infile": "input.png",
    "outfile": "glow.png",
}
