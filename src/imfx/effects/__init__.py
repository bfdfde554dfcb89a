"""Effect families: parameter transformation and pipeline composition."""

from imfx.effects.registry import EFFECTS, Effect, effect_names, get_effect

__all__ = ['EFFECTS', 'Effect', 'effect_names', 'get_effect']
