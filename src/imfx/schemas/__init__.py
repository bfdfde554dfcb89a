"""Pydantic schemas for imfx.

Run configuration and per-effect Option Sets. All validation, coercion and
normalization happens at schema validation time via Pydantic; runtime code
only sees validated, immutable models.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
CLIConfig : class
    Command-line operational overrides
EffectOptions : class
    Base of the per-effect Option Sets
"""

from imfx.schemas.resolve import resolve_config
from imfx.schemas.internal import InternalConfig
from imfx.schemas.param import ParamConfig
from imfx.schemas.cli import CLIConfig
from imfx.schemas.options import EffectOptions

__all__ = [
    'resolve_config',
    'InternalConfig',
    'ParamConfig',
    'CLIConfig',
    'EffectOptions',
]
