"""Pipeline contracts and the error taxonomy.

Contracts fail immediately and loudly when a stage does not produce its
promised invariants. User-facing errors (usage, validation, input,
parameter, execution) share the ImfxError base.

Key principle:
- Pydantic validates options and config
- Contracts validate pipeline composition
- The engine handles pixels
"""

from imfx.contracts.failure import (
    ContractViolation,
    ExecutionError,
    ImfxError,
    InputError,
    InterruptedRun,
    ParameterError,
    UsageError,
    ValidationError,
)
from imfx.contracts.base import require
from imfx.contracts.staging import assert_staged
from imfx.contracts.pipeline import assert_composed

__all__ = [
    "ContractViolation",
    "ExecutionError",
    "ImfxError",
    "InputError",
    "InterruptedRun",
    "ParameterError",
    "UsageError",
    "ValidationError",
    "require",
    "assert_staged",
    "assert_composed",
]
