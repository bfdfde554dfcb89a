"""InternalConfig: Authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully validated,
normalized, and immutable.
"""

from typing import Literal, Optional
from pydantic import ConfigDict
from imfx.schemas.base import ImfxBaseModel


class InternalEngineConfig(ImfxBaseModel):
    """Runtime engine configuration."""
    binary: Optional[str]  # None means auto-detect
    quiet: bool


class InternalStagingConfig(ImfxBaseModel):
    """Runtime staging configuration."""
    tmp_dir: Optional[str]
    cache_format: Literal["mpc", "miff"]


class InternalLoggingConfig(ImfxBaseModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    log_file: Optional[str]


class InternalConfig(ImfxBaseModel):
    """Authoritative runtime configuration.

    Runtime modules receive InternalConfig and access fields directly:

        def __init__(self, config: InternalConfig):
            self.cache_format = config.staging.cache_format  # NOT .get()

    Rules
    -----
    - NO .get() calls
    - NO fallback defaults
    - NO validation in runtime code
    """

    engine: InternalEngineConfig
    staging: InternalStagingConfig
    logging: InternalLoggingConfig

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,  # Immutable after construction
    )
