"""ParamConfig: Expert defaults for imfx runs.

This module defines the complete default configuration. ALL operational
parameters must have defaults here. No runtime code should define fallback
values - this is the single source of truth for defaults.

Runtime code NEVER reads from ParamConfig directly - it only receives InternalConfig.
"""

from typing import Literal, Optional
from pydantic import Field, field_validator
from imfx.schemas.base import ImfxBaseModel


# =============================================================================
# Nested Configuration Models
# =============================================================================

class EngineConfig(ImfxBaseModel):
    """External engine configuration."""
    binary: Optional[str] = Field(
        None, description="Engine binary; None auto-detects magick, then convert"
    )
    quiet: bool = True


class StagingConfig(ImfxBaseModel):
    """Staging arena configuration."""
    tmp_dir: Optional[str] = Field(None, description="Parent of the per-run arena")
    cache_format: Literal["mpc", "miff"] = "mpc"

    @field_validator("cache_format", mode="before")
    @classmethod
    def normalize_cache_format(cls, v):
        """Normalize format names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v


class LoggingConfig(ImfxBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    log_file: Optional[str] = None


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(ImfxBaseModel):
    """Complete expert configuration with all defaults.

    Usage
    -----
    This config is NOT used directly by runtime code. It serves as the
    base layer in config resolution:

        internal_cfg = resolve_config(param_cfg, cli_cfg)

    Runtime code only sees InternalConfig.
    """

    engine: EngineConfig = Field(default_factory=EngineConfig)
    staging: StagingConfig = Field(default_factory=StagingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
