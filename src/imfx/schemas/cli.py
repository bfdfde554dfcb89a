"""CLIConfig: Command-line operational overrides.

Operational settings that commonly change between runs: engine binary,
staging directory, verbosity. Effect options are not part of this schema;
they live in the per-effect Option Sets.
"""

from typing import Literal, Optional
from pydantic import model_validator
from imfx.schemas.base import ImfxBaseModel


class CLIConfig(ImfxBaseModel):
    """Command-line configuration overrides.

    Highest priority in config resolution.

    Notes
    -----
    ``verbose`` is shorthand for ``log_level="DEBUG"``; an explicit
    log_level wins over it.

    Usage
    -----
        cli_cfg = CLIConfig(engine="/opt/im7/bin/magick", verbose=True)
        internal = resolve_config(param_cfg, cli_cfg)
    """

    engine: Optional[str] = None
    tmpdir: Optional[str] = None
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None
    verbose: bool = False

    @model_validator(mode="after")
    def infer_debug_from_verbose(self):
        """Verbose runs log at DEBUG unless a level was given explicitly."""
        if self.verbose and self.log_level is None:
            self.log_level = "DEBUG"
        return self

    def to_internal_overrides(self) -> dict:
        """Convert CLI config to internal config structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        if self.engine is not None:
            overrides["engine"] = {"binary": self.engine}

        if self.tmpdir is not None:
            overrides["staging"] = {"tmp_dir": str(self.tmpdir)}

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
