"""External engine boundary.

- capabilities: Probe the installed ImageMagick once
- adapter: Render engine-neutral steps for a specific engine version
- runner: Execute engine commands and surface diagnostics
"""

from imfx.engine.capabilities import EngineCapabilities, detect_capabilities
from imfx.engine.adapter import EngineAdapter, select_adapter
from imfx.engine.runner import EngineRunner

__all__ = [
    "EngineCapabilities",
    "detect_capabilities",
    "EngineAdapter",
    "select_adapter",
    "EngineRunner",
]
