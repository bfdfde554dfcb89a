"""`imfx` - ImageMagick effect pipelines compiled from validated parameters.

Subpackages:
- schemas: Option Sets and runtime configuration
- effects: Parameter transformer, pipeline composers, effect registry
- pipeline: Stager, executor, orchestrator
- engine: ImageMagick capabilities, adapters and runner
- cli: Command-line front end
"""

__version__ = "0.1.0"
