"""Pipeline building blocks: steps, staging and execution.

The run orchestration lives in ``imfx.pipeline.orchestrator`` and is
imported from there directly.
"""

from imfx.pipeline.steps import Pipeline, PipelineStep, StepKind, step
from imfx.pipeline.stager import StagedImage, StagingArena, check_input
from imfx.pipeline.executor import PipelineExecutor

__all__ = [
    'Pipeline',
    'PipelineStep',
    'StepKind',
    'step',
    'StagedImage',
    'StagingArena',
    'check_input',
    'PipelineExecutor',
]
