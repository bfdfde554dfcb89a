"""Composition stage contract.

Enforces that a composed pipeline can be executed in order: every step reads
only buffers that exist at that point, staged inputs are never rebound, and
the result buffer is produced.
"""

from imfx.contracts.base import require


def assert_composed(pipeline, staged_names) -> None:
    """Enforce composition stage contract.

    Called after a composer returns and before anything is executed.

    Parameters
    ----------
    pipeline : Pipeline
        Output of an effect composer.

    staged_names : iterable of str
        Buffer names bound by the stager before the first step runs.

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    staged = set(staged_names)
    bound = set(staged)

    for index, step in enumerate(pipeline.steps):
        for name in step.inputs:
            require(
                name in bound,
                f"Pipeline contract violated: step {index} ({step.kind}) reads "
                f"'{name}' before it is produced"
            )
        require(
            step.output not in staged,
            f"Pipeline contract violated: step {index} ({step.kind}) overwrites "
            f"staged input '{step.output}'"
        )
        bound.add(step.output)

    require(
        pipeline.result in bound,
        f"Pipeline contract violated: result buffer '{pipeline.result}' is never produced"
    )
    require(
        pipeline.result not in staged or not pipeline.steps,
        f"Pipeline contract violated: result '{pipeline.result}' is a staged input "
        "but the pipeline has steps"
    )
