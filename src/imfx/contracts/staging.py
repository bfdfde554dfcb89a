"""Staging stage contract.

Enforces the guarantee that a staged image is a readable cached copy with
known, positive dimensions before any pipeline is composed against it.
"""

from imfx.contracts.base import require


def assert_staged(staged) -> None:
    """Enforce staging stage contract.

    Parameters
    ----------
    staged : StagedImage
        Result of StagingArena.stage()

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    require(
        staged.path.exists(),
        f"Staging contract violated: cached copy {staged.path} does not exist"
    )
    require(
        staged.width > 0 and staged.height > 0,
        f"Staging contract violated: {staged.name} is {staged.width}x{staged.height}"
    )
    require(
        bool(staged.name),
        "Staging contract violated: staged image has no buffer name"
    )
