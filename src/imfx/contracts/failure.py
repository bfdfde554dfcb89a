"""Centralized failure taxonomy for imfx.

Every error that ends an invocation derives from ImfxError, so the command
line front end can report all of them uniformly. Contract violations are
kept apart: they signal a bug in pipeline composition, not bad user input.
"""


class ImfxError(Exception):
    """Base class for errors that terminate an invocation.

    Attributes
    ----------
    exit_code : int
        Process exit status reported by the CLI.
    show_usage : bool
        Whether the CLI follows the message with abbreviated usage.
    """
    exit_code = 1
    show_usage = True


class UsageError(ImfxError):
    """Wrong number of positional arguments, unknown flag, or flag without value."""


class ValidationError(ImfxError):
    """An option value is out of range or malformed.

    Parameters
    ----------
    flag : str
        The offending command-line flag (e.g. ``-f``) or field name.
    message : str
        The violated constraint.
    """

    def __init__(self, flag: str, message: str):
        self.flag = flag
        self.message = message
        super().__init__(f"{flag}: {message}")


class InputError(ImfxError):
    """An input file is missing, not a regular file, unreadable or empty."""

    def __init__(self, path, message: str):
        self.path = str(path)
        self.message = message
        super().__init__(f"{self.path}: {message}")


class ParameterError(ImfxError):
    """A derived engine parameter falls outside the engine's domain."""


class ExecutionError(ImfxError):
    """The external engine failed.

    Parameters
    ----------
    message : str
        What was being attempted.
    diagnostic : str, optional
        The engine's stderr output.
    step : object, optional
        The pipeline step that failed, if any.
    """

    def __init__(self, message: str, diagnostic: str = "", step=None):
        self.message = message
        self.diagnostic = diagnostic.strip()
        self.step = step
        text = message
        if self.diagnostic:
            text = f"{message}\n{self.diagnostic}"
        super().__init__(text)


class InterruptedRun(ImfxError):
    """A termination signal arrived while the pipeline was running."""
    show_usage = False

    def __init__(self, signum: int):
        self.signum = signum
        super().__init__(f"interrupted by signal {signum}")


class ContractViolation(RuntimeError):
    """Raised when a pipeline contract is violated.

    This indicates a bug in pipeline logic, not bad user input. It means a
    stage did not produce the invariants it promised.

    Key distinction:
    - ValidationError: User error (handled by Pydantic option sets)
    - ParameterError: Valid options whose derived values the engine can't take
    - ContractViolation: Pipeline bug (programmer error)
    """
    pass
