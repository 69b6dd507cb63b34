# uiflow/exceptions.py
"""
Defines custom exception classes for the uiflow package.

Two families live here. Session-level errors (`SessionError` and friends)
are raised to the caller, because they happen before a Context exists.
Step-level errors (`StepError` subclasses) are raised inside step bodies
and are captured by the chain into the Context's failure slot; they carry
the failure kind they map to.
"""
from typing import Optional


class UiFlowError(Exception):
    """Base exception class for all custom errors in uiflow."""

    pass


class ConfigurationError(UiFlowError):
    """Raised when the settings file or environment holds invalid values."""

    pass


class SessionError(UiFlowError):
    """Raised when a browser session cannot be created or navigated.

    This is the one error class that escapes to the caller of session
    setup, since there is no Context yet to carry a failure.
    """

    pass


class UnsupportedBrowserError(SessionError, ValueError):
    """Raised when an unknown or unsupported browser brand is requested."""

    pass


class DriverError(UiFlowError):
    """Raised by a driver adapter when the underlying browser call fails.

    Inside a chain this becomes an interaction failure.
    """

    pass


class DriverTimeoutError(DriverError, TimeoutError):
    """Raised by a driver adapter when a bounded wait expires."""

    pass


class StepError(UiFlowError):
    """Base class for errors raised from inside step bodies.

    :ivar kind: The failure kind recorded when the chain captures this error.
    :vartype kind: str
    """

    kind: str = "unexpected"

    def __init__(self, message: str, step: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.step = step


class ResolutionError(StepError):
    """A selector matched nothing after waiting, or an index is out of range."""

    kind = "resolution"


class InteractionError(StepError):
    """The driver failed while clicking, filling or evaluating on an element."""

    kind = "interaction"


class FlowAssertionError(StepError):
    """An explicit predicate or attribute check did not hold."""

    kind = "assertion"


class UsageError(StepError, ValueError):
    """A required argument was missing or a step was used in the wrong state."""

    kind = "usage"


class MissingItemError(UsageError, KeyError):
    """Raised when an unknown key is read from the context item store.

    Inherits from `KeyError` so callers treating the store as a mapping
    keep working.
    """

    def __str__(self) -> str:
        return self.message


class ChainCancelledError(StepError):
    """Raised when a cancellation token was set before a step ran."""

    kind = "cancelled"
