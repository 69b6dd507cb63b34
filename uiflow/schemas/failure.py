# uiflow/schemas/failure.py
"""
The terminal error payload recorded in a Context once any step fails.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from uiflow.exceptions import DriverError, SessionError, StepError


class FailureKind(str, Enum):
    RESOLUTION = "resolution"
    INTERACTION = "interaction"
    ASSERTION = "assertion"
    USAGE = "usage"
    DRIVER = "driver"
    CANCELLED = "cancelled"
    UNEXPECTED = "unexpected"


class Failure(BaseModel):
    """
    Represents a failure captured by the chain.

    :ivar kind: Category of the failure.
    :vartype kind: FailureKind
    :ivar message: Human-readable description.
    :vartype message: str
    :ivar step: Name of the step that produced the failure, when known.
    :vartype step: Optional[str]
    :ivar error_type: Class name of the exception that caused it, if any.
    :vartype error_type: Optional[str]
    """

    model_config = ConfigDict(frozen=True)

    kind: FailureKind = Field(FailureKind.UNEXPECTED)
    message: str
    step: Optional[str] = Field(default=None)
    error_type: Optional[str] = Field(default=None)

    def __str__(self) -> str:
        return self.message

    def describe(self) -> str:
        prefix = f"[{self.kind.value}]"
        if self.step:
            prefix = f"{prefix} {self.step}:"
        return f"{prefix} {self.message}"

    @classmethod
    def of(cls, kind: FailureKind | str, message: str, step: Optional[str] = None) -> "Failure":
        return cls(kind=FailureKind(kind), message=message, step=step)

    @classmethod
    def from_exception(cls, exc: BaseException, step: Optional[str] = None) -> "Failure":
        """Maps an exception raised inside a step to a failure payload.

        Typed step errors keep their kind. Driver errors count as interaction
        failures and session errors as driver failures. Anything else is
        recorded as unexpected.

        :param exc: The captured exception.
        :type exc: BaseException
        :param step: Name of the step that was running.
        :type step: Optional[str]
        :return: The failure payload.
        :rtype: Failure
        """
        if isinstance(exc, StepError):
            kind = FailureKind(exc.kind)
            step = exc.step or step
            message = exc.message
        elif isinstance(exc, DriverError):
            kind = FailureKind.INTERACTION
            message = str(exc)
        elif isinstance(exc, SessionError):
            kind = FailureKind.DRIVER
            message = str(exc)
        else:
            kind = FailureKind.UNEXPECTED
            message = str(exc) or exc.__class__.__name__
        return cls(kind=kind, message=message, step=step, error_type=type(exc).__name__)

    @classmethod
    def coerce(
        cls,
        payload: object,
        step: Optional[str] = None,
        kind: FailureKind | str = FailureKind.UNEXPECTED,
    ) -> "Failure":
        """Builds a failure from a Failure, an exception, or any other value."""
        if isinstance(payload, Failure):
            return payload
        if isinstance(payload, BaseException):
            return cls.from_exception(payload, step=step)
        if payload is None:
            return cls(kind=FailureKind.USAGE, message="None passed as failure", step=step)
        return cls(kind=FailureKind(kind), message=str(payload), step=step)
