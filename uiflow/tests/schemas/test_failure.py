# uiflow/tests/schemas/test_failure.py
import pytest
from pydantic import ValidationError

from uiflow.exceptions import DriverError, InteractionError, MissingItemError, ResolutionError, SessionError
from uiflow.schemas.failure import Failure, FailureKind


def test_failure_is_immutable():
    failure = Failure.of(FailureKind.ASSERTION, "mismatch")
    with pytest.raises(ValidationError):
        failure.message = "changed"


def test_describe_with_and_without_step():
    assert Failure.of("resolution", "'li' not found", step="find").describe() == "[resolution] find: 'li' not found"
    assert Failure.of("usage", "bad call").describe() == "[usage] bad call"
    assert str(Failure.of("usage", "bad call")) == "bad call"


@pytest.mark.parametrize(
    "exc, kind",
    [
        (ResolutionError("missing"), FailureKind.RESOLUTION),
        (InteractionError("detached"), FailureKind.INTERACTION),
        (MissingItemError("Context item 'x' is not set"), FailureKind.USAGE),
        (DriverError("socket closed"), FailureKind.INTERACTION),
        (SessionError("browser gone"), FailureKind.DRIVER),
        (KeyError("x"), FailureKind.UNEXPECTED),
    ],
)
def test_from_exception_kinds(exc, kind):
    failure = Failure.from_exception(exc, step="outer")
    assert failure.kind is kind
    assert failure.error_type == type(exc).__name__
    assert failure.step == "outer"


def test_from_exception_prefers_error_step():
    failure = Failure.from_exception(ResolutionError("missing", step="inner"), step="outer")
    assert failure.step == "inner"
    assert failure.message == "missing"


def test_from_exception_without_message_uses_class_name():
    assert Failure.from_exception(RuntimeError()).message == "RuntimeError"


def test_coerce():
    existing = Failure.of("assertion", "kept")
    assert Failure.coerce(existing, step="ignored") is existing
    assert Failure.coerce("plain text", kind=FailureKind.ASSERTION).kind is FailureKind.ASSERTION
    assert Failure.coerce(42).message == "42"

    none = Failure.coerce(None, step="create_failure")
    assert none.kind is FailureKind.USAGE
    assert none.message == "None passed as failure"


def test_unknown_kind_is_rejected():
    with pytest.raises(ValueError):
        Failure.of("catastrophic", "nope")
