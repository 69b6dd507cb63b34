# uiflow/assertions.py
"""
Assertion steps. A check that does not hold records an assertion failure.
"""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Union

from uiflow.context import Context
from uiflow.exceptions import FlowAssertionError, UsageError
from uiflow.schemas.failure import Failure, FailureKind
from uiflow.step import Step, require

Message = Union[str, Callable[[Context], Union[str, Awaitable[str]]]]


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def assert_attribute_value(attribute_name: str, expected: str) -> Step:
    if attribute_name is None:
        raise UsageError("assert_attribute_value: attribute_name is required")

    async def body(context: Context) -> Context:
        if context.focus is None:
            raise UsageError(
                f"assert_attribute_value {attribute_name}='{expected}': missing context element"
            )
        actual = await context.focus.get_attribute(attribute_name)
        if actual != expected:
            raise FlowAssertionError(
                f"Expected {attribute_name}='{expected}', actual {attribute_name}='{actual}'"
            )
        return context

    return Step(body, name="assert_attribute_value", args={"attribute": attribute_name, "expected": expected})


def assertion(
    predicate: Callable[[Context], Union[bool, Awaitable[bool]]],
    message: Message,
) -> Step:
    """Generic check; `message` may be a string or built from the context."""

    async def body(context: Context) -> Context:
        require(predicate, "assertion", "predicate")
        if await _resolve(predicate(context)):
            return context
        text = message if isinstance(message, str) else await _resolve(message(context))
        raise FlowAssertionError(text)

    return Step(body, name="assertion", args={"predicate": predicate})


def assert_title(expected: str) -> Step:
    async def body(context: Context) -> Context:
        actual = await context.title()
        if actual != expected:
            raise FlowAssertionError(f"Expected title '{expected}', actual '{actual}'")
        return context

    return Step(body, name="assert_title", args={"expected": expected})


def assert_text(expected: str, contains: bool = False) -> Step:
    """Check the focused element's text, exactly or as a substring."""

    async def body(context: Context) -> Context:
        if context.focus is None:
            raise UsageError("assert_text: missing context element")
        actual = await context.focus.text() or ""
        ok = expected in actual if contains else actual == expected
        if not ok:
            relation = "containing" if contains else "equal to"
            raise FlowAssertionError(f"Expected text {relation} '{expected}', actual '{actual}'")
        return context

    return Step(body, name="assert_text", args={"expected": expected, "contains": contains})


def create_failure(problem: Any) -> Step:
    """Unconditionally fail with `problem` (a value or a callable of the context)."""

    async def body(context: Context) -> Context:
        payload = await _resolve(problem(context)) if callable(problem) else problem
        return context.with_failure(Failure.coerce(payload, step="create_failure", kind=FailureKind.ASSERTION))

    return Step(body, name="create_failure", args={"problem": problem})
