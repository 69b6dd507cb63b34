# uiflow/step.py
"""
A Step is a named transformation `Context -> Context`.

The step keeps its arguments as an explicit mapping supplied when it is
built, so a trace line such as `find(selector='li', index=0)` can be
rendered without running it and without looking inside closures. Step
bodies may be plain functions or coroutine functions.
"""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

from uiflow.context import Context
from uiflow.exceptions import UsageError
from uiflow.utils.redact import redact_for_log, render_value, truncate

StepFn = Callable[[Context], Union[Context, Awaitable[Context]]]

MAX_ARGS_CHARS = 256

ANONYMOUS = "anonymous"


def _callable_name(fn: Any) -> str:
    name = getattr(fn, "__name__", None)
    if not name or name == "<lambda>":
        return ANONYMOUS
    return name


class Step:
    """Pure-data wrapper around a step function.

    :param fn: The step body.
    :type fn: StepFn
    :param name: Display name; defaults to the function's name.
    :type name: Optional[str]
    :param args: Named arguments shown in trace lines.
    :type args: Optional[Mapping[str, Any]]
    """

    __slots__ = ("fn", "name", "args")

    def __init__(
        self,
        fn: StepFn,
        name: Optional[str] = None,
        args: Optional[Mapping[str, Any]] = None,
    ):
        if not callable(fn):
            raise TypeError(f"Step body must be callable, got {type(fn).__name__}")
        self.fn = fn
        self.name = name or _callable_name(fn)
        self.args: Dict[str, Any] = dict(args or {})

    @classmethod
    def of(cls, fn: StepFn, name: Optional[str] = None, **args: Any) -> "Step":
        return cls(fn, name=name, args=args)

    def describe(self) -> str:
        """Renders `name(k=v, ...)` with secrets masked and values size-bounded."""
        safe = redact_for_log(self.args)
        rendered = ", ".join(f"{k}={render_value(v)}" for k, v in safe.items())
        return f"{self.name}({truncate(rendered, MAX_ARGS_CHARS)})"

    async def __call__(self, context: Context) -> Context:
        """Runs the body directly, without failure checks or tracing."""
        result = self.fn(context)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        return f"Step({self.describe()})"


def define_step(name: Optional[str] = None, **args: Any) -> Callable[[StepFn], Step]:
    """Decorator turning a function into a `Step`.

    Usage:
        @define_step("accept_cookies")
        async def accept_cookies(context):
            ...
    """

    def decorator(fn: StepFn) -> Step:
        return Step(fn, name=name, args=args)

    return decorator


def require(value: Any, label: str, what: str) -> Any:
    """Returns `value`, raising a usage error when it is None."""
    if value is None:
        raise UsageError(f"{label}: {what} is required")
    return value
