# uiflow/chain.py
"""
Ordered composition of steps with short-circuit on failure.

`execute_step` is the single place where a step is invoked under the chain
contract: it skips when the context already failed, polls the cancellation
token, emits the trace line and turns any exception into a failure.
`Chain.run` and every combinator that invokes an inner step go through it,
so no exception raised by a step body ever escapes to the caller.
"""

from __future__ import annotations

import contextvars
import threading
from typing import Iterable, Optional, Tuple, Union

import anyio

from uiflow.context import Context
from uiflow.exceptions import ChainCancelledError, UsageError
from uiflow.schemas.failure import FailureKind
from uiflow.step import Step, StepFn
from uiflow.utils.logger import setup_logger

logger = setup_logger(__name__)

StepLike = Union[Step, "Chain", StepFn]

# Token of the innermost running chain. Steps invoked by combinators and
# nested chains read it, so a cancel reaches steps at any depth.
active_cancel: contextvars.ContextVar[Optional["CancellationToken"]] = contextvars.ContextVar(
    "active_cancel", default=None
)


class CancellationToken:
    """Cooperative cancellation signal, settable from any thread."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def as_step(value: StepLike, name: Optional[str] = None) -> Step:
    if isinstance(value, Step):
        return value
    if isinstance(value, Chain):
        return value.as_step(name)
    if callable(value):
        return Step(value, name=name)
    raise UsageError(f"Expected a step, chain or callable, got {type(value).__name__}")


async def execute_step(
    step: Step,
    context: Context,
    cancel: Optional[CancellationToken] = None,
) -> Context:
    """Runs one step under the chain contract.

    :param step: The step to run.
    :type step: Step
    :param context: The carried context.
    :type context: Context
    :param cancel: Token polled before the step starts; defaults to the
        token of the running chain.
    :type cancel: Optional[CancellationToken]
    :return: The derived context, or a failed one.
    :rtype: Context
    """
    if context.has_failure():
        return context

    cancel = cancel or active_cancel.get()
    if cancel is not None and cancel.cancelled:
        return context.with_failure(
            ChainCancelledError(f"Chain cancelled before '{step.name}': {cancel.reason}"),
            step=step.name,
        )

    context.trace.log(step.describe())
    try:
        result = await step(context)
    except Exception as e:
        logger.debug(f"Step '{step.name}' raised {type(e).__name__}", exc_info=True)
        return context.with_failure(e, step=step.name)

    if not isinstance(result, Context):
        return context.fail(
            FailureKind.USAGE,
            f"Step returned {type(result).__name__} instead of a Context",
            step=step.name,
        )
    return result


class Chain:
    """An immutable, ordered list of steps.

    Usage:
        chain = Chain().then(find_all("li")).then(first_containing_text("eta"))
        result = await chain.run(context)
        if result.has_failure():
            print(result.failure)
    """

    __slots__ = ("steps",)

    def __init__(self, steps: Iterable[StepLike] = ()):
        self.steps: Tuple[Step, ...] = tuple(as_step(s) for s in steps)

    @classmethod
    def of(cls, *steps: StepLike) -> "Chain":
        return cls(steps)

    def then(self, step: StepLike, name: Optional[str] = None) -> "Chain":
        """Returns a new chain with `step` appended at the end."""
        return Chain((*self.steps, as_step(step, name)))

    def extend(self, steps: Iterable[StepLike]) -> "Chain":
        return Chain((*self.steps, *(as_step(s) for s in steps)))

    def __len__(self) -> int:
        return len(self.steps)

    def describe(self) -> str:
        return " | ".join(s.describe() for s in self.steps)

    async def run(
        self,
        context: Context,
        cancel: Optional[CancellationToken] = None,
    ) -> Context:
        """Executes the steps left to right.

        Once the carried context has a failure, the remaining steps are
        skipped and that context is returned.

        :raises UsageError: If `context` is None.
        """
        if context is None:
            raise UsageError("Chain.run: initial context is None")

        scope = active_cancel.set(cancel) if cancel is not None else None
        try:
            current = context
            for index, step in enumerate(self.steps):
                if current.has_failure():
                    logger.debug(f"Skipping {len(self.steps) - index} step(s) after failure")
                    break
                current = await execute_step(step, current, cancel)
            return current
        finally:
            if scope is not None:
                active_cancel.reset(scope)

    def run_sync(
        self,
        context: Context,
        cancel: Optional[CancellationToken] = None,
    ) -> Context:
        """Blocking variant of `run` for callers outside an event loop."""
        return anyio.run(self.run, context, cancel)

    def as_step(self, name: Optional[str] = None) -> Step:
        chain = self

        async def run_chain(context: Context) -> Context:
            return await chain.run(context)

        return Step(run_chain, name=name or "chain", args={"steps": len(self.steps)})

    def __repr__(self) -> str:
        return f"Chain({self.describe()})"
