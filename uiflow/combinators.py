# uiflow/combinators.py
"""
Control-flow combinators built on steps: conditionals, loops, retries and
side-effect hooks. Each combinator returns a `Step`; inner steps are run
through `execute_step`, so failures and exceptions inside them follow the
same short-circuit contract as top-level steps.
"""

from __future__ import annotations

import inspect
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

import anyio

from uiflow.chain import StepLike, as_step, execute_step
from uiflow.context import Context
from uiflow.exceptions import UsageError
from uiflow.executors.driver import Locator
from uiflow.schemas.failure import FailureKind
from uiflow.schemas.settings import get_settings
from uiflow.step import Step, require
from uiflow.utils.logger import setup_logger
from uiflow.utils.trace import HeldErrorSink

logger = setup_logger(__name__)

Predicate = Callable[[Context], Union[bool, Awaitable[bool]]]

MIN_ATTEMPTS = 1
MAX_ATTEMPTS = 10


class BackoffPolicy(str, Enum):
    """When `retry` sleeps before the next attempt."""

    ON_EXCEPTION = "on_exception"
    ALWAYS = "always"


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def when(predicate: Predicate, step: StepLike, otherwise: Optional[StepLike] = None) -> Step:
    """Runs `step` if `predicate(context)` holds, `otherwise` (if given) if not."""
    then_step = as_step(step) if step is not None else None
    else_step = as_step(otherwise) if otherwise is not None else None

    async def when_(context: Context) -> Context:
        require(predicate, "when", "predicate")
        require(then_step, "when", "step")
        if await _maybe_await(predicate(context)):
            return await execute_step(then_step, context)
        if else_step is not None:
            return await execute_step(else_step, context)
        return context

    return Step(when_, name="when", args={"predicate": predicate, "step": then_step.name if then_step else None})


def repeat_while(predicate: Predicate, step: StepLike, max_iterations: Optional[int] = None) -> Step:
    """Runs `step` while `predicate` holds.

    The loop ends as soon as the carried context fails, before the
    predicate is evaluated again.
    """
    body = as_step(step) if step is not None else None

    async def repeat_while_(context: Context) -> Context:
        require(predicate, "repeat_while", "predicate")
        require(body, "repeat_while", "step")
        current = context
        iterations = 0
        while await _maybe_await(predicate(current)):
            if max_iterations is not None and iterations >= max_iterations:
                return current.fail(
                    FailureKind.USAGE,
                    f"repeat_while: exceeded {max_iterations} iteration(s)",
                    step="repeat_while",
                )
            current = await execute_step(body, current)
            iterations += 1
            if current.has_failure():
                break
        return current

    return Step(
        repeat_while_,
        name="repeat_while",
        args={"predicate": predicate, "step": body.name if body else None, "max_iterations": max_iterations},
    )


def _clamp_attempts(max_attempts: int) -> int:
    return max(MIN_ATTEMPTS, min(MAX_ATTEMPTS, int(max_attempts)))


async def retry(
    operation: Callable[[], Union[bool, Awaitable[bool]]],
    max_attempts: int = 10,
    backoff: Optional[BackoffPolicy] = None,
    base_delay_ms: Optional[int] = None,
) -> bool:
    """Calls `operation` until it returns True or the attempts run out.

    Attempts are clamped to [1, 10]. The delay before attempt n+1 is
    `base_delay_ms * n`. With `BackoffPolicy.ON_EXCEPTION` only a raising
    attempt is followed by a delay; `BackoffPolicy.ALWAYS` also delays
    after a plain False. Exceptions never escape; they are logged with the
    attempt number.

    :param operation: Check returning success; may be a coroutine function.
    :type operation: Callable
    :param max_attempts: Number of attempts before giving up.
    :type max_attempts: int
    :param backoff: Delay policy; defaults to the configured one.
    :type backoff: Optional[BackoffPolicy]
    :param base_delay_ms: Delay unit; defaults to the configured one.
    :type base_delay_ms: Optional[int]
    :return: True on the first success, False after exhausting attempts.
    :rtype: bool
    :raises UsageError: If `operation` is None.
    """
    if operation is None:
        raise UsageError("retry: operation is required")

    settings = get_settings()
    policy = BackoffPolicy(backoff or settings.retry_backoff)
    unit_ms = settings.retry_base_delay_ms if base_delay_ms is None else base_delay_ms
    attempts = _clamp_attempts(max_attempts)

    for attempt in range(1, attempts + 1):
        raised = False
        try:
            if await _maybe_await(operation()):
                return True
        except Exception as e:
            raised = True
            logger.warning(f"RETRY [{attempt}/{attempts}] {type(e).__name__}: {e}")

        if attempt == attempts:
            break
        if raised or policy is BackoffPolicy.ALWAYS:
            await anyio.sleep(unit_ms * attempt / 1000.0)

    return False


def retry_step(
    step: StepLike,
    max_attempts: int = 3,
    backoff: Optional[BackoffPolicy] = None,
    base_delay_ms: Optional[int] = None,
) -> Step:
    """Re-runs `step` from the same input context until it succeeds.

    Returns the first successful context, or the last failed one. Only the
    failure of the last attempt is reported to the trace.
    """
    body = as_step(step)

    async def retry_step_(context: Context) -> Context:
        held = HeldErrorSink(context.trace)
        # Failures of earlier attempts must not stick, so each attempt
        # starts from the original context.
        attempt_context = context.model_copy(update={"trace": held})
        outcome = {"result": attempt_context}

        async def attempt() -> bool:
            result = await execute_step(body, attempt_context)
            outcome["result"] = result
            return not result.has_failure()

        await retry(attempt, max_attempts=max_attempts, backoff=backoff, base_delay_ms=base_delay_ms)
        result = outcome["result"].model_copy(update={"trace": context.trace})
        if result.has_failure() and held.held:
            context.trace.error(held.held[-1])
        return result

    return Step(retry_step_, name="retry_step", args={"step": body.name, "max_attempts": max_attempts})


def use(action: Callable[[Context], Any], step: Optional[StepLike] = None) -> Step:
    """Hands the context (or the result of `step`) to a callback.

    The context is forwarded unchanged; an exception from the callback is
    recorded as the failure.
    """
    inner = as_step(step) if step is not None else None

    async def use_(context: Context) -> Context:
        if action is None:
            return context.fail(FailureKind.USAGE, "use: None passed as action", step="use")
        result = await execute_step(inner, context) if inner is not None else context
        if result.has_failure():
            return result
        return await result.use(action)

    return Step(use_, name="use", args={"action": action, "step": inner.name if inner else None})


def use_element(action: Callable[[Locator], Any], step: Optional[StepLike] = None) -> Step:
    """Hands the focused element (after `step`, if given) to a callback."""
    inner = as_step(step) if step is not None else None

    async def use_element_(context: Context) -> Context:
        if action is None:
            return context.fail(FailureKind.USAGE, "use_element: None passed as action", step="use_element")
        result = await execute_step(inner, context) if inner is not None else context
        if result.has_failure() or result.focus is None:
            return result
        try:
            await _maybe_await(action(result.focus))
        except Exception as e:
            return result.with_failure(e, step="use_element")
        return result

    return Step(
        use_element_,
        name="use_element",
        args={"action": action, "step": inner.name if inner else None},
    )
