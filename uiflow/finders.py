# uiflow/finders.py
"""
Finder steps: resolve one or many elements from a selector.

Every finder follows the same contract:
- wait (default `find_timeout`) until at least one match is attached,
  then count;
- zero matches is a resolution failure, never an empty success;
- index 0 is the first match, negative indexes count from the end
  (-1 is the last), anything else outside [0, count-1] fails with an
  "index out of range" message naming the valid range.

Global finders search the active scope (current frame, else the page).
Relative finders search inside the focused element. Existence probes
never fail the chain.
"""

from __future__ import annotations

import inspect
from typing import Awaitable, Callable, Optional, Sequence, Union

from uiflow.chain import StepLike, as_step, execute_step
from uiflow.context import Context
from uiflow.exceptions import DriverError, DriverTimeoutError, ResolutionError, UsageError
from uiflow.executors.driver import Locator, xpath_selector
from uiflow.schemas.settings import get_settings
from uiflow.step import Step
from uiflow.utils.logger import setup_logger

logger = setup_logger(__name__)

LocatorFilter = Callable[[Sequence[Locator]], Union[Optional[Locator], Awaitable[Optional[Locator]]]]


def _timeout(timeout: Optional[float]) -> float:
    return get_settings().find_timeout if timeout is None else timeout


def resolve_index(index: int, count: int, label: str) -> int:
    """Maps a possibly negative index onto [0, count-1].

    :raises ResolutionError: If the index falls outside the matches.
    """
    idx = count + index if index < 0 else index
    if idx < 0 or idx >= count:
        raise ResolutionError(f"{label}: index {index} out of range (0..{count - 1})")
    return idx


async def _count_after_wait(locator: Locator, timeout: float, label: str, shown: str) -> int:
    try:
        await locator.wait_for(timeout)
    except DriverTimeoutError:
        raise ResolutionError(f"{label}: '{shown}' not found")
    count = await locator.count()
    if count <= 0:
        raise ResolutionError(f"{label}: '{shown}' not found")
    return count


async def resolve_one(locator: Locator, index: int, timeout: float, label: str, shown: str) -> Locator:
    count = await _count_after_wait(locator, timeout, label, shown)
    return locator.nth(resolve_index(index, count, label))


async def resolve_all(locator: Locator, timeout: float, label: str, shown: str) -> tuple:
    count = await _count_after_wait(locator, timeout, label, shown)
    return tuple(locator.nth(i) for i in range(count))


def require_selector(selector: Optional[str], label: str) -> str:
    """Rejects a missing or blank selector with a usage error."""
    if not isinstance(selector, str) or not selector.strip():
        raise UsageError(f"{label}: selector is required, got {selector!r}")
    return selector


def _global_one(label: str, selector: str, shown: str, index: int, timeout: Optional[float]) -> Step:
    async def body(context: Context) -> Context:
        require_selector(shown, label)
        found = await resolve_one(context.locate(selector), index, _timeout(timeout), label, shown)
        return context.with_focus(found)

    return Step(body, name=label, args={"selector": shown, "index": index})


def _global_all(label: str, selector: str, shown: str, timeout: Optional[float]) -> Step:
    async def body(context: Context) -> Context:
        require_selector(shown, label)
        found = await resolve_all(context.locate(selector), _timeout(timeout), label, shown)
        return context.with_collection(found)

    return Step(body, name=label, args={"selector": shown})


def _require_focus(context: Context, label: str) -> Locator:
    if context.focus is None:
        raise UsageError(f"{label}: missing context element")
    return context.focus


def _relative_one(label: str, selector: str, shown: str, index: int, timeout: Optional[float]) -> Step:
    async def body(context: Context) -> Context:
        require_selector(shown, label)
        parent = _require_focus(context, label)
        found = await resolve_one(parent.locator(selector), index, _timeout(timeout), label, shown)
        return context.with_focus(found)

    return Step(body, name=label, args={"selector": shown, "index": index})


def _relative_all(label: str, selector: str, shown: str, timeout: Optional[float]) -> Step:
    async def body(context: Context) -> Context:
        require_selector(shown, label)
        parent = _require_focus(context, label)
        found = await resolve_all(parent.locator(selector), _timeout(timeout), label, shown)
        return context.with_collection(found)

    return Step(body, name=label, args={"selector": shown})


def find(selector: str, index: int = 0, timeout: Optional[float] = None) -> Step:
    """Focus the `index`-th element matching a CSS selector."""
    return _global_one("find", selector, selector, index, timeout)


def find_last(selector: str, timeout: Optional[float] = None) -> Step:
    return _global_one("find_last", selector, selector, -1, timeout)


def find_all(selector: str, timeout: Optional[float] = None) -> Step:
    """Collect every element matching a CSS selector."""
    return _global_all("find_all", selector, selector, timeout)


def find_xpath(xpath: str, index: int = 0, timeout: Optional[float] = None) -> Step:
    return _global_one("find_xpath", xpath_selector(xpath), xpath, index, timeout)


def find_all_xpath(xpath: str, timeout: Optional[float] = None) -> Step:
    return _global_all("find_all_xpath", xpath_selector(xpath), xpath, timeout)


def relative_find(selector: str, index: int = 0, timeout: Optional[float] = None) -> Step:
    """Focus a descendant of the focused element."""
    return _relative_one("relative_find", selector, selector, index, timeout)


def relative_find_all(selector: str, timeout: Optional[float] = None) -> Step:
    return _relative_all("relative_find_all", selector, selector, timeout)


def relative_find_xpath(xpath: str, index: int = 0, timeout: Optional[float] = None) -> Step:
    return _relative_one("relative_find_xpath", xpath_selector(xpath), xpath, index, timeout)


def relative_find_all_xpath(xpath: str, timeout: Optional[float] = None) -> Step:
    return _relative_all("relative_find_all_xpath", xpath_selector(xpath), xpath, timeout)


async def _probe(context: Context, selector: str, shown: str, timeout: Optional[float], label: str) -> bool:
    wait = get_settings().exists_timeout if timeout is None else timeout
    try:
        await context.locate(selector).wait_for(wait, visible=True)
        return True
    except DriverError:
        context.trace.info(f"{label} [{shown}] not found")
        return False
    except Exception as e:
        logger.warning(f"{label} [{shown}] probe error: {type(e).__name__}: {e}")
        context.trace.info(f"{label} [{shown}] not found")
        return False


async def exists(context: Context, selector: str, timeout: Optional[float] = None) -> bool:
    """True if a visible element matches within `timeout` seconds.

    A miss is reported as an informational trace line; the context is
    left untouched.
    """
    return await _probe(context, selector, selector, timeout, "exists")


async def exists_xpath(context: Context, xpath: str, timeout: Optional[float] = None) -> bool:
    return await _probe(context, xpath_selector(xpath), xpath, timeout, "exists_xpath")


def if_exists(
    selector: str,
    on_true: Optional[StepLike] = None,
    on_false: Optional[StepLike] = None,
    timeout: float = 0,
) -> Step:
    """Branches on whether `selector` is present."""
    yes = as_step(on_true) if on_true is not None else None
    no = as_step(on_false) if on_false is not None else None

    async def if_exists_(context: Context) -> Context:
        require_selector(selector, "if_exists")
        found = await exists(context, selector, timeout)
        branch = yes if found else no
        if branch is None:
            return context
        return await execute_step(branch, context)

    return Step(if_exists_, name="if_exists", args={"selector": selector, "timeout": timeout})


def _require_collection(context: Context, label: str) -> Sequence[Locator]:
    if context.collection is None:
        raise UsageError(f"{label}: missing collection in context")
    if not context.collection:
        raise ResolutionError(f"{label}: empty collection")
    return context.collection


def collection_filter(pick: LocatorFilter, name: str = "collection_filter") -> Step:
    """Focus the element chosen by `pick` from the current collection."""

    async def body(context: Context) -> Context:
        if pick is None:
            raise UsageError(f"{name}: None passed as filter")
        items = _require_collection(context, name)
        chosen = pick(items)
        if inspect.isawaitable(chosen):
            chosen = await chosen
        if chosen is None:
            raise ResolutionError(f"{name}: no matches in {len(items)} item(s)")
        return context.with_focus(chosen)

    return Step(body, name=name, args={"filter": pick})


async def _containing(items: Sequence[Locator], text: str, last: bool) -> Optional[Locator]:
    match = None
    for item in items:
        item_text = await item.text()
        if item_text is not None and text in item_text:
            if not last:
                return item
            match = item
    return match


def _text_filter(label: str, text_of: Callable[[Context], str], last: bool, args: dict) -> Step:
    async def body(context: Context) -> Context:
        items = _require_collection(context, label)
        text = text_of(context)
        if text is None:
            raise UsageError(f"{label}: text is required")
        found = await _containing(items, text, last)
        if found is None:
            raise ResolutionError(f"Text '{text}' not found in the context collection.")
        return context.with_focus(found)

    return Step(body, name=label, args=args)


def first_containing_text(text: str) -> Step:
    return _text_filter("first_containing_text", lambda _c: text, False, {"text": text})


def last_containing_text(text: str) -> Step:
    return _text_filter("last_containing_text", lambda _c: text, True, {"text": text})


def first_containing_item(key: str) -> Step:
    """Like `first_containing_text`, with the text read from the item store."""
    return _text_filter("first_containing_item", lambda c: c.items.get(key), False, {"key": key})


def last_containing_item(key: str) -> Step:
    return _text_filter("last_containing_item", lambda c: c.items.get(key), True, {"key": key})


__all__ = [
    "collection_filter",
    "exists",
    "exists_xpath",
    "find",
    "find_all",
    "find_all_xpath",
    "find_last",
    "find_xpath",
    "first_containing_item",
    "first_containing_text",
    "if_exists",
    "last_containing_item",
    "last_containing_text",
    "relative_find",
    "relative_find_all",
    "relative_find_all_xpath",
    "relative_find_xpath",
    "require_selector",
    "resolve_index",
]
