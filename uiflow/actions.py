# uiflow/actions.py
"""
Interaction steps: navigation, clicks, typing, frames and the item store.

Actions act on the focused element unless a selector is given, in which
case they find it first. A missing focus is a usage failure; an exception
from the driver becomes an interaction failure.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import SecretStr

from uiflow.chain import execute_step
from uiflow.context import Context
from uiflow.exceptions import DriverError, FlowAssertionError, InteractionError, UsageError
from uiflow.executors.driver import Locator
from uiflow.finders import find
from uiflow.schemas.settings import get_settings
from uiflow.step import Step, require
from uiflow.utils.logger import setup_logger
from uiflow.utils.redact import REDACTED, looks_sensitive_key

logger = setup_logger(__name__)

TextValue = Union[str, SecretStr]


def _focus(context: Context, label: str) -> Locator:
    if context.focus is None:
        raise UsageError(f"{label}: missing context element")
    return context.focus


async def _with_selector(context: Context, selector: Optional[str], index: int = 0) -> Context:
    if selector is None:
        return context
    return await execute_step(find(selector, index), context)


def _plain(text: TextValue) -> str:
    return text.get_secret_value() if isinstance(text, SecretStr) else text


def goto(url: str) -> Step:
    """Navigate the session's page to `url` and drop focus and scope."""

    async def body(context: Context) -> Context:
        await context.driver.goto(context.session, require(url, "goto", "url"))
        return context.without_scope()

    return Step(body, name="goto", args={"url": url})


def click(selector: Optional[str] = None, index: int = 0, timeout: Optional[float] = None) -> Step:
    """Click the focused element, or the `index`-th match of `selector`."""

    async def body(context: Context) -> Context:
        context = await _with_selector(context, selector, index)
        if context.has_failure():
            return context
        element = _focus(context, "click")
        try:
            await element.click(get_settings().action_timeout if timeout is None else timeout)
        except DriverError as e:
            raise InteractionError(f"click: {e}") from e
        return context

    return Step(body, name="click", args={"selector": selector, "index": index})


def dbl_click(selector: Optional[str] = None) -> Step:
    async def body(context: Context) -> Context:
        context = await _with_selector(context, selector)
        if context.has_failure():
            return context
        element = _focus(context, "dbl_click")
        try:
            await element.dbl_click()
        except DriverError as e:
            raise InteractionError(f"dbl_click: {e}") from e
        return context

    return Step(body, name="dbl_click", args={"selector": selector})


def set_text(text: TextValue, selector: Optional[str] = None) -> Step:
    """Type into a text field, or pick the option of a `<select>`.

    The typed text never reaches the trace; only its length is shown.
    """

    async def body(context: Context) -> Context:
        context = await _with_selector(context, selector)
        if context.has_failure():
            return context
        value = _plain(require(text, "set_text", "text"))
        element = _focus(context, "set_text")
        try:
            if await element.tag_name() == "select":
                await element.click()
                await element.select_option(value)
            else:
                await element.fill(value)
        except DriverError as e:
            raise InteractionError(f"set_text: {e}") from e
        return context

    chars = len(_plain(text)) if text is not None else None
    return Step(body, name="set_text", args={"selector": selector, "chars": chars})


def press(key: str) -> Step:
    async def body(context: Context) -> Context:
        require(key, "press", "key")
        element = _focus(context, "press")
        try:
            await element.press(key)
        except DriverError as e:
            raise InteractionError(f"press {key}: {e}") from e
        return context

    return Step(body, name="press", args={"key": key})


def press_enter() -> Step:
    return Step(press("Enter").fn, name="press_enter")


def select_combo_text(value: str, selector: Optional[str] = None) -> Step:
    """Select the option whose visible text is `value` in the focused combo box."""

    async def body(context: Context) -> Context:
        context = await _with_selector(context, selector)
        if context.has_failure():
            return context
        require(value, "select_combo_text", "value")
        combo = _focus(context, "select_combo_text")
        try:
            selected = await combo.select_option(value)
        except DriverError as e:
            raise InteractionError(f"select_combo_text: {e}") from e
        if not selected:
            raise FlowAssertionError(f"Can't find combo text '{value}'")
        return context

    return Step(body, name="select_combo_text", args={"selector": selector, "value": value})


def script(source: str, *args: Any) -> Step:
    """Evaluate JavaScript in the active frame, or the page when none is set."""

    async def body(context: Context) -> Context:
        require(source, "script", "source")
        try:
            await context.driver.evaluate(context.session, context.scope, source, *args)
        except DriverError as e:
            raise InteractionError(f"script: {e}") from e
        return context

    return Step(body, name="script", args={"source": source, "args": list(args)})


def switch_to_frame(iframe_selector: str) -> Step:
    """Make the iframe matched by `iframe_selector` the active scope.

    Later global finds search inside that frame until another switch.
    """

    async def body(context: Context) -> Context:
        require(iframe_selector, "switch_to_frame", "iframe selector")
        try:
            scope = await context.driver.frame(context.session, iframe_selector)
        except DriverError as e:
            raise InteractionError(f"switch_to_frame: {e}") from e
        return context.with_scope(scope)

    return Step(body, name="switch_to_frame", args={"selector": iframe_selector})


def switch_to_default() -> Step:
    return Step(lambda context: context.without_scope(), name="switch_to_default")


def follow_link(selector: str, target_title: str, timeout: Optional[float] = None) -> Step:
    """Click a link, wait for the page to settle and check its title."""

    async def body(context: Context) -> Context:
        require(selector, "follow_link", "selector")
        require(target_title, "follow_link", "target title")
        clicked = await execute_step(click(selector), context)
        if clicked.has_failure():
            return clicked
        wait = get_settings().load_timeout if timeout is None else timeout
        try:
            await context.driver.wait_for_load(context.session, wait)
        except DriverError as e:
            raise InteractionError(f"follow_link: {e}") from e
        actual = await context.driver.title(context.session)
        if actual != target_title:
            raise FlowAssertionError(f"Expected title '{target_title}', actual '{actual}'")
        return clicked

    return Step(body, name="follow_link", args={"selector": selector, "title": target_title})


def store_text(key: str) -> Step:
    """Save the focused element's text under `key` in the item store."""

    async def body(context: Context) -> Context:
        require(key, "store_text", "key")
        element = _focus(context, "store_text")
        context.items.set(key, await element.text() or "")
        return context

    return Step(body, name="store_text", args={"key": key})


def store_value(key: str) -> Step:
    """Save the focused element's value (input value or text) under `key`."""

    async def body(context: Context) -> Context:
        require(key, "store_value", "key")
        _focus(context, "store_value")
        context.items.set(key, await context.value() or "")
        return context

    return Step(body, name="store_value", args={"key": key})


def set_item(key: str, value: str) -> Step:
    """Store `value` under `key`; the value is masked in the trace when the key looks secret."""

    def body(context: Context) -> Context:
        context.items.set(require(key, "set_item", "key"), require(value, "set_item", "value"))
        return context

    shown = REDACTED if key is not None and looks_sensitive_key(str(key)) else value
    return Step(body, name="set_item", args={"key": key, "value": shown})


def clear_item(key: Optional[str] = None) -> Step:
    """Remove `key` from the item store, or every key when none is given."""

    def body(context: Context) -> Context:
        if key is None:
            context.items.clear()
        else:
            context.items.delete(key)
        return context

    return Step(body, name="clear_item", args={"key": key})
