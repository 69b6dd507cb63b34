# uiflow/context.py
"""
The navigation state threaded through every step of a chain.

A `Context` is never changed in place: each step derives a new one with
`model_copy`, so references kept for tracing keep showing what they saw.
The item store is the exception; it is shared by reference between all
contexts derived from the same session and guarded by a lock.
"""

from __future__ import annotations

import inspect
import threading
from typing import Any, Awaitable, Callable, Dict, Iterator, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from uiflow.exceptions import MissingItemError
from uiflow.executors.driver import FrameScope, Locator, SessionHandles
from uiflow.schemas.failure import Failure, FailureKind
from uiflow.utils.trace import LoggerTraceSink, TraceSink

_MISSING = object()


class ItemStore:
    """String-to-string store shared across the steps of a chain."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._lock = threading.Lock()
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str, default: Any = _MISSING) -> Any:
        with self._lock:
            if key in self._data:
                return self._data[key]
        if default is _MISSING:
            raise MissingItemError(f"Context item '{key}' is not set")
        return default

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = str(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def snapshot(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._data)

    def __getitem__(self, key: str) -> str:
        return self.get(key)

    def __setitem__(self, key: str, value: str) -> None:
        self.set(key, value)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __iter__(self) -> Iterator[str]:
        return iter(self.snapshot())

    def __repr__(self) -> str:
        return f"ItemStore(keys={sorted(self.snapshot())})"


def _default_trace() -> TraceSink:
    # Imported lazily: settings pull in the YAML config on first use.
    from uiflow.schemas.settings import get_settings

    return LoggerTraceSink(enabled=get_settings().trace_steps)


class Context(BaseModel):
    """
    Immutable snapshot of one browser session's navigation state.

    :ivar session: Driver roots of the session.
    :vartype session: SessionHandles
    :ivar scope: Active frame; None means the top-level page.
    :vartype scope: Optional[FrameScope]
    :ivar focus: The current element, subject of unary actions.
    :vartype focus: Optional[Locator]
    :ivar collection: The current element set, subject of filters.
    :vartype collection: Optional[Tuple[Locator, ...]]
    :ivar items: Cross-step key/value store.
    :vartype items: ItemStore
    :ivar failure: First failure recorded in the chain, if any.
    :vartype failure: Optional[Failure]
    :ivar trace: Sink receiving step and failure lines.
    :vartype trace: TraceSink
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    session: SessionHandles
    scope: Optional[FrameScope] = None
    focus: Optional[Locator] = None
    collection: Optional[Tuple[Locator, ...]] = None
    items: ItemStore = Field(default_factory=ItemStore)
    failure: Optional[Failure] = None
    trace: Any = Field(default_factory=_default_trace)

    @property
    def driver(self):
        return self.session.driver

    def has_failure(self) -> bool:
        return self.failure is not None

    def has_focus(self) -> bool:
        return self.focus is not None

    def has_collection(self) -> bool:
        return self.collection is not None

    def with_focus(self, locator: Locator) -> "Context":
        return self.model_copy(update={"focus": locator, "collection": None})

    def with_collection(self, locators) -> "Context":
        return self.model_copy(update={"focus": None, "collection": tuple(locators)})

    def without_focus_or_collection(self) -> "Context":
        return self.model_copy(update={"focus": None, "collection": None})

    def with_scope(self, scope: FrameScope) -> "Context":
        # A new scope invalidates element references taken in the old one.
        return self.model_copy(update={"scope": scope, "focus": None, "collection": None})

    def without_scope(self) -> "Context":
        return self.model_copy(update={"scope": None, "focus": None, "collection": None})

    def with_failure(self, payload: object, step: Optional[str] = None) -> "Context":
        """Records the first failure of the chain.

        Later calls return the context unchanged and emit nothing, so the
        first recorded failure wins and is traced exactly once.

        :param payload: A `Failure`, an exception, or any value to render.
        :type payload: object
        :param step: Name of the failing step, when known.
        :type step: Optional[str]
        :return: A context carrying the failure.
        :rtype: Context
        """
        if self.failure is not None:
            return self
        failure = Failure.coerce(payload, step=step)
        self.trace.error(f"Failure created: {failure.describe()}")
        return self.model_copy(update={"failure": failure})

    def fail(self, kind: FailureKind | str, message: str, step: Optional[str] = None) -> "Context":
        return self.with_failure(Failure.of(kind, message, step=step))

    def locate(self, selector: str) -> Locator:
        """Locator for `selector` in the active scope (frame or page)."""
        return self.driver.locate(self.session, self.scope, selector)

    async def title(self) -> str:
        return await self.driver.title(self.session)

    async def text(self) -> Optional[str]:
        if self.focus is None:
            return None
        return await self.focus.text()

    async def value(self) -> Optional[str]:
        """Input value of form fields, text content of anything else."""
        if self.focus is None:
            return None
        tag = await self.focus.tag_name()
        if tag in ("input", "textarea", "select"):
            return await self.focus.input_value()
        return await self.focus.text()

    async def use(self, action: Callable[["Context"], Union[None, Awaitable[None]]]) -> "Context":
        """Runs a side-effecting callback, keeping this context unless it raises."""
        if action is None:
            return self.fail(FailureKind.USAGE, "use: None passed as action")
        try:
            result = action(self)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            return self.with_failure(e, step="use")
        return self

    def __str__(self) -> str:
        parts = [f"session={self.session.session_id}"]
        if self.scope is not None:
            parts.append(f"scope={self.scope.selector!r}")
        if self.focus is not None:
            parts.append("focus=1")
        if self.collection is not None:
            parts.append(f"collection={len(self.collection)}")
        if self.failure is not None:
            parts.append(f"failure={self.failure.describe()!r}")
        return f"Context({', '.join(parts)})"
