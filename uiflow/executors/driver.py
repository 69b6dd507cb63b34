# uiflow/executors/driver.py
"""
The driver capability interface consumed by the chain core.

Nothing in the core talks to a browser library directly: finders and
actions call these methods, and an adapter (see `selenium_exec`) maps them
to a concrete browser automation library. All methods are coroutines so
blocking adapters can hand their work to a worker thread. Timeouts are
in seconds.

XPath expressions are passed to `locate` and `Locator.locator` with an
`xpath=` prefix; anything else is a CSS selector.
"""

from __future__ import annotations

import abc
import uuid
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

XPATH_PREFIX = "xpath="


def xpath_selector(xpath: str) -> str:
    return f"{XPATH_PREFIX}{xpath}"


def split_selector(selector: str) -> tuple[str, str]:
    """Returns ("xpath", expr) or ("css", selector)."""
    if selector.startswith(XPATH_PREFIX):
        return "xpath", selector[len(XPATH_PREFIX):]
    return "css", selector


class FrameScope(BaseModel):
    """
    The active frame that global finders search in.

    :ivar selector: Selector of the iframe element in the top-level page.
    :vartype selector: str
    :ivar handle: Adapter-specific frame handle, if the adapter keeps one.
    :vartype handle: Any
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    selector: str
    handle: Any = None


class SessionHandles(BaseModel):
    """
    Opaque driver roots for one browser session.

    The chain core carries these forward and never creates or closes them
    itself; that belongs to `uiflow.session`.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    driver: "Driver"
    engine: Any = None
    browser: Any = None
    page: Any = None
    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])


class Locator(abc.ABC):
    """A lazily resolved reference to zero or more elements."""

    @abc.abstractmethod
    async def count(self) -> int: ...

    @abc.abstractmethod
    def nth(self, index: int) -> "Locator": ...

    @abc.abstractmethod
    def locator(self, selector: str) -> "Locator":
        """Child locator scoped to the element(s) this locator resolves to."""

    @abc.abstractmethod
    async def wait_for(self, timeout: float, visible: bool = False) -> None:
        """Wait until at least one match is attached (or visible).

        :raises DriverTimeoutError: If nothing matched within `timeout`.
        """

    @abc.abstractmethod
    async def click(self, timeout: Optional[float] = None) -> None: ...

    @abc.abstractmethod
    async def dbl_click(self) -> None: ...

    @abc.abstractmethod
    async def fill(self, text: str) -> None: ...

    @abc.abstractmethod
    async def press(self, key: str) -> None: ...

    @abc.abstractmethod
    async def get_attribute(self, name: str) -> Optional[str]: ...

    @abc.abstractmethod
    async def text(self) -> Optional[str]: ...

    @abc.abstractmethod
    async def input_value(self) -> Optional[str]: ...

    @abc.abstractmethod
    async def tag_name(self) -> str:
        """Lower-case tag name of the resolved element."""

    @abc.abstractmethod
    async def evaluate(self, script: str, *args: Any) -> Any: ...

    @abc.abstractmethod
    async def select_option(self, value: str) -> List[str]:
        """Select an option by its visible text; returns the selected values."""


class Driver(abc.ABC):
    """Session, navigation and locating primitives of a browser library."""

    @abc.abstractmethod
    async def launch(self, brand: str, headless: bool = True) -> SessionHandles:
        """Start a browser.

        :raises UnsupportedBrowserError: For brands the adapter cannot start.
        :raises SessionError: When the browser fails to launch.
        """

    @abc.abstractmethod
    async def goto(self, session: SessionHandles, url: str) -> None: ...

    @abc.abstractmethod
    def locate(self, session: SessionHandles, scope: Optional[FrameScope], selector: str) -> Locator: ...

    @abc.abstractmethod
    async def frame(self, session: SessionHandles, selector: str) -> FrameScope:
        """Resolve an iframe in the top-level page into a scope."""

    @abc.abstractmethod
    async def evaluate(
        self, session: SessionHandles, scope: Optional[FrameScope], script: str, *args: Any
    ) -> Any: ...

    @abc.abstractmethod
    async def title(self, session: SessionHandles) -> str: ...

    @abc.abstractmethod
    async def wait_for_load(self, session: SessionHandles, timeout: float) -> None: ...

    @abc.abstractmethod
    async def close(self, session: SessionHandles) -> None: ...


SessionHandles.model_rebuild()
