# uiflow/executors/selenium_exec.py
"""
Driver adapter over selenium webdriver.

Selenium is blocking, so every call runs on a worker thread through
`anyio.to_thread.run_sync`; chains on other sessions keep running while
one waits on its browser. Selenium exceptions are mapped to
`DriverTimeoutError` and `DriverError` at this boundary.

Selenium has one "current frame" per webdriver, so each lookup first
switches back to the top-level document and then into the active scope.
"""
from __future__ import annotations

import functools
from typing import Any, Callable, List, Optional

import anyio
from selenium import webdriver
from selenium.common.exceptions import (
    NoSuchElementException,
    StaleElementReferenceException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.common.action_chains import ActionChains
from selenium.webdriver.common.by import By
from selenium.webdriver.common.keys import Keys
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.remote.webelement import WebElement
from selenium.webdriver.support.ui import Select, WebDriverWait

from uiflow.exceptions import DriverError, DriverTimeoutError, SessionError, UnsupportedBrowserError
from uiflow.executors.driver import Driver, FrameScope, Locator, SessionHandles, split_selector
from uiflow.utils.logger import setup_logger

logger = setup_logger(__name__)

DEFAULT_POLL_S = 0.1


def _by(selector: str, relative: bool = False) -> tuple[str, str]:
    kind, value = split_selector(selector)
    if kind == "xpath":
        # Under an element, "//x" would search the whole document.
        if relative and value.startswith("/"):
            value = "." + value
        return By.XPATH, value
    return By.CSS_SELECTOR, value


def _enter_scope(wd: WebDriver, scope: Optional[FrameScope]) -> None:
    wd.switch_to.default_content()
    if scope is not None:
        wd.switch_to.frame(wd.find_element(*_by(scope.selector)))


async def _call(fn: Callable[..., Any], *args: Any) -> Any:
    try:
        return await anyio.to_thread.run_sync(functools.partial(fn, *args))
    except TimeoutException as e:
        raise DriverTimeoutError(e.msg or "Timed out waiting for the browser") from e
    except WebDriverException as e:
        raise DriverError(f"Selenium error: {e.msg or type(e).__name__}") from e


class SeleniumLocator(Locator):
    """Lazy element reference; resolved again on every call."""

    def __init__(
        self,
        wd: WebDriver,
        scope: Optional[FrameScope],
        selector: str,
        parent: Optional["SeleniumLocator"] = None,
        index: Optional[int] = None,
        poll_interval: float = DEFAULT_POLL_S,
    ):
        self.wd = wd
        self.scope = scope
        self.selector = selector
        self.parent = parent
        self.index = index
        self.poll_interval = poll_interval

    def __repr__(self) -> str:
        suffix = "" if self.index is None else f"[{self.index}]"
        prefix = f"{self.parent!r} >> " if self.parent is not None else ""
        return f"{prefix}{self.selector}{suffix}"

    def _elements(self) -> List[WebElement]:
        if self.parent is not None:
            base = self.parent._element()
            return base.find_elements(*_by(self.selector, relative=True))
        _enter_scope(self.wd, self.scope)
        return self.wd.find_elements(*_by(self.selector))

    def _element(self) -> WebElement:
        elements = self._elements()
        idx = self.index or 0
        if idx >= len(elements):
            raise NoSuchElementException(f"'{self!r}' matched {len(elements)} element(s)")
        return elements[idx]

    def _derive(self, **changes: Any) -> "SeleniumLocator":
        fields = dict(
            wd=self.wd,
            scope=self.scope,
            selector=self.selector,
            parent=self.parent,
            index=self.index,
            poll_interval=self.poll_interval,
        )
        fields.update(changes)
        return SeleniumLocator(**fields)

    async def count(self) -> int:
        return await _call(lambda: len(self._elements()))

    def nth(self, index: int) -> "SeleniumLocator":
        return self._derive(index=index)

    def locator(self, selector: str) -> "SeleniumLocator":
        return self._derive(selector=selector, parent=self, index=None)

    async def wait_for(self, timeout: float, visible: bool = False) -> None:
        def ready(_wd: WebDriver) -> bool:
            try:
                elements = self._elements()
            except NoSuchElementException:
                return False
            if self.index is not None:
                elements = elements[self.index:self.index + 1]
            if visible:
                return any(e.is_displayed() for e in elements)
            return bool(elements)

        def wait() -> None:
            WebDriverWait(
                self.wd,
                timeout,
                poll_frequency=self.poll_interval,
                ignored_exceptions=(StaleElementReferenceException,),
            ).until(ready, message=f"'{self!r}' not present after {timeout}s")

        await _call(wait)

    async def click(self, timeout: Optional[float] = None) -> None:
        def do_click() -> None:
            element = self._element()
            if timeout:
                WebDriverWait(self.wd, timeout, poll_frequency=self.poll_interval).until(
                    lambda _wd: element.is_displayed() and element.is_enabled(),
                    message=f"'{self!r}' not clickable after {timeout}s",
                )
            element.click()

        await _call(do_click)

    async def dbl_click(self) -> None:
        await _call(lambda: ActionChains(self.wd).double_click(self._element()).perform())

    async def fill(self, text: str) -> None:
        def do_fill() -> None:
            element = self._element()
            element.clear()
            element.send_keys(text)

        await _call(do_fill)

    async def press(self, key: str) -> None:
        code = getattr(Keys, key.upper(), key)
        await _call(lambda: self._element().send_keys(code))

    async def get_attribute(self, name: str) -> Optional[str]:
        return await _call(lambda: self._element().get_attribute(name))

    async def text(self) -> Optional[str]:
        return await _call(lambda: self._element().text)

    async def input_value(self) -> Optional[str]:
        return await _call(lambda: self._element().get_attribute("value"))

    async def tag_name(self) -> str:
        return await _call(lambda: self._element().tag_name.lower())

    async def evaluate(self, script: str, *args: Any) -> Any:
        # The element is passed as arguments[0].
        return await _call(lambda: self.wd.execute_script(script, self._element(), *args))

    async def select_option(self, value: str) -> List[str]:
        def do_select() -> List[str]:
            select = Select(self._element())
            try:
                select.select_by_visible_text(value)
            except NoSuchElementException:
                return []
            return [o.get_attribute("value") for o in select.all_selected_options]

        return await _call(do_select)


class SeleniumDriver(Driver):
    """A `Driver` backed by a local selenium webdriver.

    :param poll_interval: Seconds between checks while waiting.
    :type poll_interval: float
    :param page_load_timeout: Optional page load timeout applied at launch.
    :type page_load_timeout: Optional[float]
    """

    def __init__(self, poll_interval: float = DEFAULT_POLL_S, page_load_timeout: Optional[float] = None):
        self.poll_interval = poll_interval
        self.page_load_timeout = page_load_timeout

    def _start(self, brand: str, headless: bool) -> WebDriver:
        if brand in ("chromium", "chrome"):
            options = webdriver.ChromeOptions()
            if headless:
                options.add_argument("--headless=new")
            options.add_argument("--no-sandbox")
            options.add_argument("--disable-dev-shm-usage")
            options.accept_insecure_certs = True
            return webdriver.Chrome(options=options)
        if brand == "edge":
            options = webdriver.EdgeOptions()
            if headless:
                options.add_argument("--headless=new")
            options.accept_insecure_certs = True
            return webdriver.Edge(options=options)
        if brand == "firefox":
            options = webdriver.FirefoxOptions()
            if headless:
                options.add_argument("-headless")
            options.accept_insecure_certs = True
            return webdriver.Firefox(options=options)
        if brand == "webkit":
            if headless:
                logger.warning("Safari has no headless mode; starting a visible window")
            return webdriver.Safari()
        raise UnsupportedBrowserError(f"Browser brand {brand!r} not supported.")

    async def launch(self, brand: str, headless: bool = True) -> SessionHandles:
        try:
            wd = await anyio.to_thread.run_sync(self._start, brand, headless)
        except WebDriverException as e:
            raise SessionError(f"Failed to start {brand} driver: {e.msg or e}") from e
        if self.page_load_timeout:
            wd.set_page_load_timeout(self.page_load_timeout)
        logger.debug(f"Started {brand} webdriver", extra={"headless": headless})
        return SessionHandles(driver=self, engine=brand, browser=wd, page=wd)

    async def goto(self, session: SessionHandles, url: str) -> None:
        await _call(session.page.get, url)

    def locate(self, session: SessionHandles, scope: Optional[FrameScope], selector: str) -> SeleniumLocator:
        return SeleniumLocator(session.page, scope, selector, poll_interval=self.poll_interval)

    async def frame(self, session: SessionHandles, selector: str) -> FrameScope:
        def check() -> FrameScope:
            _enter_scope(session.page, None)
            session.page.find_element(*_by(selector))
            return FrameScope(selector=selector)

        return await _call(check)

    async def evaluate(
        self, session: SessionHandles, scope: Optional[FrameScope], script: str, *args: Any
    ) -> Any:
        def run() -> Any:
            _enter_scope(session.page, scope)
            return session.page.execute_script(script, *args)

        return await _call(run)

    async def title(self, session: SessionHandles) -> str:
        def read() -> str:
            _enter_scope(session.page, None)
            return session.page.title

        return await _call(read)

    async def wait_for_load(self, session: SessionHandles, timeout: float) -> None:
        def wait() -> None:
            WebDriverWait(session.page, timeout, poll_frequency=self.poll_interval).until(
                lambda wd: wd.execute_script("return document.readyState") == "complete",
                message=f"Page not loaded after {timeout}s",
            )

        await _call(wait)

    async def close(self, session: SessionHandles) -> None:
        await _call(session.browser.quit)
