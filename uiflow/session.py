# uiflow/session.py
"""
Session lifecycle: start a browser, open the start page and hand back the
first Context of a chain; close the browser when the caller is done.

Errors here are raised, not recorded: before `create_context` returns
there is no Context to carry a failure.
"""

from __future__ import annotations

import urllib.parse
from contextlib import asynccontextmanager
from enum import Enum
from typing import AsyncIterator, Optional, Union

from uiflow.context import Context, ItemStore
from uiflow.exceptions import DriverError, SessionError, UnsupportedBrowserError
from uiflow.executors.driver import Driver
from uiflow.schemas.settings import get_settings
from uiflow.utils.log_sinks import session_id_context
from uiflow.utils.logger import setup_logger
from uiflow.utils.trace import TraceSink

logger = setup_logger(__name__)

ALLOWED_SCHEMES = ("http", "https", "file", "about", "data")


class BrowserBrand(str, Enum):
    CHROMIUM = "chromium"
    CHROME = "chrome"
    EDGE = "edge"
    FIREFOX = "firefox"
    WEBKIT = "webkit"


def _coerce_brand(brand: Union[BrowserBrand, str]) -> BrowserBrand:
    try:
        return BrowserBrand(str(getattr(brand, "value", brand)).strip().lower())
    except ValueError:
        raise UnsupportedBrowserError(f"Browser brand {brand!r} not supported.") from None


def _validate_url(url: str) -> str:
    if not url:
        raise SessionError("Start page URL is required")
    parsed = urllib.parse.urlparse(str(url))
    if parsed.scheme not in ALLOWED_SCHEMES:
        raise SessionError(f"Unsupported URL scheme: {parsed.scheme or '<none>'} (allowed: {', '.join(ALLOWED_SCHEMES)})")
    return str(url)


def _default_driver() -> Driver:
    from uiflow.executors.selenium_exec import SeleniumDriver

    return SeleniumDriver()


async def create_context(
    brand: Union[BrowserBrand, str],
    start_url: str,
    headless: Optional[bool] = None,
    driver: Optional[Driver] = None,
    trace: Optional[TraceSink] = None,
) -> Context:
    """Launches a browser, navigates to `start_url` and returns a Context.

    :param brand: Browser to start.
    :type brand: BrowserBrand | str
    :param start_url: First page to open.
    :type start_url: str
    :param headless: Run without a window; defaults to the configured value.
    :type headless: Optional[bool]
    :param driver: Driver adapter; defaults to `SeleniumDriver`.
    :type driver: Optional[Driver]
    :param trace: Trace sink for the chain; defaults to the logger sink.
    :type trace: Optional[TraceSink]
    :return: The initial context of the session.
    :rtype: Context
    :raises UnsupportedBrowserError: For unknown brands.
    :raises SessionError: When launch or navigation fails.
    """
    chosen = _coerce_brand(brand)
    url = _validate_url(start_url)
    driver = driver or _default_driver()
    headless = get_settings().headless if headless is None else headless

    logger.info(f"Starting {chosen.value} session at {url}", extra={"headless": headless})
    try:
        session = await driver.launch(chosen.value, headless=headless)
    except SessionError:
        raise
    except Exception as e:
        raise SessionError(f"Failed to launch {chosen.value}: {e}") from e

    session_id_context.set(session.session_id)
    try:
        await driver.goto(session, url)
    except Exception as e:
        try:
            await driver.close(session)
        except DriverError as close_error:
            logger.warning(f"Closing browser after failed navigation: {close_error}")
        raise SessionError(f"Failed to open {url}: {e}") from e

    fields = {"session": session, "items": ItemStore()}
    if trace is not None:
        fields["trace"] = trace
    return Context(**fields)


async def close_context(context: Context) -> None:
    """Closes the browser behind `context`."""
    try:
        await context.driver.close(context.session)
    except DriverError as e:
        raise SessionError(f"Failed to close session {context.session.session_id}: {e}") from e
    finally:
        session_id_context.set(None)
    logger.info(f"Closed session {context.session.session_id}")


@asynccontextmanager
async def open_context(
    brand: Union[BrowserBrand, str],
    start_url: str,
    headless: Optional[bool] = None,
    driver: Optional[Driver] = None,
    trace: Optional[TraceSink] = None,
) -> AsyncIterator[Context]:
    """Async context manager around `create_context` / `close_context`.

    Usage:
        async with open_context("chromium", "https://example.com") as ctx:
            result = await Chain.of(find("h1")).run(ctx)
    """
    context = await create_context(brand, start_url, headless=headless, driver=driver, trace=trace)
    try:
        yield context
    finally:
        await close_context(context)
