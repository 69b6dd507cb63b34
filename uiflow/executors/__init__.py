"""
uiflow.executors

Driver adapters. `driver` holds the capability interface the chain core
depends on; `selenium_exec` implements it over selenium webdriver.
"""

from uiflow.executors.driver import Driver, FrameScope, Locator, SessionHandles

__all__ = ["Driver", "FrameScope", "Locator", "SessionHandles"]
