"""
Browser automation components.
"""

from testpilot.browser.driver import PlaywrightPageAutomation
from testpilot.browser.instrumented_driver import InstrumentedPageAutomation

__all__ = ["PlaywrightPageAutomation", "InstrumentedPageAutomation"]
