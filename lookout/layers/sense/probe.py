"""
Page Probe - host side of the injected script.

The probe script evaluates to a small function table. Nothing is installed
on ``window``: every call ships the source and invokes one entry by name,
so the host's PageProbe instance is the only handle to the module.
"""

from importlib import resources
from typing import Any, Optional, TYPE_CHECKING
import json

from lookout.core.errors import DomUnavailableError

if TYPE_CHECKING:
    from selenium.webdriver.remote.webdriver import WebDriver


SCRIPT_NAME = "page_probe.js"


def load_probe_source() -> str:
    """Read the probe script shipped with the package."""
    return (
        resources.files("lookout.layers.sense")
        .joinpath("scripts", SCRIPT_NAME)
        .read_text(encoding="utf-8")
    )


class PageProbe:
    """
    Invokes entries of the injected function table through a WebDriver.

    Example:
        >>> probe = PageProbe()
        >>> probe.call(driver, "metrics")
        {'viewport_height': 800, 'document_height': 2400, 'scroll_y': 0}
    """

    FUNCTIONS = ("metrics", "snapshot", "scrollToHeight", "waitForDomSettle")

    def __init__(self, source: Optional[str] = None):
        self.source = (source or load_probe_source()).strip().rstrip(";")

    def _check(self, name: str) -> str:
        if name not in self.FUNCTIONS:
            raise ValueError(f"unknown probe function: {name}")
        return json.dumps(name)

    def call(self, driver: "WebDriver", name: str, *args: Any) -> Any:
        """Run a synchronous probe function and return its result."""
        key = self._check(name)
        script = f"return ({self.source})[{key}].apply(null, arguments);"
        return driver.execute_script(script, *args)

    def call_async(self, driver: "WebDriver", name: str, *args: Any) -> Any:
        """Run a promise-returning probe function and wait for it to resolve."""
        key = self._check(name)
        script = (
            "const done = arguments[arguments.length - 1];\n"
            "const args = Array.prototype.slice.call(arguments, 0, -1);\n"
            f"Promise.resolve(({self.source})[{key}].apply(null, args))\n"
            "  .then(done, function (err) { done({__probe_error: String(err)}); });"
        )
        result = driver.execute_async_script(script, *args)
        if isinstance(result, dict) and "__probe_error" in result:
            raise DomUnavailableError(f"{name} failed: {result['__probe_error']}")
        return result
