"""
Page capability interface and its Selenium implementation.

Every core component talks to the browser through :class:`Page`, never
through a driver directly, so the loops can be exercised against an
in-memory page in tests.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, TYPE_CHECKING
import base64
import logging
import time

from lookout.core.errors import DomUnavailableError, ElementNotFoundError
from lookout.layers.sense.chunker import PageMetrics
from lookout.layers.sense.probe import PageProbe

if TYPE_CHECKING:
    from selenium.webdriver.remote.webdriver import WebDriver
    from selenium.webdriver.remote.webelement import WebElement

logger = logging.getLogger(__name__)


class SpawnedPage(ABC):
    """A page that opened on its own, typically a ``target=_blank`` link."""

    @property
    @abstractmethod
    def url(self) -> str:
        """URL the spawned page landed on."""

    @abstractmethod
    def close(self) -> None:
        """Close the spawned page and return focus to the original one."""


class NewPageWatcher(ABC):
    """Armed before an action; reports a page opened since it was armed."""

    @abstractmethod
    def wait(self, timeout: float) -> Optional[SpawnedPage]:
        """Return the first new page seen within ``timeout`` seconds, else None."""


class Page(ABC):
    """What the core needs from a browser tab."""

    @property
    @abstractmethod
    def url(self) -> str:
        ...

    # -- geometry and scrolling -------------------------------------------

    @abstractmethod
    def metrics(self) -> PageMetrics:
        """Viewport height, document scroll height and current scroll offset."""

    @abstractmethod
    def snapshot(self) -> Dict[str, Any]:
        """Raw probe payload describing the document (see ``page_probe.js``)."""

    @abstractmethod
    def scroll_to(self, offset: float) -> None:
        """Smooth-scroll to ``offset`` and return once scroll events stop."""

    # -- lifecycle ----------------------------------------------------------

    @abstractmethod
    def wait_for_settled_dom(self) -> None:
        """Block until the document is loaded and DOM mutations go quiet."""

    @abstractmethod
    def wait_for_load(self) -> None:
        """Block until DOM content has loaded."""

    @abstractmethod
    def goto(self, url: str) -> None:
        ...

    @abstractmethod
    def screenshot(self, full_page: bool = False) -> bytes:
        """PNG bytes of the viewport, or of the whole page."""

    @abstractmethod
    def watch_new_pages(self) -> NewPageWatcher:
        ...

    # -- element operations, all addressed by XPath -------------------------

    @abstractmethod
    def count(self, address: str) -> int:
        """How many elements ``address`` currently resolves to."""

    @abstractmethod
    def tag_name(self, address: str) -> str:
        ...

    @abstractmethod
    def get_attribute(self, address: str, name: str) -> Optional[str]:
        ...

    @abstractmethod
    def click(self, address: str) -> None:
        ...

    @abstractmethod
    def clear(self, address: str) -> None:
        ...

    @abstractmethod
    def hover(self, address: str) -> None:
        ...

    @abstractmethod
    def set_checked(self, address: str, checked: bool) -> None:
        ...

    @abstractmethod
    def select_option(self, address: str, value: str) -> None:
        ...

    @abstractmethod
    def press(self, address: str, key: str) -> None:
        ...

    @abstractmethod
    def scroll_into_view(self, address: str) -> None:
        """Smooth-scroll the element to the centre of the viewport."""

    @abstractmethod
    def type_character(self, char: str) -> None:
        """Send one keystroke to whatever has focus."""

    def is_link(self, address: str) -> bool:
        return self.tag_name(address) == "a" and self.get_attribute(address, "href") is not None


class _SeleniumSpawnedPage(SpawnedPage):
    ABOUT_BLANK = "about:blank"
    POLL_INTERVAL = 0.05

    def __init__(self, driver: "WebDriver", handle: str, origin: str, commit_grace: float = 2.0):
        self.driver = driver
        self.handle = handle
        self.origin = origin
        self.commit_grace = commit_grace

    @property
    def url(self) -> str:
        """
        The tab's URL once its first navigation commits; still ``about:blank``
        if nothing committed within ``commit_grace`` seconds.
        """
        deadline = time.monotonic() + self.commit_grace
        self.driver.switch_to.window(self.handle)
        try:
            current = self.driver.current_url
            # Fresh tabs report about:blank until the first navigation commits.
            while current == self.ABOUT_BLANK and time.monotonic() < deadline:
                time.sleep(self.POLL_INTERVAL)
                current = self.driver.current_url
            return current
        finally:
            self.driver.switch_to.window(self.origin)

    def close(self) -> None:
        self.driver.switch_to.window(self.handle)
        try:
            self.driver.close()
        finally:
            self.driver.switch_to.window(self.origin)


class _WindowHandleWatcher(NewPageWatcher):
    POLL_INTERVAL = 0.1

    def __init__(self, driver: "WebDriver", commit_grace: float = 2.0):
        self.driver = driver
        self.commit_grace = commit_grace
        self.known = set(driver.window_handles)
        self.origin = driver.current_window_handle

    def wait(self, timeout: float) -> Optional[SpawnedPage]:
        deadline = time.monotonic() + timeout
        while True:
            fresh = [h for h in self.driver.window_handles if h not in self.known]
            if fresh:
                return _SeleniumSpawnedPage(self.driver, fresh[0], self.origin, self.commit_grace)
            if time.monotonic() >= deadline:
                return None
            time.sleep(self.POLL_INTERVAL)


class SeleniumPage(Page):
    """
    :class:`Page` backed by a Selenium WebDriver tab.

    Example:
        >>> page = SeleniumPage(create_driver(headless=True))
        >>> page.goto("https://example.com")
        >>> page.metrics().viewport_height
        800
    """

    SETTLE_QUIET_MS = 500
    SETTLE_TIMEOUT_MS = 5000
    # Seconds a new tab may sit on about:blank before it is treated as empty.
    NEW_TAB_COMMIT_GRACE = 2.0

    # Key names as the model tends to write them, mapped to Selenium's Keys attributes.
    KEY_ALIASES = {
        "enter": "ENTER",
        "return": "RETURN",
        "tab": "TAB",
        "escape": "ESCAPE",
        "esc": "ESCAPE",
        "backspace": "BACKSPACE",
        "delete": "DELETE",
        "space": "SPACE",
        "arrowup": "ARROW_UP",
        "arrowdown": "ARROW_DOWN",
        "arrowleft": "ARROW_LEFT",
        "arrowright": "ARROW_RIGHT",
        "pageup": "PAGE_UP",
        "pagedown": "PAGE_DOWN",
        "home": "HOME",
        "end": "END",
    }

    def __init__(self, driver: "WebDriver", timeout: int = 30, probe: Optional[PageProbe] = None):
        self.driver = driver
        self.timeout = timeout
        self.probe = probe or PageProbe()
        self.driver.set_script_timeout(timeout)

    @property
    def url(self) -> str:
        return self.driver.current_url

    def metrics(self) -> PageMetrics:
        data = self.probe.call(self.driver, "metrics")
        return PageMetrics(
            viewport_height=float(data["viewport_height"]),
            document_height=float(data["document_height"]),
            scroll_y=float(data["scroll_y"]),
        )

    def snapshot(self) -> Dict[str, Any]:
        data = self.probe.call(self.driver, "snapshot")
        if data is None:
            raise DomUnavailableError("error selecting DOM that doesn't exist")
        return data

    def scroll_to(self, offset: float) -> None:
        self.probe.call_async(self.driver, "scrollToHeight", offset)

    def wait_for_load(self) -> None:
        from selenium.webdriver.support.ui import WebDriverWait

        WebDriverWait(self.driver, self.timeout).until(
            lambda d: d.execute_script("return document.readyState") in ("interactive", "complete")
        )

    def wait_for_settled_dom(self) -> None:
        from selenium.common.exceptions import WebDriverException
        from selenium.webdriver.common.by import By
        from selenium.webdriver.support import expected_conditions as EC
        from selenium.webdriver.support.ui import WebDriverWait

        try:
            WebDriverWait(self.driver, self.timeout).until(
                EC.presence_of_element_located((By.TAG_NAME, "body"))
            )
            self.wait_for_load()
            self.probe.call_async(
                self.driver, "waitForDomSettle", self.SETTLE_QUIET_MS, self.SETTLE_TIMEOUT_MS
            )
        except (WebDriverException, DomUnavailableError) as e:
            logger.warning(f"[dom] Error in wait_for_settled_dom: {e}")

    def goto(self, url: str) -> None:
        self.driver.get(url)
        self.wait_for_settled_dom()

    def screenshot(self, full_page: bool = False) -> bytes:
        if full_page and hasattr(self.driver, "execute_cdp_cmd"):
            result = self.driver.execute_cdp_cmd(
                "Page.captureScreenshot",
                {"format": "png", "captureBeyondViewport": True},
            )
            return base64.b64decode(result["data"])
        return self.driver.get_screenshot_as_png()

    def watch_new_pages(self) -> NewPageWatcher:
        return _WindowHandleWatcher(self.driver, commit_grace=self.NEW_TAB_COMMIT_GRACE)

    # -- element operations -----------------------------------------------

    def _find_all(self, address: str) -> List["WebElement"]:
        from selenium.webdriver.common.by import By

        return self.driver.find_elements(By.XPATH, address)

    def _locate(self, address: str) -> "WebElement":
        """First match wins when an address resolves to several elements."""
        elements = self._find_all(address)
        if not elements:
            raise ElementNotFoundError(address)
        return elements[0]

    def count(self, address: str) -> int:
        return len(self._find_all(address))

    def tag_name(self, address: str) -> str:
        return self._locate(address).tag_name.lower()

    def get_attribute(self, address: str, name: str) -> Optional[str]:
        return self._locate(address).get_attribute(name)

    def click(self, address: str) -> None:
        self._locate(address).click()

    def clear(self, address: str) -> None:
        self._locate(address).clear()

    def hover(self, address: str) -> None:
        from selenium.webdriver.common.action_chains import ActionChains

        ActionChains(self.driver).move_to_element(self._locate(address)).perform()

    def set_checked(self, address: str, checked: bool) -> None:
        element = self._locate(address)
        if element.is_selected() != checked:
            element.click()

    def select_option(self, address: str, value: str) -> None:
        from selenium.common.exceptions import NoSuchElementException
        from selenium.webdriver.support.ui import Select

        select = Select(self._locate(address))
        try:
            select.select_by_value(value)
        except NoSuchElementException:
            select.select_by_visible_text(value)

    def press(self, address: str, key: str) -> None:
        self._locate(address).send_keys(self._key(key))

    def scroll_into_view(self, address: str) -> None:
        self.driver.execute_script(
            "arguments[0].scrollIntoView({behavior: 'smooth', block: 'center'});",
            self._locate(address),
        )

    def type_character(self, char: str) -> None:
        from selenium.webdriver.common.action_chains import ActionChains

        ActionChains(self.driver).send_keys(char).perform()

    def _key(self, key: str) -> str:
        from selenium.webdriver.common.keys import Keys

        name = self.KEY_ALIASES.get(key.lower().replace("_", ""), key.upper())
        return getattr(Keys, name, key)
