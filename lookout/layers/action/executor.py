"""
Action Executor - applies one decided step to the page.

Resolves the decided index to an address, validates the operation, and
dispatches it. Failures are returned as a failed :class:`StepResult`, never
raised, so a bad decision cannot take the host process down.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Tuple, TYPE_CHECKING
import logging
import random
import time

from lookout.core.errors import ElementNotFoundError
from lookout.layers.action.operations import Operation, OperationKind, parse_operation

if TYPE_CHECKING:
    from lookout.core.page import Page
    from lookout.layers.intelligence.brains.base import ActionDecision
    from lookout.layers.sense.dom_mapper import FlattenedChunk

logger = logging.getLogger(__name__)

# What a freshly opened tab reports before its first navigation commits.
BLANK_URLS = ("about:blank", "")


@dataclass
class StepResult:
    """Result of applying one step."""
    success: bool
    operation: str
    address: str
    url_before: str
    url_after: str
    duration_ms: float
    element_text: str = ""
    redirected_to: Optional[str] = None
    error: Optional[str] = None

    @property
    def url_changed(self) -> bool:
        return self.url_after != self.url_before

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "operation": self.operation,
            "address": self.address,
            "url_before": self.url_before,
            "url_after": self.url_after,
            "duration_ms": self.duration_ms,
            "element_text": self.element_text,
            "redirected_to": self.redirected_to,
            "error": self.error,
        }


class ActionExecutor:
    """
    Execute decided steps against a :class:`Page`.

    Typing goes through the keyboard one character at a time with a random
    pause between keys. Clicking a link that opens a new tab is collapsed
    into a navigation of the current tab.

    Example:
        >>> executor = ActionExecutor(page)
        >>> result = executor.apply(decision, flattened_chunk)
        >>> if result.success:
        ...     print(f"{result.operation} done, now at {result.url_after}")
    """

    def __init__(
        self,
        page: "Page",
        new_page_timeout: float = 1.5,
        typing_delay: Tuple[float, float] = (0.025, 0.075),
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            page: Page to act on
            new_page_timeout: Seconds to wait for a tab opened by a link click
            typing_delay: Bounds (seconds) of the random pause between keystrokes
            sleep: Injected for tests
            rng: Source of the keystroke jitter
        """
        self.page = page
        self.new_page_timeout = new_page_timeout
        self.typing_delay = typing_delay
        self._sleep = sleep
        self._rng = rng or random.Random()

    def apply(self, decision: "ActionDecision", chunk: "FlattenedChunk") -> StepResult:
        start_time = time.time()
        address = chunk.addresses.get(decision.index, "")
        url_before = self.page.url
        result = StepResult(
            success=False,
            operation=str(decision.method),
            address=address,
            url_before=url_before,
            url_after=url_before,
            duration_ms=0.0,
            element_text=chunk.element_text(decision.index),
        )

        try:
            if not address:
                raise ElementNotFoundError(f"index {decision.index}")
            operation = parse_operation(decision.method, decision.args)
            logger.info(
                f"[action] Executing method: {operation.describe()} on element: "
                f"{decision.index} (path: {address})"
            )
            if self.page.count(address) == 0:
                raise ElementNotFoundError(address)
            result.redirected_to = self._dispatch(operation, address)
            self.page.wait_for_settled_dom()
            result.success = True
        except Exception as e:
            logger.warning(f"[action] Error performing action: {e}")
            result.error = str(e)

        result.url_after = self.page.url
        result.duration_ms = (time.time() - start_time) * 1000
        return result

    def _dispatch(self, operation: Operation, address: str) -> Optional[str]:
        """Run the operation; returns the URL navigated to if a new tab was collapsed."""
        kind = operation.kind
        if kind is OperationKind.SCROLL_INTO_VIEW:
            self.page.scroll_into_view(address)
        elif operation.is_keystroke:
            self.type_text(address, operation.text or "")
        elif kind is OperationKind.CLICK:
            return self.click(address)
        elif kind is OperationKind.CHECK:
            self.page.set_checked(address, True)
        elif kind is OperationKind.UNCHECK:
            self.page.set_checked(address, False)
        elif kind is OperationKind.SELECT_OPTION:
            self.page.select_option(address, operation.text or "")
        elif kind is OperationKind.HOVER:
            self.page.hover(address)
        elif kind is OperationKind.PRESS:
            self.page.press(address, operation.text or "")
        return None

    def type_text(self, address: str, text: str) -> None:
        """Clear the field, focus it, then type ``text`` key by key."""
        self.page.clear(address)
        self.page.click(address)
        low, high = self.typing_delay
        for char in text:
            self.page.type_character(char)
            self._sleep(self._rng.uniform(low, high))

    def click(self, address: str) -> Optional[str]:
        is_link = self.page.is_link(address)
        logger.debug(f"[action] Element is a link: {is_link}")
        watcher = self.page.watch_new_pages() if is_link else None
        self.page.click(address)
        if watcher is None:
            return None

        spawned = watcher.wait(self.new_page_timeout)
        if spawned is None:
            logger.info("[action] No new page opened after clicking link")
            return None

        new_url = spawned.url
        spawned.close()
        if new_url in BLANK_URLS:
            logger.info("[action] New page never left about:blank, staying on the current page")
            return None

        logger.info(f"[action] New page detected with URL: {new_url}")
        self.page.goto(new_url)
        self.page.wait_for_load()
        self.page.wait_for_settled_dom()
        return new_url
