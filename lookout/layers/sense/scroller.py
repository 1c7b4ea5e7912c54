"""
Page Scroller - moves the viewport and waits for it to hold still.
"""

from typing import Callable, TYPE_CHECKING
import logging
import time

if TYPE_CHECKING:
    from lookout.core.page import Page

logger = logging.getLogger(__name__)


class PageScroller:
    """
    Scrolls a page to an offset and returns only once geometry is safe to read.

    The page itself waits for scroll events to stop; the scroller adds a short
    fixed delay on top for layout and animations triggered by the scroll.
    """

    def __init__(
        self,
        page: "Page",
        settle_delay: float = 0.2,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.page = page
        self.settle_delay = settle_delay
        self._sleep = sleep

    def scroll_to(self, offset: float) -> None:
        logger.debug(f"[dom] Scrolling to {offset}")
        self.page.scroll_to(offset)
        if self.settle_delay > 0:
            self._sleep(self.settle_delay)
