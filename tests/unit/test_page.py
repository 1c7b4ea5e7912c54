from unittest.mock import MagicMock, PropertyMock, patch

import pytest

pytest.importorskip("selenium")

from lookout.core.page import SeleniumPage, _SeleniumSpawnedPage
from lookout.layers.action.executor import ActionExecutor


def link_driver(tab_url):
    """A driver whose only element is a link that opens a second tab when clicked."""
    driver = MagicMock()
    driver.window_handles = ["main"]
    driver.current_window_handle = "main"
    type(driver).current_url = PropertyMock(return_value=tab_url)

    link = MagicMock(tag_name="a")
    link.get_attribute.return_value = "/reset"
    link.click.side_effect = lambda: setattr(driver, "window_handles", ["main", "tab"])
    driver.find_elements.return_value = [link]
    return driver


class TestSpawnedPage:
    def test_waits_for_the_first_navigation(self):
        driver = MagicMock()
        type(driver).current_url = PropertyMock(side_effect=["about:blank", "about:blank", "https://example.com/reset"])
        with patch("lookout.core.page.time.sleep"):
            spawned = _SeleniumSpawnedPage(driver, "tab", "main", commit_grace=5)
            assert spawned.url == "https://example.com/reset"
        driver.switch_to.window.assert_called_with("main")

    def test_gives_up_after_the_grace_period(self):
        driver = MagicMock()
        type(driver).current_url = PropertyMock(return_value="about:blank")
        assert _SeleniumSpawnedPage(driver, "tab", "main", commit_grace=0.05).url == "about:blank"


class TestNewTabCollapse:
    def make_page(self, tab_url):
        page = SeleniumPage(link_driver(tab_url))
        page.NEW_TAB_COMMIT_GRACE = 0.05
        page.goto = MagicMock()
        page.wait_for_load = MagicMock()
        page.wait_for_settled_dom = MagicMock()
        return page

    def test_blank_tab_is_closed_without_navigating(self):
        page = self.make_page("about:blank")

        assert ActionExecutor(page, new_page_timeout=0.5).click("//a") is None

        page.goto.assert_not_called()
        page.driver.close.assert_called_once()

    def test_committed_tab_is_followed(self):
        page = self.make_page("https://example.com/reset")

        assert ActionExecutor(page, new_page_timeout=0.5).click("//a") == "https://example.com/reset"

        page.goto.assert_called_once_with("https://example.com/reset")
        page.driver.close.assert_called_once()
