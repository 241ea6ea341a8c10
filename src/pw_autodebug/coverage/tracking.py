"""Playwright page adapter that reports navigation and selector usage."""

from typing import Any, Literal

from loguru import logger

from .aggregator import CoverageSession
from .discovery import discover_html_elements
from .elements import ElementRecord
from .snapshot import parse_snapshot

DiscoveryMode = Literal["aria", "html"]


class TrackedPage:
    """
    Wrap a (sync API) Playwright ``Page`` and feed a CoverageSession.

    Navigation through ``goto`` records a page visit with the elements
    discovered on the loaded page. Selector-taking methods record the
    selector before delegating. Everything else is passed straight through
    to the wrapped page.
    """

    def __init__(
        self,
        page: Any,
        session: CoverageSession,
        test_name: str,
        discovery: DiscoveryMode = "aria",
    ):
        if discovery not in ("aria", "html"):
            raise ValueError(f"Unknown discovery mode: {discovery!r}")
        self._page = page
        self._session = session
        self._test_name = test_name
        self._discovery = discovery

    @property
    def page(self) -> Any:
        return self._page

    def __getattr__(self, name: str) -> Any:
        return getattr(self._page, name)

    def goto(self, url: str, **kwargs):
        response = self._page.goto(url, **kwargs)
        self.record_visit(getattr(self._page, "url", None) or url)
        return response

    def record_visit(self, page_id: str) -> None:
        """Discover the current page's elements and record them."""
        elements = self.discover()
        self._session.record_page_visit(page_id, elements, self._test_name)
        logger.debug(f"{self._test_name}: {len(elements)} elements on {page_id}")

    def discover(self) -> list[ElementRecord]:
        try:
            if self._discovery == "aria":
                return parse_snapshot(self._page.locator("body").aria_snapshot())
            return discover_html_elements(self._page.content())
        except Exception as e:
            logger.warning(f"Element discovery failed for {self._test_name}: {e}")
            return []

    def _record(self, selector: str, method: str) -> None:
        self._session.record_selector_usage(self._test_name, selector, method)

    # Locator factories

    def locator(self, selector: str, **kwargs):
        self._record(selector, "locator")
        return self._page.locator(selector, **kwargs)

    def get_by_role(self, role: str, **kwargs):
        name = kwargs.get("name")
        selector = f'role={role}[name="{name}"]' if name else f"role={role}"
        self._record(selector, "getByRole")
        return self._page.get_by_role(role, **kwargs)

    def get_by_text(self, text: str, **kwargs):
        self._record(f"text={text}", "getByText")
        return self._page.get_by_text(text, **kwargs)

    def get_by_label(self, text: str, **kwargs):
        self._record(f'[aria-label="{text}"]', "getByLabel")
        return self._page.get_by_label(text, **kwargs)

    def get_by_placeholder(self, text: str, **kwargs):
        self._record(f'[placeholder="{text}"]', "getByPlaceholder")
        return self._page.get_by_placeholder(text, **kwargs)

    def get_by_test_id(self, test_id: str):
        self._record(f'[data-testid="{test_id}"]', "getByTestId")
        return self._page.get_by_test_id(test_id)

    # Direct actions

    def click(self, selector: str, **kwargs):
        self._record(selector, "click")
        return self._page.click(selector, **kwargs)

    def fill(self, selector: str, value: str, **kwargs):
        self._record(selector, "fill")
        return self._page.fill(selector, value, **kwargs)
