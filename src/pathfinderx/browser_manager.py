from __future__ import annotations

import logging
from types import TracebackType
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from .dom_extractor import CaptureError, capture_document, capture_node
from .shadow import SHADOW_COMBINATOR

if TYPE_CHECKING:
    from playwright.sync_api import Browser, BrowserContext, Page, Playwright

    from .document import Document, NodeRef

_MISSING_BROWSER_ERROR_HINTS = (
    "executable doesn't exist",
    "executable does not exist",
    "download new browsers",
    "playwright install",
    "could not find browser",
    "failed to launch chromium because executable",
)


def _is_missing_browser_error(exc: Exception) -> bool:
    message = str(exc).lower()
    return any(hint in message for hint in _MISSING_BROWSER_ERROR_HINTS)


def is_url(source: str) -> bool:
    return urlparse(source.strip()).scheme in {"http", "https", "file"}


def playwright_selector(selector: str) -> str:
    """Playwright CSS already pierces open shadow roots, so ``>>>`` becomes a descendant combinator."""
    parts = [part.strip() for part in selector.split(SHADOW_COMBINATOR.strip())]
    return " ".join(part for part in parts if part)


class BrowserManager:
    """Headless Chromium session that snapshots pages for the synthesis engine."""

    def __init__(self, *, headless: bool = True, viewport: tuple[int, int] = (1280, 720)) -> None:
        self._headless = headless
        self._viewport = viewport
        self.logger = logging.getLogger("pathfinderx.browser")

        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    def __enter__(self) -> BrowserManager:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def start(self) -> None:
        if self._page is not None:
            return
        self._playwright = sync_playwright().start()
        try:
            self._browser = self._playwright.chromium.launch(headless=self._headless)
        except PlaywrightError as exc:
            self.close()
            if _is_missing_browser_error(exc):
                raise CaptureError("Chromium not installed. Run: python -m playwright install chromium") from exc
            raise CaptureError(f"Failed to launch Chromium: {exc}") from exc

        width, height = self._viewport
        self._context = self._browser.new_context(viewport={"width": width, "height": height})
        self._page = self._context.new_page()
        self.logger.debug("Chromium started (headless=%s).", self._headless)

    def open(self, raw_url: str) -> Page:
        page = self._require_page()
        url = self._normalize_url(raw_url)
        if not url:
            raise CaptureError("Please enter a URL.")
        self.logger.info("Loading %s", url)
        try:
            page.goto(url, wait_until="domcontentloaded")
        except PlaywrightError as exc:
            raise CaptureError(f"Could not load {url}: {exc}") from exc
        return page

    def capture(self, *selectors: str) -> tuple[Document, list[NodeRef]]:
        """Snapshot the current page and resolve each selector (Playwright CSS, shadow-piercing)."""
        page = self._require_page()
        handles = []
        for selector in selectors:
            try:
                handle = page.query_selector(playwright_selector(selector))
            except PlaywrightError as exc:
                raise CaptureError(f"Invalid selector {selector!r}: {exc}") from exc
            if handle is None:
                raise CaptureError(f"No element matches {selector!r}.")
            handles.append(handle)

        document = capture_document(page)
        nodes = [capture_node(document, handle) for handle in handles]
        self.logger.debug("Captured %d element(s) from %s", len(nodes), page.url)
        return document, nodes

    def close(self) -> None:
        for resource in (self._page, self._context, self._browser):
            if resource is None:
                continue
            try:
                resource.close()
            except PlaywrightError as exc:
                self.logger.debug("Ignoring close failure: %s", exc)
        self._page = None
        self._context = None
        self._browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None

    def _require_page(self) -> Page:
        if self._page is None:
            raise CaptureError("Browser is not started.")
        return self._page

    @staticmethod
    def _normalize_url(raw_url: str) -> str:
        url = raw_url.strip()
        if not url:
            return ""
        if is_url(url):
            return url
        return f"https://{url}"
