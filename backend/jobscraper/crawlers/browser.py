"""
Browser crawler for the live results page.

Uses Playwright to drive a single page the user is looking at. Unlike a
fetch-and-parse crawler, the page stays open for the whole run: the engine
reads BeautifulSoup snapshots of it and asks the crawler to scroll, click,
navigate and subscribe to DOM changes.
"""

import asyncio
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from bs4 import BeautifulSoup
from playwright.async_api import async_playwright, Browser, BrowserContext, Page
import logging

from ..base import BrowserNotReadyError, NavigationError

logger = logging.getLogger(__name__)

Selectors = Union[str, List[str]]


@dataclass
class ListMetrics:
    """Geometry of the scrollable results list at one point in time."""
    card_count: int
    client_height: float
    container_bottom: float
    boundary_top: Optional[float] = None    # None when the pagination marker is not rendered


# ============================================================
# IN-PAGE SCRIPTS
# ============================================================

# Shared container lookup: explicit selectors first, then the first div in
# the list scaffold that holds cards and is not a header.
_FIND_CONTAINER = """
const findContainer = (args) => {
    for (const selector of args.containerSelectors) {
        const el = document.querySelector(selector);
        if (el) return el;
    }
    const scaffold = document.querySelector(args.scaffoldSelector);
    if (!scaffold) return null;
    for (const div of scaffold.querySelectorAll('div')) {
        if (div.matches('header, [class*="header"]')) continue;
        if (div.querySelector(args.cardSelector)) return div;
    }
    return null;
};
"""

_MEASURE_LIST = "(args) => {" + _FIND_CONTAINER + """
    const container = findContainer(args);
    if (!container) return null;
    const rect = container.getBoundingClientRect();
    const boundary = document.querySelector(args.boundarySelector);
    return {
        cardCount: container.querySelectorAll(args.cardSelector).length,
        clientHeight: container.clientHeight,
        containerBottom: rect.bottom,
        boundaryTop: boundary ? boundary.getBoundingClientRect().top : null,
    };
}"""

_SCROLL_LIST_BY = "(args) => {" + _FIND_CONTAINER + """
    const container = findContainer(args);
    if (!container) return false;
    container.scrollBy(0, args.pixels);
    return true;
}"""

_SCROLL_LIST_TO_TOP = "(args) => {" + _FIND_CONTAINER + """
    const container = findContainer(args);
    if (!container) return false;
    container.scrollTo(0, 0);
    return true;
}"""


class BrowserCrawler:
    """
    Playwright wrapper that owns one browser page for the length of a session.

    Features:
    - Headed or headless Chromium with an optional saved login state
    - Snapshots of the rendered document as BeautifulSoup
    - List scrolling and geometry reads inside the page
    - Card scrolling and clicking by document position
    - Python callbacks exposed to page scripts
    """

    def __init__(
        self,
        headless: bool = False,
        timeout: float = 30.0,
        storage_state: Optional[str] = None,
        viewport: Optional[Dict[str, int]] = None,
    ):
        """
        Initialize the browser crawler.

        Args:
            headless: Run browser in headless mode
            timeout: Navigation timeout in seconds
            storage_state: Path to a saved Playwright storage state (cookies of a logged-in session)
            viewport: Window size, defaults to 1440x900
        """
        self.headless = headless
        self.timeout = timeout
        self.storage_state = storage_state
        self.viewport = viewport or {'width': 1440, 'height': 900}
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self._bindings: Dict[str, Callable] = {}

    @property
    def is_started(self) -> bool:
        return self._page is not None

    @property
    def page(self) -> Page:
        if self._page is None:
            raise BrowserNotReadyError("Browser has not been started")
        return self._page

    @property
    def current_url(self) -> str:
        return self.page.url

    async def start(self, url: Optional[str] = None):
        """
        Launch the browser and open one page.

        Args:
            url: Optional page to open once the browser is up
        """
        if self._page is not None:
            return

        try:
            self._playwright = await async_playwright().start()

            chromium_path = self._playwright.chromium.executable_path
            if not chromium_path or not os.path.exists(chromium_path):
                raise BrowserNotReadyError("Chromium browser not found. Run: playwright install chromium")

            logger.debug("Launching Chromium browser...")
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=[
                    '--disable-blink-features=AutomationControlled',
                    '--disable-dev-shm-usage',
                ],
                handle_sigint=False,
                handle_sigterm=False,
                handle_sighup=False,
            )

            context_options: Dict[str, Any] = {
                'viewport': self.viewport,
                'locale': 'en-US',
            }
            if self.storage_state and os.path.exists(self.storage_state):
                context_options['storage_state'] = self.storage_state
                logger.info(f"Using saved session from {self.storage_state}")

            self._context = await self._browser.new_context(**context_options)
            await self._context.add_init_script("""
                Object.defineProperty(navigator, 'webdriver', {
                    get: () => undefined
                });
            """)

            self._page = await asyncio.wait_for(self._context.new_page(), timeout=10.0)
            logger.debug("Browser initialization successful")

        except Exception as e:
            logger.error(f"Failed to initialize browser: {e}")
            await self._cleanup()
            raise

        if url:
            await self.goto(url)

    async def save_storage_state(self, path: Optional[str] = None):
        """Persist cookies and local storage so the next session stays logged in."""
        path = path or self.storage_state
        if not path or self._context is None:
            return
        await self._context.storage_state(path=path)
        logger.info(f"Saved session to {path}")

    async def _cleanup(self):
        """Close page, context, browser and driver in order, each step bounded by a timeout."""
        steps = [
            ('page', self._page, lambda: self._page.close()),
            ('context', self._context, lambda: self._context.close()),
            ('browser', self._browser, lambda: self._browser.close()),
            ('playwright', self._playwright, lambda: self._playwright.stop()),
        ]
        for label, resource, close in steps:
            if resource is None:
                continue
            try:
                await asyncio.wait_for(close(), timeout=2.0)
            except asyncio.TimeoutError:
                logger.warning(f"Closing {label} timed out, dropping it")
            except Exception as e:
                logger.warning(f"Error closing {label}: {e}")

        self._page = None
        self._context = None
        self._browser = None
        self._playwright = None
        self._bindings.clear()

    # ============================================================
    # DOCUMENT
    # ============================================================

    async def snapshot(self) -> BeautifulSoup:
        """Parse the currently rendered document."""
        html = await self.page.content()
        return BeautifulSoup(html, 'html.parser')

    async def goto(self, url: str):
        """
        Navigate the page to a URL.

        Raises:
            NavigationError: On timeout, network failure or an HTTP error status
        """
        try:
            response = await self.page.goto(
                url,
                wait_until='domcontentloaded',
                timeout=int(self.timeout * 1000)
            )
        except BrowserNotReadyError:
            raise
        except Exception as e:
            raise NavigationError(f"Failed to navigate to {url}: {e}") from e

        if response and response.status >= 400:
            raise NavigationError(f"HTTP {response.status} for {url}")

    async def any_present(self, selectors: Selectors) -> bool:
        """True if any selector matches an element in the live page."""
        if isinstance(selectors, str):
            selectors = [selectors]
        for selector in selectors:
            if await self.page.query_selector(selector):
                return True
        return False

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        return await self.page.evaluate(script, arg)

    # ============================================================
    # RESULTS LIST
    # ============================================================

    def _list_args(self, card_selector: str, container_selectors: Selectors,
                   scaffold_selector: str, **extra) -> Dict[str, Any]:
        if isinstance(container_selectors, str):
            container_selectors = [container_selectors]
        args = {
            'cardSelector': card_selector,
            'containerSelectors': list(container_selectors),
            'scaffoldSelector': scaffold_selector,
        }
        args.update(extra)
        return args

    async def measure_list(self, card_selector: str, container_selectors: Selectors,
                           scaffold_selector: str, boundary_selector: str) -> Optional[ListMetrics]:
        """
        Read card count and geometry of the scrollable results list.

        Returns:
            ListMetrics, or None when no scrollable container exists
        """
        data = await self.page.evaluate(
            _MEASURE_LIST,
            self._list_args(card_selector, container_selectors, scaffold_selector,
                            boundarySelector=boundary_selector),
        )
        if not data:
            return None
        return ListMetrics(
            card_count=int(data['cardCount']),
            client_height=float(data['clientHeight']),
            container_bottom=float(data['containerBottom']),
            boundary_top=data.get('boundaryTop'),
        )

    async def scroll_list_by(self, pixels: float, card_selector: str,
                             container_selectors: Selectors, scaffold_selector: str) -> bool:
        return await self.page.evaluate(
            _SCROLL_LIST_BY,
            self._list_args(card_selector, container_selectors, scaffold_selector, pixels=pixels),
        )

    async def scroll_list_to_top(self, card_selector: str, container_selectors: Selectors,
                                 scaffold_selector: str) -> bool:
        return await self.page.evaluate(
            _SCROLL_LIST_TO_TOP,
            self._list_args(card_selector, container_selectors, scaffold_selector),
        )

    # ============================================================
    # CARDS
    # ============================================================

    async def count_cards(self, card_selector: str) -> int:
        return await self.page.locator(card_selector).count()

    async def has_card_link(self, card_selector: str, index: int, link_selector: str) -> bool:
        """True if the card at `index` contains a clickable link."""
        card = self.page.locator(card_selector).nth(index)
        return await card.locator(link_selector).count() > 0

    async def scroll_card_into_view(self, card_selector: str, index: int):
        card = self.page.locator(card_selector).nth(index)
        await card.scroll_into_view_if_needed(timeout=int(self.timeout * 1000))

    async def click_card(self, card_selector: str, index: int, link_selector: str):
        """Click the first link inside the card at `index`."""
        link = self.page.locator(card_selector).nth(index).locator(link_selector).first
        await link.click(timeout=int(self.timeout * 1000))

    # ============================================================
    # BINDINGS
    # ============================================================

    async def expose_function(self, name: str, callback: Callable):
        """
        Make `callback` callable from page scripts as `window[name]`.

        Playwright refuses to register a name twice on one page, so repeat
        registrations only swap the Python callback.
        """
        already_exposed = name in self._bindings
        self._bindings[name] = callback
        if already_exposed:
            return

        def dispatch(*args):
            handler = self._bindings.get(name)
            if handler is not None:
                return handler(*args)
            return None

        await self.page.expose_function(name, dispatch)

    async def close(self):
        """Close the browser and cleanup resources."""
        await self._cleanup()

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self._cleanup()
