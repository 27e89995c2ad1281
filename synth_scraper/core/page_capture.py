"""
Page Capture
Retrieves a page, strips non-content elements and cuts a bounded content snippet

Two interchangeable adapters:
- BrowserPageCapture: Playwright (Chromium), renders JavaScript, one browser per run
- StaticPageCapture: CloudScraper session, no JavaScript, cheaper
"""

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import cloudscraper
import requests
from bs4 import BeautifulSoup, Comment
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from .exceptions import CaptureFailure
from .models import CapturedPage

logger = logging.getLogger(__name__)

USER_AGENTS = [
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15',
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/121.0'
]

# Elements that never carry extractable content
REMOVE_TAGS = ['script', 'style', 'meta', 'link', 'noscript']


def clean_markup(html: str, snippet_max_chars: int = 3000) -> Tuple[str, str]:
    """
    Strip noise elements and build the content snippet

    Args:
        html: Raw page HTML
        snippet_max_chars: Hard cap on the snippet length (truncated, never summarized)

    Returns:
        (full cleaned markup, content snippet)
    """
    soup = BeautifulSoup(html, 'html.parser')

    removed = 0
    for tag_name in REMOVE_TAGS:
        for tag in soup.find_all(tag_name):
            tag.decompose()
            removed += 1

    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    if removed:
        logger.debug(f"   Removed {removed} noise tags")

    # main content first, then the body, then the whole fragment
    container = soup.find('main') or soup.body
    snippet = container.decode_contents() if container else str(soup)

    return str(soup), snippet[:snippet_max_chars]


class PageCapture(ABC):
    """Base adapter: async context manager owning whatever the capture needs"""

    def __init__(self, timeout: float = 60.0, snippet_max_chars: int = 3000):
        """
        Args:
            timeout: Navigation/request timeout in seconds
            snippet_max_chars: Content snippet cap
        """
        self.timeout = timeout
        self.snippet_max_chars = snippet_max_chars

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def open(self) -> None:
        pass

    async def close(self) -> None:
        pass

    @abstractmethod
    async def fetch_html(self, url: str) -> str:
        """Return the raw HTML for url or raise CaptureFailure"""

    async def capture(self, url: str) -> CapturedPage:
        """
        Capture and clean one page

        Raises:
            CaptureFailure: network error, timeout or empty page
        """
        html = await self.fetch_html(url)
        if not html or not html.strip():
            raise CaptureFailure(f"Empty page returned for {url}", url=url)

        full_markup, snippet = clean_markup(html, self.snippet_max_chars)
        logger.info(f" Captured {url}: {len(html):,} bytes raw, {len(full_markup):,} cleaned, snippet {len(snippet)}")
        return CapturedPage(url=url, raw_markup=full_markup, content_snippet=snippet)


class BrowserPageCapture(PageCapture):
    """Playwright capture; the browser is launched once in open() and shared by every capture"""

    def __init__(self, headless: bool = True, timeout: float = 60.0, snippet_max_chars: int = 3000):
        super().__init__(timeout=timeout, snippet_max_chars=snippet_max_chars)
        self.headless = headless
        self.playwright = None
        self.browser = None

    async def open(self) -> None:
        if self.browser:
            return
        logger.info(" Launching playwright browser...")
        self.playwright = await async_playwright().start()
        self.browser = await self.playwright.chromium.launch(
            headless=self.headless,
            args=[
                '--disable-blink-features=AutomationControlled',
                '--disable-dev-shm-usage'
            ]
        )

    async def fetch_html(self, url: str) -> str:
        if not self.browser:
            raise RuntimeError("Browser not launched; use 'async with BrowserPageCapture()'")

        page = await self.browser.new_page(user_agent=random.choice(USER_AGENTS))
        try:
            logger.info(f" Navigating to: {url}")
            await page.goto(url, wait_until='networkidle', timeout=self.timeout * 1000)
            return await page.content()
        except PlaywrightError as e:
            raise CaptureFailure(f"Browser capture failed for {url}: {e}", url=url) from e
        finally:
            await page.close()

    async def close(self) -> None:
        if self.browser:
            await self.browser.close()
            self.browser = None
        if self.playwright:
            await self.playwright.stop()
            self.playwright = None
        logger.info(" Browser closed")


class StaticPageCapture(PageCapture):
    """CloudScraper capture, run in a worker thread"""

    def __init__(self, timeout: float = 60.0, snippet_max_chars: int = 3000):
        super().__init__(timeout=timeout, snippet_max_chars=snippet_max_chars)
        self.session: Optional[requests.Session] = None

    async def open(self) -> None:
        if self.session:
            return
        self.session = cloudscraper.create_scraper(
            browser={
                'browser': 'chrome',
                'platform': 'windows',
                'mobile': False
            }
        )
        self.session.headers.update({
            'User-Agent': random.choice(USER_AGENTS),
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
            'Accept-Language': 'en-US,en;q=0.9',
        })

    def _get(self, url: str) -> str:
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response.text

    async def fetch_html(self, url: str) -> str:
        if not self.session:
            await self.open()
        logger.info(f" Fetching: {url}")
        try:
            return await asyncio.to_thread(self._get, url)
        except requests.RequestException as e:
            raise CaptureFailure(f"Static capture failed for {url}: {e}", url=url) from e

    async def close(self) -> None:
        if self.session:
            self.session.close()
            self.session = None
