"""
Headless browser fetching for the crawl stage.

Each crawl worker owns one BrowserSession (one Playwright instance and one
browser). Every target gets its own page, which blocks non-document
resources, sends locale and referrer headers, loads with a bounded timeout
and is checked for the bot challenge interstitial. The page is closed on
every exit path.
"""

import logging
from contextlib import contextmanager
from urllib.parse import urlsplit

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from story_pipeline import constants
from story_pipeline.config import PipelineConfig
from story_pipeline.exceptions import (
    BotChallengeUnresolved,
    NavigationTimeout,
    TransientNetworkError,
)
from story_pipeline.scraper.models import FetchResult

logger = logging.getLogger(__name__)


def origin_of(url: str) -> str:
    """Return scheme://host of a URL."""
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def is_bot_challenge(title: str | None) -> bool:
    """Check whether a page title is the anti-bot interstitial."""
    return (title or "").strip() == constants.BOT_CHALLENGE_TITLE


def _block_non_documents(route) -> None:
    """Abort images, stylesheets, fonts and media; let everything else through."""
    if route.request.resource_type in constants.BLOCKED_RESOURCE_TYPES:
        route.abort()
    else:
        route.continue_()


class BrowserSession:
    """Playwright browser owned by a single crawl worker."""

    def __init__(self, config: PipelineConfig):
        """
        Initialize browser session.

        Args:
            config: Pipeline settings (timeouts, headers, headless mode)
        """
        self.config = config
        self._playwright = None
        self._browser = None
        self._context = None

    def __enter__(self) -> "BrowserSession":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> None:
        """Start Playwright and launch the browser."""
        self._playwright = sync_playwright().start()
        try:
            self._browser = self._playwright.chromium.launch(
                headless=self.config.headless,
                args=constants.BROWSER_LAUNCH_ARGS,
            )
            self._context = self._browser.new_context(
                user_agent=constants.BROWSER_USER_AGENT,
                viewport={"width": 1920, "height": 1080},
            )
        except Exception:
            self.close()
            raise

    def close(self) -> None:
        """Close the browser and stop Playwright; safe to call twice."""
        for resource in (self._context, self._browser):
            if resource is None:
                continue
            try:
                resource.close()
            except PlaywrightError as e:
                logger.warning(f"Error closing browser resource: {e}")
        self._context = None
        self._browser = None

        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None

    @contextmanager
    def _page(self):
        """Open a page for one target and close it on every exit path."""
        if self._context is None:
            raise RuntimeError("BrowserSession is not open")

        page = self._context.new_page()
        try:
            yield page
        finally:
            try:
                page.close()
            except PlaywrightError as e:
                logger.warning(f"Error closing page: {e}")

    def _headers_for(self, url: str) -> dict[str, str]:
        return {
            "Accept-Language": constants.ACCEPT_LANGUAGE,
            "Referer": self.config.site_url or origin_of(url),
        }

    def fetch(self, url: str) -> FetchResult:
        """
        Load a target and return its rendered markup.

        Args:
            url: Target URL

        Returns:
            FetchResult with the page content

        Raises:
            NavigationTimeout: If the page did not load in time
            BotChallengeUnresolved: If the challenge outlived the grace period
            TransientNetworkError: For any other browser or network error
        """
        timeout = self.config.navigation_timeout_ms

        with self._page() as page:
            try:
                page.set_default_navigation_timeout(timeout)
                page.route("**/*", _block_non_documents)
                page.set_extra_http_headers(self._headers_for(url))
                page.goto(url, wait_until="domcontentloaded", timeout=timeout)

                title = page.title()
                if is_bot_challenge(title):
                    logger.info(f"Bot challenge detected on {url}, waiting...")
                    page.mouse.move(100, 100)
                    page.wait_for_timeout(self.config.challenge_wait_ms)
                    title = page.title()
                    if is_bot_challenge(title):
                        raise BotChallengeUnresolved(url, "Bot challenge did not clear")

                return FetchResult(url=url, content=page.content(), title=title or "")

            except PlaywrightTimeoutError as e:
                raise NavigationTimeout(url, f"Timed out after {timeout}ms: {e}") from e
            except PlaywrightError as e:
                raise TransientNetworkError(url, str(e)) from e
