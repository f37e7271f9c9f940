import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass

from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .errors import BrowserError, ScrapeTimeoutError
from .models import FetchRequest
from .policy import classify_status, parse_retry_after
from .settings import ProxySettings, ScrapeConfig

logger = logging.getLogger(__name__)

HEAVY_RESOURCE_TYPES = {"image", "media", "font"}


@dataclass(frozen=True)
class LaunchOptions:
    """
    Everything the browser needs to know at launch time.

    ignore_https_errors relaxes certificate validation for this browser's
    contexts only. It is set when routing through the proxy, whose TLS
    interception would otherwise fail validation.
    """

    headless: bool = True
    proxy: ProxySettings | None = None
    ignore_https_errors: bool = False

    @classmethod
    def for_proxy(cls, proxy: ProxySettings | None, headless: bool = True) -> "LaunchOptions":
        return cls(headless=headless, proxy=proxy, ignore_https_errors=proxy is not None)


class BrowserScraper:
    """
    Headless, JS-enabled fetcher using Playwright.

    - One browser per context manager (__aenter__/__aexit__), released on exit
    - One page per fetch via open_page(), released before the browser
    - Optional proxy: launch routes through proxy.server, each context
      authenticates with the proxy credentials
    - Response status is classified before the rendered HTML is read
    - Release failures are logged and swallowed; they never mask the outcome
    """

    def __init__(
        self,
        config: ScrapeConfig,
        launch_options: LaunchOptions,
        playwright_factory=async_playwright,
        url: str | None = None,
    ):
        self.config = config
        self.launch_options = launch_options
        self._playwright_factory = playwright_factory
        self.url = url

        self._playwright = None
        self._browser = None

    async def __aenter__(self):
        proxy = self.launch_options.proxy
        launch_kwargs = {"headless": self.launch_options.headless}
        if proxy:
            launch_kwargs["proxy"] = {"server": proxy.server}
        if self.launch_options.ignore_https_errors:
            logger.warning("certificate validation disabled for proxied browser (%s)", proxy.masked if proxy else "direct")

        try:
            self._playwright = await self._playwright_factory().start()
            self._browser = await self._playwright.chromium.launch(**launch_kwargs)
        except BaseException as e:
            # __aexit__ does not run when __aenter__ raises, cancellation included
            await self._release()
            if not isinstance(e, Exception):
                raise
            message = "Failed to launch browser with proxy" if proxy else "Failed to launch browser"
            raise BrowserError(message, self.url, cause=e) from e

        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self._release()

    async def _release(self) -> None:
        if self._browser is not None:
            await _close_quietly(self._browser.close, "browser")
            self._browser = None
        if self._playwright is not None:
            await _close_quietly(self._playwright.stop, "playwright")
            self._playwright = None

    @asynccontextmanager
    async def open_page(self, url: str | None = None):
        """Open a context + page on the running browser; both are closed on exit."""
        url = url or self.url
        if self._browser is None:
            raise BrowserError("Browser is not running", url)

        context_kwargs = {
            "user_agent": self.config.user_agent,
            "locale": self.config.browser_locale,
            "ignore_https_errors": self.launch_options.ignore_https_errors,
        }
        if self.launch_options.proxy:
            context_kwargs["proxy"] = self.launch_options.proxy.playwright_proxy()

        context = None
        page = None
        try:
            context = await self._browser.new_context(**context_kwargs)

            # Optional: block heavy resources
            if self.config.browser_block_heavy:
                async def route_handler(route):
                    if route.request.resource_type in HEAVY_RESOURCE_TYPES:
                        await route.abort()
                    else:
                        await route.continue_()
                await context.route("**/*", route_handler)

            page = await context.new_page()
        except BaseException as e:
            if context is not None:
                await _close_quietly(context.close, "context")
            if not isinstance(e, Exception):
                raise
            raise BrowserError("Failed to create page or authenticate", url, cause=e) from e

        try:
            yield page
        finally:
            await _close_quietly(page.close, "page")
            await _close_quietly(context.close, "context")

    def navigation_timeout(self, request: FetchRequest) -> int:
        return max(request.timeout_ms, self.config.min_navigation_timeout_ms)

    async def fetch(self, request: FetchRequest) -> str:
        """
        Render `request.url` and return the full HTML.

        Raises:
            RateLimitError / IPBlockError / NetworkError for >= 400 responses,
            ScrapeTimeoutError when navigation exceeds its deadline,
            BrowserError for any other engine failure.
        """
        url = request.url
        timeout_ms = self.navigation_timeout(request)

        async with self.open_page(url) as page:
            try:
                resp = await page.goto(url, wait_until=self.config.wait_until, timeout=timeout_ms)
            except PlaywrightTimeoutError as e:
                raise ScrapeTimeoutError(f"Navigation timeout after {timeout_ms}ms", url, timeout_ms=timeout_ms, cause=e) from e
            except Exception as e:
                raise BrowserError("Failed to navigate", url, cause=e) from e

            # resp is None for same-document navigations
            if resp is not None:
                proxy = self.launch_options.proxy
                error = classify_status(
                    resp.status,
                    url,
                    retry_after=parse_retry_after(resp.headers.get("retry-after")),
                    proxy_id=proxy.masked if proxy else None,
                )
                if error is not None:
                    raise error

            try:
                return await page.content()
            except Exception as e:
                raise BrowserError("Failed to read page content", url, cause=e) from e


async def _close_quietly(close, what: str) -> None:
    try:
        await close()
    except Exception:
        logger.warning("failed to close %s", what, exc_info=True)


async def fetch_rendered(
    request: FetchRequest,
    launch_options: LaunchOptions,
    config: ScrapeConfig,
    *,
    playwright_factory=async_playwright,
) -> str:
    """One full session: launch browser, open page, navigate, release both."""
    async with BrowserScraper(config, launch_options, playwright_factory, url=request.url) as scraper:
        return await scraper.fetch(request)
