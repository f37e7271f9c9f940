"""
Pipeline composer: rate limit -> retried browser fetch -> extraction.

The proxy is resolved once per pipeline. Each run() performs one
fetch-and-extract and always returns a ScrapeOutcome; failures are logged
here and handed back to the caller, never raised and never turned into a
process exit.
"""

import asyncio
import logging
import time

from .browser_scraper import LaunchOptions, fetch_rendered
from .errors import ScrapingError
from .extractor import extract
from .models import FetchRequest, ScrapeOutcome
from .ratelimit import with_rate_limit
from .retry import with_retry
from .settings import DEFAULT_SCRAPE_CONFIG, ProxyCredentials, ProxySettings, ScrapeConfig, resolve_proxy

logger = logging.getLogger(__name__)


class ScrapePipeline:
    def __init__(
        self,
        config: ScrapeConfig | None = None,
        proxy: ProxySettings | None = None,
        *,
        fetcher=fetch_rendered,
        sleep=asyncio.sleep,
    ):
        self.config = config or DEFAULT_SCRAPE_CONFIG
        self.proxy = proxy
        self.launch_options = LaunchOptions.for_proxy(proxy, headless=self.config.browser_headless)
        self.retry_policy = self.config.retry_policy()
        self._fetcher = fetcher
        self._sleep = sleep

    @classmethod
    def from_env(cls, config: ScrapeConfig | None = None, credentials: ProxyCredentials | None = None, **kwargs) -> "ScrapePipeline":
        """Build a pipeline whose proxy comes from BRIGHT_DATA_* settings."""
        proxy = resolve_proxy(credentials if credentials is not None else ProxyCredentials())
        if proxy:
            logger.info("routing through proxy %s", proxy.masked)
        else:
            logger.info("proxy credentials incomplete, using direct connection")
        return cls(config, proxy, **kwargs)

    async def _fetch(self, request: FetchRequest) -> str:
        return await self._fetcher(request, self.launch_options, self.config)

    async def run(self, request: FetchRequest) -> ScrapeOutcome:
        t0 = time.perf_counter()
        attempts = 0

        def count_attempt(n: int) -> None:
            nonlocal attempts
            attempts = n

        try:
            html = await with_rate_limit(
                lambda: with_retry(
                    lambda: self._fetch(request),
                    self.retry_policy,
                    sleep=self._sleep,
                    on_attempt=count_attempt,
                ),
                self.config.rate_limit_delay_s,
                sleep=self._sleep,
            )
            content = extract(
                html,
                request.url,
                title_selector=self.config.title_selector,
                span_selector=self.config.span_selector,
            )
        except ScrapingError as e:
            outcome = ScrapeOutcome(url=request.url, error=e, attempts=attempts, elapsed_s=time.perf_counter() - t0)
            logger.error(
                "scrape failed for %s: %s",
                request.url,
                e.message,
                extra={"error": e.to_dict(), "attempts": attempts},
            )
            return outcome

        outcome = ScrapeOutcome(url=request.url, content=content, attempts=attempts, elapsed_s=time.perf_counter() - t0)
        logger.info(
            "scraped %s",
            request.url,
            extra={"title": content.title, "span_count": len(content.spans), "attempts": attempts},
        )
        return outcome

    async def run_many(self, urls: list[str], timeout_ms: int | None = None) -> list[ScrapeOutcome]:
        """Run one URL after another; no two sessions overlap."""
        timeout_ms = timeout_ms or self.config.timeout_ms
        outcomes = []
        for url in urls:
            outcomes.append(await self.run(FetchRequest(url=url, timeout_ms=timeout_ms)))
        return outcomes
