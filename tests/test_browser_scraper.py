import asyncio

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from render_scraper.browser_scraper import BrowserScraper, LaunchOptions, fetch_rendered
from render_scraper.errors import (
    BrowserError,
    IPBlockError,
    NetworkError,
    RateLimitError,
    ScrapeTimeoutError,
    ScrapingError,
)
from render_scraper.models import FetchRequest

from .fakes import ACQUIRE_EVENTS, QUOTES_HTML, RELEASE_EVENTS, FakeEngine, FakeResponse, FakeRoute

URL = "https://quotes.toscrape.com/js/"


async def run_fetch(engine, config, launch_options=None, timeout_ms=10_000):
    return await fetch_rendered(
        FetchRequest(URL, timeout_ms),
        launch_options or LaunchOptions(),
        config,
        playwright_factory=engine,
    )


@pytest.mark.asyncio
async def test_success_returns_rendered_html_and_releases_everything(config):
    engine = FakeEngine(responses=[200])

    html = await run_fetch(engine, config)

    assert html == QUOTES_HTML
    assert engine.events == [
        "start", "launch", "new_context", "new_page",
        "page.close", "context.close", "browser.close", "stop",
    ]


@pytest.mark.asyncio
async def test_navigation_waits_for_network_idle_with_timeout_floor(config):
    engine = FakeEngine()

    await run_fetch(engine, config, timeout_ms=10_000)
    await run_fetch(engine, config, timeout_ms=45_000)

    assert engine.goto_calls[0] == (URL, {"wait_until": "networkidle", "timeout": 30_000})
    assert engine.goto_calls[1][1]["timeout"] == 45_000


@pytest.mark.asyncio
async def test_direct_launch_has_no_proxy(config):
    engine = FakeEngine()

    await run_fetch(engine, config)

    assert engine.launch_kwargs == [{"headless": True}]
    assert "proxy" not in engine.context_kwargs[0]
    assert engine.context_kwargs[0]["ignore_https_errors"] is False


@pytest.mark.asyncio
async def test_proxy_routes_launch_and_authenticates_context(config, proxy):
    engine = FakeEngine()

    await run_fetch(engine, config, LaunchOptions.for_proxy(proxy))

    assert engine.launch_kwargs == [{"headless": True, "proxy": {"server": "http://brd.superproxy.io:33335"}}]
    ctx = engine.context_kwargs[0]
    assert ctx["proxy"]["username"] == "brd-customer-c123-zone-residential"
    assert ctx["proxy"]["password"] == "s3cret"
    assert ctx["ignore_https_errors"] is True


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, error_type",
    [(429, RateLimitError), (403, IPBlockError), (404, NetworkError), (500, NetworkError)],
)
async def test_error_status_fails_before_content_is_read(status, error_type, config):
    engine = FakeEngine(responses=[status], fail_on={"content"})

    with pytest.raises(error_type) as exc_info:
        await run_fetch(engine, config)

    assert exc_info.value.url == URL
    assert engine.count(RELEASE_EVENTS) == 4


@pytest.mark.asyncio
async def test_retry_after_header_and_proxy_identity_are_attached(config, proxy):
    engine = FakeEngine(responses=[FakeResponse(429, {"retry-after": "7"})])
    with pytest.raises(RateLimitError) as rate_info:
        await run_fetch(engine, config)
    assert rate_info.value.retry_after == 7.0

    engine = FakeEngine(responses=[403])
    with pytest.raises(IPBlockError) as block_info:
        await run_fetch(engine, config, LaunchOptions.for_proxy(proxy))
    assert block_info.value.proxy_id == proxy.masked


@pytest.mark.asyncio
async def test_engine_timeout_becomes_timeout_error(config):
    engine = FakeEngine(responses=[PlaywrightTimeoutError("Timeout 30000ms exceeded.")])

    with pytest.raises(ScrapeTimeoutError) as exc_info:
        await run_fetch(engine, config)

    assert exc_info.value.timeout_ms == 30_000
    assert isinstance(exc_info.value.cause, PlaywrightTimeoutError)


@pytest.mark.asyncio
async def test_timeout_text_alone_is_not_a_timeout(config):
    engine = FakeEngine(responses=[RuntimeError("net::ERR_CONNECTION_RESET (timeout-ish)")])

    with pytest.raises(BrowserError):
        await run_fetch(engine, config)


@pytest.mark.asyncio
async def test_none_response_counts_as_success(config):
    engine = FakeEngine(responses=[None])
    assert await run_fetch(engine, config) == QUOTES_HTML


@pytest.mark.asyncio
@pytest.mark.parametrize("step", ["start", "launch", "new_context", "new_page", "goto", "content"])
async def test_acquire_release_balance_under_fault_injection(step, config):
    if step == "goto":
        engine = FakeEngine(responses=[RuntimeError("navigation exploded")])
    else:
        engine = FakeEngine(fail_on={step})

    with pytest.raises(ScrapingError):
        await run_fetch(engine, config)

    assert engine.count(ACQUIRE_EVENTS) == engine.count(RELEASE_EVENTS)
    # page before context before browser before engine
    releases = [e for e in engine.events if e in RELEASE_EVENTS]
    assert releases == [e for e in RELEASE_EVENTS[::-1] if e in releases]


@pytest.mark.asyncio
@pytest.mark.parametrize("step", ["start", "launch"])
async def test_launch_failures_are_browser_errors(step, config):
    with pytest.raises(BrowserError) as exc_info:
        await run_fetch(FakeEngine(fail_on={step}), config)

    assert exc_info.value.message == "Failed to launch browser"
    assert exc_info.value.url == URL


@pytest.mark.asyncio
async def test_page_creation_failure_is_browser_error(config):
    with pytest.raises(BrowserError) as exc_info:
        await run_fetch(FakeEngine(fail_on={"new_context"}), config)

    assert exc_info.value.message == "Failed to create page or authenticate"
    assert exc_info.value.url == URL


@pytest.mark.asyncio
@pytest.mark.parametrize("step", ["page.close", "context.close", "browser.close", "stop"])
async def test_release_failures_never_mask_the_result(step, config):
    engine = FakeEngine(fail_on={step})

    assert await run_fetch(engine, config) == QUOTES_HTML
    assert engine.count(RELEASE_EVENTS) == 4


@pytest.mark.asyncio
async def test_release_failure_does_not_replace_the_fetch_failure(config):
    engine = FakeEngine(responses=[403], fail_on={"page.close", "browser.close"})

    with pytest.raises(IPBlockError):
        await run_fetch(engine, config)


@pytest.mark.asyncio
async def test_heavy_resource_blocking_installs_route(config):
    config.browser_block_heavy = True
    engine = FakeEngine()
    scraper = BrowserScraper(config, LaunchOptions(), playwright_factory=engine)

    async with scraper:
        async with scraper.open_page(URL):
            pass

    assert engine.count(RELEASE_EVENTS) == 4
    pattern, handler = engine.routes[0]
    assert pattern == "**/*"

    image, document = FakeRoute("image"), FakeRoute("document")
    await handler(image)
    await handler(document)
    assert image.action == "abort"
    assert document.action == "continue"


@pytest.mark.asyncio
async def test_no_routes_by_default(config):
    engine = FakeEngine()
    await run_fetch(engine, config)
    assert engine.routes == []


@pytest.mark.asyncio
async def test_open_page_requires_running_browser(config):
    scraper = BrowserScraper(config, LaunchOptions(), playwright_factory=FakeEngine())

    with pytest.raises(BrowserError):
        async with scraper.open_page(URL):
            pass


@pytest.mark.asyncio
@pytest.mark.parametrize("step", ["start", "launch", "new_page"])
async def test_cancellation_during_acquire_still_releases(step, config):
    engine = FakeEngine(hang_on={step})

    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(run_fetch(engine, config), 0.05)

    assert engine.count(ACQUIRE_EVENTS) == engine.count(RELEASE_EVENTS)
    if step != "start":
        assert engine.events[-1] == "stop"


@pytest.mark.asyncio
async def test_cancellation_is_not_reported_as_browser_error(config):
    engine = FakeEngine(hang_on={"launch"})
    task = asyncio.create_task(run_fetch(engine, config))
    await asyncio.sleep(0.01)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert engine.events == ["start", "stop"]
