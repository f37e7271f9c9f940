"""Fixtures: fake browser engine pieces, recording sleep, proxy descriptor."""

import pytest

from render_scraper.settings import ProxySettings, ScrapeConfig

from .fakes import SleepRecorder


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def config():
    return ScrapeConfig(retry_max_attempts=3)


@pytest.fixture
def proxy():
    return ProxySettings(
        host="brd.superproxy.io",
        port=33335,
        username="brd-customer-c123-zone-residential",
        password="s3cret",
    )


@pytest.fixture(autouse=True)
def _no_proxy_env(monkeypatch, tmp_path):
    """Keep real BRIGHT_DATA_* variables and any local .env out of tests."""
    for var in ("CUSTOMER_ID", "ZONE", "PASSWORD", "PROXY_HOST", "PROXY_PORT"):
        monkeypatch.delenv(f"BRIGHT_DATA_{var}", raising=False)
    monkeypatch.chdir(tmp_path)
