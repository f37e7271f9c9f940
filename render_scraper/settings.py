import logging
from dataclasses import dataclass, fields
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .retry import RetryPolicy

logger = logging.getLogger(__name__)

BRIGHT_DATA_HOST = "brd.superproxy.io"
BRIGHT_DATA_PORT = 33335


class ProxySettings(BaseModel):
    """
    Resolved connection parameters for the upstream proxy.

    The password is a SecretStr, so it stays masked in repr() and log lines.

    For Playwright:
        launch(proxy={"server": self.server})
        new_context(proxy=self.playwright_proxy())
    """

    model_config = ConfigDict(frozen=True)

    host: str
    port: int
    username: str
    password: SecretStr

    @property
    def server(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def masked(self) -> str:
        """Identity safe to log: username@host:port, no password."""
        return f"{self.username}@{self.host}:{self.port}"

    def playwright_proxy(self) -> dict:
        return {
            "server": self.server,
            "username": self.username,
            "password": self.password.get_secret_value(),
        }


class ProxyCredentials(BaseSettings):
    """
    Bright Data credentials, read from BRIGHT_DATA_* environment variables
    (or a .env file). Every field is optional; proxying is only enabled when
    customer id, zone and password are all present.
    """

    model_config = SettingsConfigDict(env_prefix="BRIGHT_DATA_", env_file=".env", extra="ignore")

    customer_id: str | None = None
    zone: str | None = None
    password: SecretStr | None = None
    proxy_host: str = BRIGHT_DATA_HOST
    proxy_port: int = BRIGHT_DATA_PORT

    @property
    def configured(self) -> bool:
        return bool(self.customer_id and self.zone and self.password and self.password.get_secret_value())


def resolve_proxy(credentials: ProxyCredentials) -> ProxySettings | None:
    """
    Turn optional credentials into a proxy descriptor.

    Returns None (direct connection) unless all three of customer id, zone and
    password are set. The username follows the upstream addressing convention
    `brd-customer-<id>-zone-<zone>`.
    """
    if not credentials.configured:
        return None

    return ProxySettings(
        host=credentials.proxy_host,
        port=credentials.proxy_port,
        username=f"brd-customer-{credentials.customer_id}-zone-{credentials.zone}",
        password=credentials.password,
    )


@dataclass
class ScrapeConfig:
    """
    Central configuration for fetch, retry and extraction behavior.

    Values can be overridden via scrape_config.yaml in the working directory.
    """

    # Request
    timeout_ms: int = 30_000
    # Floor applied to every navigation; keep-alive traffic through a proxy
    # can otherwise trip short deadlines under "networkidle".
    min_navigation_timeout_ms: int = 30_000
    wait_until: str = "networkidle"

    # Browser tuning
    browser_headless: bool = True
    browser_block_heavy: bool = False
    user_agent: str = "Mozilla/5.0"
    browser_locale: str = "en-US"

    # Pacing
    rate_limit_delay_s: float = 0.1

    # Retries
    retry_base_delay_s: float = 1.0
    retry_multiplier: float = 2.0
    retry_max_attempts: int = 4

    # Extraction
    title_selector: str = "h1"
    span_selector: str = "span"

    # Output
    results_dir: str = "results"
    log_level: str = "INFO"

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            base_delay=self.retry_base_delay_s,
            multiplier=self.retry_multiplier,
            max_attempts=self.retry_max_attempts,
        )


def load_scrape_config(path: str | Path | None = None) -> ScrapeConfig:
    """
    Load ScrapeConfig from YAML if present; otherwise use defaults.

    By default, looks for `scrape_config.yaml` in the working directory.
    """

    if path is None:
        path = Path("scrape_config.yaml")

    path = Path(path)

    if not path.exists():
        logger.debug("config YAML not found at %s, using defaults", path)
        return ScrapeConfig()

    raw = path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}

    if not isinstance(data, dict):
        logger.warning("expected mapping in %s, got %s, using defaults", path, type(data).__name__)
        return ScrapeConfig()

    allowed_keys = {f.name for f in fields(ScrapeConfig)}
    filtered = {k: v for k, v in data.items() if k in allowed_keys}

    return ScrapeConfig(**filtered)


DEFAULT_SCRAPE_CONFIG = load_scrape_config()
