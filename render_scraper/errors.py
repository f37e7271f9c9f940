"""
Closed set of failures the fetch pipeline can report.

Every failure that leaves the browser session or the retry scheduler is one
of the six concrete classes below. Each one carries:
    message : human readable description
    url     : the URL being fetched when the failure happened
    cause   : the underlying exception, if any

Kind-specific payloads:
    ScrapeTimeoutError.timeout_ms  : the navigation deadline that was exceeded
    RateLimitError.retry_after     : seconds from a numeric Retry-After header
    IPBlockError.proxy_id          : masked proxy identity when routed via proxy
    NetworkError/RateLimitError/IPBlockError.status : HTTP status, when known

Payload attributes are fixed once the error is constructed.
"""


class ScrapingError(Exception):
    kind = "scraping"

    def __init__(self, message: str, url: str | None = None, cause: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.url = url
        self.cause = cause

    def __setattr__(self, name, value):
        if name in self.__dict__ and not name.startswith("__"):
            raise AttributeError(f"{type(self).__name__}.{name} is read-only")
        super().__setattr__(name, value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind!r}, message={self.message!r}, url={self.url!r})"

    def to_dict(self) -> dict:
        """Flat, JSON-friendly view used for logging and result rows."""
        data = {"kind": self.kind, "message": self.message, "url": self.url}
        if self.cause is not None:
            data["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return data


class NetworkError(ScrapingError):
    """Generic HTTP (>= 400) or transport failure."""

    kind = "network"

    def __init__(self, message: str, url: str | None = None, cause: BaseException | None = None, status: int | None = None):
        super().__init__(message, url, cause)
        self.status = status


class ScrapeTimeoutError(ScrapingError):
    kind = "timeout"

    def __init__(self, message: str, url: str | None = None, timeout_ms: int = 0, cause: BaseException | None = None):
        super().__init__(message, url, cause)
        self.timeout_ms = timeout_ms

    def to_dict(self) -> dict:
        return {**super().to_dict(), "timeout_ms": self.timeout_ms}


class RateLimitError(ScrapingError):
    """HTTP 429."""

    kind = "rate_limited"

    def __init__(
        self,
        message: str,
        url: str | None = None,
        retry_after: float | None = None,
        cause: BaseException | None = None,
        status: int | None = 429,
    ):
        super().__init__(message, url, cause)
        self.retry_after = retry_after
        self.status = status

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.retry_after is not None:
            data["retry_after"] = self.retry_after
        return data


class IPBlockError(ScrapingError):
    """HTTP 403; with a rotating proxy the next attempt gets a fresh egress IP."""

    kind = "ip_blocked"

    def __init__(
        self,
        message: str,
        url: str | None = None,
        proxy_id: str | None = None,
        cause: BaseException | None = None,
        status: int | None = 403,
    ):
        super().__init__(message, url, cause)
        self.proxy_id = proxy_id
        self.status = status

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.proxy_id is not None:
            data["proxy_id"] = self.proxy_id
        return data


class BrowserError(ScrapingError):
    """Browser engine failure: launch, page creation, proxy auth or navigation."""

    kind = "browser"


class ParseError(ScrapingError):
    """Rendered content could not be turned into structured output. Never retried."""

    kind = "parse"


ERROR_CLASSES: tuple[type[ScrapingError], ...] = (
    NetworkError,
    ScrapeTimeoutError,
    RateLimitError,
    IPBlockError,
    BrowserError,
    ParseError,
)

ERROR_KINDS = frozenset(cls.kind for cls in ERROR_CLASSES)
