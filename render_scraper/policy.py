"""
Policy module: decides what a response status means for the fetch and
whether a failure is worth another attempt.

The logic is:
- explicit
- total over status codes
- easily auditable
"""

from .errors import IPBlockError, NetworkError, RateLimitError, ScrapingError

# Failure kinds for which re-running the same fetch after a delay is
# reasonable. With a rotating proxy, retrying after ip_blocked / rate_limited
# is also how a fresh egress IP is obtained.
RETRYABLE_KINDS = frozenset({
    "network",
    "timeout",
    "rate_limited",
    "ip_blocked",
    "browser",
})


def classify_status(
    status: int,
    url: str,
    *,
    retry_after: float | None = None,
    proxy_id: str | None = None,
) -> ScrapingError | None:
    """
    Map an HTTP status to a failure, or None when the status is acceptable.

    429 -> RateLimitError, 403 -> IPBlockError, any other >= 400 -> NetworkError.
    """
    if status == 429:
        return RateLimitError(f"Rate limited: {url}", url, retry_after=retry_after)
    if status == 403:
        return IPBlockError(f"IP blocked: {url}", url, proxy_id=proxy_id)
    if status >= 400:
        return NetworkError(f"HTTP error {status}: {url}", url, status=status)
    return None


def parse_retry_after(value: str | None) -> float | None:
    # Only the delta-seconds form; HTTP-date values are ignored.
    if not value:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


def is_retryable(error: BaseException) -> bool:
    return isinstance(error, ScrapingError) and error.kind in RETRYABLE_KINDS
