from dataclasses import asdict, dataclass, field

from .errors import ScrapingError


@dataclass(frozen=True)
class FetchRequest:
    """A single page to render: target URL plus navigation timeout in milliseconds."""

    url: str
    timeout_ms: int = 30_000

    def __post_init__(self):
        if not self.url:
            raise ValueError("url must not be empty")
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be > 0, got {self.timeout_ms}")


@dataclass(frozen=True)
class ExtractedContent:
    """
    Structured content pulled out of a rendered page.

    Fields:
        title : Trimmed text of the page heading.
        spans : Trimmed, non-empty span texts in document order.
        url   : The URL the content was rendered from.
    """
    title: str
    spans: list[str] = field(default_factory=list)
    url: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ScrapeOutcome:
    """
    Caller-visible result of one pipeline run.

    Exactly one of `content` / `error` is set.

    Fields:
        url       : The requested URL.
        content   : Extracted content on success.
        error     : Terminal failure otherwise (unchanged from the last attempt).
        attempts  : Number of fetch attempts made (0 if none started).
        elapsed_s : Wall time for the whole run, rate-limit delay included.
    """
    url: str
    content: ExtractedContent | None = None
    error: ScrapingError | None = None
    attempts: int = 0
    elapsed_s: float = 0.0

    def __post_init__(self):
        if (self.content is None) == (self.error is None):
            raise ValueError("ScrapeOutcome needs exactly one of content or error")

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_row(self) -> dict:
        """Flatten into a single row for tabular storage."""
        return {
            "url": self.url,
            "ok": self.ok,
            "attempts": self.attempts,
            "elapsed_s": round(self.elapsed_s, 3),
            "title": self.content.title if self.content else None,
            "span_count": len(self.content.spans) if self.content else 0,
            "error_kind": self.error.kind if self.error else None,
            "error_message": self.error.message if self.error else None,
        }
