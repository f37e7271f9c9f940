from bs4 import BeautifulSoup

from .errors import ParseError
from .models import ExtractedContent


def extract(
    html: str,
    url: str,
    *,
    title_selector: str = "h1",
    span_selector: str = "span",
) -> ExtractedContent:
    """
    Pull the heading and the non-empty span texts out of rendered HTML.

    Pure and deterministic. The only failure it raises is ParseError: a page
    with no element matching `title_selector` is a parse failure, and any
    other exception (bad input, bad selector) is wrapped with its cause.
    """
    try:
        soup = BeautifulSoup(html, "html.parser")
        heading = soup.select_one(title_selector)
        if heading is None:
            raise ParseError(f"No element matching {title_selector!r} in page", url)

        title = heading.get_text().strip()
        texts = (el.get_text().strip() for el in soup.select(span_selector))
        spans = [t for t in texts if t]
    except ParseError:
        raise
    except Exception as e:
        raise ParseError("Failed to parse HTML", url, cause=e) from e

    return ExtractedContent(title=title, spans=spans, url=url)
