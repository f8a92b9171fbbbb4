"""Text extraction strategies for answers without structured citations.

Each strategy is a pure function ``(text) -> list[str] | None`` returning the
URLs it recognised in order of appearance, or ``None`` when it found nothing.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from bs4 import BeautifulSoup

TextStrategy = Callable[[str], "list[str] | None"]

# One level of balanced parentheses is allowed inside a URL,
# e.g. https://en.wikipedia.org/wiki/Mercury_(planet)
_URL_BODY = r"https?://(?:[^\s()<>\[\]\"']|\([^\s()<>]*\))+"

MARKDOWN_LINK_RE = re.compile(
    r"\[[^\]\n]*\]\(\s*<?(" + _URL_BODY + r")>?(?:\s+[\"'][^\"'\n]*[\"'])?\s*\)",
    re.IGNORECASE,
)
NUMBERED_CITATION_RE = re.compile(
    r"\[(\d{1,3})\]:?[ \t]*(https?://[^\s<>\"'\]]+)", re.IGNORECASE
)
BARE_URL_RE = re.compile(r"https?://[^\s<>\"'{}|\\^`\[\]]+", re.IGNORECASE)

TRAILING_PUNCTUATION = ".,;:!?"

# Below this many hits from the citation-shaped strategies, bare URLs are
# scanned too.
BARE_URL_THRESHOLD = 3


def _trim(url: str) -> str:
    """Strip trailing prose punctuation and unbalanced closing parentheses."""
    while url:
        last = url[-1]
        if last in TRAILING_PUNCTUATION:
            url = url[:-1]
        elif last == ")" and url.count(")") > url.count("("):
            url = url[:-1]
        else:
            break
    return url


def markdown_citations(text: str) -> list[str] | None:
    """``[1](https://…)`` and ``[title](https://… "tooltip")`` links."""
    urls = [_trim(m.group(1)) for m in MARKDOWN_LINK_RE.finditer(text or "")]
    return [u for u in urls if u] or None


def numbered_citations(text: str) -> list[str] | None:
    """``[1] https://…`` and ``[1]: https://…`` reference lines."""
    urls = [_trim(m.group(2)) for m in NUMBERED_CITATION_RE.finditer(text or "")]
    return [u for u in urls if u] or None


def html_anchor_citations(text: str) -> list[str] | None:
    """``<a href="https://…">`` links in answers stored as HTML."""
    if not text or "<a" not in text.lower():
        return None
    soup = BeautifulSoup(text, "html.parser")
    urls: list[str] = []
    for anchor in soup.find_all("a", href=True):
        href = str(anchor.get("href") or "").strip()
        if re.match(r"^https?://", href, re.IGNORECASE):
            urls.append(href)
    return urls or None


def bare_urls(text: str) -> list[str] | None:
    """Any ``http(s)://`` token in running text."""
    urls = [_trim(m.group(0)) for m in BARE_URL_RE.finditer(text or "")]
    return [u for u in urls if u] or None


CITATION_STRATEGIES: tuple[TextStrategy, ...] = (
    markdown_citations,
    numbered_citations,
    html_anchor_citations,
)


def extract_from_text(
    text: str,
    strategies: tuple[TextStrategy, ...] = CITATION_STRATEGIES,
    fallback: TextStrategy = bare_urls,
) -> list[str]:
    """Run *strategies* in priority order, then *fallback* if they found too little.

    The result keeps strategy priority first and text order second. Duplicates
    are left in place; the extractor dedupes after normalization.
    """
    found: list[str] = []
    for strategy in strategies:
        found.extend(strategy(text) or [])
    if len(set(found)) < BARE_URL_THRESHOLD:
        found.extend(fallback(text) or [])
    return found
