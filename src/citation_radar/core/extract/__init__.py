"""Citation URL extraction from stored answer-engine responses."""

from citation_radar.core.extract.extractor import (
    ExtractionResult,
    UrlExtractor,
    looks_like_bare_domain,
    parse_structured,
    structured_candidates,
)
from citation_radar.core.extract.strategies import (
    bare_urls,
    extract_from_text,
    html_anchor_citations,
    markdown_citations,
    numbered_citations,
)
from citation_radar.core.extract.urls import extract_domain, is_skippable, normalize_url

__all__ = [
    "ExtractionResult",
    "UrlExtractor",
    "bare_urls",
    "extract_domain",
    "extract_from_text",
    "html_anchor_citations",
    "is_skippable",
    "looks_like_bare_domain",
    "markdown_citations",
    "normalize_url",
    "numbered_citations",
    "parse_structured",
    "structured_candidates",
]
