"""Tests for citation URL extraction, filtering and normalization."""

from __future__ import annotations

import pytest

from citation_radar.core.extract import (
    UrlExtractor,
    bare_urls,
    extract_domain,
    extract_from_text,
    html_anchor_citations,
    is_skippable,
    looks_like_bare_domain,
    markdown_citations,
    normalize_url,
    numbered_citations,
    parse_structured,
    structured_candidates,
)
from citation_radar.core.models import SourceRecord


def _record(**kwargs) -> SourceRecord:
    kwargs.setdefault("id", "rec-1")
    return SourceRecord(**kwargs)


# ── Skip heuristics ───────────────────────────────────────────────────────────


def test_skip_heuristics_keep_only_citable_url():
    """Image hosts and non-http schemes are dropped; the reddit thread survives."""
    record = _record(citations_raw=[
        "https://img.gstatic.com/x.png",
        "https://reddit.com/r/x",
        "javascript:void(0)",
    ])
    result = UrlExtractor().extract(record)
    assert result.urls == ["https://reddit.com/r/x"]
    assert result.origin == "citations"


@pytest.mark.parametrize("url", [
    "",
    "ftp://example.com/file",
    "mailto:someone@example.com",
    "https://encrypted-tbn0.gstatic.com/images?q=tbn",
    "https://lh3.googleusercontent.com/abc",
    "https://example.com/logo.PNG",
    "https://stats.g.doubleclick.net/collect",
    "https://example.com/article?utm_source=chatgpt.com",
    "https://example.com/article?gclid=abc123",
    "https://myactivity.google.com/product/search",
    "https://www.google.com/search/history",
])
def test_is_skippable_rejects(url):
    assert is_skippable(url) is True


@pytest.mark.parametrize("url", [
    "https://reddit.com/r/x",
    "http://example.com/page?id=3",
    "https://en.wikipedia.org/wiki/Mercury_(planet)",
    "https://www.google.com/maps/place/x",
])
def test_is_skippable_keeps(url):
    assert is_skippable(url) is False


def test_is_skippable_respects_max_length():
    url = "https://example.com/" + "a" * 100
    assert is_skippable(url, max_length=50) is True
    assert is_skippable(url, max_length=500) is False


# ── Normalization ─────────────────────────────────────────────────────────────


def test_normalize_strips_fragment_and_trailing_slash():
    assert normalize_url("HTTPS://Example.COM/a/#section") == "https://example.com/a"


def test_normalize_keeps_query_and_path_case():
    assert normalize_url("https://example.com/Path/?q=Value") == "https://example.com/Path?q=Value"


def test_extract_domain_strips_www_and_port():
    assert extract_domain("https://WWW.Example.com:8080/x") == "example.com"
    assert extract_domain("https://docs.example.com/y") == "docs.example.com"


# ── Text strategies ───────────────────────────────────────────────────────────


def test_markdown_citations_in_order():
    text = "See [1](https://example.com/a) and [2](https://example.com/b)."
    assert markdown_citations(text) == ["https://example.com/a", "https://example.com/b"]


def test_markdown_citations_keep_balanced_parentheses():
    text = "[Mercury](https://en.wikipedia.org/wiki/Mercury_(planet)) is closest."
    assert markdown_citations(text) == ["https://en.wikipedia.org/wiki/Mercury_(planet)"]


def test_markdown_citations_none_when_absent():
    assert markdown_citations("No links here.") is None


def test_numbered_citations():
    text = "Sources:\n[1] https://a.com/x\n[2]: https://b.com/y."
    assert numbered_citations(text) == ["https://a.com/x", "https://b.com/y"]


def test_html_anchor_citations_ignore_relative_links():
    html = '<p>See <a href="https://a.com/x">A</a> and <a href="/relative">rel</a></p>'
    assert html_anchor_citations(html) == ["https://a.com/x"]


def test_html_anchor_citations_skip_plain_text():
    assert html_anchor_citations("plain https://a.com/x") is None


def test_bare_urls_trim_prose_punctuation():
    text = "Read https://a.com/x, then (https://b.com/y)."
    assert bare_urls(text) == ["https://a.com/x", "https://b.com/y"]


def test_bare_url_fallback_runs_below_threshold():
    text = "[1](https://a.com/1) [2](https://b.com/2) and also https://c.com/3"
    urls = extract_from_text(text)
    assert "https://c.com/3" in urls


def test_bare_url_fallback_skipped_at_threshold():
    text = (
        "[1](https://a.com/1) [2](https://b.com/2) [3](https://c.com/3) "
        "plus https://d.com/4"
    )
    urls = extract_from_text(text)
    assert "https://d.com/4" not in urls
    assert urls[:3] == ["https://a.com/1", "https://b.com/2", "https://c.com/3"]


# ── Structured fields ─────────────────────────────────────────────────────────


def test_parse_structured_decodes_json_string():
    assert parse_structured('[{"url": "https://a.com"}]') == [{"url": "https://a.com"}]


def test_parse_structured_rejects_bad_input():
    assert parse_structured(None) is None
    assert parse_structured("   ") is None
    assert parse_structured("{not json") is None
    assert parse_structured({"url": "https://a.com"}) is None


@pytest.mark.parametrize("value,expected", [
    ("example.com", True),
    ("docs.example.co.uk/guide", True),
    ("Best running shoes of 2024", False),
    ("Acme, Inc.", False),
    ("localhost", False),
])
def test_looks_like_bare_domain(value, expected):
    assert looks_like_bare_domain(value) is expected


def test_structured_candidates_objects_and_strings():
    urls, titles = structured_candidates([
        {"url": "https://www.forbes.com/story/", "title": " Forbes story "},
        {"link": "https://b.com/x"},
        {"title": "no url at all"},
        "example.org",
        "Some title, not a url",
        42,
    ])
    assert urls == ["https://www.forbes.com/story/", "https://b.com/x", "https://example.org"]
    assert titles == {"https://www.forbes.com/story": "Forbes story"}


# ── UrlExtractor ──────────────────────────────────────────────────────────────


def test_extractor_end_to_end_markdown_text():
    record = _record(
        raw_answer_text="See [1](https://example.com/a) and [2](https://example.com/b).",
    )
    result = UrlExtractor().extract(record)
    assert result.urls == ["https://example.com/a", "https://example.com/b"]
    assert result.origin == "text"
    assert result.rejected == 0
    assert [c.domain for c in result.candidates] == ["example.com", "example.com"]


def test_extractor_prefers_citations_over_urls_and_text():
    record = _record(
        citations_raw=[{"url": "https://a.com/1"}],
        urls_raw=["https://b.com/2"],
        raw_answer_text="https://c.com/3",
    )
    assert UrlExtractor().extract(record).urls == ["https://a.com/1"]


def test_extractor_falls_back_when_citations_all_skipped():
    record = _record(
        citations_raw=["https://img.gstatic.com/x.png"],
        urls_raw='["https://b.com/page"]',
    )
    result = UrlExtractor().extract(record)
    assert result.urls == ["https://b.com/page"]
    assert result.origin == "urls"


def test_extractor_falls_back_to_text_on_bad_json():
    record = _record(citations_raw="{broken", raw_answer_text="Source: https://c.com/3.")
    result = UrlExtractor().extract(record)
    assert result.urls == ["https://c.com/3"]
    assert result.origin == "text"


def test_extractor_dedupes_after_normalization():
    record = _record(citations_raw=[
        "https://Example.com/a/",
        "https://example.com/a#frag",
        "https://example.com/b",
    ])
    result = UrlExtractor().extract(record)
    assert result.urls == ["https://example.com/a", "https://example.com/b"]


def test_extractor_counts_rejected_urls():
    record = _record(citations_raw=[
        "https://reddit.com/r/x",
        "https://img.gstatic.com/x.png",
        "https://example.com/a?utm_source=x",
    ])
    result = UrlExtractor().extract(record)
    assert result.urls == ["https://reddit.com/r/x"]
    assert result.rejected == 2


def test_extractor_keeps_titles_for_surviving_urls():
    record = _record(citations_raw=[
        {"url": "https://a.com/x/", "title": "Article A"},
        {"url": "https://img.gstatic.com/y.png", "title": "Thumbnail"},
    ])
    result = UrlExtractor().extract(record)
    assert result.titles == {"https://a.com/x": "Article A"}


def test_extractor_empty_record():
    result = UrlExtractor().extract(_record())
    assert not result
    assert result.urls == []
    assert result.origin == "none"


def test_extractor_is_deterministic():
    record = _record(raw_answer_text=(
        "[1](https://a.com/1) [2](https://b.com/2) see https://c.com/3 and https://a.com/1/"
    ))
    extractor = UrlExtractor()
    assert extractor.extract(record).urls == extractor.extract(record).urls
    assert extractor.extract(record).urls == [
        "https://a.com/1", "https://b.com/2", "https://c.com/3",
    ]
