"""Turn one heterogeneous source record into an ordered list of candidate URLs."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Literal

from citation_radar.core.extract.strategies import extract_from_text
from citation_radar.core.extract.urls import (
    DEFAULT_MAX_URL_LENGTH,
    extract_domain,
    is_http_url,
    is_skippable,
    normalize_url,
)
from citation_radar.core.models import CandidateUrl, SourceRecord

logger = logging.getLogger(__name__)

Origin = Literal["citations", "urls", "text", "none"]

# A bare domain with an optional path: "example.com", "docs.example.co.uk/a".
# Titles and prose fail on whitespace or punctuation.
BARE_DOMAIN_RE = re.compile(
    r"^(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,24}(?:/[^\s]*)?$",
    re.IGNORECASE,
)
PROSE_PUNCTUATION = set(",;!?\"'()")
MAX_DOMAIN_LENGTH = 253

URL_KEYS = ("url", "link", "source", "href")


@dataclass
class ExtractionResult:
    """Deduplicated candidates for one record, in first-seen order."""

    candidates: list[CandidateUrl] = field(default_factory=list)
    titles: dict[str, str] = field(default_factory=dict)
    origin: Origin = "none"
    rejected: int = 0

    @property
    def urls(self) -> list[str]:
        return [c.url for c in self.candidates]

    def __bool__(self) -> bool:
        return bool(self.candidates)


def looks_like_bare_domain(value: str) -> bool:
    """Return True for ``example.com``-style strings, False for titles and prose."""
    host = value.split("/", 1)[0]
    if not value or len(host) > MAX_DOMAIN_LENGTH:
        return False
    if any(ch.isspace() for ch in value) or PROSE_PUNCTUATION & set(value):
        return False
    return bool(BARE_DOMAIN_RE.match(value))


def parse_structured(raw: Any, *, record_id: str = "", field_name: str = "") -> list | None:
    """Return *raw* as a list, decoding a JSON string if needed.

    Returns None when the field is absent, not a list, or not valid JSON.
    """
    if raw is None:
        return None
    if isinstance(raw, str):
        if not raw.strip():
            return None
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Failed to parse %s JSON for record %s", field_name, record_id)
            return None
    return raw if isinstance(raw, list) else None


def structured_candidates(items: list) -> tuple[list[str], dict[str, str]]:
    """Pull URL strings out of a structured citation list.

    Elements may be ``{"url", "title", "domain"}`` objects or plain strings.
    Strings are kept when they are absolute http(s) URLs, upgraded with
    ``https://`` when they look like a bare domain, and dropped otherwise.
    """
    urls: list[str] = []
    titles: dict[str, str] = {}
    for item in items:
        title = None
        if isinstance(item, dict):
            value = next(
                (item[k] for k in URL_KEYS if isinstance(item.get(k), str) and item[k].strip()),
                None,
            )
            if value is None:
                continue
            raw_title = item.get("title")
            title = raw_title.strip() if isinstance(raw_title, str) and raw_title.strip() else None
        elif isinstance(item, str):
            value = item
        else:
            continue

        value = value.strip()
        if is_http_url(value):
            url = value
        elif looks_like_bare_domain(value):
            url = f"https://{value}"
        else:
            continue

        urls.append(url)
        if title:
            titles.setdefault(normalize_url(url), title)
    return urls, titles


class UrlExtractor:
    """Extract, filter, normalize and dedupe candidate URLs from a SourceRecord.

    Priority: ``citations_raw``, then ``urls_raw``, then the raw answer text.
    A structured field is used only if at least one of its URLs survives the
    skip heuristics.
    """

    def __init__(self, max_url_length: int = DEFAULT_MAX_URL_LENGTH) -> None:
        self.max_url_length = max_url_length

    def extract(self, record: SourceRecord) -> ExtractionResult:
        for origin, raw in (("citations", record.citations_raw), ("urls", record.urls_raw)):
            items = parse_structured(raw, record_id=record.id, field_name=origin)
            if not items:
                continue
            urls, titles = structured_candidates(items)
            result = self._finalize(urls, origin)
            if result:
                kept = set(result.urls)
                result.titles = {u: t for u, t in titles.items() if u in kept}
                return result

        if record.raw_answer_text:
            result = self._finalize(extract_from_text(record.raw_answer_text), "text")
            if result:
                return result

        return ExtractionResult()

    def _finalize(self, urls: list[str], origin: Origin) -> ExtractionResult:
        seen: set[str] = set()
        candidates: list[CandidateUrl] = []
        rejected = 0
        for raw in urls:
            if is_skippable(raw, self.max_url_length):
                rejected += 1
                continue
            url = normalize_url(raw)
            if url in seen:
                continue
            seen.add(url)
            candidates.append(CandidateUrl(url=url, domain=extract_domain(url)))
        return ExtractionResult(candidates=candidates, origin=origin, rejected=rejected)
