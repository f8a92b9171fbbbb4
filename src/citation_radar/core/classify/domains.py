"""Well-known citation domains and cheap name-based heuristics.

Domains listed here are categorized without a provider call.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from citation_radar.core.models import CitationCategory

C = CitationCategory


@dataclass(frozen=True)
class DomainRule:
    pattern: re.Pattern[str]
    category: CitationCategory
    page_name: str | None = None


def _rule(pattern: str, category: CitationCategory, page_name: str | None = None) -> DomainRule:
    return DomainRule(re.compile(pattern, re.IGNORECASE), category, page_name)


# Matched against the domain (``www.`` already stripped). First match wins.
DOMAIN_REGISTRY: list[DomainRule] = [
    # Social
    _rule(r"(^|\.)reddit\.com$", C.social, "Reddit"),
    _rule(r"(^|\.)twitter\.com$", C.social, "Twitter"),
    _rule(r"^x\.com$", C.social, "X (Twitter)"),
    _rule(r"(^|\.)facebook\.com$", C.social, "Facebook"),
    _rule(r"(^|\.)linkedin\.com$", C.social, "LinkedIn"),
    _rule(r"(^|\.)instagram\.com$", C.social, "Instagram"),
    _rule(r"(^|\.)tiktok\.com$", C.social, "TikTok"),
    _rule(r"(^|\.)youtube\.com$|^youtu\.be$", C.social, "YouTube"),
    _rule(r"(^|\.)pinterest\.com$", C.social, "Pinterest"),
    # Editorial
    _rule(r"(^|\.)techcrunch\.com$", C.editorial, "TechCrunch"),
    _rule(r"(^|\.)forbes\.com$", C.editorial, "Forbes"),
    _rule(r"(^|\.)medium\.com$", C.editorial, "Medium"),
    _rule(r"(^|\.)wired\.com$", C.editorial, "Wired"),
    _rule(r"(^|\.)theverge\.com$", C.editorial, "The Verge"),
    _rule(r"(^|\.)bbc\.(com|co\.uk)$", C.editorial, "BBC"),
    _rule(r"(^|\.)cnn\.com$", C.editorial, "CNN"),
    _rule(r"(^|\.)nytimes\.com$", C.editorial, "New York Times"),
    _rule(r"(^|\.)wsj\.com$", C.editorial, "Wall Street Journal"),
    _rule(r"(^|\.)reuters\.com$", C.editorial, "Reuters"),
    _rule(r"(^|\.)bloomberg\.com$", C.editorial, "Bloomberg"),
    _rule(r"(^|\.)theguardian\.com$", C.editorial, "The Guardian"),
    _rule(r"(^|\.)vogue\.(com|co\.uk)$", C.editorial, "Vogue"),
    _rule(r"(^|\.)teenvogue\.com$", C.editorial, "Teen Vogue"),
    # Reference
    _rule(r"(^|\.)wikipedia\.org$", C.reference, "Wikipedia"),
    _rule(r"(^|\.)wikidata\.org$", C.reference, "Wikidata"),
    _rule(r"(^|\.)stackoverflow\.com$", C.reference, "Stack Overflow"),
    _rule(r"(^|\.)github\.com$", C.reference, "GitHub"),
    _rule(r"(^|\.)quora\.com$", C.reference, "Quora"),
    # Corporate
    _rule(r"(^|\.)g2\.com$", C.corporate, "G2"),
    _rule(r"(^|\.)capterra\.com$", C.corporate, "Capterra"),
    _rule(r"(^|\.)trustpilot\.com$", C.corporate, "Trustpilot"),
    # Institutional
    _rule(r"^scholar\.google\.com$", C.institutional, "Google Scholar"),
    _rule(r"(^|\.)pubmed\.ncbi\.nlm\.nih\.gov$", C.institutional, "PubMed"),
    _rule(r"(^|\.)archive\.org$", C.institutional, "Archive"),
    _rule(r"\.edu$", C.institutional),
    _rule(r"\.gov(\.[a-z]{2})?$", C.institutional),
    # UGC
    _rule(r"(^|\.)amazon\.com$", C.ugc, "Amazon"),
    _rule(r"(^|\.)yelp\.com$", C.ugc, "Yelp"),
    _rule(r"(^|\.)tripadvisor\.com$", C.ugc, "TripAdvisor"),
]

# (substring, category), checked in order against the domain.
NAME_HEURISTICS: list[tuple[str, CitationCategory]] = [
    ("university", C.institutional),
    ("news", C.editorial),
    ("blog", C.editorial),
    ("media", C.editorial),
    ("magazine", C.editorial),
    ("wiki", C.reference),
    ("review", C.ugc),
    ("rating", C.ugc),
]

_TLD_RE = re.compile(r"\.(com|org|net|edu|gov|co|io|uk|us|ai|dev)$", re.IGNORECASE)


def lookup_registry(domain: str) -> DomainRule | None:
    """Return the first registry rule matching *domain*."""
    for rule in DOMAIN_REGISTRY:
        if rule.pattern.search(domain):
            return rule
    return None


def heuristic_category(domain: str) -> CitationCategory | None:
    """Guess a category from words in the domain name, or None."""
    lowered = domain.lower()
    if lowered.endswith(".ac.uk") or ".edu." in lowered:
        return C.institutional
    for needle, category in NAME_HEURISTICS:
        if needle in lowered:
            return category
    return None


def page_name_for(domain: str) -> str | None:
    """Human-readable site name: the registry name, else a title-cased domain stem."""
    rule = lookup_registry(domain)
    if rule is not None and rule.page_name:
        return rule.page_name

    # Two passes so "example.co.uk" loses both labels.
    stem = _TLD_RE.sub("", domain)
    if "." in stem:
        stem = _TLD_RE.sub("", stem)
    parts = [p for p in stem.split(".") if p]
    return " ".join(p[:1].upper() + p[1:].lower() for p in parts) or None
