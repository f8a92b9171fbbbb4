"""Citation domain categorization: registry, providers, cache and classifier."""

from __future__ import annotations

from .cache import DomainCache
from .classifier import Classifier, match_category
from .domains import DOMAIN_REGISTRY, heuristic_category, lookup_registry, page_name_for
from .providers import CategoryProvider, CerebrasProvider, GeminiProvider, build_prompt

__all__ = [
    "DOMAIN_REGISTRY",
    "CategoryProvider",
    "CerebrasProvider",
    "Classifier",
    "DomainCache",
    "GeminiProvider",
    "build_prompt",
    "heuristic_category",
    "lookup_registry",
    "match_category",
    "page_name_for",
]
