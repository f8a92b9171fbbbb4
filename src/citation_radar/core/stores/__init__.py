"""Source record, brand and citation stores."""

from citation_radar.core.stores.base import BrandDirectory, CitationStore, SourceRecordStore
from citation_radar.core.stores.memory import (
    InMemoryBrandDirectory,
    InMemoryCitationStore,
    InMemorySourceStore,
)
from citation_radar.core.stores.supabase import (
    SupabaseBrandDirectory,
    SupabaseCitationStore,
    SupabaseClient,
    SupabaseSourceStore,
)

__all__ = [
    "BrandDirectory",
    "CitationStore",
    "InMemoryBrandDirectory",
    "InMemoryCitationStore",
    "InMemorySourceStore",
    "SourceRecordStore",
    "SupabaseBrandDirectory",
    "SupabaseCitationStore",
    "SupabaseClient",
    "SupabaseSourceStore",
]
