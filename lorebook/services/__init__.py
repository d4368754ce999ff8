"""
Lorebook services.

Business logic for card browsing, collection tracking and deck building.
"""

from lorebook.services.card_browser import BrowseResult, CardBrowser
from lorebook.services.card_filtering import (
    Page,
    count_active_filters,
    filter_cards,
    group_cards,
    paginate,
    sort_cards,
)
from lorebook.services.collection_ledger import CollectionLedger, LedgerRegistry, SyncStatus
from lorebook.services.collection_store import (
    CollectionStore,
    InMemoryCollectionStore,
    RestCollectionStore,
    SqlCollectionStore,
)
from lorebook.services.consolidation import available_rarities, consolidate_cards
from lorebook.services.deck_validation import (
    compare_deck_versions,
    deck_hash,
    deck_statistics,
    deck_summary,
    validate_deck,
)

__all__ = [
    "BrowseResult",
    "CardBrowser",
    "CollectionLedger",
    "CollectionStore",
    "InMemoryCollectionStore",
    "LedgerRegistry",
    "Page",
    "RestCollectionStore",
    "SqlCollectionStore",
    "SyncStatus",
    "available_rarities",
    "compare_deck_versions",
    "consolidate_cards",
    "count_active_filters",
    "deck_hash",
    "deck_statistics",
    "deck_summary",
    "filter_cards",
    "group_cards",
    "paginate",
    "sort_cards",
    "validate_deck",
]
