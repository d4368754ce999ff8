from lorebook.api.catalog import router as catalog_router
from lorebook.api.collection import router as collection_router
from lorebook.api.decks import router as decks_router
from lorebook.api.health import router as health_router

__all__ = [
    "catalog_router",
    "collection_router",
    "decks_router",
    "health_router",
]
