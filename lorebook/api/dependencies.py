"""
Shared FastAPI dependencies.

The catalog is loaded once per process. Ledgers live in a process-wide
registry backed by either the hosted row store (when configured) or the
application database.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, status

from lorebook.config import settings
from lorebook.db.database import async_session_factory
from lorebook.models.card import CardPrint
from lorebook.models.consolidated_card import ConsolidatedCard
from lorebook.models.failure import CollectionUnavailableError
from lorebook.services.card_database import CardCatalog, get_catalog, get_consolidated_cards
from lorebook.services.collection_ledger import CollectionLedger, LedgerRegistry
from lorebook.services.collection_store import (
    CollectionStore,
    RestCollectionStore,
    SqlCollectionStore,
)

CATALOG_UNAVAILABLE = "Card catalog not available. Please try again later."


def get_card_catalog() -> CardCatalog:
    try:
        return get_catalog()
    except FileNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=CATALOG_UNAVAILABLE,
        ) from e


def get_cards() -> tuple[ConsolidatedCard, ...]:
    try:
        return get_consolidated_cards()
    except FileNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=CATALOG_UNAVAILABLE,
        ) from e


def get_prints_by_id(
    catalog: Annotated[CardCatalog, Depends(get_card_catalog)],
) -> dict[int, CardPrint]:
    return catalog.by_id()


@lru_cache(maxsize=1)
def _build_store() -> CollectionStore:
    if settings.rowstore_url:
        return RestCollectionStore(settings.rowstore_url, api_key=settings.rowstore_api_key)
    return SqlCollectionStore(async_session_factory)


@lru_cache(maxsize=1)
def get_registry() -> LedgerRegistry:
    """Process-wide ledger registry."""
    return LedgerRegistry(_build_store())


async def get_ledger(
    user_id: str,
    registry: Annotated[LedgerRegistry, Depends(get_registry)],
) -> CollectionLedger:
    """The ledger of the user in the request path; a failed load is retried."""
    return await registry.get(user_id)


async def get_writable_ledger(
    ledger: Annotated[CollectionLedger, Depends(get_ledger)],
) -> CollectionLedger:
    """The user's ledger, refused while its stored rows are not loaded."""
    if not ledger.is_hydrated:
        raise CollectionUnavailableError(ledger.user_id or "", ledger.last_sync_error)
    return ledger


CardsDep = Annotated[tuple[ConsolidatedCard, ...], Depends(get_cards)]
CatalogDep = Annotated[CardCatalog, Depends(get_card_catalog)]
LedgerDep = Annotated[CollectionLedger, Depends(get_ledger)]
WritableLedgerDep = Annotated[CollectionLedger, Depends(get_writable_ledger)]
RegistryDep = Annotated[LedgerRegistry, Depends(get_registry)]
