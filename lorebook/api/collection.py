"""
Collection API endpoints.

Mutations apply to the user's ledger immediately and are mirrored to the
collection store in a background task after the response is sent. The
sync endpoints report (and can force) that reconciliation. Changes are
refused with 503 while the user's stored rows could not be loaded.
"""

from typing import Any

from fastapi import APIRouter, BackgroundTasks, HTTPException, status
from pydantic import BaseModel, Field

from lorebook.api.catalog import QuantitiesResponse, quantities_response
from lorebook.api.dependencies import CardsDep, LedgerDep, WritableLedgerDep
from lorebook.models.collection import VariantType
from lorebook.parsers.dreamborn import import_dreamborn_collection
from lorebook.services.collection_ledger import CollectionLedger, SyncStatus

router = APIRouter(prefix="/collection", tags=["collection"])


class CollectionEntryResponse(BaseModel):
    full_name: str
    regular: int = 0
    foil: int = 0
    enchanted: int = 0
    special: int = 0


class CollectionResponse(BaseModel):
    """Response model for collection data."""

    user_id: str
    entries: list[CollectionEntryResponse] = Field(default_factory=list)
    total_cards: int = 0
    unique_cards: int = 0
    sync_status: SyncStatus = SyncStatus.IDLE


class AdjustRequest(BaseModel):
    """Change one owned counter."""

    full_name: str = Field(..., examples=["Mickey Mouse - Brave Little Tailor"])
    variant: VariantType = VariantType.REGULAR
    delta: int = Field(..., description="Copies to add (positive) or remove (negative)")


class AdjustResponse(BaseModel):
    user_id: str
    full_name: str
    quantities: QuantitiesResponse


class ImportResponse(BaseModel):
    """Response model for collection import."""

    user_id: str
    unique_cards: int
    total_cards: int


class DreambornImportRequest(BaseModel):
    """Request model for importing a Dreamborn export."""

    text: str = Field(..., description="Raw CSV or TSV export including the header row")
    replace: bool = Field(
        default=False,
        description="Replace the collection instead of adding to it",
    )


class DreambornImportResponse(BaseModel):
    user_id: str
    cards_added: int
    matched: int
    unmatched: list[str] = Field(default_factory=list)
    summary: str
    total_cards: int
    unique_cards: int


class SyncStatusResponse(BaseModel):
    user_id: str
    status: SyncStatus
    pending_operations: int
    last_error: str | None = None


def _collection_response(ledger: CollectionLedger) -> CollectionResponse:
    return CollectionResponse(
        user_id=ledger.user_id or "",
        entries=[
            CollectionEntryResponse(
                full_name=entry.full_name,
                regular=entry.regular,
                foil=entry.foil,
                enchanted=entry.enchanted,
                special=entry.special,
            )
            for entry in ledger.entries()
        ],
        total_cards=ledger.total_cards,
        unique_cards=ledger.unique_cards,
        sync_status=ledger.sync_status,
    )


def _sync_response(ledger: CollectionLedger) -> SyncStatusResponse:
    return SyncStatusResponse(
        user_id=ledger.user_id or "",
        status=ledger.sync_status,
        pending_operations=ledger.pending_operations,
        last_error=ledger.last_sync_error,
    )


@router.get("/{user_id}", response_model=CollectionResponse)
async def get_user_collection(user_id: str, ledger: LedgerDep) -> CollectionResponse:
    """Get a user's collection."""
    return _collection_response(ledger)


@router.post("/{user_id}/adjust", response_model=AdjustResponse)
async def adjust_quantity(
    user_id: str,
    request: AdjustRequest,
    ledger: WritableLedgerDep,
    cards: CardsDep,
    background_tasks: BackgroundTasks,
) -> AdjustResponse:
    """
    Add or remove copies of one variant.

    Removing more copies than owned clamps at zero.
    """
    if not any(card.full_name == request.full_name for card in cards):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Card '{request.full_name}' not found",
        )

    quantities = ledger.adjust(request.full_name, request.variant, request.delta)
    background_tasks.add_task(ledger.flush)

    return AdjustResponse(
        user_id=user_id,
        full_name=request.full_name,
        quantities=quantities_response(quantities),
    )


@router.delete("/{user_id}", response_model=CollectionResponse)
async def clear_user_collection(
    user_id: str,
    ledger: WritableLedgerDep,
    background_tasks: BackgroundTasks,
) -> CollectionResponse:
    """Remove every card from the collection."""
    ledger.clear()
    background_tasks.add_task(ledger.flush)
    return _collection_response(ledger)


@router.get("/{user_id}/export")
async def export_user_collection(user_id: str, ledger: LedgerDep) -> dict[str, Any]:
    """Export the collection as a portable JSON document."""
    return ledger.export_collection()


@router.put("/{user_id}/import", response_model=ImportResponse)
async def import_user_collection(
    user_id: str,
    payload: dict[str, Any],
    ledger: WritableLedgerDep,
    background_tasks: BackgroundTasks,
) -> ImportResponse:
    """
    Replace the collection with a previously exported document.

    Existing entries not in the document are removed.
    """
    ledger.import_collection(payload)
    background_tasks.add_task(ledger.flush)
    return ImportResponse(
        user_id=user_id,
        unique_cards=ledger.unique_cards,
        total_cards=ledger.total_cards,
    )


@router.post("/{user_id}/import/dreamborn", response_model=DreambornImportResponse)
async def import_dreamborn(
    user_id: str,
    request: DreambornImportRequest,
    ledger: WritableLedgerDep,
    cards: CardsDep,
    background_tasks: BackgroundTasks,
) -> DreambornImportResponse:
    """
    Import a Dreamborn collection export.

    Rows whose names are not in the catalog are skipped and listed in
    `unmatched`. A file without the required columns fails as a whole.
    """
    report = import_dreamborn_collection(request.text, cards)
    added = ledger.apply_imported_cards(report.cards, replace=request.replace)
    background_tasks.add_task(ledger.flush)

    return DreambornImportResponse(
        user_id=user_id,
        cards_added=added,
        matched=report.matched_count,
        unmatched=report.unmatched,
        summary=report.summary(),
        total_cards=ledger.total_cards,
        unique_cards=ledger.unique_cards,
    )


@router.get("/{user_id}/sync", response_model=SyncStatusResponse)
async def get_sync_status(user_id: str, ledger: LedgerDep) -> SyncStatusResponse:
    """Reconciliation state of the user's collection."""
    return _sync_response(ledger)


@router.post("/{user_id}/sync", response_model=SyncStatusResponse)
async def sync_collection(user_id: str, ledger: LedgerDep) -> SyncStatusResponse:
    """Send pending changes to the collection store now."""
    if ledger.is_hydrated:
        await ledger.flush()
    return _sync_response(ledger)
