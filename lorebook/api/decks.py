"""
Deck API endpoints.

CRUD for user decks plus validation, statistics and the plain-text deck
list format. Decks are saved whether or not they are legal; legality is
reported alongside.
"""

from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from lorebook.api.catalog import CardPrintResponse, print_response
from lorebook.api.dependencies import CardsDep, get_prints_by_id
from lorebook.config import MAX_COPIES_PER_CARD
from lorebook.db import deck_to_model, delete_deck, get_deck, get_decks, save_deck
from lorebook.db.database import get_session
from lorebook.models.card import CardPrint
from lorebook.models.deck import Deck
from lorebook.parsers.deck_text import export_deck_text, parse_deck_text
from lorebook.services.deck_validation import (
    deck_hash,
    deck_statistics,
    deck_summary,
    validate_deck,
)

router = APIRouter(prefix="/decks", tags=["decks"])

SessionDep = Annotated[AsyncSession, Depends(get_session)]
PrintsDep = Annotated[dict[int, CardPrint], Depends(get_prints_by_id)]


class DeckCardResponse(BaseModel):
    card: CardPrintResponse
    quantity: int


class ValidationResponse(BaseModel):
    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class DeckSummaryResponse(BaseModel):
    """Listing entry for a deck."""

    id: str
    name: str
    description: str | None = None
    card_count: int
    ink_distribution: dict[str, int] = Field(default_factory=dict)
    is_valid: bool
    created_at: datetime
    updated_at: datetime


class DeckResponse(BaseModel):
    """Response model for a single deck."""

    id: str
    name: str
    description: str | None = None
    cards: list[DeckCardResponse] = Field(default_factory=list)
    total_cards: int = 0
    content_hash: str
    validation: ValidationResponse
    created_at: datetime
    updated_at: datetime


class DeckListResponse(BaseModel):
    user_id: str
    decks: list[DeckSummaryResponse]
    count: int


class DeckCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None


class DeckUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None


class AddCardRequest(BaseModel):
    card_id: int


class SetQuantityRequest(BaseModel):
    quantity: int = Field(..., ge=0, le=MAX_COPIES_PER_CARD)


class DeckImportRequest(BaseModel):
    text: str = Field(
        ...,
        examples=["Deck: Amber Steel\n\n4x Mickey Mouse - Brave Little Tailor"],
    )


class DeckImportResponse(BaseModel):
    deck: DeckResponse
    unmatched: list[str] = Field(default_factory=list)


class DeleteResponse(BaseModel):
    deck_id: str
    deleted: bool


def _deck_response(deck: Deck) -> DeckResponse:
    result = validate_deck(deck)
    return DeckResponse(
        id=deck.id,
        name=deck.name,
        description=deck.description,
        cards=[
            DeckCardResponse(card=print_response(dc.card), quantity=dc.quantity)
            for dc in deck.cards
        ],
        total_cards=deck.total_cards(),
        content_hash=deck_hash(deck),
        validation=ValidationResponse(
            is_valid=result.is_valid, errors=result.errors, warnings=result.warnings
        ),
        created_at=deck.created_at,
        updated_at=deck.updated_at,
    )


async def _load_deck(
    session: AsyncSession, user_id: str, deck_id: str, prints_by_id: dict[int, CardPrint]
) -> Deck:
    db_deck = await get_deck(session, user_id, deck_id)
    if db_deck is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Deck '{deck_id}' not found",
        )
    return deck_to_model(db_deck, prints_by_id)


@router.get("/{user_id}", response_model=DeckListResponse)
async def list_decks(user_id: str, session: SessionDep, prints: PrintsDep) -> DeckListResponse:
    """List a user's decks, most recently edited first."""
    summaries = []
    for db_deck in await get_decks(session, user_id):
        summary = deck_summary(deck_to_model(db_deck, prints))
        summaries.append(
            DeckSummaryResponse(
                id=summary.id,
                name=summary.name,
                description=summary.description,
                card_count=summary.card_count,
                ink_distribution=summary.ink_distribution,
                is_valid=summary.is_valid,
                created_at=summary.created_at,
                updated_at=summary.updated_at,
            )
        )
    return DeckListResponse(user_id=user_id, decks=summaries, count=len(summaries))


@router.post("/{user_id}", response_model=DeckResponse, status_code=status.HTTP_201_CREATED)
async def create_deck(
    user_id: str, request: DeckCreateRequest, session: SessionDep
) -> DeckResponse:
    """Create an empty deck."""
    deck = Deck(name=request.name, description=request.description)
    await save_deck(session, user_id, deck)
    return _deck_response(deck)


@router.post(
    "/{user_id}/import", response_model=DeckImportResponse, status_code=status.HTTP_201_CREATED
)
async def import_deck(
    user_id: str, request: DeckImportRequest, session: SessionDep, cards: CardsDep
) -> DeckImportResponse:
    """
    Create a deck from a plain-text deck list.

    Lines naming cards that are not in the catalog are skipped and
    returned in `unmatched`.
    """
    if not request.text.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Import text cannot be empty",
        )

    imported = parse_deck_text(request.text, cards)
    await save_deck(session, user_id, imported.deck)
    return DeckImportResponse(deck=_deck_response(imported.deck), unmatched=imported.unmatched)


@router.get("/{user_id}/{deck_id}", response_model=DeckResponse)
async def get_user_deck(
    user_id: str, deck_id: str, session: SessionDep, prints: PrintsDep
) -> DeckResponse:
    deck = await _load_deck(session, user_id, deck_id, prints)
    return _deck_response(deck)


@router.patch("/{user_id}/{deck_id}", response_model=DeckResponse)
async def update_deck(
    user_id: str,
    deck_id: str,
    request: DeckUpdateRequest,
    session: SessionDep,
    prints: PrintsDep,
) -> DeckResponse:
    """Rename a deck or change its description."""
    deck = await _load_deck(session, user_id, deck_id, prints)
    if request.name is not None:
        deck.name = request.name
    if "description" in request.model_fields_set:
        deck.description = request.description
    deck.touch()
    await save_deck(session, user_id, deck)
    return _deck_response(deck)


@router.delete("/{user_id}/{deck_id}", response_model=DeleteResponse)
async def delete_user_deck(user_id: str, deck_id: str, session: SessionDep) -> DeleteResponse:
    deleted = await delete_deck(session, user_id, deck_id)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Deck '{deck_id}' not found",
        )
    return DeleteResponse(deck_id=deck_id, deleted=True)


@router.post(
    "/{user_id}/{deck_id}/duplicate",
    response_model=DeckResponse,
    status_code=status.HTTP_201_CREATED,
)
async def duplicate_deck(
    user_id: str, deck_id: str, session: SessionDep, prints: PrintsDep
) -> DeckResponse:
    deck = await _load_deck(session, user_id, deck_id, prints)
    copy = deck.duplicate()
    await save_deck(session, user_id, copy)
    return _deck_response(copy)


@router.post("/{user_id}/{deck_id}/cards", response_model=DeckResponse)
async def add_card(
    user_id: str,
    deck_id: str,
    request: AddCardRequest,
    session: SessionDep,
    prints: PrintsDep,
) -> DeckResponse:
    """
    Add one copy of a card.

    Returns 409 if the card is already at the copy limit or the deck is full.
    """
    card = prints.get(request.card_id)
    if card is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Card {request.card_id} not found",
        )

    deck = await _load_deck(session, user_id, deck_id, prints)
    if not deck.add_card(card):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot add another copy of '{card.display_name}'",
        )
    await save_deck(session, user_id, deck)
    return _deck_response(deck)


@router.delete("/{user_id}/{deck_id}/cards/{card_id}", response_model=DeckResponse)
async def remove_card(
    user_id: str, deck_id: str, card_id: int, session: SessionDep, prints: PrintsDep
) -> DeckResponse:
    """Remove one copy of a card."""
    deck = await _load_deck(session, user_id, deck_id, prints)
    if not deck.remove_card(card_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Card {card_id} is not in the deck",
        )
    await save_deck(session, user_id, deck)
    return _deck_response(deck)


@router.put("/{user_id}/{deck_id}/cards/{card_id}", response_model=DeckResponse)
async def set_card_quantity(
    user_id: str,
    deck_id: str,
    card_id: int,
    request: SetQuantityRequest,
    session: SessionDep,
    prints: PrintsDep,
) -> DeckResponse:
    """Set the copy count of a card in the deck; 0 removes it."""
    deck = await _load_deck(session, user_id, deck_id, prints)
    if not deck.set_card_quantity(card_id, request.quantity):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Card {card_id} is not in the deck",
        )
    await save_deck(session, user_id, deck)
    return _deck_response(deck)


@router.post("/{user_id}/{deck_id}/clear", response_model=DeckResponse)
async def clear_deck(
    user_id: str, deck_id: str, session: SessionDep, prints: PrintsDep
) -> DeckResponse:
    deck = await _load_deck(session, user_id, deck_id, prints)
    deck.clear()
    await save_deck(session, user_id, deck)
    return _deck_response(deck)


@router.get("/{user_id}/{deck_id}/validate", response_model=ValidationResponse)
async def validate_user_deck(
    user_id: str, deck_id: str, session: SessionDep, prints: PrintsDep
) -> ValidationResponse:
    deck = await _load_deck(session, user_id, deck_id, prints)
    result = validate_deck(deck)
    return ValidationResponse(
        is_valid=result.is_valid, errors=result.errors, warnings=result.warnings
    )


@router.get("/{user_id}/{deck_id}/statistics")
async def get_deck_statistics(
    user_id: str, deck_id: str, session: SessionDep, prints: PrintsDep
) -> dict[str, Any]:
    """Cost curve and distributions for deck building."""
    deck = await _load_deck(session, user_id, deck_id, prints)
    return deck_statistics(deck)


@router.get("/{user_id}/{deck_id}/export", response_class=PlainTextResponse)
async def export_deck(
    user_id: str, deck_id: str, session: SessionDep, prints: PrintsDep
) -> str:
    """The deck as a plain-text list."""
    deck = await _load_deck(session, user_id, deck_id, prints)
    return export_deck_text(deck)
