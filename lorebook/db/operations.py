"""
Database CRUD operations.

Provides async functions for reading and writing collection rows and
user decks.
"""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from lorebook.models.card import CardPrint
from lorebook.models.collection import CollectionRow
from lorebook.models.db import UserCollectionDB, UserDeckDB
from lorebook.models.deck import Deck, DeckCard

# --- Collection Operations ---


async def get_collection_row(
    session: AsyncSession, user_id: str, card_name: str
) -> UserCollectionDB | None:
    """Get one collection row, or None if the user owns no copies."""
    result = await session.execute(
        select(UserCollectionDB).where(
            UserCollectionDB.user_id == user_id,
            UserCollectionDB.card_name == card_name,
        )
    )
    return result.scalar_one_or_none()


async def get_collection_rows(session: AsyncSession, user_id: str) -> list[CollectionRow]:
    """Get every collection row for a user."""
    result = await session.execute(
        select(UserCollectionDB)
        .where(UserCollectionDB.user_id == user_id)
        .order_by(UserCollectionDB.card_name)
    )
    return [collection_row_to_model(row) for row in result.scalars().all()]


async def upsert_collection_row(session: AsyncSession, row: CollectionRow) -> UserCollectionDB:
    """
    Insert or update a collection row.

    If a row for the same user and card exists, its counters are replaced.
    """
    existing = await get_collection_row(session, row.user_id, row.card_name)

    if existing:
        existing.regular_count = row.regular_count
        existing.foil_count = row.foil_count
        existing.enchanted_count = row.enchanted_count
        existing.special_count = row.special_count
        await session.flush()
        return existing

    db_row = UserCollectionDB(
        user_id=row.user_id,
        card_name=row.card_name,
        regular_count=row.regular_count,
        foil_count=row.foil_count,
        enchanted_count=row.enchanted_count,
        special_count=row.special_count,
    )
    session.add(db_row)
    await session.flush()
    return db_row


async def delete_collection_row(session: AsyncSession, user_id: str, card_name: str) -> bool:
    """
    Delete one collection row.

    Returns True if deleted, False if not found.
    """
    result = await session.execute(
        delete(UserCollectionDB).where(
            UserCollectionDB.user_id == user_id,
            UserCollectionDB.card_name == card_name,
        )
    )
    # rowcount is available on DELETE results; type stubs incomplete for async
    return int(result.rowcount) > 0  # type: ignore[attr-defined]


async def delete_all_collection_rows(session: AsyncSession, user_id: str) -> int:
    """
    Delete a user's whole collection.

    Returns the number of deleted rows.
    """
    result = await session.execute(
        delete(UserCollectionDB).where(UserCollectionDB.user_id == user_id)
    )
    return int(result.rowcount)  # type: ignore[attr-defined]


def collection_row_to_model(db_row: UserCollectionDB) -> CollectionRow:
    """Convert a database row to a domain row."""
    return CollectionRow(
        user_id=db_row.user_id,
        card_name=db_row.card_name,
        regular_count=db_row.regular_count,
        foil_count=db_row.foil_count,
        enchanted_count=db_row.enchanted_count,
        special_count=db_row.special_count,
    )


# --- Deck Operations ---


async def get_deck(session: AsyncSession, user_id: str, deck_id: str) -> UserDeckDB | None:
    """Get one of a user's decks by id."""
    result = await session.execute(
        select(UserDeckDB).where(UserDeckDB.id == deck_id, UserDeckDB.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def get_decks(session: AsyncSession, user_id: str) -> list[UserDeckDB]:
    """Get all decks of a user, most recently edited first."""
    result = await session.execute(
        select(UserDeckDB)
        .where(UserDeckDB.user_id == user_id)
        .order_by(UserDeckDB.updated_at.desc())
    )
    return list(result.scalars().all())


async def save_deck(session: AsyncSession, user_id: str, deck: Deck) -> UserDeckDB:
    """
    Insert or update a deck.

    The stored card list is replaced with the deck's current cards.
    """
    cards = [{"id": dc.card.id, "quantity": dc.quantity} for dc in deck.cards]
    existing = await get_deck(session, user_id, deck.id)

    if existing:
        existing.name = deck.name
        existing.description = deck.description
        existing.cards = cards
        existing.updated_at = deck.updated_at
        await session.flush()
        return existing

    db_deck = UserDeckDB(
        id=deck.id,
        user_id=user_id,
        name=deck.name,
        description=deck.description,
        cards=cards,
        created_at=deck.created_at,
        updated_at=deck.updated_at,
    )
    session.add(db_deck)
    await session.flush()
    return db_deck


async def delete_deck(session: AsyncSession, user_id: str, deck_id: str) -> bool:
    """
    Delete a deck.

    Returns True if deleted, False if not found.
    """
    db_deck = await get_deck(session, user_id, deck_id)
    if not db_deck:
        return False

    await session.delete(db_deck)
    return True


def deck_to_model(db_deck: UserDeckDB, prints_by_id: dict[int, CardPrint]) -> Deck:
    """
    Convert a database deck to a domain model.

    Card ids no longer present in the catalog are dropped.
    """
    cards = [
        DeckCard(card=prints_by_id[int(item["id"])], quantity=int(item["quantity"]))
        for item in db_deck.cards
        if int(item["id"]) in prints_by_id
    ]
    return Deck(
        id=db_deck.id,
        name=db_deck.name,
        description=db_deck.description,
        cards=cards,
        created_at=db_deck.created_at,
        updated_at=db_deck.updated_at,
    )
