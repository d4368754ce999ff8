from lorebook.db.database import get_session, init_db
from lorebook.db.operations import (
    collection_row_to_model,
    deck_to_model,
    delete_all_collection_rows,
    delete_collection_row,
    delete_deck,
    get_collection_row,
    get_collection_rows,
    get_deck,
    get_decks,
    save_deck,
    upsert_collection_row,
)

__all__ = [
    "collection_row_to_model",
    "deck_to_model",
    "delete_all_collection_rows",
    "delete_collection_row",
    "delete_deck",
    "get_collection_row",
    "get_collection_rows",
    "get_deck",
    "get_decks",
    "get_session",
    "init_db",
    "save_deck",
    "upsert_collection_row",
]
