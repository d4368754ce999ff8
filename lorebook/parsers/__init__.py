from lorebook.parsers.deck_text import DeckTextImport, export_deck_text, parse_deck_text
from lorebook.parsers.dreamborn import (
    CardMatcher,
    DreambornRow,
    ImportedCard,
    ImportReport,
    import_dreamborn_collection,
    match_card,
    parse_dreamborn_csv,
)

__all__ = [
    "CardMatcher",
    "DeckTextImport",
    "DreambornRow",
    "ImportReport",
    "ImportedCard",
    "export_deck_text",
    "import_dreamborn_collection",
    "match_card",
    "parse_deck_text",
    "parse_dreamborn_csv",
]
