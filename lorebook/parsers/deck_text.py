"""
Plain-text deck list format.

    Deck: <name>
    Description: <description>      (optional)

    4x Mickey Mouse - Brave Little Tailor
    2x Be Prepared

Card lines name the card as printed ("Name - Version"). On import each line
is resolved against the catalog by full name; lines that do not resolve are
reported and skipped.
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from lorebook.models.card import CardPrint
from lorebook.models.consolidated_card import ConsolidatedCard
from lorebook.models.deck import Deck, DeckCard

logger = logging.getLogger(__name__)

DEFAULT_DECK_NAME = "Imported Deck"

NAME_PREFIX = "Deck:"
DESCRIPTION_PREFIX = "Description:"

# Pattern: "4x Card Name" or "4 Card Name" or "4X Card Name"
# Groups: (quantity, card_name)
CARD_LINE_PATTERN = re.compile(r"^(\d+)x?\s+(.+)$", re.IGNORECASE)


@dataclass
class DeckTextImport:
    """A parsed deck list and the lines that could not be resolved."""

    deck: Deck
    unmatched: list[str] = field(default_factory=list)


def export_deck_text(deck: Deck) -> str:
    """Render a deck as a plain-text list."""
    header = f"{NAME_PREFIX} {deck.name}\n"
    if deck.description:
        header += f"{DESCRIPTION_PREFIX} {deck.description}\n"

    lines = [f"{dc.quantity}x {dc.card.display_name}" for dc in deck.cards]
    return header + "\n" + "\n".join(lines)


def _print_index(cards: Iterable[ConsolidatedCard]) -> dict[str, CardPrint]:
    """Index the representative print of each card by full and display name."""
    index: dict[str, CardPrint] = {}
    for card in cards:
        representative = card.regular or card.base_card
        index.setdefault(card.full_name.lower(), representative)
        index.setdefault(representative.display_name.lower(), representative)
    return index


def parse_deck_text(text: str, cards: Iterable[ConsolidatedCard]) -> DeckTextImport:
    """
    Parse a plain-text deck list into a new deck.

    Name lookup is case-insensitive. Repeated lines for the same card add
    up. Quantities are kept as written; legality is left to the validator.
    """
    index = _print_index(cards)

    name = DEFAULT_DECK_NAME
    description: str | None = None
    deck_cards: dict[int, DeckCard] = {}
    unmatched: list[str] = []

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        if line.startswith(NAME_PREFIX):
            name = line[len(NAME_PREFIX) :].strip() or DEFAULT_DECK_NAME
            continue
        if line.startswith(DESCRIPTION_PREFIX):
            description = line[len(DESCRIPTION_PREFIX) :].strip() or None
            continue

        match = CARD_LINE_PATTERN.match(line)
        if not match:
            unmatched.append(line)
            continue

        quantity = int(match.group(1))
        card = index.get(match.group(2).strip().lower())
        if card is None or quantity <= 0:
            unmatched.append(line)
            continue

        existing = deck_cards.get(card.id)
        if existing is not None:
            existing.quantity += quantity
        else:
            deck_cards[card.id] = DeckCard(card=card, quantity=quantity)

    if unmatched:
        logger.info("Deck import skipped %d unresolved lines", len(unmatched))

    deck = Deck(name=name, description=description, cards=list(deck_cards.values()))
    return DeckTextImport(deck=deck, unmatched=unmatched)
