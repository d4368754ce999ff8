import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

from lorebook.config import DECK_SIZE, MAX_COPIES_PER_CARD
from lorebook.models.card import CardPrint


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass
class DeckCard:
    """A card print in a deck with its copy count."""

    card: CardPrint
    quantity: int

    @property
    def id(self) -> int:
        return self.card.id

    @property
    def name(self) -> str:
        return self.card.name


@dataclass
class Deck:
    """
    A user-built deck.

    The mutation methods enforce only the soft caps (copies per card and
    total size) when adding. A deck may still be saved while invalid;
    legality is computed by the deck validator.

    Attributes:
        id: Deck identifier
        name: Display name
        description: Optional free text
        cards: Cards in the deck (order is irrelevant)
        created_at: Creation timestamp
        updated_at: Last modification timestamp
    """

    name: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    description: str | None = None
    cards: list[DeckCard] = field(default_factory=list)
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    def total_cards(self) -> int:
        """Total copies in the deck."""
        return sum(dc.quantity for dc in self.cards)

    def unique_cards(self) -> int:
        return len(self.cards)

    def get_card(self, card_id: int) -> DeckCard | None:
        for deck_card in self.cards:
            if deck_card.id == card_id:
                return deck_card
        return None

    def touch(self) -> None:
        self.updated_at = _now()

    def add_card(self, card: CardPrint) -> bool:
        """
        Add one copy of a card.

        Returns False (and leaves the deck unchanged) if the card is already
        at the copy limit or the deck is full.
        """
        existing = self.get_card(card.id)
        if existing is not None and existing.quantity >= MAX_COPIES_PER_CARD:
            return False
        if self.total_cards() >= DECK_SIZE:
            return False

        if existing is not None:
            existing.quantity += 1
        else:
            self.cards.append(DeckCard(card=card, quantity=1))
        self.touch()
        return True

    def remove_card(self, card_id: int) -> bool:
        """Remove one copy of a card. Returns False if the card is not in the deck."""
        existing = self.get_card(card_id)
        if existing is None:
            return False

        existing.quantity -= 1
        if existing.quantity <= 0:
            self.cards.remove(existing)
        self.touch()
        return True

    def set_card_quantity(self, card_id: int, quantity: int) -> bool:
        """
        Set the copy count of a card already in the deck.

        Quantity 0 removes the card. Out-of-range quantities are refused.
        """
        if quantity < 0 or quantity > MAX_COPIES_PER_CARD:
            return False

        existing = self.get_card(card_id)
        if existing is None:
            return False

        if quantity == 0:
            self.cards.remove(existing)
        else:
            existing.quantity = quantity
        self.touch()
        return True

    def clear(self) -> None:
        """Remove every card, keeping name and description."""
        self.cards = []
        self.touch()

    def duplicate(self) -> "Deck":
        """Copy this deck under a new id and "(Copy)" name."""
        now = _now()
        return replace(
            self,
            id=uuid.uuid4().hex,
            name=f"{self.name} (Copy)",
            cards=[DeckCard(card=dc.card, quantity=dc.quantity) for dc in self.cards],
            created_at=now,
            updated_at=now,
        )


@dataclass(frozen=True)
class DeckSummary:
    """Read-only projection of a deck for listings."""

    id: str
    name: str
    description: str | None
    card_count: int
    ink_distribution: dict[str, int]
    is_valid: bool
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class DeckValidationResult:
    """Outcome of checking a deck against the format rules."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class DeckChange:
    """One difference between two versions of a deck."""

    type: str  # added, removed, modified
    card_name: str
    old_quantity: int | None = None
    new_quantity: int | None = None
