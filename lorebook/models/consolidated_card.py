"""
Consolidated Card Model.

A ConsolidatedCard is the unit browsing and filtering operate on: one entry
per card identity (full name) with pointers to each print variant.

INVARIANTS:
- Variant flags are derived from slot occupancy, never stored
- All models are frozen (immutable after construction)
"""

from dataclasses import dataclass, field

from lorebook.models.card import CardPrint


@dataclass(frozen=True, slots=True)
class ConsolidatedCard:
    """
    One logical card with its print variants.

    Attributes:
        full_name: Card identity shared by every print
        base_card: Representative non-Enchanted, non-Special print for display
        regular: Non-foil print
        foil: Foil print of the regular rarity
        enchanted: Enchanted print
        special: Special/promo prints (zero or more)
    """

    full_name: str
    base_card: CardPrint
    regular: CardPrint | None = None
    foil: CardPrint | None = None
    enchanted: CardPrint | None = None
    special: tuple[CardPrint, ...] = field(default_factory=tuple)

    @property
    def has_regular(self) -> bool:
        return self.regular is not None

    @property
    def has_foil(self) -> bool:
        return self.foil is not None

    @property
    def has_enchanted(self) -> bool:
        return self.enchanted is not None

    @property
    def has_special(self) -> bool:
        return len(self.special) > 0

    def prints(self) -> list[CardPrint]:
        """
        All distinct prints referenced by this card.

        The base card is included when it does not already occupy a slot
        (a print with unusual foil tags lands only there).
        """
        result: list[CardPrint] = []
        seen: set[int] = set()
        candidates = [self.regular, self.foil, self.enchanted, *self.special, self.base_card]
        for card in candidates:
            if card is not None and card.id not in seen:
                seen.add(card.id)
                result.append(card)
        return result
