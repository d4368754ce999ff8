from dataclasses import dataclass, field
from enum import Enum


class Rarity(str, Enum):
    """Printed rarity of a card."""

    COMMON = "Common"
    UNCOMMON = "Uncommon"
    RARE = "Rare"
    SUPER_RARE = "Super Rare"
    LEGENDARY = "Legendary"
    ENCHANTED = "Enchanted"
    SPECIAL = "Special"


class CardType(str, Enum):
    """Primary card type."""

    CHARACTER = "Character"
    ACTION = "Action"
    ITEM = "Item"
    SONG = "Song"
    LOCATION = "Location"


# Foil tag meaning "printed without foil treatment"
NO_FOIL = "None"


def split_colors(color: str) -> tuple[str, ...]:
    """
    Decompose an ink color string into base colors.

    "Amber" -> ("Amber",), "Amber-Amethyst" -> ("Amber", "Amethyst"), "" -> ().
    """
    if not color:
        return ()
    return tuple(part for part in color.split("-") if part)


@dataclass(frozen=True, slots=True)
class CardPrint:
    """
    A single printed version of a card.

    Attributes:
        id: Catalog id, unique per print
        name: Card name (e.g., "Mickey Mouse")
        full_name: Name plus version suffix; the card identity across prints
        set_code: Set code as printed (e.g., "1")
        number: Collector number within the set
        rarity: Printed rarity
        color: Ink color, a dual composite ("Amber-Amethyst"), or "" if colorless
        cost: Ink cost
        type: Primary card type
        inkwell: True if the card can be put into the inkwell
        version: Version suffix (e.g., "Brave Little Tailor")
        story: Franchise tag (e.g., "Frozen")
        foil_types: Foil treatment tags; None when the source did not list any
    """

    id: int
    name: str
    full_name: str
    set_code: str
    number: int
    rarity: Rarity
    color: str
    cost: int
    type: CardType
    inkwell: bool
    version: str | None = None
    strength: int | None = None
    willpower: int | None = None
    lore: int | None = None
    subtypes: tuple[str, ...] = field(default_factory=tuple)
    story: str | None = None
    foil_types: tuple[str, ...] | None = None

    @property
    def base_colors(self) -> tuple[str, ...]:
        """Base ink colors this print contributes."""
        return split_colors(self.color)

    @property
    def is_dual_ink(self) -> bool:
        return len(self.base_colors) > 1

    @property
    def is_variant_print(self) -> bool:
        """True for Enchanted and Special prints."""
        return self.rarity in (Rarity.ENCHANTED, Rarity.SPECIAL)

    @property
    def display_name(self) -> str:
        """Name as written in deck lists: "Name - Version"."""
        if self.version:
            return f"{self.name} - {self.version}"
        return self.name
