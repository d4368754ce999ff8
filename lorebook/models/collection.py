from dataclasses import dataclass
from enum import Enum


class VariantType(str, Enum):
    """Which print variant an owned copy belongs to."""

    REGULAR = "regular"
    FOIL = "foil"
    ENCHANTED = "enchanted"
    SPECIAL = "special"


@dataclass(frozen=True, slots=True)
class VariantQuantities:
    """Read-only snapshot of owned copies per variant."""

    regular: int = 0
    foil: int = 0
    enchanted: int = 0
    special: int = 0

    @property
    def total(self) -> int:
        return self.regular + self.foil + self.enchanted + self.special


@dataclass
class CollectionEntry:
    """
    Owned quantities for one card identity.

    Counters are never negative. An entry whose counters are all zero
    must not be kept in a collection.
    """

    full_name: str
    regular: int = 0
    foil: int = 0
    enchanted: int = 0
    special: int = 0

    def get(self, variant: VariantType) -> int:
        """Get the counter for a variant."""
        return int(getattr(self, variant.value))

    def set(self, variant: VariantType, quantity: int) -> None:
        """Set the counter for a variant, clamped at zero."""
        setattr(self, variant.value, max(0, quantity))

    def total(self) -> int:
        """Total copies across all variants."""
        return self.regular + self.foil + self.enchanted + self.special

    def is_empty(self) -> bool:
        return self.total() == 0

    def quantities(self) -> VariantQuantities:
        return VariantQuantities(
            regular=self.regular,
            foil=self.foil,
            enchanted=self.enchanted,
            special=self.special,
        )


@dataclass(frozen=True, slots=True)
class CollectionRow:
    """
    Row shape used by remote collection stores.

    One row per user per card identity.
    """

    user_id: str
    card_name: str
    regular_count: int = 0
    foil_count: int = 0
    enchanted_count: int = 0
    special_count: int = 0

    @classmethod
    def from_entry(cls, user_id: str, entry: CollectionEntry) -> "CollectionRow":
        return cls(
            user_id=user_id,
            card_name=entry.full_name,
            regular_count=entry.regular,
            foil_count=entry.foil,
            enchanted_count=entry.enchanted,
            special_count=entry.special,
        )

    def to_entry(self) -> CollectionEntry:
        return CollectionEntry(
            full_name=self.card_name,
            regular=max(0, self.regular_count),
            foil=max(0, self.foil_count),
            enchanted=max(0, self.enchanted_count),
            special=max(0, self.special_count),
        )
