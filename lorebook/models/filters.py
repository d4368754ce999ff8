"""
Filter, sort and grouping specifications for card browsing.

These are configuration values built per request; they are never persisted.
"""

from dataclasses import dataclass, field
from enum import Enum


class TriState(str, Enum):
    """A "don't care / yes / no" filter flag."""

    UNSET = "unset"
    TRUE = "true"
    FALSE = "false"

    @classmethod
    def from_bool(cls, value: bool | None) -> "TriState":
        if value is None:
            return cls.UNSET
        return cls.TRUE if value else cls.FALSE

    def matches(self, value: bool) -> bool:
        """True when unset, otherwise exact boolean match."""
        if self is TriState.UNSET:
            return True
        return value is (self is TriState.TRUE)


class CountOperator(str, Enum):
    EQ = "eq"
    GTE = "gte"
    LTE = "lte"


class ColorMatchMode(str, Enum):
    """
    How the color inclusion set is applied.

    EXACT: the card's color string must be one of the selected values
    ANY: any selected base color appears in the card's colors
    ONLY: single-ink cards of a selected color, and dual-ink cards whose
          both colors are selected (one selection shows mono-ink only)
    """

    EXACT = "exact"
    ANY = "any"
    ONLY = "only"


@dataclass(frozen=True, slots=True)
class NumericRange:
    """Inclusive range; a missing bound is unbounded."""

    min: int | None = None
    max: int | None = None

    def contains(self, value: int) -> bool:
        if self.min is not None and value < self.min:
            return False
        return not (self.max is not None and value > self.max)


@dataclass(frozen=True, slots=True)
class CountFilter:
    """Compare total owned copies against a target value."""

    operator: CountOperator
    value: int

    def matches(self, total: int) -> bool:
        if self.operator is CountOperator.EQ:
            return total == self.value
        if self.operator is CountOperator.GTE:
            return total >= self.value
        return total <= self.value


@dataclass(frozen=True)
class FilterSpec:
    """
    Declarative card filter.

    Every criterion is vacuously true when empty or unset; the filter is
    the conjunction of all criteria.
    """

    search: str = ""
    sets: frozenset[str] = field(default_factory=frozenset)
    colors: frozenset[str] = field(default_factory=frozenset)
    color_mode: ColorMatchMode = ColorMatchMode.EXACT
    rarities: frozenset[str] = field(default_factory=frozenset)
    types: frozenset[str] = field(default_factory=frozenset)
    stories: frozenset[str] = field(default_factory=frozenset)
    subtypes: frozenset[str] = field(default_factory=frozenset)
    costs: frozenset[int] = field(default_factory=frozenset)
    cost_range: NumericRange = field(default_factory=NumericRange)
    strength_range: NumericRange = field(default_factory=NumericRange)
    willpower_range: NumericRange = field(default_factory=NumericRange)
    lore_range: NumericRange = field(default_factory=NumericRange)
    inkwell: TriState = TriState.UNSET
    has_enchanted: TriState = TriState.UNSET
    has_special: TriState = TriState.UNSET
    owned: TriState = TriState.UNSET
    owned_count: CountFilter | None = None


class SortField(str, Enum):
    NAME = "name"
    COST = "cost"
    RARITY = "rarity"
    SET = "set"
    NUMBER = "number"
    COLOR = "color"
    TYPE = "type"
    STORY = "story"
    STRENGTH = "strength"
    WILLPOWER = "willpower"
    LORE = "lore"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True, slots=True)
class SortSpec:
    """Sort by one field; `tiebreak` adds full name as a secondary key."""

    field: SortField = SortField.SET
    direction: SortDirection = SortDirection.DESC
    tiebreak: bool = True


class GroupBy(str, Enum):
    NONE = "none"
    SET = "set"
    COLOR = "color"
    RARITY = "rarity"
    TYPE = "type"
    STORY = "story"
    COST = "cost"
