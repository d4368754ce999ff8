"""
Card filtering, sorting and grouping.

Provides the browse pipeline over consolidated cards:

    filter_cards -> sort_cards -> group_cards (optional) -> paginate

Filtering combines catalog attributes with live ownership counts from the
collection ledger. All criteria are ANDed together; each one is vacuously
true when its spec field is empty or unset.

None of these functions raise on well-typed input.
"""

import logging
import math
from collections.abc import Callable, Collection, Iterable, Mapping
from dataclasses import dataclass
from typing import Generic, TypeVar

from lorebook.config import RARITY_ORDER
from lorebook.models.card import CardPrint, split_colors
from lorebook.models.collection import VariantQuantities
from lorebook.models.consolidated_card import ConsolidatedCard
from lorebook.models.filters import (
    ColorMatchMode,
    FilterSpec,
    GroupBy,
    NumericRange,
    SortDirection,
    SortField,
    SortSpec,
    TriState,
)
from lorebook.services.consolidation import available_rarities

logger = logging.getLogger(__name__)

QuantityLookup = Callable[[str], VariantQuantities]

NO_COLOR_GROUP = "No Ink Color"
NO_STORY_GROUP = "No Story"


# =============================================================================
# FILTERING
# =============================================================================


def _matches_search(card: CardPrint, term: str) -> bool:
    if not term:
        return True
    needle = term.lower()
    haystacks = (card.name, card.version or "", card.story or "")
    return any(needle in text.lower() for text in haystacks)


def _matches_color(card: CardPrint, colors: frozenset[str], mode: ColorMatchMode) -> bool:
    if not colors:
        return True

    if mode is ColorMatchMode.EXACT:
        return card.color in colors

    # "" in the selection stands for colorless cards
    if not card.color:
        return "" in colors

    selected = {c for c in colors if c}
    if not selected:
        return False

    card_colors = split_colors(card.color)

    if mode is ColorMatchMode.ANY:
        return any(color in selected for color in card_colors)

    # ONLY
    if len(selected) == 1:
        return len(card_colors) == 1 and card_colors[0] in selected
    return all(color in selected for color in card_colors)


def _matches_stat(value: int | None, bounds: NumericRange) -> bool:
    """Cards without the stat always pass."""
    return value is None or bounds.contains(value)


def _matches_card(
    consolidated: ConsolidatedCard,
    search_term: str,
    spec: FilterSpec,
    get_quantities: QuantityLookup,
) -> bool:
    card = consolidated.base_card

    if not _matches_search(card, search_term):
        return False

    if spec.sets and card.set_code not in spec.sets:
        return False

    if not _matches_color(card, spec.colors, spec.color_mode):
        return False

    if spec.types and card.type.value not in spec.types:
        return False

    if spec.stories and card.story not in spec.stories:
        return False

    if spec.subtypes and not any(subtype in spec.subtypes for subtype in card.subtypes):
        return False

    # Cost list and cost range are independent; both must pass
    if spec.costs and card.cost not in spec.costs:
        return False
    if not spec.cost_range.contains(card.cost):
        return False

    if not _matches_stat(card.strength, spec.strength_range):
        return False
    if not _matches_stat(card.willpower, spec.willpower_range):
        return False
    if not _matches_stat(card.lore, spec.lore_range):
        return False

    if not spec.inkwell.matches(card.inkwell):
        return False

    if spec.owned is not TriState.UNSET or spec.owned_count is not None:
        total_owned = get_quantities(consolidated.full_name).total
        if not spec.owned.matches(total_owned > 0):
            return False
        if spec.owned_count is not None and not spec.owned_count.matches(total_owned):
            return False

    if not spec.has_enchanted.matches(consolidated.has_enchanted):
        return False
    if not spec.has_special.matches(consolidated.has_special):
        return False

    # A consolidated card exposes several rarities at once
    return not spec.rarities or any(
        rarity in spec.rarities for rarity in available_rarities(consolidated)
    )


def filter_cards(
    cards: Iterable[ConsolidatedCard],
    search_term: str,
    spec: FilterSpec,
    get_quantities: QuantityLookup,
    stale_names: Collection[str] = frozenset(),
) -> list[ConsolidatedCard]:
    """
    Filter consolidated cards.

    Args:
        cards: Cards to filter
        search_term: Case-insensitive substring of name, version or story
        spec: Filter criteria
        get_quantities: Owned quantities lookup by full name
        stale_names: Full names that bypass every criterion (cards that
            just changed quantity and are kept visible until refresh)

    Returns:
        Matching cards in input order.
    """
    results: list[ConsolidatedCard] = []

    for card in cards:
        if card.full_name in stale_names:
            logger.debug("Including stale card %r", card.full_name)
            results.append(card)
            continue
        if _matches_card(card, search_term, spec, get_quantities):
            results.append(card)

    return results


def count_active_filters(spec: FilterSpec, defaults: FilterSpec | None = None) -> int:
    """
    Count filter criteria that differ from the defaults.

    List criteria count one per value selected or deselected relative to
    the default list; ranges, flags and the owned-count filter count once
    each when they differ from their default.
    """
    if defaults is None:
        defaults = FilterSpec()

    lists = (
        (spec.sets, defaults.sets),
        (spec.colors, defaults.colors),
        (spec.rarities, defaults.rarities),
        (spec.types, defaults.types),
        (spec.stories, defaults.stories),
        (spec.subtypes, defaults.subtypes),
        (spec.costs, defaults.costs),
    )
    singles = (
        (spec.cost_range, defaults.cost_range),
        (spec.strength_range, defaults.strength_range),
        (spec.willpower_range, defaults.willpower_range),
        (spec.lore_range, defaults.lore_range),
        (spec.inkwell, defaults.inkwell),
        (spec.has_enchanted, defaults.has_enchanted),
        (spec.has_special, defaults.has_special),
        (spec.owned, defaults.owned),
        (spec.owned_count, defaults.owned_count),
    )

    return sum(len(current ^ default) for current, default in lists) + sum(
        1 for current, default in singles if current != default
    )


# =============================================================================
# SORTING
# =============================================================================


def rarity_rank(rarity: str) -> int:
    """Position in RARITY_ORDER; unknown rarities rank first (-1)."""
    try:
        return RARITY_ORDER.index(rarity)
    except ValueError:
        return -1


def _text_key(value: str | None) -> str:
    return (value or "").lower()


SortKey = str | int

# One typed key function per sort field, selected once per sort call
SORT_KEYS: dict[SortField, Callable[[CardPrint], SortKey]] = {
    SortField.NAME: lambda card: _text_key(card.name),
    SortField.COST: lambda card: card.cost,
    SortField.RARITY: lambda card: rarity_rank(card.rarity.value),
    SortField.SET: lambda card: _text_key(card.set_code),
    SortField.NUMBER: lambda card: card.number,
    SortField.COLOR: lambda card: _text_key(card.color),
    SortField.TYPE: lambda card: _text_key(card.type.value),
    SortField.STORY: lambda card: _text_key(card.story),
    SortField.STRENGTH: lambda card: card.strength or 0,
    SortField.WILLPOWER: lambda card: card.willpower or 0,
    SortField.LORE: lambda card: card.lore or 0,
}


def sort_cards(cards: Iterable[ConsolidatedCard], sort: SortSpec) -> list[ConsolidatedCard]:
    """
    Sort consolidated cards by one base-card field.

    With `sort.tiebreak`, full name (case-insensitive) breaks ties so the
    order is reproducible. Without it, ties keep their input order.

    Returns:
        A new sorted list; the input is not modified.
    """
    key_fn = SORT_KEYS[sort.field]
    reverse = sort.direction is SortDirection.DESC

    if sort.tiebreak:
        return sorted(
            cards,
            key=lambda c: (key_fn(c.base_card), c.full_name.lower(), c.full_name),
            reverse=reverse,
        )
    return sorted(cards, key=lambda c: key_fn(c.base_card), reverse=reverse)


# =============================================================================
# GROUPING
# =============================================================================


def _group_label(card: CardPrint, group_by: GroupBy, set_names: Mapping[str, str]) -> str:
    if group_by is GroupBy.SET:
        return set_names.get(card.set_code, card.set_code)
    if group_by is GroupBy.COLOR:
        return card.color or NO_COLOR_GROUP
    if group_by is GroupBy.RARITY:
        return card.rarity.value
    if group_by is GroupBy.TYPE:
        return card.type.value
    if group_by is GroupBy.STORY:
        return card.story or NO_STORY_GROUP
    return f"Cost {card.cost}"


def group_cards(
    cards: Iterable[ConsolidatedCard],
    group_by: GroupBy,
    set_names: Mapping[str, str] | None = None,
) -> dict[str, list[ConsolidatedCard]]:
    """
    Partition already sorted cards into labelled buckets.

    Bucket order is the order in which each label is first encountered,
    and cards keep their sorted order inside a bucket. GroupBy.NONE gives
    an empty mapping.
    """
    if group_by is GroupBy.NONE:
        return {}

    names = set_names or {}
    groups: dict[str, list[ConsolidatedCard]] = {}
    for card in cards:
        label = _group_label(card.base_card, group_by, names)
        groups.setdefault(label, []).append(card)
    return groups


# =============================================================================
# PAGINATION
# =============================================================================

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of results."""

    items: list[T]
    page: int
    total_pages: int
    total_items: int
    start_index: int
    end_index: int

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


def paginate(items: list[T], page: int, per_page: int) -> Page[T]:
    """
    Slice a result list into a page.

    The page number is clamped to [1, total_pages]; there is always at
    least one (possibly empty) page.
    """
    if per_page < 1:
        raise ValueError(f"per_page must be positive, got {per_page}")

    total_items = len(items)
    total_pages = max(1, math.ceil(total_items / per_page))
    page = min(max(page, 1), total_pages)

    start = (page - 1) * per_page
    end = min(start + per_page, total_items)

    return Page(
        items=items[start:end],
        page=page,
        total_pages=total_pages,
        total_items=total_items,
        start_index=start,
        end_index=end,
    )
