"""
Card browsing session.

Holds the browse state of one user session: search term, filters, sort,
grouping, current page and the set of stale cards.

A card becomes stale when a quantity change made from the results would
drop it out of an ownership filter ("owned only" and the user removes the
last copy). Stale cards stay visible until the user refreshes or changes
any browse setting, so the grid does not jump under their cursor.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace

from lorebook.config import settings
from lorebook.models.collection import VariantQuantities, VariantType
from lorebook.models.consolidated_card import ConsolidatedCard
from lorebook.models.filters import FilterSpec, GroupBy, SortSpec, TriState
from lorebook.services.card_filtering import (
    Page,
    count_active_filters,
    filter_cards,
    group_cards,
    paginate,
    sort_cards,
)
from lorebook.services.collection_ledger import CollectionLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BrowseResult:
    """Everything a results view needs for one render."""

    page: Page[ConsolidatedCard]
    groups: dict[str, list[ConsolidatedCard]]
    total_cards: int
    active_filters: int
    stale_count: int


class CardBrowser:
    """
    Browse state over a fixed list of consolidated cards.

    Args:
        cards: The consolidated catalog
        ledger: Collection used for ownership filters and quantity changes
        defaults: Filter spec that "clear filters" returns to
        set_names: Set code -> display name, used for grouping by set
        per_page: Cards per page
    """

    def __init__(
        self,
        cards: Sequence[ConsolidatedCard],
        ledger: CollectionLedger,
        defaults: FilterSpec | None = None,
        set_names: dict[str, str] | None = None,
        per_page: int | None = None,
    ) -> None:
        self._cards = cards
        self._ledger = ledger
        self._set_names = set_names or {}
        self.defaults = defaults or FilterSpec()
        self.per_page = per_page or settings.cards_per_page

        self.filters = self.defaults
        self.sort = SortSpec()
        self.group_by = GroupBy.NONE
        self.page = 1
        self._stale: set[str] = set()

    # --- Settings ---

    def _settings_changed(self) -> None:
        self.page = 1
        self._stale.clear()

    def set_search(self, term: str) -> None:
        self.filters = replace(self.filters, search=term)
        self._settings_changed()

    def set_filters(self, filters: FilterSpec) -> None:
        self.filters = filters
        self._settings_changed()

    def set_sort(self, sort: SortSpec) -> None:
        self.sort = sort
        self._settings_changed()

    def set_group_by(self, group_by: GroupBy) -> None:
        self.group_by = group_by
        self._settings_changed()

    def clear_filters(self) -> None:
        """Back to the default filters with an empty search."""
        self.set_filters(replace(self.defaults, search=""))

    def go_to_page(self, page: int) -> None:
        self.page = page

    # --- Stale cards ---

    @property
    def stale_names(self) -> frozenset[str]:
        return frozenset(self._stale)

    def refresh_stale(self) -> None:
        """Let stale cards drop out of the results."""
        self._stale.clear()

    def _uses_ownership(self) -> bool:
        return self.filters.owned is not TriState.UNSET or self.filters.owned_count is not None

    def _matches(self, card: ConsolidatedCard) -> bool:
        return bool(
            filter_cards([card], self.filters.search, self.filters, self._ledger.get_quantities)
        )

    def change_quantity(
        self, card: ConsolidatedCard, variant: VariantType, delta: int
    ) -> VariantQuantities:
        """
        Adjust an owned quantity from the results view.

        If the card was visible and the change makes it fail an ownership
        filter, it is marked stale instead of disappearing.
        """
        watch = self._uses_ownership() and card.full_name not in self._stale
        visible_before = watch and self._matches(card)

        quantities = self._ledger.adjust(card.full_name, variant, delta)

        if visible_before and not self._matches(card):
            logger.debug("Marking %r stale after quantity change", card.full_name)
            self._stale.add(card.full_name)

        return quantities

    # --- Results ---

    def results(self) -> BrowseResult:
        """Filter, sort, group and paginate with the current settings."""
        filtered = filter_cards(
            self._cards,
            self.filters.search,
            self.filters,
            self._ledger.get_quantities,
            self._stale,
        )
        ordered = sort_cards(filtered, self.sort)
        page = paginate(ordered, self.page, self.per_page)
        self.page = page.page

        return BrowseResult(
            page=page,
            groups=group_cards(page.items, self.group_by, self._set_names),
            total_cards=len(ordered),
            active_filters=count_active_filters(self.filters, self.defaults),
            stale_count=len(self._stale),
        )
