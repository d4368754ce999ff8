"""Tests for filtering, sorting, grouping and pagination of consolidated cards."""

import pytest

from lorebook.models.card import CardType, Rarity
from lorebook.models.collection import VariantQuantities
from lorebook.models.consolidated_card import ConsolidatedCard
from lorebook.models.filters import (
    ColorMatchMode,
    CountFilter,
    CountOperator,
    FilterSpec,
    GroupBy,
    NumericRange,
    SortDirection,
    SortField,
    SortSpec,
    TriState,
)
from lorebook.services.card_filtering import (
    count_active_filters,
    filter_cards,
    group_cards,
    paginate,
    rarity_rank,
    sort_cards,
)
from lorebook.services.consolidation import consolidate_cards


def nothing_owned(_full_name: str) -> VariantQuantities:
    return VariantQuantities()


def owning(**totals: int):
    """Lookup where the given full names (underscored keys) own regular copies."""
    owned = {name.replace("_", " "): count for name, count in totals.items()}

    def lookup(full_name: str) -> VariantQuantities:
        return VariantQuantities(regular=owned.get(full_name, 0))

    return lookup


def names(cards: list[ConsolidatedCard]) -> list[str]:
    return [card.full_name for card in cards]


class TestFilterCards:
    def test_empty_spec_keeps_everything(self, sample_cards: list[ConsolidatedCard]) -> None:
        result = filter_cards(sample_cards, "", FilterSpec(), nothing_owned)
        assert result == sample_cards

    def test_search_matches_name_version_and_story(
        self, sample_cards: list[ConsolidatedCard]
    ) -> None:
        assert names(filter_cards(sample_cards, "elsa", FilterSpec(), nothing_owned)) == [
            "Elsa - Snow Queen"
        ]
        assert names(filter_cards(sample_cards, "ROCK STAR", FilterSpec(), nothing_owned)) == [
            "Stitch - Rock Star"
        ]
        assert names(filter_cards(sample_cards, "frozen", FilterSpec(), nothing_owned)) == [
            "Elsa - Snow Queen"
        ]

    def test_set_membership(self, sample_cards: list[ConsolidatedCard]) -> None:
        spec = FilterSpec(sets=frozenset({"2"}))
        assert names(filter_cards(sample_cards, "", spec, nothing_owned)) == [
            "Belle - Inventive Engineer"
        ]

    def test_exact_color_membership(self, sample_cards: list[ConsolidatedCard]) -> None:
        """Dual-ink cards only match their composite color string."""
        spec = FilterSpec(colors=frozenset({"Steel"}))
        assert filter_cards(sample_cards, "", spec, nothing_owned) == []

        spec = FilterSpec(colors=frozenset({"Amber-Steel"}))
        assert names(filter_cards(sample_cards, "", spec, nothing_owned)) == [
            "Belle - Inventive Engineer"
        ]

    def test_any_color_mode_matches_dual_ink(self, sample_cards: list[ConsolidatedCard]) -> None:
        spec = FilterSpec(colors=frozenset({"Steel"}), color_mode=ColorMatchMode.ANY)
        assert names(filter_cards(sample_cards, "", spec, nothing_owned)) == [
            "Belle - Inventive Engineer"
        ]

    def test_only_color_mode(self, sample_cards: list[ConsolidatedCard]) -> None:
        single = FilterSpec(colors=frozenset({"Amber"}), color_mode=ColorMatchMode.ONLY)
        result = names(filter_cards(sample_cards, "", single, nothing_owned))
        assert "Belle - Inventive Engineer" not in result
        assert "Mickey Mouse - Brave Little Tailor" in result

        both = FilterSpec(colors=frozenset({"Amber", "Steel"}), color_mode=ColorMatchMode.ONLY)
        result = names(filter_cards(sample_cards, "", both, nothing_owned))
        assert "Belle - Inventive Engineer" in result
        assert "Elsa - Snow Queen" not in result

    def test_colorless_selection(self, make_card) -> None:
        cards = consolidate_cards([make_card(id=1, color=""), make_card(id=2, name="Other")])
        spec = FilterSpec(colors=frozenset({""}))
        assert names(filter_cards(cards, "", spec, nothing_owned)) == ["Test Card"]

    def test_type_story_and_subtype(self, sample_cards: list[ConsolidatedCard]) -> None:
        spec = FilterSpec(types=frozenset({CardType.ITEM.value}))
        assert names(filter_cards(sample_cards, "", spec, nothing_owned)) == ["Dinglehopper"]

        spec = FilterSpec(stories=frozenset({"The Lion King"}))
        assert names(filter_cards(sample_cards, "", spec, nothing_owned)) == ["Be Prepared"]

        spec = FilterSpec(subtypes=frozenset({"Queen", "Floodborn"}))
        assert names(filter_cards(sample_cards, "", spec, nothing_owned)) == [
            "Elsa - Snow Queen",
            "Stitch - Rock Star",
        ]

    def test_cost_list_and_range_both_apply(self, sample_cards: list[ConsolidatedCard]) -> None:
        spec = FilterSpec(costs=frozenset({1, 8}), cost_range=NumericRange(0, 5))
        assert names(filter_cards(sample_cards, "", spec, nothing_owned)) == ["Dinglehopper"]

    def test_missing_stat_passes_range(self, sample_cards: list[ConsolidatedCard]) -> None:
        """Items and actions have no strength, so a strength range never excludes them."""
        spec = FilterSpec(strength_range=NumericRange(4, 10))
        assert names(filter_cards(sample_cards, "", spec, nothing_owned)) == [
            "Mickey Mouse - Brave Little Tailor",
            "Dinglehopper",
            "Be Prepared",
        ]

    def test_inkwell_tristate(self, sample_cards: list[ConsolidatedCard]) -> None:
        spec = FilterSpec(inkwell=TriState.FALSE)
        assert names(filter_cards(sample_cards, "", spec, nothing_owned)) == [
            "Mickey Mouse - Brave Little Tailor"
        ]

    def test_variant_flags(self, sample_cards: list[ConsolidatedCard]) -> None:
        spec = FilterSpec(has_enchanted=TriState.TRUE)
        assert names(filter_cards(sample_cards, "", spec, nothing_owned)) == [
            "Mickey Mouse - Brave Little Tailor"
        ]
        spec = FilterSpec(has_special=TriState.TRUE)
        assert names(filter_cards(sample_cards, "", spec, nothing_owned)) == [
            "Stitch - Rock Star"
        ]

    def test_rarity_matches_any_available_rarity(
        self, sample_cards: list[ConsolidatedCard]
    ) -> None:
        spec = FilterSpec(rarities=frozenset({Rarity.ENCHANTED.value}))
        assert names(filter_cards(sample_cards, "", spec, nothing_owned)) == [
            "Mickey Mouse - Brave Little Tailor"
        ]

    def test_owned_tristate(self, sample_cards: list[ConsolidatedCard]) -> None:
        lookup = owning(Dinglehopper=2)

        owned = filter_cards(sample_cards, "", FilterSpec(owned=TriState.TRUE), lookup)
        assert names(owned) == ["Dinglehopper"]

        missing = filter_cards(sample_cards, "", FilterSpec(owned=TriState.FALSE), lookup)
        assert "Dinglehopper" not in names(missing)
        assert len(missing) == len(sample_cards) - 1

    @pytest.mark.parametrize(
        ("operator", "value", "expected"),
        [
            (CountOperator.EQ, 2, ["Dinglehopper"]),
            (CountOperator.GTE, 3, []),
            (CountOperator.LTE, 0, ["Be Prepared"]),
        ],
    )
    def test_owned_count(
        self,
        sample_cards: list[ConsolidatedCard],
        operator: CountOperator,
        value: int,
        expected: list[str],
    ) -> None:
        subset = [c for c in sample_cards if c.full_name in ("Dinglehopper", "Be Prepared")]
        spec = FilterSpec(owned_count=CountFilter(operator, value))
        assert names(filter_cards(subset, "", spec, owning(Dinglehopper=2))) == expected

    def test_stale_cards_bypass_every_criterion(
        self, sample_cards: list[ConsolidatedCard]
    ) -> None:
        """Scenario: an owned-only view keeps a card whose last copy was just removed."""
        spec = FilterSpec(owned=TriState.TRUE)

        without = filter_cards(sample_cards, "", spec, nothing_owned)
        with_stale = filter_cards(
            sample_cards, "", spec, nothing_owned, stale_names={"Elsa - Snow Queen"}
        )

        assert without == []
        assert names(with_stale) == ["Elsa - Snow Queen"]

    def test_stale_set_only_adds(self, sample_cards: list[ConsolidatedCard]) -> None:
        spec = FilterSpec(colors=frozenset({"Amber"}))
        base = filter_cards(sample_cards, "", spec, nothing_owned)
        stale = filter_cards(sample_cards, "", spec, nothing_owned, stale_names={"Be Prepared"})

        assert set(names(base)) <= set(names(stale))


class TestCountActiveFilters:
    def test_empty_spec(self) -> None:
        assert count_active_filters(FilterSpec()) == 0

    def test_lists_ranges_and_flags(self) -> None:
        spec = FilterSpec(
            colors=frozenset({"Amber", "Steel"}),
            cost_range=NumericRange(2, 5),
            inkwell=TriState.TRUE,
            owned_count=CountFilter(CountOperator.GTE, 1),
        )
        assert count_active_filters(spec) == 5

    def test_range_equal_to_default_is_inactive(self) -> None:
        defaults = FilterSpec(cost_range=NumericRange(0, 10))
        assert count_active_filters(defaults, defaults) == 0

    def test_counts_relative_to_defaults(self) -> None:
        defaults = FilterSpec(
            colors=frozenset({"Amber"}),
            inkwell=TriState.TRUE,
            owned_count=CountFilter(CountOperator.GTE, 1),
        )
        assert count_active_filters(defaults, defaults) == 0

        changed = FilterSpec(
            colors=frozenset({"Steel"}),
            inkwell=TriState.FALSE,
            owned_count=CountFilter(CountOperator.GTE, 1),
        )
        # Amber deselected, Steel selected, inkwell flipped
        assert count_active_filters(changed, defaults) == 3


class TestSortCards:
    def test_rarity_sort_with_tiebreak_is_deterministic(self, make_card) -> None:
        """Scenario: equal rarities order by full name ascending."""
        cards = consolidate_cards(
            [
                make_card(id=1, name="Zeta", rarity=Rarity.RARE),
                make_card(id=2, name="alpha", rarity=Rarity.RARE),
                make_card(id=3, name="Mid", rarity=Rarity.COMMON),
            ]
        )

        sort = SortSpec(SortField.RARITY, SortDirection.ASC)
        result = sort_cards(cards, sort)

        assert names(result) == ["Mid", "alpha", "Zeta"]
        assert sort_cards(list(reversed(cards)), sort) == result

    def test_descending(self, sample_cards: list[ConsolidatedCard]) -> None:
        result = sort_cards(sample_cards, SortSpec(SortField.COST, SortDirection.DESC))
        costs = [card.base_card.cost for card in result]
        assert costs == sorted(costs, reverse=True)

    def test_returns_new_list(self, sample_cards: list[ConsolidatedCard]) -> None:
        snapshot = list(sample_cards)
        result = sort_cards(sample_cards, SortSpec(SortField.NAME, SortDirection.ASC))
        assert result is not sample_cards
        assert sample_cards == snapshot

    def test_missing_stats_sort_as_zero(self, sample_cards: list[ConsolidatedCard]) -> None:
        result = sort_cards(sample_cards, SortSpec(SortField.STRENGTH, SortDirection.ASC))
        assert names(result)[:2] == ["Be Prepared", "Dinglehopper"]

    def test_rarity_rank(self) -> None:
        assert rarity_rank("Common") < rarity_rank("Super Rare") < rarity_rank("Enchanted")
        assert rarity_rank("Mythic") == -1


class TestGroupCards:
    def test_none_is_empty(self, sample_cards: list[ConsolidatedCard]) -> None:
        assert group_cards(sample_cards, GroupBy.NONE) == {}

    def test_set_labels_use_display_names(self, sample_cards: list[ConsolidatedCard]) -> None:
        groups = group_cards(sample_cards, GroupBy.SET, {"1": "The First Chapter"})
        assert list(groups) == ["The First Chapter", "2"]

    def test_first_encountered_order(self, sample_cards: list[ConsolidatedCard]) -> None:
        ordered = sort_cards(sample_cards, SortSpec(SortField.COST, SortDirection.ASC))
        groups = group_cards(ordered, GroupBy.COST)

        assert list(groups)[:3] == ["Cost 1", "Cost 2", "Cost 3"]
        assert sum(len(members) for members in groups.values()) == len(sample_cards)

    def test_missing_story_and_color_labels(self, make_card) -> None:
        cards = consolidate_cards([make_card(id=1, color="", story=None)])
        assert list(group_cards(cards, GroupBy.COLOR)) == ["No Ink Color"]
        assert list(group_cards(cards, GroupBy.STORY)) == ["No Story"]


class TestPaginate:
    def test_slices_pages(self) -> None:
        page = paginate(list(range(25)), 2, 10)

        assert page.items == list(range(10, 20))
        assert page.total_pages == 3
        assert page.start_index == 10
        assert page.end_index == 20
        assert page.has_next and page.has_previous

    def test_clamps_page_number(self) -> None:
        assert paginate(list(range(5)), 9, 2).page == 3
        assert paginate(list(range(5)), 0, 2).page == 1

    def test_empty_has_one_page(self) -> None:
        page = paginate([], 1, 10)
        assert page.total_pages == 1
        assert page.items == []
        assert not page.has_next

    def test_rejects_non_positive_page_size(self) -> None:
        with pytest.raises(ValueError):
            paginate([1], 1, 0)
