"""Tests for deck validation and deck projections."""

from dataclasses import replace

import pytest

from lorebook.models.card import CardType, Rarity
from lorebook.models.deck import Deck, DeckCard
from lorebook.services.deck_validation import (
    compare_deck_versions,
    deck_base_colors,
    deck_hash,
    deck_statistics,
    deck_summary,
    ink_distribution,
    validate_deck,
)


@pytest.fixture
def build_deck(make_card):
    """Build a deck from (color, quantity) pairs, one distinct card per pair."""

    def build(*slots: tuple[str, int], inkwell: bool = True, cost: int = 2) -> Deck:
        cards = [
            DeckCard(
                card=make_card(
                    id=index + 1,
                    name=f"Card {index + 1}",
                    color=color,
                    inkwell=inkwell,
                    cost=cost,
                ),
                quantity=quantity,
            )
            for index, (color, quantity) in enumerate(slots)
        ]
        return Deck(name="Test Deck", cards=cards)

    return build


def legal_slots() -> list[tuple[str, int]]:
    """Fifteen playsets split across two colors: 60 cards."""
    return [("Amber", 4)] * 8 + [("Steel", 4)] * 7


class TestDeckSize:
    def test_exactly_sixty_is_valid(self, build_deck) -> None:
        deck = build_deck(*legal_slots())
        # 16 inkwell copies, inside the recommended range
        for dc in deck.cards[4:]:
            dc.card = replace(dc.card, inkwell=False)

        result = validate_deck(deck)

        assert result.is_valid
        assert result.errors == []
        assert result.warnings == []

    @pytest.mark.parametrize("total", [0, 1, 59, 61, 64])
    def test_other_sizes_are_invalid(self, build_deck, total: int) -> None:
        slots = [("Amber", 4)] * (total // 4)
        if total % 4:
            slots.append(("Amber", total % 4))

        assert not validate_deck(build_deck(*slots)).is_valid

    def test_missing_one_card(self, build_deck) -> None:
        """Scenario: 59 cards in two colors fails only on size."""
        deck = build_deck(*([("Amber", 4)] * 14), ("Amethyst", 3))

        result = validate_deck(deck)

        assert not result.is_valid
        assert result.errors == ["Deck needs 1 more card (currently 59/60)"]

    def test_too_many_cards(self, build_deck) -> None:
        deck = build_deck(*([("Amber", 4)] * 15), ("Amber", 2))

        assert validate_deck(deck).errors == ["Deck has 2 too many cards (currently 62/60)"]


class TestCardRules:
    def test_copy_limit_names_each_card(self, build_deck) -> None:
        deck = build_deck(("Amber", 5), ("Amber", 6), ("Amber", 4))

        errors = validate_deck(deck).errors

        assert '"Card 1" exceeds 4-copy limit (5 copies)' in errors
        assert '"Card 2" exceeds 4-copy limit (6 copies)' in errors

    def test_invalid_quantity_reported_once(self, build_deck) -> None:
        deck = build_deck(("Amber", 0), ("Amber", -1))

        errors = validate_deck(deck).errors

        assert errors.count("Deck contains cards with invalid quantities") == 1

    def test_three_colors(self, build_deck) -> None:
        deck = build_deck(("Ruby", 4), ("Amber", 4), ("Amethyst", 4))

        errors = validate_deck(deck).errors

        assert "Deck has more than 2 ink colors (3 colors: Amber, Amethyst, Ruby)" in errors

    def test_dual_ink_counts_both_colors(self, build_deck) -> None:
        deck = build_deck(("Amber-Amethyst", 4), ("Steel", 4))

        assert deck_base_colors(deck) == {"Amber", "Amethyst", "Steel"}
        assert any("3 colors" in error for error in validate_deck(deck).errors)

    def test_dual_ink_within_two_colors(self, build_deck) -> None:
        """Amber, Amethyst and an Amber-Amethyst card form a two-color deck."""
        deck = build_deck(("Amber", 4), ("Amethyst", 4), ("Amber-Amethyst", 4))

        assert deck_base_colors(deck) == {"Amber", "Amethyst"}
        assert not any("ink colors" in error for error in validate_deck(deck).errors)
        assert not any("dual-ink" in error for error in validate_deck(deck).errors)


class TestInkwellWarnings:
    def test_too_few(self, build_deck) -> None:
        deck = build_deck(("Amber", 4), inkwell=True)

        result = validate_deck(deck)

        assert result.warnings == [
            "Only 4 inkwell cards. Consider adding more (recommended: 12-20)."
        ]

    def test_too_many(self, build_deck) -> None:
        deck = build_deck(*legal_slots())

        result = validate_deck(deck)

        assert result.is_valid
        assert result.warnings == [
            "60 inkwell cards might be too many. Consider reducing (recommended: 12-20)."
        ]


class TestProjections:
    def test_summary(self, build_deck) -> None:
        deck = build_deck(("Amber", 4), ("Amber-Steel", 2), ("", 1))

        summary = deck_summary(deck)

        assert summary.card_count == 7
        assert summary.ink_distribution == {"Amber": 6, "Steel": 2, "None": 1}
        assert not summary.is_valid
        assert summary.id == deck.id
        assert ink_distribution(deck) == summary.ink_distribution

    def test_statistics(self, make_card) -> None:
        deck = Deck(
            name="Curve",
            cards=[
                DeckCard(make_card(id=1, cost=1, type=CardType.ITEM), 4),
                DeckCard(make_card(id=2, cost=3, rarity=Rarity.RARE, inkwell=False), 2),
                DeckCard(make_card(id=3, cost=9, color="Ruby"), 2),
            ],
        )

        stats = deck_statistics(deck)

        assert stats["total_cards"] == 8
        assert stats["unique_cards"] == 3
        assert stats["average_cost"] == 3.5
        assert stats["inkwell_count"] == 6
        assert stats["inkwell_percentage"] == 75
        assert stats["ink_distribution"] == {"Amber": 6, "Ruby": 2}
        assert stats["type_distribution"] == {"Item": 4, "Character": 4}
        assert stats["rarity_distribution"] == {"Common": 6, "Rare": 2}
        assert stats["cost_curve"][1] == {"cost": "1", "count": 4}
        assert stats["cost_curve"][-1] == {"cost": "7+", "count": 2}

    def test_statistics_of_empty_deck(self) -> None:
        stats = deck_statistics(Deck(name="Empty"))

        assert stats["average_cost"] == 0.0
        assert stats["inkwell_percentage"] == 0
        assert len(stats["cost_curve"]) == 8


class TestDeckVersions:
    def test_compare(self, build_deck) -> None:
        old = build_deck(("Amber", 4), ("Amber", 2), ("Amber", 1))
        new = build_deck(("Amber", 4), ("Amber", 3))

        changes = compare_deck_versions(old, new)

        assert [(c.type, c.card_name, c.old_quantity, c.new_quantity) for c in changes] == [
            ("modified", "Card 2", 2, 3),
            ("removed", "Card 3", 1, None),
        ]

    def test_hash_ignores_order_and_metadata(self, build_deck) -> None:
        deck = build_deck(("Amber", 4), ("Steel", 2))
        reordered = Deck(name="Renamed", cards=list(reversed(deck.cards)))

        assert deck_hash(deck) == deck_hash(reordered)

    def test_hash_changes_with_quantity(self, build_deck) -> None:
        deck = build_deck(("Amber", 4), ("Steel", 2))
        before = deck_hash(deck)

        deck.set_card_quantity(2, 3)

        assert deck_hash(deck) != before
