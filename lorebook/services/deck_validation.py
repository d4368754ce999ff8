"""
Deck validation service.

Checks a deck against the constructed-format rules and derives read-only
projections (summary, statistics, diffs).

Rules:
1. Exactly DECK_SIZE cards
2. At most MAX_COPIES_PER_CARD copies of any card
3. No card with a non-positive quantity
4. At most MAX_INK_COLORS base ink colors (dual-ink cards count both)
5. Dual-ink cards only use the deck's base colors
6. Inkwell copies within [INKWELL_MIN, INKWELL_MAX] (warning only)

Validation is a pure function of the deck and never raises. An invalid deck
can still be saved.
"""

import hashlib
from collections.abc import Iterable

from lorebook.config import (
    DECK_SIZE,
    INKWELL_MAX,
    INKWELL_MIN,
    MAX_COPIES_PER_CARD,
    MAX_INK_COLORS,
)
from lorebook.models.card import split_colors
from lorebook.models.deck import Deck, DeckChange, DeckSummary, DeckValidationResult

NO_INK_LABEL = "None"


def _cards(count: int) -> str:
    return "card" if count == 1 else "cards"


def deck_base_colors(deck: Deck) -> set[str]:
    """Union of base ink colors across every card in the deck."""
    colors: set[str] = set()
    for deck_card in deck.cards:
        colors.update(split_colors(deck_card.card.color))
    return colors


def _check_size(total: int) -> str | None:
    if total < DECK_SIZE:
        missing = DECK_SIZE - total
        return f"Deck needs {missing} more {_cards(missing)} (currently {total}/{DECK_SIZE})"
    if total > DECK_SIZE:
        extra = total - DECK_SIZE
        return f"Deck has {extra} too many {_cards(extra)} (currently {total}/{DECK_SIZE})"
    return None


def _check_dual_inks(deck: Deck, identity_colors: set[str]) -> str | None:
    """
    Dual-ink cards must only use the given identity colors.

    When the identity is the deck's own base-color set this always passes;
    it becomes meaningful if a deck ever declares its colors separately.
    """
    for deck_card in deck.cards:
        colors = split_colors(deck_card.card.color)
        if len(colors) > 1 and not set(colors) <= identity_colors:
            return "Deck contains dual-ink cards with colors not in the deck's base colors"
    return None


def inkwell_count(deck: Deck) -> int:
    """Copies of inkwell-eligible cards."""
    return sum(dc.quantity for dc in deck.cards if dc.card.inkwell)


def validate_deck(deck: Deck) -> DeckValidationResult:
    """
    Validate a deck against the format rules.

    Returns:
        DeckValidationResult; is_valid is True only when there are no
        errors. Warnings never affect validity.
    """
    errors: list[str] = []
    warnings: list[str] = []

    size_error = _check_size(deck.total_cards())
    if size_error:
        errors.append(size_error)

    for deck_card in deck.cards:
        if deck_card.quantity > MAX_COPIES_PER_CARD:
            errors.append(
                f'"{deck_card.card.display_name}" exceeds {MAX_COPIES_PER_CARD}-copy limit '
                f"({deck_card.quantity} copies)"
            )

    if any(deck_card.quantity <= 0 for deck_card in deck.cards):
        errors.append("Deck contains cards with invalid quantities")

    base_colors = deck_base_colors(deck)
    if len(base_colors) > MAX_INK_COLORS:
        errors.append(
            f"Deck has more than {MAX_INK_COLORS} ink colors "
            f"({len(base_colors)} colors: {', '.join(sorted(base_colors))})"
        )

    dual_ink_error = _check_dual_inks(deck, base_colors)
    if dual_ink_error:
        errors.append(dual_ink_error)

    inkwell = inkwell_count(deck)
    if inkwell < INKWELL_MIN:
        warnings.append(
            f"Only {inkwell} inkwell cards. Consider adding more "
            f"(recommended: {INKWELL_MIN}-{INKWELL_MAX})."
        )
    elif inkwell > INKWELL_MAX:
        warnings.append(
            f"{inkwell} inkwell cards might be too many. Consider reducing "
            f"(recommended: {INKWELL_MIN}-{INKWELL_MAX})."
        )

    return DeckValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def ink_distribution(deck: Deck) -> dict[str, int]:
    """
    Copies per ink color.

    Dual-ink cards count toward both of their colors; colorless cards are
    counted under "None".
    """
    distribution: dict[str, int] = {}
    for deck_card in deck.cards:
        colors = split_colors(deck_card.card.color) or (NO_INK_LABEL,)
        for color in colors:
            distribution[color] = distribution.get(color, 0) + deck_card.quantity
    return distribution


def deck_summary(deck: Deck) -> DeckSummary:
    """Listing projection of a deck, recomputed on every call."""
    return DeckSummary(
        id=deck.id,
        name=deck.name,
        description=deck.description,
        card_count=deck.total_cards(),
        ink_distribution=ink_distribution(deck),
        is_valid=validate_deck(deck).is_valid,
        created_at=deck.created_at,
        updated_at=deck.updated_at,
    )


def _distribution(pairs: Iterable[tuple[str, int]]) -> dict[str, int]:
    result: dict[str, int] = {}
    for key, quantity in pairs:
        result[key] = result.get(key, 0) + quantity
    return result


def deck_statistics(deck: Deck) -> dict[str, object]:
    """
    Distribution statistics for deck building.

    The cost curve has one bucket per cost 0-6 and a final "7+" bucket.
    """
    total = deck.total_cards()

    cost_distribution: dict[int, int] = {}
    for dc in deck.cards:
        cost_distribution[dc.card.cost] = cost_distribution.get(dc.card.cost, 0) + dc.quantity

    curve = [
        {"cost": str(cost), "count": cost_distribution.get(cost, 0)} for cost in range(7)
    ]
    curve.append(
        {
            "cost": "7+",
            "count": sum(count for cost, count in cost_distribution.items() if cost >= 7),
        }
    )

    inkwell = inkwell_count(deck)
    average_cost = (
        sum(dc.card.cost * dc.quantity for dc in deck.cards) / total if total > 0 else 0.0
    )

    return {
        "total_cards": total,
        "unique_cards": deck.unique_cards(),
        "cost_distribution": cost_distribution,
        "ink_distribution": _distribution(
            (dc.card.color or NO_INK_LABEL, dc.quantity) for dc in deck.cards
        ),
        "type_distribution": _distribution((dc.card.type.value, dc.quantity) for dc in deck.cards),
        "rarity_distribution": _distribution(
            (dc.card.rarity.value, dc.quantity) for dc in deck.cards
        ),
        "average_cost": round(average_cost, 1),
        "inkwell_count": inkwell,
        "inkwell_percentage": round(inkwell / total * 100) if total > 0 else 0,
        "cost_curve": curve,
    }


def compare_deck_versions(old: Deck, new: Deck) -> list[DeckChange]:
    """List cards added, modified and removed between two versions of a deck."""
    changes: list[DeckChange] = []
    old_cards = {dc.id: dc for dc in old.cards}
    new_ids = {dc.id for dc in new.cards}

    for dc in new.cards:
        previous = old_cards.get(dc.id)
        if previous is None:
            changes.append(DeckChange("added", dc.card.display_name, new_quantity=dc.quantity))
        elif previous.quantity != dc.quantity:
            changes.append(
                DeckChange(
                    "modified",
                    dc.card.display_name,
                    old_quantity=previous.quantity,
                    new_quantity=dc.quantity,
                )
            )

    for dc in old.cards:
        if dc.id not in new_ids:
            changes.append(DeckChange("removed", dc.card.display_name, old_quantity=dc.quantity))

    return changes


def deck_hash(deck: Deck) -> str:
    """Stable digest of a deck's contents (card ids and quantities only)."""
    canonical = ",".join(f"{dc.id}:{dc.quantity}" for dc in sorted(deck.cards, key=lambda d: d.id))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]
