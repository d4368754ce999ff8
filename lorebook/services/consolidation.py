"""
Card consolidation service.

Groups raw card prints into one ConsolidatedCard per card identity.

INVARIANTS:
1. Grouping key is full_name, case-sensitive exact match
2. Output order follows the first appearance of each identity
3. Pure transform: no I/O, input is never mutated
"""

import logging
from collections.abc import Iterable

from lorebook.models.card import NO_FOIL, CardPrint, Rarity
from lorebook.models.consolidated_card import ConsolidatedCard

logger = logging.getLogger(__name__)


def _is_regular_rarity(card: CardPrint) -> bool:
    return not card.is_variant_print


def _find_base_card(group: list[CardPrint]) -> CardPrint:
    """First non-Enchanted, non-Special print; otherwise the first print."""
    for card in group:
        if _is_regular_rarity(card):
            return card
    return group[0]


def _find_regular(group: list[CardPrint]) -> CardPrint | None:
    """First regular-rarity print without foil treatment."""
    for card in group:
        if not _is_regular_rarity(card):
            continue
        if card.foil_types is None or NO_FOIL in card.foil_types:
            return card
    return None


def _find_foil(group: list[CardPrint]) -> CardPrint | None:
    """First regular-rarity print carrying a foil treatment tag."""
    for card in group:
        if not _is_regular_rarity(card) or card.foil_types is None:
            continue
        if any(tag != NO_FOIL for tag in card.foil_types):
            return card
    return None


def _find_enchanted(group: list[CardPrint]) -> CardPrint | None:
    enchanted = [card for card in group if card.rarity == Rarity.ENCHANTED]
    if len(enchanted) > 1:
        logger.debug(
            "%d Enchanted prints for %r, keeping id %d",
            len(enchanted),
            enchanted[0].full_name,
            enchanted[0].id,
        )
    return enchanted[0] if enchanted else None


def consolidate_group(full_name: str, group: list[CardPrint]) -> ConsolidatedCard:
    """
    Build one ConsolidatedCard from the prints sharing a full name.

    Args:
        full_name: The shared identity
        group: Non-empty list of prints, in source order
    """
    return ConsolidatedCard(
        full_name=full_name,
        base_card=_find_base_card(group),
        regular=_find_regular(group),
        foil=_find_foil(group),
        enchanted=_find_enchanted(group),
        special=tuple(card for card in group if card.rarity == Rarity.SPECIAL),
    )


def consolidate_cards(prints: Iterable[CardPrint]) -> list[ConsolidatedCard]:
    """
    Group card prints into consolidated cards.

    Args:
        prints: Every card print, in source order

    Returns:
        One ConsolidatedCard per distinct full_name. Empty input gives an
        empty list.
    """
    groups: dict[str, list[CardPrint]] = {}
    for card in prints:
        groups.setdefault(card.full_name, []).append(card)

    return [consolidate_group(full_name, group) for full_name, group in groups.items()]


def available_rarities(card: ConsolidatedCard) -> list[str]:
    """
    Every rarity a consolidated card can be owned in.

    The regular print's rarity (the base card's when there is no regular
    print), plus Enchanted and Special when those variants exist.
    """
    rarities: list[str] = [(card.regular or card.base_card).rarity.value]

    if card.has_enchanted:
        rarities.append(Rarity.ENCHANTED.value)
    if card.has_special:
        rarities.append(Rarity.SPECIAL.value)

    return list(dict.fromkeys(rarities))
