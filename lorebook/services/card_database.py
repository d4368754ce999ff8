"""
Card catalog service.

Loads and caches the bundled card catalog (LorcanaJSON allCards.json layout):

    {"metadata": {...}, "sets": {"1": {"name": "The First Chapter", ...}}, "cards": [...]}

The catalog is immutable once loaded.
"""

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

import httpx

from lorebook.config import settings
from lorebook.models.card import CardPrint, CardType, Rarity
from lorebook.models.consolidated_card import ConsolidatedCard
from lorebook.models.filters import FilterSpec, NumericRange
from lorebook.services.consolidation import consolidate_cards

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CardCatalog:
    """
    Immutable card catalog.

    Attributes:
        prints: Every card print, in source order
        set_names: Set code -> display name
        metadata: Source metadata (format version, generation date)
    """

    prints: tuple[CardPrint, ...]
    set_names: dict[str, str] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.prints)

    def by_id(self) -> dict[int, CardPrint]:
        """Index prints by catalog id."""
        return {card.id: card for card in self.prints}


async def download_catalog(output_path: Path | None = None, url: str | None = None) -> Path:
    """
    Download the latest card catalog.

    Args:
        output_path: Where to save the file. Defaults to the configured catalog path
        url: Source URL. Defaults to the configured catalog URL

    Returns:
        Path to downloaded file.

    Raises:
        ValueError: If the payload is not a card catalog
        httpx.HTTPError: If download fails
    """
    if output_path is None:
        output_path = settings.catalog_path
    if url is None:
        url = settings.catalog_url

    output_path.parent.mkdir(parents=True, exist_ok=True)

    async with httpx.AsyncClient(timeout=60.0, follow_redirects=True) as client:
        response = await client.get(url)
        response.raise_for_status()
        data = response.json()

    if not isinstance(data, dict) or "cards" not in data:
        raise ValueError(f"Response from {url} is not a card catalog")

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f)

    return output_path


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def parse_card(raw: dict[str, Any]) -> CardPrint:
    """
    Build a CardPrint from one raw catalog record.

    Raises:
        KeyError: If a required field is missing
        ValueError: If rarity, type or a number is not recognized
    """
    name = raw["name"]
    version = raw.get("version") or None
    full_name = raw.get("fullName") or (f"{name} - {version}" if version else name)

    foil_types = raw.get("foilTypes")
    subtypes = raw.get("subtypes") or ()

    return CardPrint(
        id=int(raw["id"]),
        name=name,
        version=version,
        full_name=full_name,
        set_code=str(raw["setCode"]),
        number=int(raw["number"]),
        rarity=Rarity(raw["rarity"]),
        color=raw.get("color") or "",
        cost=int(raw["cost"]),
        type=CardType(raw["type"]),
        strength=_optional_int(raw.get("strength")),
        willpower=_optional_int(raw.get("willpower")),
        lore=_optional_int(raw.get("lore")),
        inkwell=bool(raw.get("inkwell", False)),
        subtypes=tuple(subtypes),
        story=raw.get("story") or None,
        foil_types=tuple(foil_types) if foil_types is not None else None,
    )


def parse_catalog(data: dict[str, Any]) -> CardCatalog:
    """
    Parse a catalog payload.

    Records that cannot be parsed are skipped and logged; the rest of the
    catalog still loads.
    """
    prints: list[CardPrint] = []
    skipped = 0

    for raw in data.get("cards", []):
        try:
            prints.append(parse_card(raw))
        except (KeyError, TypeError, ValueError) as e:
            skipped += 1
            logger.warning("Skipping malformed card record %r: %s", raw.get("fullName"), e)

    set_names = {
        str(code): info.get("name", str(code))
        for code, info in (data.get("sets") or {}).items()
        if isinstance(info, dict)
    }

    if skipped:
        logger.info("Loaded %d card prints (%d skipped)", len(prints), skipped)

    return CardCatalog(
        prints=tuple(prints),
        set_names=set_names,
        metadata=dict(data.get("metadata") or {}),
    )


def load_catalog(path: Path | None = None) -> CardCatalog:
    """
    Load the card catalog from file.

    Raises:
        FileNotFoundError: If the catalog file doesn't exist
    """
    if path is None:
        path = settings.catalog_path

    if not path.exists():
        raise FileNotFoundError(
            f"Card catalog not found at {path}. "
            "Run `python -m lorebook.jobs.download_cards` first."
        )

    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    return parse_catalog(data)


@lru_cache(maxsize=1)
def get_catalog() -> CardCatalog:
    """
    Get cached card catalog.

    Raises:
        FileNotFoundError: If the catalog file doesn't exist
    """
    return load_catalog()


@lru_cache(maxsize=1)
def get_consolidated_cards() -> tuple[ConsolidatedCard, ...]:
    """Consolidated view of the cached catalog, computed once."""
    return tuple(consolidate_cards(get_catalog().prints))


def stat_ranges(prints: tuple[CardPrint, ...] | list[CardPrint]) -> dict[str, NumericRange]:
    """
    Min/max of each numeric stat across the catalog.

    Stats no print carries get the range (0, 0).
    """
    values: dict[str, list[int]] = {"cost": [], "strength": [], "willpower": [], "lore": []}
    for card in prints:
        values["cost"].append(card.cost)
        for stat in ("strength", "willpower", "lore"):
            value = getattr(card, stat)
            if value is not None:
                values[stat].append(value)

    return {
        stat: NumericRange(min(found), max(found)) if found else NumericRange(0, 0)
        for stat, found in values.items()
    }


def default_filter_spec(prints: tuple[CardPrint, ...] | list[CardPrint]) -> FilterSpec:
    """Filter spec with every range spanning the whole catalog."""
    ranges = stat_ranges(prints)
    return FilterSpec(
        cost_range=ranges["cost"],
        strength_range=ranges["strength"],
        willpower_range=ranges["willpower"],
        lore_range=ranges["lore"],
    )
