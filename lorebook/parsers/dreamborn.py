"""
Parser for the Dreamborn collection export.

Dreamborn exports one row per card with separate Normal and Foil counts:

    Normal	Foil	Name	Set	Card Number	Color	Rarity	Price	Foil Price
    2	1	Mickey Mouse - Brave Little Tailor	1	115	Amber	Legendary	...

The file may be tab or comma separated. Header names are matched loosely
(case-insensitive substrings) so minor export changes do not break imports.
"""

import csv
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from io import StringIO

from lorebook.models.card import Rarity
from lorebook.models.consolidated_card import ConsolidatedCard
from lorebook.models.failure import ImportFormatError

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("Normal", "Foil", "Name")

# A header with at least this many columns identifies the separator outright
EXPECTED_COLUMN_COUNT = 9

LEADING_INT_PATTERN = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True, slots=True)
class DreambornRow:
    """One export row that carries at least one copy."""

    name: str
    normal: int
    foil: int
    set_code: str = ""
    card_number: str = ""
    color: str = ""
    rarity: str = ""
    price: str = ""
    foil_price: str = ""


@dataclass(frozen=True, slots=True)
class ImportedCard:
    """A Dreamborn row matched to a catalog card."""

    card: ConsolidatedCard
    normal_quantity: int
    foil_quantity: int
    is_enchanted: bool = False
    is_special: bool = False

    @property
    def total(self) -> int:
        return self.normal_quantity + self.foil_quantity


@dataclass(frozen=True, slots=True)
class ImportReport:
    """Outcome of a Dreamborn import."""

    cards: list[ImportedCard]
    rows_with_quantity: int
    unmatched: list[str]

    @property
    def matched_count(self) -> int:
        return len(self.cards)

    @property
    def unmatched_count(self) -> int:
        return len(self.unmatched)

    @property
    def total_cards(self) -> int:
        return sum(card.total for card in self.cards)

    @property
    def enchanted_count(self) -> int:
        return sum(1 for card in self.cards if card.is_enchanted)

    def summary(self) -> str:
        return (
            f"Successfully imported {self.total_cards} cards "
            f"({self.matched_count} unique cards, {self.enchanted_count} enchanted variants)"
        )


def detect_separator(header: str) -> str:
    """
    Pick the column separator from the header line.

    Tab wins if it yields the full column set, then comma. Otherwise the
    separator producing more columns is used (comma on a tie).
    """
    tab_count = len(header.split("\t"))
    comma_count = len(header.split(","))

    if "\t" in header and tab_count >= EXPECTED_COLUMN_COUNT:
        return "\t"
    if "," in header and comma_count >= EXPECTED_COLUMN_COUNT:
        return ","
    return "\t" if tab_count > comma_count else ","


def _column_for(header: str) -> str | None:
    """Map a raw header cell to a canonical column name."""
    clean = header.strip().lower()
    if "normal" in clean:
        return "Normal"
    if "foil" in clean and "price" not in clean:
        return "Foil"
    if "name" in clean and "set" not in clean:
        return "Name"
    if "set" in clean:
        return "Set"
    if "card" in clean and "number" in clean:
        return "Card Number"
    if "color" in clean:
        return "Color"
    if "rarity" in clean:
        return "Rarity"
    if "price" in clean and "foil" not in clean:
        return "Price"
    if "foil" in clean and "price" in clean:
        return "Foil Price"
    return None


def map_headers(headers: list[str]) -> dict[str, int]:
    """
    Map canonical column names to their index.

    A later header matching the same column replaces an earlier one.
    """
    mapping: dict[str, int] = {}
    for index, header in enumerate(headers):
        column = _column_for(header)
        if column is not None:
            mapping[column] = index
    return mapping


def parse_quantity(value: str) -> int:
    """Parse a count leniently: leading digits are used, anything else is 0."""
    match = LEADING_INT_PATTERN.match(value or "")
    if not match:
        return 0
    return max(0, int(match.group(1)))


def parse_dreamborn_csv(text: str) -> list[DreambornRow]:
    """
    Parse a Dreamborn export into rows that carry at least one copy.

    Raises:
        ImportFormatError: If there is no data row or a required column
            is missing
    """
    lines = [
        line
        for line in text.replace("\r\n", "\n").replace("\r", "\n").strip().split("\n")
        if line.strip()
    ]
    if len(lines) < 2:
        raise ImportFormatError(
            "CSV file must contain at least a header row and one data row",
            f"Found {len(lines)} non-blank line(s)",
        )

    separator = detect_separator(lines[0])
    reader = csv.reader(StringIO("\n".join(lines)), delimiter=separator)

    headers = [cell.strip().replace('"', "") for cell in next(reader)]
    columns = map_headers(headers)

    missing = [column for column in REQUIRED_COLUMNS if column not in columns]
    if missing:
        raise ImportFormatError(
            f"Missing required columns: {', '.join(missing)}",
            f"Found headers: {', '.join(headers)}",
        )

    def cell(values: list[str], column: str) -> str:
        index = columns.get(column)
        if index is None or index >= len(values):
            return ""
        return values[index].strip().replace('"', "")

    rows: list[DreambornRow] = []
    processed = 0
    for values in reader:
        processed += 1
        normal = parse_quantity(cell(values, "Normal"))
        foil = parse_quantity(cell(values, "Foil"))
        if normal == 0 and foil == 0:
            continue

        rows.append(
            DreambornRow(
                name=cell(values, "Name"),
                normal=normal,
                foil=foil,
                set_code=cell(values, "Set"),
                card_number=cell(values, "Card Number"),
                color=cell(values, "Color"),
                rarity=cell(values, "Rarity"),
                price=cell(values, "Price"),
                foil_price=cell(values, "Foil Price"),
            )
        )

    logger.info(
        "Parsed Dreamborn export: %d rows, %d with quantities (separator %r)",
        processed,
        len(rows),
        separator,
    )
    return rows


class CardMatcher:
    """
    Resolves export names to consolidated cards.

    Names match the base card's full name exactly. Rows whose rarity is
    Enchanted or Special may also match that variant print's full name.
    The first matching card wins.
    """

    def __init__(self, cards: Iterable[ConsolidatedCard]) -> None:
        self._by_name: dict[str, ConsolidatedCard] = {}
        self._by_enchanted: dict[str, ConsolidatedCard] = {}
        self._by_special: dict[str, ConsolidatedCard] = {}

        for card in cards:
            self._by_name.setdefault(card.base_card.full_name, card)
            if card.enchanted is not None:
                self._by_enchanted.setdefault(card.enchanted.full_name, card)
            for special in card.special:
                self._by_special.setdefault(special.full_name, card)

    def match(self, name: str, rarity: str = "") -> ConsolidatedCard | None:
        name = name.strip()
        card = self._by_name.get(name)
        if card is not None:
            return card
        if rarity == Rarity.ENCHANTED.value:
            return self._by_enchanted.get(name)
        if rarity == Rarity.SPECIAL.value:
            return self._by_special.get(name)
        return None


def match_card(row: DreambornRow, cards: Iterable[ConsolidatedCard]) -> ConsolidatedCard | None:
    """Find the catalog card for a single export row."""
    return CardMatcher(cards).match(row.name, row.rarity)


def import_dreamborn_collection(text: str, cards: Iterable[ConsolidatedCard]) -> ImportReport:
    """
    Parse a Dreamborn export and match every row against the catalog.

    Unmatched rows are skipped and listed in the report; they never abort
    the import.

    Raises:
        ImportFormatError: If the file itself cannot be parsed
    """
    rows = parse_dreamborn_csv(text)
    matcher = CardMatcher(cards)

    imported: list[ImportedCard] = []
    unmatched: list[str] = []
    for row in rows:
        card = matcher.match(row.name, row.rarity)
        if card is None:
            unmatched.append(row.name)
            logger.debug(
                "No catalog match for %r (set %s, rarity %s)", row.name, row.set_code, row.rarity
            )
            continue

        imported.append(
            ImportedCard(
                card=card,
                normal_quantity=row.normal,
                foil_quantity=row.foil,
                is_enchanted=row.rarity == Rarity.ENCHANTED.value,
                is_special=row.rarity == Rarity.SPECIAL.value,
            )
        )

    if unmatched:
        logger.warning("Dreamborn import skipped %d unmatched rows", len(unmatched))

    return ImportReport(cards=imported, rows_with_quantity=len(rows), unmatched=unmatched)
