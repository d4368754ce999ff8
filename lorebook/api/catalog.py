"""
Catalog API endpoints.

Browse the consolidated card catalog with filters, sorting, grouping and
pagination. Ownership filters read the collection of the given user.
"""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from lorebook.api.dependencies import CardsDep, CatalogDep, RegistryDep
from lorebook.config import settings
from lorebook.models.card import CardPrint
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
from lorebook.services.card_database import default_filter_spec
from lorebook.services.card_filtering import (
    count_active_filters,
    filter_cards,
    group_cards,
    paginate,
    sort_cards,
)
from lorebook.services.consolidation import available_rarities

router = APIRouter(prefix="/cards", tags=["catalog"])


class CardPrintResponse(BaseModel):
    """One printed card."""

    id: int
    name: str
    version: str | None = None
    full_name: str
    set_code: str
    number: int
    rarity: str
    color: str
    cost: int
    type: str
    inkwell: bool
    strength: int | None = None
    willpower: int | None = None
    lore: int | None = None
    subtypes: list[str] = Field(default_factory=list)
    story: str | None = None
    foil_types: list[str] | None = None


class QuantitiesResponse(BaseModel):
    regular: int = 0
    foil: int = 0
    enchanted: int = 0
    special: int = 0
    total: int = 0


class ConsolidatedCardResponse(BaseModel):
    """One card identity with its print variants."""

    full_name: str
    base_card: CardPrintResponse
    regular: CardPrintResponse | None = None
    foil: CardPrintResponse | None = None
    enchanted: CardPrintResponse | None = None
    special: list[CardPrintResponse] = Field(default_factory=list)
    has_enchanted: bool = False
    has_special: bool = False
    rarities: list[str] = Field(default_factory=list)
    owned: QuantitiesResponse | None = Field(
        default=None,
        description="Owned copies; present when a user_id was given",
    )


class CardPageResponse(BaseModel):
    """One page of browse results."""

    cards: list[ConsolidatedCardResponse]
    page: int
    total_pages: int
    total_cards: int
    groups: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Group label -> full names on this page, in display order",
    )
    active_filters: int = 0


class SetResponse(BaseModel):
    code: str
    name: str


class FilterDefaultsResponse(BaseModel):
    """Catalog-wide stat ranges used as filter defaults."""

    cost: tuple[int | None, int | None]
    strength: tuple[int | None, int | None]
    willpower: tuple[int | None, int | None]
    lore: tuple[int | None, int | None]


def print_response(card: CardPrint) -> CardPrintResponse:
    return CardPrintResponse(
        id=card.id,
        name=card.name,
        version=card.version,
        full_name=card.full_name,
        set_code=card.set_code,
        number=card.number,
        rarity=card.rarity.value,
        color=card.color,
        cost=card.cost,
        type=card.type.value,
        inkwell=card.inkwell,
        strength=card.strength,
        willpower=card.willpower,
        lore=card.lore,
        subtypes=list(card.subtypes),
        story=card.story,
        foil_types=list(card.foil_types) if card.foil_types is not None else None,
    )


def quantities_response(quantities: VariantQuantities) -> QuantitiesResponse:
    return QuantitiesResponse(
        regular=quantities.regular,
        foil=quantities.foil,
        enchanted=quantities.enchanted,
        special=quantities.special,
        total=quantities.total,
    )


def card_response(
    card: ConsolidatedCard, owned: VariantQuantities | None = None
) -> ConsolidatedCardResponse:
    return ConsolidatedCardResponse(
        full_name=card.full_name,
        base_card=print_response(card.base_card),
        regular=print_response(card.regular) if card.regular else None,
        foil=print_response(card.foil) if card.foil else None,
        enchanted=print_response(card.enchanted) if card.enchanted else None,
        special=[print_response(special) for special in card.special],
        has_enchanted=card.has_enchanted,
        has_special=card.has_special,
        rarities=available_rarities(card),
        owned=quantities_response(owned) if owned is not None else None,
    )


def _no_quantities(_full_name: str) -> VariantQuantities:
    return VariantQuantities()


@router.get("", response_model=CardPageResponse)
async def browse_cards(
    cards: CardsDep,
    catalog: CatalogDep,
    registry: RegistryDep,
    user_id: str | None = None,
    search: str = "",
    sets: Annotated[list[str] | None, Query()] = None,
    colors: Annotated[list[str] | None, Query()] = None,
    color_mode: ColorMatchMode = ColorMatchMode.EXACT,
    rarities: Annotated[list[str] | None, Query()] = None,
    types: Annotated[list[str] | None, Query()] = None,
    stories: Annotated[list[str] | None, Query()] = None,
    subtypes: Annotated[list[str] | None, Query()] = None,
    costs: Annotated[list[int] | None, Query()] = None,
    cost_min: int | None = None,
    cost_max: int | None = None,
    strength_min: int | None = None,
    strength_max: int | None = None,
    willpower_min: int | None = None,
    willpower_max: int | None = None,
    lore_min: int | None = None,
    lore_max: int | None = None,
    inkwell: bool | None = None,
    has_enchanted: bool | None = None,
    has_special: bool | None = None,
    owned: bool | None = None,
    owned_op: CountOperator | None = None,
    owned_count: Annotated[int | None, Query(ge=0)] = None,
    stale: Annotated[
        list[str] | None,
        Query(description="Full names kept visible regardless of filters"),
    ] = None,
    sort: SortField = SortField.SET,
    direction: SortDirection = SortDirection.DESC,
    group_by: GroupBy = GroupBy.NONE,
    page: Annotated[int, Query(ge=1)] = 1,
    per_page: Annotated[int | None, Query(ge=1, le=500)] = None,
) -> CardPageResponse:
    """
    Browse the catalog.

    Ownership filters (owned, owned_op/owned_count) require a user_id.
    Out-of-range page numbers are clamped to the last page.
    """
    uses_ownership = owned is not None or owned_op is not None or owned_count is not None
    if uses_ownership and not user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Ownership filters require a user_id",
        )
    if (owned_op is None) != (owned_count is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="owned_op and owned_count must be given together",
        )

    spec = FilterSpec(
        search=search,
        sets=frozenset(sets or ()),
        colors=frozenset(colors or ()),
        color_mode=color_mode,
        rarities=frozenset(rarities or ()),
        types=frozenset(types or ()),
        stories=frozenset(stories or ()),
        subtypes=frozenset(subtypes or ()),
        costs=frozenset(costs or ()),
        cost_range=NumericRange(cost_min, cost_max),
        strength_range=NumericRange(strength_min, strength_max),
        willpower_range=NumericRange(willpower_min, willpower_max),
        lore_range=NumericRange(lore_min, lore_max),
        inkwell=TriState.from_bool(inkwell),
        has_enchanted=TriState.from_bool(has_enchanted),
        has_special=TriState.from_bool(has_special),
        owned=TriState.from_bool(owned),
        owned_count=(
            CountFilter(owned_op, owned_count)
            if owned_op is not None and owned_count is not None
            else None
        ),
    )

    get_quantities = _no_quantities
    if user_id:
        ledger = await registry.get(user_id)
        get_quantities = ledger.get_quantities

    filtered = filter_cards(cards, spec.search, spec, get_quantities, frozenset(stale or ()))
    ordered = sort_cards(filtered, SortSpec(field=sort, direction=direction))
    result = paginate(ordered, page, per_page or settings.cards_per_page)
    groups = group_cards(result.items, group_by, catalog.set_names)

    return CardPageResponse(
        cards=[
            card_response(card, get_quantities(card.full_name) if user_id else None)
            for card in result.items
        ],
        page=result.page,
        total_pages=result.total_pages,
        total_cards=result.total_items,
        groups={label: [card.full_name for card in members] for label, members in groups.items()},
        active_filters=count_active_filters(spec),
    )


@router.get("/sets", response_model=list[SetResponse])
async def list_sets(catalog: CatalogDep) -> list[SetResponse]:
    """Sets present in the catalog."""
    return [SetResponse(code=code, name=name) for code, name in catalog.set_names.items()]


@router.get("/filters/defaults", response_model=FilterDefaultsResponse)
async def filter_defaults(catalog: CatalogDep) -> FilterDefaultsResponse:
    """Stat ranges spanning the whole catalog."""
    defaults = default_filter_spec(catalog.prints)
    return FilterDefaultsResponse(
        cost=(defaults.cost_range.min, defaults.cost_range.max),
        strength=(defaults.strength_range.min, defaults.strength_range.max),
        willpower=(defaults.willpower_range.min, defaults.willpower_range.max),
        lore=(defaults.lore_range.min, defaults.lore_range.max),
    )


@router.get("/{full_name}", response_model=ConsolidatedCardResponse)
async def get_card(full_name: str, cards: CardsDep) -> ConsolidatedCardResponse:
    """One card identity by exact full name."""
    for card in cards:
        if card.full_name == full_name:
            return card_response(card)

    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Card '{full_name}' not found",
    )
