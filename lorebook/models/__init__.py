from lorebook.models.card import CardPrint, CardType, Rarity, split_colors
from lorebook.models.collection import (
    CollectionEntry,
    CollectionRow,
    VariantQuantities,
    VariantType,
)
from lorebook.models.consolidated_card import ConsolidatedCard
from lorebook.models.deck import (
    Deck,
    DeckCard,
    DeckChange,
    DeckSummary,
    DeckValidationResult,
)
from lorebook.models.failure import (
    ApiResponse,
    CollectionImportError,
    CollectionUnavailableError,
    FailureDetail,
    FailureKind,
    ImportFormatError,
    KnownError,
    OutcomeType,
    SyncError,
)
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

__all__ = [
    "ApiResponse",
    "CardPrint",
    "CardType",
    "CollectionEntry",
    "CollectionImportError",
    "CollectionUnavailableError",
    "CollectionRow",
    "ColorMatchMode",
    "ConsolidatedCard",
    "CountFilter",
    "CountOperator",
    "Deck",
    "DeckCard",
    "DeckChange",
    "DeckSummary",
    "DeckValidationResult",
    "FailureDetail",
    "FailureKind",
    "FilterSpec",
    "GroupBy",
    "ImportFormatError",
    "KnownError",
    "NumericRange",
    "OutcomeType",
    "Rarity",
    "SortDirection",
    "SortField",
    "SortSpec",
    "SyncError",
    "TriState",
    "VariantQuantities",
    "VariantType",
    "split_colors",
]
