from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

DATA_DIR = Path(__file__).parent / "data"


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="LOREBOOK_")

    app_name: str = "Lorebook"
    debug: bool = False

    database_url: str = "postgresql+asyncpg://localhost:5432/lorebook"

    # Bundled card catalog (LorcanaJSON allCards.json layout)
    catalog_path: Path = DATA_DIR / "allCards.json"
    catalog_url: str = "https://lorcanajson.org/files/current/en/allCards.json"

    # Optional hosted row store (PostgREST). Empty URL means use the SQL database.
    rowstore_url: str = ""
    rowstore_api_key: str = ""

    cards_per_page: int = 100


settings = Settings()


# =============================================================================
# DECK RULES
# =============================================================================

DECK_SIZE = 60

MAX_COPIES_PER_CARD = 4

MAX_INK_COLORS = 2

# Advisory range for inkwell-eligible copies (warning only)
INKWELL_MIN = 12
INKWELL_MAX = 20


# =============================================================================
# CATALOG CONSTANTS
# =============================================================================

# Rank table for rarity sorting. Not alphabetical.
RARITY_ORDER: tuple[str, ...] = (
    "Common",
    "Uncommon",
    "Rare",
    "Super Rare",
    "Legendary",
    "Enchanted",
    "Special",
)

INK_COLORS: tuple[str, ...] = ("Amber", "Amethyst", "Emerald", "Ruby", "Sapphire", "Steel")

COLLECTION_EXPORT_VERSION = "1.0"
