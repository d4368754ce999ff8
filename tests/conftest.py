from collections.abc import Callable
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from lorebook.api.dependencies import get_card_catalog, get_cards, get_registry
from lorebook.db.database import get_session
from lorebook.main import app
from lorebook.models.card import CardPrint, CardType, Rarity
from lorebook.models.consolidated_card import ConsolidatedCard
from lorebook.models.db import Base
from lorebook.services.card_database import CardCatalog, get_catalog, get_consolidated_cards
from lorebook.services.collection_ledger import LedgerRegistry
from lorebook.services.collection_store import InMemoryCollectionStore
from lorebook.services.consolidation import consolidate_cards

CardFactory = Callable[..., CardPrint]


def _make_card(**overrides: Any) -> CardPrint:
    name = overrides.pop("name", "Test Card")
    version = overrides.pop("version", None)
    values: dict[str, Any] = {
        "id": 1,
        "name": name,
        "version": version,
        "full_name": f"{name} - {version}" if version else name,
        "set_code": "1",
        "number": 1,
        "rarity": Rarity.COMMON,
        "color": "Amber",
        "cost": 1,
        "type": CardType.CHARACTER,
        "inkwell": True,
        "foil_types": ("None", "Cold"),
    }
    values.update(overrides)
    return CardPrint(**values)


@pytest.fixture(autouse=True)
def clear_catalog_cache():
    """Reset cached catalog loads between tests."""
    get_catalog.cache_clear()
    get_consolidated_cards.cache_clear()
    yield
    get_catalog.cache_clear()
    get_consolidated_cards.cache_clear()


@pytest.fixture
def make_card() -> CardFactory:
    """Factory for CardPrint records with sensible defaults."""
    return _make_card


@pytest.fixture
def sample_prints() -> list[CardPrint]:
    """A small catalog covering every variant kind and both ink layouts."""
    return [
        _make_card(
            id=1,
            name="Mickey Mouse",
            version="Brave Little Tailor",
            number=115,
            rarity=Rarity.LEGENDARY,
            cost=8,
            strength=5,
            willpower=5,
            lore=4,
            inkwell=False,
            subtypes=("Storyborn", "Hero"),
            story="Mickey Mouse & Friends",
        ),
        _make_card(
            id=2,
            name="Mickey Mouse",
            version="Brave Little Tailor",
            number=205,
            rarity=Rarity.ENCHANTED,
            cost=8,
            strength=5,
            willpower=5,
            lore=4,
            inkwell=False,
            subtypes=("Storyborn", "Hero"),
            story="Mickey Mouse & Friends",
            foil_types=("Cold",),
        ),
        _make_card(
            id=3,
            name="Elsa",
            version="Snow Queen",
            number=42,
            rarity=Rarity.RARE,
            color="Amethyst",
            cost=4,
            strength=2,
            willpower=3,
            lore=2,
            subtypes=("Storyborn", "Hero", "Queen"),
            story="Frozen",
        ),
        _make_card(
            id=4,
            name="Stitch",
            version="Rock Star",
            number=23,
            rarity=Rarity.SUPER_RARE,
            cost=6,
            strength=3,
            willpower=5,
            lore=3,
            subtypes=("Floodborn", "Hero"),
            story="Lilo & Stitch",
        ),
        _make_card(
            id=5,
            name="Stitch",
            version="Rock Star",
            set_code="P1",
            number=2,
            rarity=Rarity.SPECIAL,
            cost=6,
            strength=3,
            willpower=5,
            lore=3,
            subtypes=("Floodborn", "Hero"),
            story="Lilo & Stitch",
            foil_types=("Cold",),
        ),
        _make_card(
            id=6,
            name="Dinglehopper",
            number=165,
            type=CardType.ITEM,
            cost=1,
            story="The Little Mermaid",
        ),
        _make_card(
            id=7,
            name="Be Prepared",
            number=128,
            rarity=Rarity.RARE,
            color="Ruby",
            type=CardType.ACTION,
            cost=7,
            story="The Lion King",
        ),
        _make_card(
            id=8,
            name="Belle",
            version="Inventive Engineer",
            set_code="2",
            number=142,
            rarity=Rarity.UNCOMMON,
            color="Amber-Steel",
            cost=2,
            strength=1,
            willpower=3,
            lore=1,
            story="Beauty and the Beast",
        ),
        _make_card(
            id=9,
            name="Maleficent",
            version="Sorceress",
            number=49,
            color="Amethyst",
            cost=3,
            strength=2,
            willpower=2,
            lore=2,
            story="Sleeping Beauty",
            foil_types=None,
        ),
    ]


@pytest.fixture
def sample_cards(sample_prints: list[CardPrint]) -> list[ConsolidatedCard]:
    return consolidate_cards(sample_prints)


@pytest.fixture
def sample_catalog(sample_prints: list[CardPrint]) -> CardCatalog:
    return CardCatalog(
        prints=tuple(sample_prints),
        set_names={"1": "The First Chapter", "2": "Rise of the Floodborn", "P1": "Promo"},
    )


@pytest.fixture
def card_by_name(sample_cards: list[ConsolidatedCard]) -> Callable[[str], ConsolidatedCard]:
    """Look up a consolidated sample card by full name."""
    index = {card.full_name: card for card in sample_cards}
    return index.__getitem__


@pytest.fixture
def collection_store() -> InMemoryCollectionStore:
    return InMemoryCollectionStore()


@pytest.fixture
async def async_engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def client(
    async_engine,
    sample_catalog: CardCatalog,
    sample_cards: list[ConsolidatedCard],
    collection_store: InMemoryCollectionStore,
):
    """
    Async test client over the sample catalog.

    The database session uses in-memory SQLite and collections are kept in
    an in-memory store.
    """
    async_session = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)
    registry = LedgerRegistry(collection_store)

    async def override_get_session():
        async with async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_card_catalog] = lambda: sample_catalog
    app.dependency_overrides[get_cards] = lambda: tuple(sample_cards)
    app.dependency_overrides[get_registry] = lambda: registry

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
