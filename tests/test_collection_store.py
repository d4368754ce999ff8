"""Tests for collection store implementations."""

import json

import httpx
import pytest
import respx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lorebook.models.collection import CollectionRow, VariantType
from lorebook.models.db import Base
from lorebook.models.failure import SyncError
from lorebook.services.collection_ledger import CollectionLedger, SyncStatus
from lorebook.services.collection_store import (
    InMemoryCollectionStore,
    RestCollectionStore,
    SqlCollectionStore,
)

BASE_URL = "https://rows.example.test"
TABLE_URL = f"{BASE_URL}/rest/v1/user_collections"


@pytest.fixture
def sql_store(async_engine) -> SqlCollectionStore:
    factory = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)
    return SqlCollectionStore(factory)


class TestInMemoryCollectionStore:
    async def test_rows_are_scoped_by_user(self) -> None:
        store = InMemoryCollectionStore()
        await store.upsert_row(CollectionRow("a", "Elsa - Snow Queen", regular_count=1))
        await store.upsert_row(CollectionRow("b", "Elsa - Snow Queen", foil_count=2))

        await store.delete_all_rows("a")

        assert await store.select_rows("a") == []
        assert len(await store.select_rows("b")) == 1

    async def test_fail_with(self) -> None:
        store = InMemoryCollectionStore()
        store.fail_with = SyncError("nope")

        with pytest.raises(SyncError):
            await store.select_rows("a")
        assert store.calls == []


class TestSqlCollectionStore:
    async def test_upsert_then_select(self, sql_store: SqlCollectionStore) -> None:
        await sql_store.upsert_row(CollectionRow("user-1", "Elsa - Snow Queen", regular_count=1))
        await sql_store.upsert_row(
            CollectionRow("user-1", "Elsa - Snow Queen", regular_count=2, foil_count=1)
        )

        rows = await sql_store.select_rows("user-1")

        assert rows == [
            CollectionRow("user-1", "Elsa - Snow Queen", regular_count=2, foil_count=1)
        ]

    async def test_delete_row_and_all(self, sql_store: SqlCollectionStore) -> None:
        await sql_store.upsert_row(CollectionRow("user-1", "Dinglehopper", regular_count=1))
        await sql_store.upsert_row(CollectionRow("user-1", "Be Prepared", regular_count=1))

        await sql_store.delete_row("user-1", "Dinglehopper")
        assert [row.card_name for row in await sql_store.select_rows("user-1")] == ["Be Prepared"]

        await sql_store.delete_all_rows("user-1")
        assert await sql_store.select_rows("user-1") == []

    async def test_database_errors_become_sync_errors(
        self, async_engine, sql_store: SqlCollectionStore
    ) -> None:
        async with async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

        with pytest.raises(SyncError) as exc_info:
            await sql_store.select_rows("user-1")
        assert not exc_info.value.offline

    async def test_ledger_round_trip(self, sql_store: SqlCollectionStore) -> None:
        """A flushed ledger can be rebuilt from the database."""
        ledger = CollectionLedger("user-1", sql_store)
        ledger.adjust("Elsa - Snow Queen", VariantType.FOIL, 2)
        ledger.adjust("Dinglehopper", VariantType.REGULAR, 1)
        ledger.adjust("Dinglehopper", VariantType.REGULAR, -1)
        assert await ledger.flush()

        restored = CollectionLedger("user-1", sql_store)
        assert await restored.load()

        assert [entry.full_name for entry in restored.entries()] == ["Elsa - Snow Queen"]
        assert restored.get_quantities("Elsa - Snow Queen").foil == 2


class TestRestCollectionStore:
    @respx.mock
    async def test_upsert_uses_conflict_target(self) -> None:
        route = respx.post(TABLE_URL).mock(return_value=httpx.Response(201))
        store = RestCollectionStore(BASE_URL, api_key="secret")

        await store.upsert_row(CollectionRow("user-1", "Elsa - Snow Queen", foil_count=1))

        request = route.calls.last.request
        assert request.url.params["on_conflict"] == "user_id,card_name"
        assert request.headers["Prefer"] == "resolution=merge-duplicates,return=minimal"
        assert request.headers["apikey"] == "secret"
        assert json.loads(request.content) == {
            "user_id": "user-1",
            "card_name": "Elsa - Snow Queen",
            "regular_count": 0,
            "foil_count": 1,
            "enchanted_count": 0,
            "special_count": 0,
        }

    @respx.mock
    async def test_delete_filters_by_user_and_card(self) -> None:
        route = respx.delete(TABLE_URL).mock(return_value=httpx.Response(204))
        store = RestCollectionStore(BASE_URL)

        await store.delete_row("user-1", "Dinglehopper")

        params = route.calls.last.request.url.params
        assert params["user_id"] == "eq.user-1"
        assert params["card_name"] == "eq.Dinglehopper"

    @respx.mock
    async def test_select_parses_rows(self) -> None:
        respx.get(TABLE_URL).mock(
            return_value=httpx.Response(
                200,
                json=[
                    {
                        "user_id": "user-1",
                        "card_name": "Be Prepared",
                        "regular_count": 3,
                        "foil_count": None,
                        "enchanted_count": 0,
                        "special_count": 0,
                    }
                ],
            )
        )
        store = RestCollectionStore(BASE_URL)

        rows = await store.select_rows("user-1")

        assert rows == [CollectionRow("user-1", "Be Prepared", regular_count=3)]

    @respx.mock
    async def test_http_error_is_not_offline(self) -> None:
        respx.delete(TABLE_URL).mock(return_value=httpx.Response(500))
        store = RestCollectionStore(BASE_URL)

        with pytest.raises(SyncError) as exc_info:
            await store.delete_all_rows("user-1")
        assert not exc_info.value.offline

    @respx.mock
    async def test_unreachable_store_marks_ledger_offline(self) -> None:
        respx.post(TABLE_URL).mock(side_effect=httpx.ConnectError("refused"))
        ledger = CollectionLedger("user-1", RestCollectionStore(BASE_URL))

        ledger.adjust("Elsa - Snow Queen", VariantType.REGULAR, 1)
        assert not await ledger.flush()

        assert ledger.sync_status is SyncStatus.OFFLINE
        assert ledger.get_quantities("Elsa - Snow Queen").regular == 1
