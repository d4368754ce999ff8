"""
Collection stores.

A collection store mirrors a user's collection ledger into a per-user,
per-card-identity keyed table. The ledger is the source of truth for the
session; stores are eventually consistent.

Implementations:
- InMemoryCollectionStore: process-local, used in tests and demos
- SqlCollectionStore: the application database (SQLAlchemy async)
- RestCollectionStore: a hosted PostgREST row store (httpx)

All store failures are raised as SyncError.
"""

from typing import Any, Protocol

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lorebook.db.operations import (
    delete_all_collection_rows,
    delete_collection_row,
    get_collection_rows,
    upsert_collection_row,
)
from lorebook.models.collection import CollectionRow
from lorebook.models.failure import SyncError

COLLECTION_TABLE = "user_collections"


class CollectionStore(Protocol):
    """Remote persistence for collection rows."""

    async def upsert_row(self, row: CollectionRow) -> None: ...

    async def delete_row(self, user_id: str, card_name: str) -> None: ...

    async def delete_all_rows(self, user_id: str) -> None: ...

    async def select_rows(self, user_id: str) -> list[CollectionRow]: ...


class InMemoryCollectionStore:
    """
    Dict-backed store.

    Records every call in `calls` so tests can assert mirroring order.
    Set `fail_with` to make every call raise.
    """

    def __init__(self) -> None:
        self.rows: dict[tuple[str, str], CollectionRow] = {}
        self.calls: list[tuple[str, str, str | None]] = []
        self.fail_with: SyncError | None = None

    def _record(self, op: str, user_id: str, card_name: str | None = None) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.calls.append((op, user_id, card_name))

    async def upsert_row(self, row: CollectionRow) -> None:
        self._record("upsert", row.user_id, row.card_name)
        self.rows[(row.user_id, row.card_name)] = row

    async def delete_row(self, user_id: str, card_name: str) -> None:
        self._record("delete", user_id, card_name)
        self.rows.pop((user_id, card_name), None)

    async def delete_all_rows(self, user_id: str) -> None:
        self._record("delete_all", user_id)
        for key in [key for key in self.rows if key[0] == user_id]:
            del self.rows[key]

    async def select_rows(self, user_id: str) -> list[CollectionRow]:
        self._record("select", user_id)
        return [row for (owner, _), row in self.rows.items() if owner == user_id]


class SqlCollectionStore:
    """Store backed by the application database."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def upsert_row(self, row: CollectionRow) -> None:
        try:
            async with self._session_factory() as session:
                await upsert_collection_row(session, row)
                await session.commit()
        except SQLAlchemyError as e:
            raise SyncError(f"Failed to save {row.card_name!r}: {e}") from e

    async def delete_row(self, user_id: str, card_name: str) -> None:
        try:
            async with self._session_factory() as session:
                await delete_collection_row(session, user_id, card_name)
                await session.commit()
        except SQLAlchemyError as e:
            raise SyncError(f"Failed to delete {card_name!r}: {e}") from e

    async def delete_all_rows(self, user_id: str) -> None:
        try:
            async with self._session_factory() as session:
                await delete_all_collection_rows(session, user_id)
                await session.commit()
        except SQLAlchemyError as e:
            raise SyncError(f"Failed to clear collection: {e}") from e

    async def select_rows(self, user_id: str) -> list[CollectionRow]:
        try:
            async with self._session_factory() as session:
                return await get_collection_rows(session, user_id)
        except SQLAlchemyError as e:
            raise SyncError(f"Failed to load collection: {e}") from e


def _row_to_json(row: CollectionRow) -> dict[str, Any]:
    return {
        "user_id": row.user_id,
        "card_name": row.card_name,
        "regular_count": row.regular_count,
        "foil_count": row.foil_count,
        "enchanted_count": row.enchanted_count,
        "special_count": row.special_count,
    }


def _row_from_json(data: dict[str, Any]) -> CollectionRow:
    return CollectionRow(
        user_id=str(data["user_id"]),
        card_name=str(data["card_name"]),
        regular_count=int(data.get("regular_count") or 0),
        foil_count=int(data.get("foil_count") or 0),
        enchanted_count=int(data.get("enchanted_count") or 0),
        special_count=int(data.get("special_count") or 0),
    )


class RestCollectionStore:
    """
    Store backed by a PostgREST endpoint (e.g. a hosted Postgres).

    Rows live in the `user_collections` table keyed by (user_id, card_name).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self._headers = headers
        self._client = client

    @property
    def table_url(self) -> str:
        return f"{self._base_url}/rest/v1/{COLLECTION_TABLE}"

    async def _request(
        self,
        method: str,
        params: dict[str, str],
        json: Any = None,
        extra_headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        headers = {**self._headers, **(extra_headers or {})}
        try:
            if self._client is not None:
                response = await self._client.request(
                    method, self.table_url, params=params, json=json, headers=headers
                )
            else:
                async with httpx.AsyncClient(timeout=10.0) as client:
                    response = await client.request(
                        method, self.table_url, params=params, json=json, headers=headers
                    )
            response.raise_for_status()
        except httpx.TransportError as e:
            raise SyncError(f"Row store unreachable: {e}", offline=True) from e
        except httpx.HTTPStatusError as e:
            raise SyncError(f"Row store rejected {method}: {e.response.status_code}") from e
        return response

    async def upsert_row(self, row: CollectionRow) -> None:
        await self._request(
            "POST",
            params={"on_conflict": "user_id,card_name"},
            json=_row_to_json(row),
            extra_headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    async def delete_row(self, user_id: str, card_name: str) -> None:
        await self._request(
            "DELETE",
            params={"user_id": f"eq.{user_id}", "card_name": f"eq.{card_name}"},
        )

    async def delete_all_rows(self, user_id: str) -> None:
        await self._request("DELETE", params={"user_id": f"eq.{user_id}"})

    async def select_rows(self, user_id: str) -> list[CollectionRow]:
        response = await self._request(
            "GET", params={"user_id": f"eq.{user_id}", "select": "*"}
        )
        try:
            return [_row_from_json(item) for item in response.json()]
        except (KeyError, TypeError, ValueError) as e:
            raise SyncError(f"Row store returned malformed rows: {e}") from e
