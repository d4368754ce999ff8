"""
Collection ledger.

In-memory record of a user's owned quantities per card identity and
variant, mirrored to a collection store.

Mutations follow an optimistic pattern:

    local apply (synchronous, always succeeds)
        -> queue a store operation
        -> flush() reconciles the queue (asynchronous, may fail)

INVARIANTS:
1. The ledger never holds an entry whose four counters are all zero
2. Counters are never negative
3. A failed store call never rolls back local state and never blocks
   later mutations; it only changes sync_status
4. Without a user id the ledger is session-local and nothing is queued
5. One flush at a time; an operation leaves the queue only after it was sent
"""

import asyncio
import json
import logging
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from lorebook.config import COLLECTION_EXPORT_VERSION
from lorebook.models.collection import (
    CollectionEntry,
    CollectionRow,
    VariantQuantities,
    VariantType,
)
from lorebook.models.failure import CollectionImportError, SyncError
from lorebook.services.collection_store import CollectionStore

if TYPE_CHECKING:
    from lorebook.parsers.dreamborn import ImportedCard

logger = logging.getLogger(__name__)

EXPORTED_BY = "lorebook"


class SyncStatus(str, Enum):
    """State of reconciliation with the collection store."""

    IDLE = "idle"
    LOADING = "loading"
    ERROR = "error"
    OFFLINE = "offline"


class SyncOpKind(str, Enum):
    UPSERT = "upsert"
    DELETE = "delete"
    DELETE_ALL = "delete_all"


@dataclass(frozen=True, slots=True)
class SyncOp:
    """A pending store operation."""

    kind: SyncOpKind
    card_name: str | None = None
    row: CollectionRow | None = None


class CollectionLedger:
    """
    A user's collection.

    Args:
        user_id: Signed-in user, or None for an anonymous session
        store: Where mutations are mirrored; ignored without a user id
    """

    def __init__(self, user_id: str | None = None, store: CollectionStore | None = None) -> None:
        self.user_id = user_id
        self._store = store if user_id else None
        self._entries: dict[str, CollectionEntry] = {}
        self._pending: deque[SyncOp] = deque()
        self._flush_lock = asyncio.Lock()
        self._hydrated = self._store is None
        self.sync_status = SyncStatus.IDLE if self._store is not None else SyncStatus.OFFLINE
        self.last_sync_error: str | None = None

    # --- Reads ---

    @property
    def is_persistent(self) -> bool:
        return self._store is not None

    @property
    def is_hydrated(self) -> bool:
        """True once the stored rows were loaded (always for session-local ledgers)."""
        return self._hydrated

    def get_quantities(self, full_name: str) -> VariantQuantities:
        """Owned copies of a card identity; all zero when not owned."""
        entry = self._entries.get(full_name)
        if entry is None:
            return VariantQuantities()
        return entry.quantities()

    def entries(self) -> list[CollectionEntry]:
        """Snapshot of every entry, in insertion order."""
        return [
            CollectionEntry(e.full_name, e.regular, e.foil, e.enchanted, e.special)
            for e in self._entries.values()
        ]

    def __contains__(self, full_name: str) -> bool:
        return full_name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def total_cards(self) -> int:
        """Sum of every counter of every entry."""
        return sum(entry.total() for entry in self._entries.values())

    @property
    def unique_cards(self) -> int:
        """Number of card identities owned."""
        return len(self._entries)

    @property
    def pending_operations(self) -> int:
        return len(self._pending)

    # --- Mutations ---

    def adjust(self, full_name: str, variant: VariantType, delta: int) -> VariantQuantities:
        """
        Change one counter by `delta`.

        Negative results clamp at zero. An entry reaching all-zero is
        removed. A zero delta, or a decrement of a card not owned, changes
        nothing and queues nothing.

        Returns:
            The quantities after the change.
        """
        entry = self._entries.get(full_name)

        if delta == 0 or (entry is None and delta < 0):
            return self.get_quantities(full_name)

        if entry is None:
            entry = CollectionEntry(full_name=full_name)
            self._entries[full_name] = entry

        before = entry.get(variant)
        entry.set(variant, before + delta)
        if entry.get(variant) == before:
            return entry.quantities()

        if entry.is_empty():
            del self._entries[full_name]
            self._enqueue(SyncOp(SyncOpKind.DELETE, card_name=full_name))
            return VariantQuantities()

        self._enqueue_upsert(entry)
        return entry.quantities()

    def add_variant(
        self, full_name: str, variant: VariantType, quantity: int = 1
    ) -> VariantQuantities:
        return self.adjust(full_name, variant, abs(quantity))

    def remove_variant(
        self, full_name: str, variant: VariantType, quantity: int = 1
    ) -> VariantQuantities:
        return self.adjust(full_name, variant, -abs(quantity))

    def clear(self) -> None:
        """Empty the ledger and queue a bulk delete."""
        self._entries.clear()
        self._pending.clear()
        self._enqueue(SyncOp(SyncOpKind.DELETE_ALL))

    def replace_entries(self, entries: Iterable[CollectionEntry]) -> None:
        """
        Replace the whole ledger.

        Queues a bulk delete followed by one upsert per entry. Empty entries
        are dropped; repeated identities keep the last one.
        """
        replacement: dict[str, CollectionEntry] = {}
        for entry in entries:
            if entry.is_empty():
                replacement.pop(entry.full_name, None)
                continue
            replacement[entry.full_name] = entry

        self._entries = replacement
        self._pending.clear()
        self._enqueue(SyncOp(SyncOpKind.DELETE_ALL))
        for entry in self._entries.values():
            self._enqueue_upsert(entry)

    def apply_imported_cards(self, cards: Iterable["ImportedCard"], replace: bool = False) -> int:
        """
        Add Dreamborn import results to the ledger.

        Normal copies go to `regular`, foil copies to `foil`. Enchanted rows
        put both counts into `enchanted` and Special rows into `special`.

        Args:
            cards: Matched import rows
            replace: Start from an empty ledger instead of adding

        Returns:
            Number of copies added.
        """
        merged: dict[str, CollectionEntry] = {}
        if not replace:
            merged = {e.full_name: e for e in self.entries()}

        added = 0
        for imported in cards:
            full_name = imported.card.full_name
            entry = merged.setdefault(full_name, CollectionEntry(full_name=full_name))
            if imported.is_enchanted:
                entry.enchanted += imported.normal_quantity + imported.foil_quantity
            elif imported.is_special:
                entry.special += imported.normal_quantity + imported.foil_quantity
            else:
                entry.regular += imported.normal_quantity
                entry.foil += imported.foil_quantity
            added += imported.normal_quantity + imported.foil_quantity

        if replace:
            self.replace_entries(merged.values())
            return added

        for entry in merged.values():
            current = self._entries.get(entry.full_name)
            if current is not None and current.quantities() == entry.quantities():
                continue
            if entry.is_empty():
                continue
            self._entries[entry.full_name] = entry
            self._enqueue_upsert(entry)
        return added

    # --- Export / import ---

    def export_collection(self) -> dict[str, Any]:
        """Serialize every entry plus metadata."""
        return {
            "version": COLLECTION_EXPORT_VERSION,
            "timestamp": datetime.now(UTC).isoformat(),
            "variants": [
                {
                    "fullName": entry.full_name,
                    "regular": entry.regular,
                    "foil": entry.foil,
                    "enchanted": entry.enchanted,
                    "special": entry.special,
                }
                for entry in self._entries.values()
            ],
            "metadata": {
                "totalCards": self.total_cards,
                "uniqueCards": self.unique_cards,
                "exportedBy": EXPORTED_BY,
            },
        }

    def export_json(self) -> str:
        return json.dumps(self.export_collection(), indent=2)

    def import_collection(self, data: str | dict[str, Any]) -> int:
        """
        Replace the ledger wholesale from an exported payload.

        No merge: entries not in the payload are gone afterwards.

        Returns:
            Number of entries imported.

        Raises:
            CollectionImportError: If the payload is not a collection export
        """
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as e:
                raise CollectionImportError("Collection file is not valid JSON", str(e)) from e

        if not isinstance(data, dict) or not isinstance(data.get("variants"), list):
            raise CollectionImportError("Collection file has no 'variants' list")

        entries: list[CollectionEntry] = []
        for index, item in enumerate(data["variants"]):
            try:
                entries.append(
                    CollectionEntry(
                        full_name=str(item["fullName"]),
                        regular=max(0, int(item.get("regular", 0))),
                        foil=max(0, int(item.get("foil", 0))),
                        enchanted=max(0, int(item.get("enchanted", 0))),
                        special=max(0, int(item.get("special", 0))),
                    )
                )
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise CollectionImportError(
                    f"Collection entry {index + 1} is malformed", str(e)
                ) from e

        self.replace_entries(entries)
        return len(self._entries)

    # --- Store reconciliation ---

    def _enqueue_upsert(self, entry: CollectionEntry) -> None:
        if self.user_id is None:
            return
        self._enqueue(
            SyncOp(
                SyncOpKind.UPSERT,
                card_name=entry.full_name,
                row=CollectionRow.from_entry(self.user_id, entry),
            )
        )

    def _enqueue(self, op: SyncOp) -> None:
        if self._store is None:
            return
        self._pending.append(op)

    @staticmethod
    async def _apply(store: CollectionStore, user_id: str, op: SyncOp) -> None:
        if op.kind is SyncOpKind.UPSERT and op.row is not None:
            await store.upsert_row(op.row)
        elif op.kind is SyncOpKind.DELETE and op.card_name is not None:
            await store.delete_row(user_id, op.card_name)
        elif op.kind is SyncOpKind.DELETE_ALL:
            await store.delete_all_rows(user_id)

    def _record_failure(self, error: SyncError) -> None:
        self.sync_status = SyncStatus.OFFLINE if error.offline else SyncStatus.ERROR
        self.last_sync_error = str(error)
        logger.warning("Collection sync failed for user %s: %s", self.user_id, error)

    async def flush(self) -> bool:
        """
        Send queued operations to the store, oldest first.

        Stops at the first failure, leaving that operation and the rest
        queued for the next flush. Concurrent calls run one after another.
        A clear or replace while an operation is in flight resets the
        queue; the sent operation is then already gone and is not popped.

        Returns:
            True if the queue was fully drained.
        """
        if self._store is None or self.user_id is None:
            return False

        async with self._flush_lock:
            while self._pending:
                op = self._pending[0]
                try:
                    await self._apply(self._store, self.user_id, op)
                except SyncError as e:
                    self._record_failure(e)
                    return False
                if self._pending and self._pending[0] is op:
                    self._pending.popleft()

            self.sync_status = SyncStatus.IDLE
            self.last_sync_error = None
            return True

    async def load(self) -> bool:
        """
        Hydrate the ledger from the store.

        Replaces local entries with the stored rows; rows whose counters are
        all zero are ignored.

        Returns:
            True if the rows were loaded.
        """
        if self._store is None or self.user_id is None:
            return False

        self.sync_status = SyncStatus.LOADING
        try:
            rows = await self._store.select_rows(self.user_id)
        except SyncError as e:
            self._record_failure(e)
            return False

        entries: dict[str, CollectionEntry] = {}
        for row in rows:
            entry = row.to_entry()
            if not entry.is_empty():
                entries[entry.full_name] = entry

        self._entries = entries
        self._pending.clear()
        self._hydrated = True
        self.sync_status = SyncStatus.IDLE
        self.last_sync_error = None
        logger.info("Loaded %d collection entries for user %s", len(entries), self.user_id)
        return True


class LedgerRegistry:
    """
    One hydrated ledger per user for the lifetime of the process.

    The first request for a user loads their rows from the store. Concurrent
    first requests share one ledger. A ledger whose load failed stays
    unhydrated and is loaded again on the next request.
    """

    def __init__(self, store: CollectionStore) -> None:
        self._store = store
        self._ledgers: dict[str, CollectionLedger] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    async def get(self, user_id: str) -> CollectionLedger:
        lock = self._locks.setdefault(user_id, asyncio.Lock())
        async with lock:
            ledger = self._ledgers.get(user_id)
            if ledger is None:
                ledger = CollectionLedger(user_id=user_id, store=self._store)
                self._ledgers[user_id] = ledger
            if not ledger.is_hydrated:
                await ledger.load()
            return ledger

    def forget(self, user_id: str) -> None:
        """Drop a cached ledger (e.g. on sign-out)."""
        self._ledgers.pop(user_id, None)
