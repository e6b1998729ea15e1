"""Per-scope, date-partitioned food ledger."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from uuid import uuid4
from zoneinfo import ZoneInfo

from food_analyst.domain.nutrition import EntryPatch, FoodEntry, NutrientTotals
from food_analyst.services.storage import KeyValueStore

INDEX_KEY = "ledger:index"

_logger = logging.getLogger(__name__)

EntryPredicate = Callable[[FoodEntry], bool]


def ledger_key(scope_id: str) -> str:
    """Storage key holding every date partition of a scope."""
    return f"ledger:{scope_id}"


@dataclass
class NutritionLedger:
    """Owns per-scope, per-date ordered food entries.

    Each scope lives under its own storage key. Read-modify-write cycles on a
    scope are serialized through a per-scope lock so concurrent handlers in
    this process cannot drop each other's updates.
    """

    store: KeyValueStore
    timezone_name: str = "UTC"
    _locks: dict[str, asyncio.Lock] = field(default_factory=dict, init=False)
    _index_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    def today(self) -> str:
        """Return today's partition key in the configured timezone."""
        return datetime.now(tz=ZoneInfo(self.timezone_name)).date().isoformat()

    async def append(
        self, scope_id: str, entry: FoodEntry, day: str | None = None
    ) -> FoodEntry:
        """Append an entry to the end of the day's sequence and return it."""
        partition = day or self.today()
        stamped = replace(
            entry,
            created_at=entry.created_at or _now_iso(),
            entry_id=entry.entry_id or uuid4().hex,
        )
        async with self._lock(scope_id):
            partitions = await self._load(scope_id)
            partitions.setdefault(partition, []).append(stamped.to_dict())
            await self.store.set(ledger_key(scope_id), partitions)
        await self._register_scope(scope_id)
        return stamped

    async def list_entries(self, scope_id: str, day: str | None = None) -> list[FoodEntry]:
        """Return the day's entries in append order."""
        partitions = await self._load(scope_id)
        rows = partitions.get(day or self.today(), [])
        return [FoodEntry.from_dict(row) for row in rows]

    async def remove_by_index(
        self, scope_id: str, day: str, index: int
    ) -> FoodEntry | None:
        """Remove the entry at a 0-based position; None when out of range."""
        async with self._lock(scope_id):
            partitions = await self._load(scope_id)
            rows = partitions.get(day, [])
            if index < 0 or index >= len(rows):
                return None
            removed = rows.pop(index)
            await self._save(scope_id, day, partitions)
        return FoodEntry.from_dict(removed)

    async def remove_by_match(
        self, scope_id: str, day: str, predicate: EntryPredicate
    ) -> FoodEntry | None:
        """Remove the first entry satisfying the predicate."""
        async with self._lock(scope_id):
            partitions = await self._load(scope_id)
            rows = partitions.get(day, [])
            for position, row in enumerate(rows):
                entry = FoodEntry.from_dict(row)
                if predicate(entry):
                    rows.pop(position)
                    await self._save(scope_id, day, partitions)
                    return entry
        return None

    async def replace_by_match(
        self, scope_id: str, day: str, predicate: EntryPredicate, patch: EntryPatch
    ) -> FoodEntry | None:
        """Merge patch fields into the first matching entry, keeping its position."""
        async with self._lock(scope_id):
            partitions = await self._load(scope_id)
            rows = partitions.get(day, [])
            for position, row in enumerate(rows):
                entry = FoodEntry.from_dict(row)
                if predicate(entry):
                    updated = entry.with_patch(patch, corrected_at=_now_iso())
                    rows[position] = updated.to_dict()
                    await self._save(scope_id, day, partitions)
                    return updated
        return None

    async def aggregate(self, scope_id: str, day: str | None = None) -> NutrientTotals:
        """Sum nutrients for the day; all zeros when there are no entries."""
        return NutrientTotals.from_entries(await self.list_entries(scope_id, day))

    async def list_scopes_with_entries_on(self, day: str | None = None) -> list[str]:
        """Return scopes holding at least one entry on the day, in first-seen order."""
        partition = day or self.today()
        active = []
        for scope_id in await self.known_scopes():
            partitions = await self._load(scope_id)
            if partitions.get(partition):
                active.append(scope_id)
        return active

    async def known_scopes(self) -> list[str]:
        """Return every scope that has ever logged an entry."""
        raw = await self.store.get(INDEX_KEY)
        if not isinstance(raw, list):
            return []
        return [str(scope_id) for scope_id in raw]

    def _lock(self, scope_id: str) -> asyncio.Lock:
        lock = self._locks.get(scope_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[scope_id] = lock
        return lock

    async def _load(self, scope_id: str) -> dict[str, list[dict[str, object]]]:
        raw = await self.store.get(ledger_key(scope_id))
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            _logger.warning("Discarding malformed ledger for scope %s", scope_id)
            return {}
        return {
            str(day): [row for row in rows if isinstance(row, dict)]
            for day, rows in raw.items()
            if isinstance(rows, list)
        }

    async def _save(
        self,
        scope_id: str,
        day: str,
        partitions: dict[str, list[dict[str, object]]],
    ) -> None:
        if not partitions.get(day):
            partitions.pop(day, None)
        await self.store.set(ledger_key(scope_id), partitions)

    async def _register_scope(self, scope_id: str) -> None:
        async with self._index_lock:
            scopes = await self.known_scopes()
            if scope_id in scopes:
                return
            scopes.append(scope_id)
            await self.store.set(INDEX_KEY, scopes)


def _now_iso() -> str:
    return datetime.now(tz=UTC).isoformat()
