"""Tests for reply-driven corrections and removals."""

import asyncio

import pytest

from food_analyst.domain.nutrition import NutritionGoals
from food_analyst.errors import StorageUnavailableError
from food_analyst.services.associations import MessageAssociationIndex
from food_analyst.services.corrections import (
    CorrectionAction,
    CorrectionEngine,
    CorrectionStatus,
    is_removal_request,
)
from food_analyst.services.goals import GoalStore
from food_analyst.services.interpreter import CorrectionInterpreter
from food_analyst.services.ledger import NutritionLedger
from food_analyst.services.storage import InMemoryKeyValueStore
from tests.conftest import FailingKeyValueStore, entry

DAY = "2024-05-01"


class _AssociationWritesFailStore(InMemoryKeyValueStore):
    """Store whose association keys stop accepting writes once armed."""

    armed: bool = False

    async def set(self, key: str, value: object) -> None:
        if self.armed and key.startswith("association:"):
            raise StorageUnavailableError("set", key)
        await super().set(key, value)

    async def delete(self, key: str) -> None:
        if self.armed and key.startswith("association:"):
            raise StorageUnavailableError("delete", key)
        await super().delete(key)


def _engine(store) -> CorrectionEngine:  # type: ignore[no-untyped-def]
    return CorrectionEngine(
        ledger=NutritionLedger(store),
        associations=MessageAssociationIndex(store),
        interpreter=CorrectionInterpreter(),
        goal_store=GoalStore(store),
    )


def _log(engine: CorrectionEngine, scope_id: str, message_id: int, item) -> None:  # type: ignore[no-untyped-def]
    stored = asyncio.run(engine.ledger.append(scope_id, item, day=DAY))
    asyncio.run(engine.associations.record(message_id, scope_id, DAY, stored))


@pytest.mark.parametrize(
    "text", ["remove", "Please DELETE this", "erase it", "cancel that", "removed"]
)
def test_removal_keywords_match_case_insensitive_substrings(text: str) -> None:
    assert is_removal_request(text)


def test_plain_correction_is_not_removal() -> None:
    assert not is_removal_request("500ml coke")


def test_remove_then_remove_again(store: InMemoryKeyValueStore) -> None:
    engine = _engine(store)
    _log(engine, "A", 10, entry("Pasta", 300))

    first = asyncio.run(engine.handle_reply("A", 10, "remove"))

    assert first.action is CorrectionAction.REMOVE
    assert first.status is CorrectionStatus.REMOVED
    assert first.entry is not None
    assert first.entry.calories == 300
    assert first.totals is not None
    assert first.totals.calories == 0
    assert asyncio.run(engine.ledger.list_entries("A", DAY)) == []
    assert asyncio.run(engine.associations.resolve("A", 10)) is None

    second = asyncio.run(engine.handle_reply("A", 10, "remove"))

    assert second.status is CorrectionStatus.NO_ASSOCIATION
    assert not second.succeeded


def test_remove_only_touches_reported_entry(store: InMemoryKeyValueStore) -> None:
    engine = _engine(store)
    _log(engine, "A", 10, entry("Apple"))
    _log(engine, "A", 11, entry("Apple"))

    asyncio.run(engine.handle_reply("A", 11, "delete"))

    remaining = asyncio.run(engine.ledger.list_entries("A", DAY))
    assert len(remaining) == 1
    association = asyncio.run(engine.associations.resolve("A", 10))
    assert association is not None
    assert association.snapshot.entry_id == remaining[0].entry_id


def test_update_replaces_values_in_place(store: InMemoryKeyValueStore) -> None:
    engine = _engine(store)
    _log(engine, "A", 1, entry("Bread", 80))
    _log(engine, "A", 2, entry("Cola", 140, fiber=0, hydration=330))

    outcome = asyncio.run(engine.handle_reply("A", 2, "500ml coke"))

    assert outcome.status is CorrectionStatus.UPDATED
    entries = asyncio.run(engine.ledger.list_entries("A", DAY))
    assert [item.food_name for item in entries] == ["Bread", "Coke"]
    corrected = entries[1]
    assert corrected.calories == 280
    assert corrected.carbs == 78
    assert corrected.serving_size == "500ml"
    assert corrected.hydration == 330
    assert corrected.confidence == "manually corrected"
    assert outcome.totals is not None
    assert outcome.totals.calories == 360


def test_second_correction_hits_same_entry(store: InMemoryKeyValueStore) -> None:
    engine = _engine(store)
    _log(engine, "A", 2, entry("Cola", 140))

    asyncio.run(engine.handle_reply("A", 2, "500ml coke"))
    second = asyncio.run(engine.handle_reply("A", 2, "250ml coke"))

    assert second.status is CorrectionStatus.UPDATED
    entries = asyncio.run(engine.ledger.list_entries("A", DAY))
    assert len(entries) == 1
    assert entries[0].calories == 140
    association = asyncio.run(engine.associations.resolve("A", 2))
    assert association is not None
    assert association.snapshot.serving_size == "250ml"


def test_legacy_snapshot_without_id_matches_by_fingerprint(
    store: InMemoryKeyValueStore,
) -> None:
    engine = _engine(store)
    stored = asyncio.run(
        engine.ledger.append(
            "A", entry("Cola", 140, created_at="2024-05-01T09:00:00+00:00"), day=DAY
        )
    )
    legacy = entry("Cola", 140, created_at=stored.created_at)
    asyncio.run(engine.associations.record(5, "A", DAY, legacy))

    outcome = asyncio.run(engine.handle_reply("A", 5, "remove"))

    assert outcome.status is CorrectionStatus.REMOVED


def test_entry_removed_elsewhere_is_reported(store: InMemoryKeyValueStore) -> None:
    engine = _engine(store)
    _log(engine, "A", 3, entry("Apple"))
    asyncio.run(engine.ledger.remove_by_index("A", DAY, 0))

    outcome = asyncio.run(engine.handle_reply("A", 3, "200g apple"))

    assert outcome.status is CorrectionStatus.ENTRY_NOT_FOUND
    assert asyncio.run(engine.ledger.list_entries("A", DAY)) == []


def test_reply_in_other_scope_has_no_association(store: InMemoryKeyValueStore) -> None:
    engine = _engine(store)
    _log(engine, "A", 3, entry("Apple"))

    outcome = asyncio.run(engine.handle_reply("B", 3, "remove"))

    assert outcome.status is CorrectionStatus.NO_ASSOCIATION
    assert len(asyncio.run(engine.ledger.list_entries("A", DAY))) == 1


def test_storage_outage_is_reported() -> None:
    engine = _engine(FailingKeyValueStore())

    outcome = asyncio.run(engine.handle_reply("A", 3, "remove"))

    assert outcome.status is CorrectionStatus.STORAGE_UNAVAILABLE


def test_outcome_carries_scope_goals(store: InMemoryKeyValueStore) -> None:
    engine = _engine(store)
    asyncio.run(engine.goal_store.set("A", NutritionGoals(calories=1500)))
    _log(engine, "A", 4, entry("Apple"))

    outcome = asyncio.run(engine.handle_reply("A", 4, "apple"))

    assert outcome.goals is not None
    assert outcome.goals.calories == 1500


def test_removal_succeeds_when_association_cleanup_fails() -> None:
    store = _AssociationWritesFailStore()
    engine = _engine(store)
    _log(engine, "A", 6, entry("Pasta", 300))
    store.armed = True

    outcome = asyncio.run(engine.handle_reply("A", 6, "remove"))

    assert outcome.status is CorrectionStatus.REMOVED
    assert outcome.totals is not None
    assert outcome.totals.calories == 0
    assert asyncio.run(engine.ledger.list_entries("A", DAY)) == []


def test_correction_succeeds_when_association_refresh_fails() -> None:
    store = _AssociationWritesFailStore()
    engine = _engine(store)
    _log(engine, "A", 7, entry("Cola", 140))
    store.armed = True

    outcome = asyncio.run(engine.handle_reply("A", 7, "500ml coke"))

    assert outcome.status is CorrectionStatus.UPDATED
    assert outcome.entry is not None
    assert outcome.entry.calories == 280
    assert outcome.totals is not None
    assert outcome.totals.calories == 280
    association = asyncio.run(engine.associations.resolve("A", 7))
    assert association is not None
    assert association.snapshot.food_name == "Cola"
