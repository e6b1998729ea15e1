"""Reply-driven correction and removal of logged entries."""

import logging
from dataclasses import dataclass
from enum import Enum

from food_analyst.domain.nutrition import FoodEntry, NutrientTotals, NutritionGoals
from food_analyst.errors import StorageUnavailableError
from food_analyst.services.associations import MessageAssociationIndex
from food_analyst.services.goals import GoalStore
from food_analyst.services.interpreter import CorrectionInterpreter
from food_analyst.services.ledger import NutritionLedger

REMOVAL_KEYWORDS: tuple[str, ...] = ("remove", "delete", "erase", "cancel")

_logger = logging.getLogger(__name__)


class CorrectionAction(str, Enum):
    """What the reply asked for."""

    UPDATE = "update"
    REMOVE = "remove"


class CorrectionStatus(str, Enum):
    """Result of handling a reply."""

    UPDATED = "updated"
    REMOVED = "removed"
    NO_ASSOCIATION = "no_association"
    ENTRY_NOT_FOUND = "entry_not_found"
    STORAGE_UNAVAILABLE = "storage_unavailable"


@dataclass(frozen=True)
class CorrectionOutcome:
    """What happened to the entry behind a replied-to message."""

    action: CorrectionAction
    status: CorrectionStatus
    scope_id: str
    message_id: int
    entry: FoodEntry | None = None
    totals: NutrientTotals | None = None
    goals: NutritionGoals | None = None

    @property
    def succeeded(self) -> bool:
        """True when the ledger was changed."""
        return self.status in {CorrectionStatus.UPDATED, CorrectionStatus.REMOVED}


def is_removal_request(text: str) -> bool:
    """Return True when the text contains a removal keyword."""
    lowered = text.lower()
    return any(keyword in lowered for keyword in REMOVAL_KEYWORDS)


@dataclass
class CorrectionEngine:
    """Maps replies to bot messages back onto ledger entries."""

    ledger: NutritionLedger
    associations: MessageAssociationIndex
    interpreter: CorrectionInterpreter
    goal_store: GoalStore

    async def handle_reply(
        self, scope_id: str, message_id: int, text: str
    ) -> CorrectionOutcome:
        """Route a reply to the removal or the correction path."""
        if is_removal_request(text):
            return await self.remove(scope_id, message_id)
        return await self.update(scope_id, message_id, text)

    async def remove(self, scope_id: str, message_id: int) -> CorrectionOutcome:
        """Delete the entry a message reported and forget the association."""
        action = CorrectionAction.REMOVE
        try:
            association = await self.associations.resolve(scope_id, message_id)
            if association is None:
                return CorrectionOutcome(
                    action, CorrectionStatus.NO_ASSOCIATION, scope_id, message_id
                )
            removed = await self.ledger.remove_by_match(
                scope_id, association.entry_date, association.snapshot.identifies
            )
        except StorageUnavailableError:
            _logger.warning("Storage unavailable while removing message %s", message_id)
            return CorrectionOutcome(
                action, CorrectionStatus.STORAGE_UNAVAILABLE, scope_id, message_id
            )
        if removed is None:
            return CorrectionOutcome(
                action, CorrectionStatus.ENTRY_NOT_FOUND, scope_id, message_id
            )
        # The ledger row is gone; association cleanup no longer decides the outcome.
        try:
            await self.associations.invalidate(scope_id, message_id)
        except StorageUnavailableError:
            _logger.warning("Could not forget association for message %s", message_id)
        return CorrectionOutcome(
            action,
            CorrectionStatus.REMOVED,
            scope_id,
            message_id,
            entry=removed,
            totals=await self._totals(scope_id, association.entry_date),
            goals=await self.goal_store.get(scope_id),
        )

    async def update(
        self, scope_id: str, message_id: int, text: str
    ) -> CorrectionOutcome:
        """Replace the reported entry's values with the parsed correction."""
        action = CorrectionAction.UPDATE
        patch = self.interpreter.parse(text)
        try:
            association = await self.associations.resolve(scope_id, message_id)
            if association is None:
                return CorrectionOutcome(
                    action, CorrectionStatus.NO_ASSOCIATION, scope_id, message_id
                )
            updated = await self.ledger.replace_by_match(
                scope_id,
                association.entry_date,
                association.snapshot.identifies,
                patch,
            )
        except StorageUnavailableError:
            _logger.warning("Storage unavailable while correcting message %s", message_id)
            return CorrectionOutcome(
                action, CorrectionStatus.STORAGE_UNAVAILABLE, scope_id, message_id
            )
        if updated is None:
            return CorrectionOutcome(
                action, CorrectionStatus.ENTRY_NOT_FOUND, scope_id, message_id
            )
        try:
            await self.associations.refresh(association, updated)
        except StorageUnavailableError:
            _logger.warning(
                "Could not refresh association for message %s; it still points "
                "at the previous values",
                message_id,
            )
        return CorrectionOutcome(
            action,
            CorrectionStatus.UPDATED,
            scope_id,
            message_id,
            entry=updated,
            totals=await self._totals(scope_id, association.entry_date),
            goals=await self.goal_store.get(scope_id),
        )

    async def _totals(self, scope_id: str, day: str) -> NutrientTotals | None:
        try:
            return await self.ledger.aggregate(scope_id, day)
        except StorageUnavailableError:
            _logger.warning("Could not total %s for %s after a change", scope_id, day)
            return None
