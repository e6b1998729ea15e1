"""Index from outbound analysis messages to the ledger entries they report."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from food_analyst.domain.associations import MessageAssociation
from food_analyst.domain.nutrition import FoodEntry
from food_analyst.services.storage import KeyValueStore

_logger = logging.getLogger(__name__)


def association_key(scope_id: str, message_id: int) -> str:
    """Telegram message ids are only unique within a chat, so keys carry both."""
    return f"association:{scope_id}:{message_id}"


@dataclass
class MessageAssociationIndex:
    """Durable join table between bot messages and ledger rows."""

    store: KeyValueStore

    async def record(
        self, message_id: int, scope_id: str, entry_date: str, snapshot: FoodEntry
    ) -> MessageAssociation:
        """Store the association, replacing any previous one for the message."""
        association = MessageAssociation(
            scope_id=scope_id,
            message_id=message_id,
            entry_date=entry_date,
            snapshot=snapshot,
            recorded_at=datetime.now(tz=UTC).isoformat(),
        )
        await self.store.set(
            association_key(scope_id, message_id), association.to_dict()
        )
        return association

    async def resolve(self, scope_id: str, message_id: int) -> MessageAssociation | None:
        """Return the association for a message, if one was recorded."""
        raw = await self.store.get(association_key(scope_id, message_id))
        if not isinstance(raw, dict):
            return None
        try:
            return MessageAssociation.from_dict(raw)
        except (KeyError, TypeError, ValueError):
            _logger.warning(
                "Ignoring malformed association for message %s in %s",
                message_id,
                scope_id,
            )
            return None

    async def refresh(
        self, association: MessageAssociation, snapshot: FoodEntry
    ) -> MessageAssociation:
        """Point an existing association at the entry's current values."""
        return await self.record(
            association.message_id,
            association.scope_id,
            association.entry_date,
            snapshot,
        )

    async def invalidate(self, scope_id: str, message_id: int) -> None:
        """Forget an association; a no-op when already absent."""
        await self.store.delete(association_key(scope_id, message_id))
