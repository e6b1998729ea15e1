"""Domain model linking outbound bot messages to ledger entries."""

from collections.abc import Mapping
from dataclasses import dataclass

from food_analyst.domain.nutrition import FoodEntry


@dataclass(frozen=True)
class MessageAssociation:
    """Weak reference from an analysis message to the entry it reported."""

    scope_id: str
    message_id: int
    entry_date: str
    snapshot: FoodEntry
    recorded_at: str

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable representation."""
        return {
            "scope_id": self.scope_id,
            "message_id": self.message_id,
            "entry_date": self.entry_date,
            "snapshot": self.snapshot.to_dict(),
            "recorded_at": self.recorded_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "MessageAssociation":
        """Parse a stored association."""
        snapshot = data.get("snapshot")
        return cls(
            scope_id=str(data["scope_id"]),
            message_id=int(data["message_id"]),
            entry_date=str(data["entry_date"]),
            snapshot=FoodEntry.from_dict(snapshot if isinstance(snapshot, dict) else {}),
            recorded_at=str(data.get("recorded_at", "")),
        )
