"""Domain models for multi-step chat dialogs."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ConversationState(str, Enum):
    """Named states of a per-scope dialog."""

    IDLE = "idle"
    AWAITING_GOALS = "awaiting_goals"
    AWAITING_FEEDBACK = "awaiting_feedback"


@dataclass(frozen=True)
class ConversationRecord:
    """Persisted dialog state for a scope."""

    scope_id: str
    state: ConversationState
    started_at: datetime
    expires_at: datetime
