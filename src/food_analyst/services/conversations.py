"""Per-scope dialog state machine for multi-step commands."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from food_analyst.domain.conversations import ConversationRecord, ConversationState
from food_analyst.formatting import format_goals
from food_analyst.services.goals import GoalStore, parse_goals_text
from food_analyst.services.storage import KeyValueStore

_logger = logging.getLogger(__name__)

GOALS_PROMPT = (
    "Please enter your daily nutrition goals in this format:\n"
    "calories protein carbs fat [fiber hydration]\n\n"
    "Example: 2000 150 250 70 25 2000\n\n"
    "Or type /cancel to cancel."
)
FEEDBACK_PROMPT = (
    "📬 Send Feedback\n\n"
    "Please type your bug report or suggestion and I'll forward it to the "
    "developer.\n\n"
    "Or type /cancel to cancel."
)
GOALS_FORMAT_ERROR = (
    "❌ Invalid format. Please enter goals as four or six numbers: "
    "calories protein carbs fat [fiber hydration]\n\n"
    "Example: 2000 150 250 70"
)

_PROMPTS = {
    ConversationState.AWAITING_GOALS: GOALS_PROMPT,
    ConversationState.AWAITING_FEEDBACK: FEEDBACK_PROMPT,
}
_CANCELLED = {
    ConversationState.AWAITING_GOALS: "Goal setting cancelled.",
    ConversationState.AWAITING_FEEDBACK: "Feedback cancelled.",
}


def conversation_key(scope_id: str) -> str:
    """Storage key for a scope's dialog record."""
    return f"conversation:{scope_id}"


@dataclass(frozen=True)
class ConversationReply:
    """Reply to send back, plus feedback text to forward if any."""

    text: str
    feedback: str | None = None


@dataclass
class ConversationService:
    """Drives /goals and /feedback dialogs.

    Every inbound text consumes the active state and returns the scope to
    idle, whether or not the input was valid. Records past their timeout
    read as idle.
    """

    store: KeyValueStore
    goal_store: GoalStore
    timeout_seconds: int = 300

    async def begin(self, scope_id: str, state: ConversationState) -> str:
        """Enter a dialog state and return its prompt."""
        now = datetime.now(tz=UTC)
        await self.store.set(
            conversation_key(scope_id),
            {
                "state": state.value,
                "started_at": now.isoformat(),
                "expires_at": (now + timedelta(seconds=self.timeout_seconds)).isoformat(),
            },
        )
        return _PROMPTS[state]

    async def current(self, scope_id: str) -> ConversationState:
        """Return the active state, or idle when none or expired."""
        record = await self._load(scope_id)
        if record is None:
            return ConversationState.IDLE
        if datetime.now(tz=UTC) >= record.expires_at:
            await self.store.delete(conversation_key(scope_id))
            return ConversationState.IDLE
        return record.state

    async def cancel(self, scope_id: str) -> str | None:
        """End the active dialog and return its cancellation text."""
        state = await self.current(scope_id)
        if state is ConversationState.IDLE:
            return None
        await self.store.delete(conversation_key(scope_id))
        return _CANCELLED[state]

    async def handle_text(self, scope_id: str, text: str) -> ConversationReply | None:
        """Feed text to the active dialog; None when the scope is idle."""
        state = await self.current(scope_id)
        if state is ConversationState.IDLE:
            return None
        await self.store.delete(conversation_key(scope_id))
        if text.strip().lower().startswith("/cancel"):
            return ConversationReply(text=_CANCELLED[state])
        if state is ConversationState.AWAITING_GOALS:
            return await self._apply_goals(scope_id, text)
        return ConversationReply(
            text="Thank you for your feedback! I've forwarded it to the developer.",
            feedback=text.strip(),
        )

    async def _apply_goals(self, scope_id: str, text: str) -> ConversationReply:
        current = await self.goal_store.get(scope_id)
        goals = parse_goals_text(text, current)
        if goals is None:
            return ConversationReply(text=GOALS_FORMAT_ERROR)
        await self.goal_store.set(scope_id, goals)
        return ConversationReply(
            text=f"✅ Nutrition goals updated!\n\n{format_goals(goals)}"
        )

    async def _load(self, scope_id: str) -> ConversationRecord | None:
        raw = await self.store.get(conversation_key(scope_id))
        if not isinstance(raw, dict):
            return None
        try:
            return ConversationRecord(
                scope_id=scope_id,
                state=ConversationState(raw["state"]),
                started_at=datetime.fromisoformat(str(raw["started_at"])),
                expires_at=datetime.fromisoformat(str(raw["expires_at"])),
            )
        except (KeyError, ValueError):
            _logger.warning("Dropping malformed conversation state for %s", scope_id)
            await self.store.delete(conversation_key(scope_id))
            return None
