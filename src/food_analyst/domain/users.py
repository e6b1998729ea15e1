"""Domain model for chat display profiles."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class UserProfile:
    """Display details remembered for a scope."""

    scope_id: str
    display_name: str | None
    username: str | None
    last_seen: datetime
