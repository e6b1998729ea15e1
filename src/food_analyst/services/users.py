"""Display profiles for chats, used by the leaderboard and /users."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from food_analyst.domain.users import UserProfile
from food_analyst.services.storage import KeyValueStore

USERS_KEY = "users"

_logger = logging.getLogger(__name__)


@dataclass
class UserDirectory:
    """Remembers the latest display name seen in each scope."""

    store: KeyValueStore
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    async def touch(
        self, scope_id: str, display_name: str | None, username: str | None
    ) -> None:
        """Record the sender's names and refresh the last-seen time."""
        async with self._lock:
            users = await self._load()
            users[scope_id] = {
                "display_name": display_name,
                "username": username,
                "last_seen": datetime.now(tz=UTC).isoformat(),
            }
            await self.store.set(USERS_KEY, users)

    async def display_name(self, scope_id: str) -> str:
        """Return the best known name for a scope."""
        profile = (await self._load()).get(scope_id) or {}
        return str(
            profile.get("username")
            or profile.get("display_name")
            or f"User {scope_id}"
        )

    async def recent(self, limit: int = 10) -> list[UserProfile]:
        """Return profiles ordered by most recently seen."""
        profiles = []
        for scope_id, raw in (await self._load()).items():
            try:
                last_seen = datetime.fromisoformat(str(raw.get("last_seen")))
            except ValueError:
                _logger.warning("Skipping user profile with bad timestamp: %s", scope_id)
                continue
            profiles.append(
                UserProfile(
                    scope_id=scope_id,
                    display_name=raw.get("display_name"),
                    username=raw.get("username"),
                    last_seen=last_seen,
                )
            )
        profiles.sort(key=lambda profile: profile.last_seen, reverse=True)
        return profiles[:limit]

    async def _load(self) -> dict[str, dict[str, object]]:
        raw = await self.store.get(USERS_KEY)
        if not isinstance(raw, dict):
            return {}
        return {str(key): value for key, value in raw.items() if isinstance(value, dict)}
