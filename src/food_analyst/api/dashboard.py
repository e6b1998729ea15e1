"""Public dashboard endpoints: health, leaderboard and stats."""

from __future__ import annotations

import logging
import math
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, Request, status

from food_analyst.errors import StorageUnavailableError
from food_analyst.services.leaderboard import mask_display_name
from food_analyst.services.ledger import INDEX_KEY

if TYPE_CHECKING:
    from food_analyst.containers import AppContainer
    from food_analyst.domain.leaderboard import LeaderboardEntry

router = APIRouter(prefix="/api", tags=["dashboard"])

_logger = logging.getLogger(__name__)


@router.get("/health")
async def dashboard_health(request: Request) -> dict[str, object]:
    """Report the status of each backing service."""
    container: AppContainer = request.app.state.container
    services: dict[str, dict[str, str]] = {}
    try:
        await container.ledger.store.get(INDEX_KEY)
        services["storage"] = {"status": "online", "message": "Connected successfully"}
    except StorageUnavailableError:
        services["storage"] = {"status": "offline", "message": "Connection failed"}
    services["telegram"] = _configured(
        container.settings.telegram_bot_token, "Token configured"
    )
    services["vision"] = _configured(
        container.settings.openai_api_key, "API key configured"
    )
    services["web"] = {"status": "online", "message": "Web interface operational"}
    return {"timestamp": _timestamp(), "services": services}


@router.get("/leaderboard")
async def leaderboard(request: Request) -> dict[str, object]:
    """Return today's ranked scopes with masked identities."""
    container: AppContainer = request.app.state.container
    try:
        entries = await container.dashboard_service.leaderboard()
    except StorageUnavailableError as exc:
        _logger.warning("Leaderboard unavailable: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to generate leaderboard",
        ) from exc
    return {
        "timestamp": _timestamp(),
        "leaderboard": [_leaderboard_row(entry) for entry in entries],
        "total_users": len(entries),
    }


@router.get("/stats")
async def stats(request: Request) -> dict[str, object]:
    """Return counts for today and the global goals."""
    container: AppContainer = request.app.state.container
    try:
        snapshot = await container.dashboard_service.stats()
    except StorageUnavailableError as exc:
        _logger.warning("Stats unavailable: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to get stats",
        ) from exc
    return {
        "timestamp": _timestamp(),
        "total_scopes_seen": snapshot.total_scopes_seen,
        "entries_logged_today": snapshot.entries_logged_today,
        "current_goals": snapshot.current_goals.as_dict(),
    }


def _leaderboard_row(entry: LeaderboardEntry) -> dict[str, object]:
    # JSON has no infinity; a category over a zero goal is reported as null.
    return {
        "rank": entry.rank,
        "scope_id": mask_display_name(entry.scope_id),
        "display_name": entry.display_name,
        "score": entry.score,
        "percentages": {
            name: (value if math.isfinite(value) else None)
            for name, value in entry.percentages.items()
        },
        "details": entry.details,
    }


def _configured(value: str | None, message: str) -> dict[str, str]:
    if value:
        return {"status": "online", "message": message}
    return {"status": "warning", "message": "Not configured"}


def _timestamp() -> str:
    return datetime.now(tz=UTC).isoformat()
