"""Admin API endpoints with simple token auth."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from food_analyst.errors import StorageUnavailableError

if TYPE_CHECKING:
    from food_analyst.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])

_logger = logging.getLogger(__name__)


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.post("/daily-summary", dependencies=[Depends(require_admin)])
async def send_daily_summaries(request: Request) -> dict[str, object]:
    """Send today's summary to every scope that logged food.

    Meant to be called by an external scheduler once a day. A failed send is
    logged and the remaining scopes are still served.
    """
    container: AppContainer = request.app.state.container
    try:
        summaries = await container.summary_service.dispatch_daily_summaries()
    except StorageUnavailableError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Storage unavailable",
        ) from exc
    sent: list[str] = []
    failed: list[str] = []
    for scope_id, text in summaries.items():
        try:
            await container.telegram_client.send_message(chat_id=scope_id, text=text)
        except Exception:
            _logger.exception("Failed to send daily summary to %s", scope_id)
            failed.append(scope_id)
            continue
        sent.append(scope_id)
    _logger.info("Daily summaries sent: %d, failed: %d", len(sent), len(failed))
    return {"sent": sent, "failed": failed}
