"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.responses import PlainTextResponse

from voice_nutrition.api.models import TierRequest, UsagePayload

if TYPE_CHECKING:
    from voice_nutrition.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


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


@router.get("/analytics/summary", dependencies=[Depends(require_admin)])
async def analytics_summary(request: Request) -> dict[str, object]:
    """Return aggregate session analytics."""
    container: AppContainer = request.app.state.container
    return container.tracker.session_summary().model_dump()


@router.get("/analytics/models", dependencies=[Depends(require_admin)])
async def analytics_models(request: Request) -> dict[str, object]:
    """Return per-model latency, cost and success statistics."""
    container: AppContainer = request.app.state.container
    return {
        "models": [
            {**stats.model_dump(), "success_rate": stats.success_rate}
            for stats in container.tracker.model_stats().values()
        ]
    }


@router.get("/analytics/sessions", dependencies=[Depends(require_admin)])
async def analytics_sessions(request: Request, limit: int = 20) -> dict[str, object]:
    """Return the most recent completed sessions, newest first."""
    container: AppContainer = request.app.state.container
    history = container.tracker.session_history()
    recent = list(reversed(history))[: max(limit, 0)]
    return {"sessions": [session.model_dump(mode="json") for session in recent]}


@router.get(
    "/analytics/report",
    dependencies=[Depends(require_admin)],
    response_class=PlainTextResponse,
)
async def analytics_report(request: Request) -> PlainTextResponse:
    """Return the plain-text performance report."""
    container: AppContainer = request.app.state.container
    return PlainTextResponse(container.tracker.performance_report())


@router.put("/users/{user_id}/tier", dependencies=[Depends(require_admin)])
async def set_user_tier(
    user_id: str, payload: TierRequest, request: Request
) -> UsagePayload:
    """Move a user to another subscription tier."""
    container: AppContainer = request.app.state.container
    try:
        usage = container.entitlement_service.set_tier(user_id, payload.tier)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return UsagePayload.from_usage(usage)
