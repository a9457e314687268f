"""
Metrics router
--------------
Purpose:
- Serve the overview cards and the daily trend chart of the dashboard.
- Every number is scoped to the authenticated user; `client_id` narrows further.
Design choices:
- The router only parses the request and maps domain errors to HTTP.
  All math lives in services/overview_service.py.
- A `client_id` that is not a UUID matches no client, so it yields the same
  empty result as an unknown or foreign id instead of a request error.
- An invalid commission model in scope is a data problem, surfaced as 422.
"""

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from growthpilot import models
from growthpilot.deps import Settings, get_current_user, get_overview_service, get_settings
from growthpilot.errors import MetricsValidationError
from growthpilot.schemas import OverviewMetricsOut, TrendPointOut
from growthpilot.services.overview_service import OverviewService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/metrics", tags=["metrics"])


def _parse_client_filter(raw: Optional[str]) -> Tuple[bool, Optional[UUID]]:
    """Return (matches_anything, client_id) for the `client_id` query value."""
    if raw is None or not raw.strip():
        return True, None
    try:
        return True, UUID(raw.strip())
    except ValueError:
        return False, None


@router.get("/overview", response_model=OverviewMetricsOut)
def get_overview(
    client_id: Optional[str] = Query(None, description="Limit to one client"),
    current_user: models.User = Depends(get_current_user),
    service: OverviewService = Depends(get_overview_service),
):
    valid, client_uuid = _parse_client_filter(client_id)
    if not valid:
        logger.info("[OVERVIEW] Unparseable client filter for user=%s: %r", current_user.user_id, client_id)
        return OverviewMetricsOut()

    try:
        overview = service.get_overview(current_user.user_id, client_id=client_uuid)
    except MetricsValidationError as exc:
        logger.warning("[OVERVIEW] Rejected overview for user=%s: %s", current_user.user_id, exc)
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    return OverviewMetricsOut(
        total_clients=overview.total_clients,
        total_spend_today=overview.total_spend_today,
        total_spend_this_month=overview.total_spend_this_month,
        total_revenue_this_month=overview.total_revenue_this_month,
        active_campaigns=overview.active_campaigns,
    )


@router.get("/trends", response_model=List[TrendPointOut])
def get_trends(
    client_id: Optional[str] = Query(None, description="Limit to one client"),
    days: Optional[int] = Query(None, ge=1, le=365, description="Window length; defaults to TREND_WINDOW_DAYS"),
    current_user: models.User = Depends(get_current_user),
    service: OverviewService = Depends(get_overview_service),
    settings: Settings = Depends(get_settings),
):
    valid, client_uuid = _parse_client_filter(client_id)
    if not valid:
        logger.info("[OVERVIEW] Unparseable client filter for user=%s: %r", current_user.user_id, client_id)
        return []

    window = days or settings.TREND_WINDOW_DAYS
    try:
        points = service.get_trends(current_user.user_id, client_id=client_uuid, days=window)
    except MetricsValidationError as exc:
        logger.warning("[OVERVIEW] Rejected trends for user=%s: %s", current_user.user_id, exc)
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    return [TrendPointOut(date=p.date, spend=p.spend, revenue=p.revenue) for p in points]
