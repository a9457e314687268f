"""
Overview Metric Service
=======================

Aggregates ad spend, agency commission revenue and campaign counts for the
dashboard overview, optionally scoped to a single client.

WHAT: Pure aggregation functions plus a thin DB loader around them
WHY: The numbers on the overview cards and the daily trend chart must agree,
     and must never include another client's or another user's rows
HOW: `OverviewService` loads ownership-scoped rows, then hands them to
     `compute_overview` / `compute_trends`, which re-apply the scope and sum

Design Principles:
- Aggregation is pure summation over already-loaded rows (no I/O, no state)
- Empty scopes produce zeros, never None or NaN
- Client scope is enforced twice: in SQL and again in the pure functions
- "Today" is the calendar date in the configured reporting timezone

Usage:
    >>> service = OverviewService(db, revenue_deriver=ProxyRevenueDeriver(100))
    >>> overview = service.get_overview(user_id, client_id=None)
    >>> overview.total_spend_this_month
    3500.0

References:
- growthpilot/services/commission.py: Commission math
- growthpilot/services/revenue.py: RevenueInput derivation
- growthpilot/routers/metrics.py: HTTP consumer
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session, joinedload

from growthpilot import models
from growthpilot.services.commission import (
    CommissionModelInput,
    calculate_commission_with_model,
    round2,
    validate_commission_model,
)
from growthpilot.services.revenue import ProxyRevenueDeriver, RevenueDeriver
from growthpilot.utils.cache import TTLCache

logger = logging.getLogger(__name__)

ACTIVE_STATUS = "ACTIVE"


@dataclass
class ClientScope:
    """A client as seen by the aggregation engine."""
    client_id: Any
    user_id: Any
    commission_model: Optional[CommissionModelInput] = None


@dataclass
class CampaignRow:
    campaign_id: Any
    client_id: Any
    status: str


@dataclass
class MetricsRow:
    """One daily metrics row tagged with the client that owns the ad."""
    client_id: Any
    ad_id: Any
    date: Any  # date or ISO "YYYY-MM-DD"
    spend: Any = 0
    purchases: int = 0
    conversions: int = 0


@dataclass
class OverviewMetrics:
    total_clients: int = 0
    total_spend_today: float = 0.0
    total_spend_this_month: float = 0.0
    total_revenue_this_month: float = 0.0
    active_campaigns: int = 0


@dataclass
class TrendPoint:
    date: str
    spend: float
    revenue: float


# =============================================================================
# HELPERS
# =============================================================================

def today_in_timezone(timezone_name: str) -> date:
    """Current calendar date in the given IANA timezone."""
    return datetime.now(ZoneInfo(timezone_name)).date()


def start_of_month(day: date) -> date:
    return day.replace(day=1)


def is_active_status(status: Optional[str]) -> bool:
    """Meta reports 'ACTIVE'; older rows may carry 'active'."""
    return bool(status) and status.strip().upper() == ACTIVE_STATUS


def _as_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _key(value: Any) -> str:
    return str(value)


def _cache_key(user_id: Any, client_id: Optional[Any], view: str, today: date) -> tuple:
    # Owner first so TTLCache.invalidate_user can match it
    return (_key(user_id), _key(client_id) if client_id is not None else "all", view, today.isoformat())


def _money(value: Any) -> Decimal:
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _scope_clients(
    clients: Iterable[ClientScope],
    user_id: Any,
    client_id: Optional[Any],
) -> List[ClientScope]:
    scoped = []
    for client in clients:
        if _key(client.user_id) != _key(user_id):
            continue
        if client_id is not None and _key(client.client_id) != _key(client_id):
            continue
        scoped.append(client)
    return scoped


def _validated_models(clients: Sequence[ClientScope]) -> Dict[str, Any]:
    """Map client key -> commission model, rejecting any invalid model."""
    result = {}
    for client in clients:
        if client.commission_model is None:
            continue
        validate_commission_model(client.commission_model)
        result[_key(client.client_id)] = client.commission_model
    return result


# =============================================================================
# PURE AGGREGATION
# =============================================================================

def compute_overview(
    user_id: Any,
    clients: Iterable[ClientScope],
    campaigns: Iterable[CampaignRow],
    metrics: Iterable[MetricsRow],
    *,
    today: date,
    revenue_deriver: RevenueDeriver,
    client_id: Optional[Any] = None,
) -> OverviewMetrics:
    """Aggregate the overview for one user, optionally one client.

    Args:
        user_id: Owner whose clients are in scope.
        clients: Candidate clients; anything not owned by `user_id` is ignored.
        campaigns: Campaign rows; only those of in-scope clients count.
        metrics: Daily metric rows tagged with their client.
        today: Reporting date; month window is [first of month, today].
        revenue_deriver: Builds a RevenueInput from a client's month rows.
        client_id: Optional single-client filter. A foreign or unknown id
            yields an all-zero overview.

    Raises:
        InvalidCommissionPercentageError / InvalidCalculationBasisError:
            An in-scope client carries an invalid commission model.
    """
    scoped = _scope_clients(clients, user_id, client_id)
    if not scoped:
        return OverviewMetrics()

    client_keys = {_key(c.client_id) for c in scoped}
    commission_models = _validated_models(scoped)

    active_campaigns = sum(
        1
        for campaign in campaigns
        if _key(campaign.client_id) in client_keys and is_active_status(campaign.status)
    )

    month_start = start_of_month(today)
    spend_today = Decimal(0)
    spend_month = Decimal(0)
    rows_by_client: Dict[str, List[MetricsRow]] = {key: [] for key in client_keys}

    for row in metrics:
        key = _key(row.client_id)
        if key not in client_keys:
            continue
        row_date = _as_date(row.date)
        if row_date < month_start or row_date > today:
            continue

        spend = _money(row.spend)
        spend_month += spend
        if row_date == today:
            spend_today += spend
        rows_by_client[key].append(row)

    revenue_month = Decimal(0)
    for key, model in commission_models.items():
        revenue_input = revenue_deriver.derive(rows_by_client[key])
        commission = calculate_commission_with_model(revenue_input, model)
        revenue_month += _money(commission)

    return OverviewMetrics(
        total_clients=len(scoped),
        total_spend_today=round2(spend_today),
        total_spend_this_month=round2(spend_month),
        total_revenue_this_month=round2(revenue_month),
        active_campaigns=active_campaigns,
    )


def compute_trends(
    user_id: Any,
    clients: Iterable[ClientScope],
    metrics: Iterable[MetricsRow],
    *,
    today: date,
    days: int,
    revenue_deriver: RevenueDeriver,
    client_id: Optional[Any] = None,
) -> List[TrendPoint]:
    """Daily spend and commission revenue for [today - days, today].

    Every day in the window is present (zero-filled), sorted ascending.
    Revenue for a day is the sum of per-row commissions of clients that
    have a commission model.
    """
    if days < 0:
        raise ValueError("days cannot be negative")

    scoped = _scope_clients(clients, user_id, client_id)
    if not scoped:
        return []

    client_keys = {_key(c.client_id) for c in scoped}
    commission_models = _validated_models(scoped)

    start = today - timedelta(days=days)
    daily: Dict[date, Dict[str, Decimal]] = {}
    current = start
    while current <= today:
        daily[current] = {"spend": Decimal(0), "revenue": Decimal(0)}
        current += timedelta(days=1)

    for row in metrics:
        key = _key(row.client_id)
        if key not in client_keys:
            continue
        row_date = _as_date(row.date)
        if row_date not in daily:
            continue

        bucket = daily[row_date]
        bucket["spend"] += _money(row.spend)

        model = commission_models.get(key)
        if model is not None:
            revenue_input = revenue_deriver.derive([row])
            bucket["revenue"] += _money(calculate_commission_with_model(revenue_input, model))

    return [
        TrendPoint(
            date=day.isoformat(),
            spend=round2(values["spend"]),
            revenue=round2(values["revenue"]),
        )
        for day, values in sorted(daily.items())
    ]


# =============================================================================
# DATABASE-BACKED SERVICE
# =============================================================================

class OverviewService:
    """
    Loads ownership-scoped rows and aggregates them.

    Every query filters on `Client.user_id`, so concurrent writes to another
    user's or another client's data never enter the result set.

    With a `cache`, results are kept per (user, client or "all", day) until
    the TTL runs out or the user's metrics are re-synced.
    """

    def __init__(
        self,
        db: Session,
        revenue_deriver: Optional[RevenueDeriver] = None,
        timezone: str = "Europe/Istanbul",
        cache: Optional[TTLCache] = None,
    ):
        self.db = db
        self.revenue_deriver = revenue_deriver or ProxyRevenueDeriver()
        self.timezone = timezone
        self.cache = cache

    def get_overview(
        self,
        user_id: UUID,
        client_id: Optional[UUID] = None,
        today: Optional[date] = None,
    ) -> OverviewMetrics:
        today = today or today_in_timezone(self.timezone)
        cache_key = _cache_key(user_id, client_id, "overview", today)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug("[OVERVIEW] Cache hit: user=%s client=%s", user_id, client_id)
                return replace(cached)

        overview = self._build_overview(user_id, client_id, today)
        if self.cache is not None:
            self.cache.set(cache_key, replace(overview))
        return overview

    def get_trends(
        self,
        user_id: UUID,
        client_id: Optional[UUID] = None,
        days: int = 30,
        today: Optional[date] = None,
    ) -> List[TrendPoint]:
        today = today or today_in_timezone(self.timezone)
        cache_key = _cache_key(user_id, client_id, f"trends:{days}", today)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return [replace(point) for point in cached]

        points = self._build_trends(user_id, client_id, days, today)
        if self.cache is not None:
            self.cache.set(cache_key, [replace(point) for point in points])
        return points

    def _build_overview(self, user_id: UUID, client_id: Optional[UUID], today: date) -> OverviewMetrics:
        clients = self._load_clients(user_id, client_id)

        if not clients:
            logger.info(
                "[OVERVIEW] No clients in scope: user=%s client=%s", user_id, client_id
            )
            return OverviewMetrics()

        client_ids = [c.client_id for c in clients]
        campaigns = self._load_campaigns(user_id, client_ids)
        metrics = self._load_metrics(user_id, client_ids, start_of_month(today), today)

        logger.info(
            "[OVERVIEW] user=%s client=%s clients=%s campaigns=%s metric_rows=%s today=%s",
            user_id,
            client_id,
            len(clients),
            len(campaigns),
            len(metrics),
            today,
        )

        return compute_overview(
            user_id,
            clients,
            campaigns,
            metrics,
            today=today,
            revenue_deriver=self.revenue_deriver,
            client_id=client_id,
        )

    def _build_trends(self, user_id: UUID, client_id: Optional[UUID], days: int, today: date) -> List[TrendPoint]:
        clients = self._load_clients(user_id, client_id)
        if not clients:
            return []

        client_ids = [c.client_id for c in clients]
        metrics = self._load_metrics(user_id, client_ids, today - timedelta(days=days), today)

        return compute_trends(
            user_id,
            clients,
            metrics,
            today=today,
            days=days,
            revenue_deriver=self.revenue_deriver,
            client_id=client_id,
        )

    # -------------------------------------------------------------------------
    # Loaders
    # -------------------------------------------------------------------------

    def _load_clients(self, user_id: UUID, client_id: Optional[UUID]) -> List[ClientScope]:
        query = (
            self.db.query(models.Client)
            .options(joinedload(models.Client.commission_model))
            .filter(models.Client.user_id == user_id)
        )
        if client_id is not None:
            query = query.filter(models.Client.client_id == client_id)

        scopes = []
        for client in query.all():
            model = None
            if client.commission_model is not None:
                model = CommissionModelInput(
                    commission_percentage=client.commission_model.commission_percentage,
                    calculation_basis=client.commission_model.calculation_basis,
                )
            scopes.append(
                ClientScope(
                    client_id=client.client_id,
                    user_id=client.user_id,
                    commission_model=model,
                )
            )
        return scopes

    def _load_campaigns(self, user_id: UUID, client_ids: List[UUID]) -> List[CampaignRow]:
        rows = (
            self.db.query(
                models.Campaign.campaign_id,
                models.Campaign.client_id,
                models.Campaign.status,
            )
            .join(models.Client, models.Client.client_id == models.Campaign.client_id)
            .filter(
                models.Client.user_id == user_id,
                models.Campaign.client_id.in_(client_ids),
            )
            .all()
        )
        return [CampaignRow(campaign_id=r[0], client_id=r[1], status=r[2]) for r in rows]

    def _load_metrics(
        self,
        user_id: UUID,
        client_ids: List[UUID],
        start: date,
        end: date,
    ) -> List[MetricsRow]:
        rows = (
            self.db.query(
                models.Campaign.client_id,
                models.MetaMetric.ad_id,
                models.MetaMetric.date,
                models.MetaMetric.spend,
                models.MetaMetric.purchases,
                models.MetaMetric.conversions,
            )
            .join(models.Ad, models.Ad.ad_id == models.MetaMetric.ad_id)
            .join(models.AdSet, models.AdSet.ad_set_id == models.Ad.ad_set_id)
            .join(models.Campaign, models.Campaign.campaign_id == models.AdSet.campaign_id)
            .join(models.Client, models.Client.client_id == models.Campaign.client_id)
            .filter(
                models.Client.user_id == user_id,
                models.Campaign.client_id.in_(client_ids),
                models.MetaMetric.date >= start,
                models.MetaMetric.date <= end,
            )
            .all()
        )
        return [
            MetricsRow(
                client_id=r[0],
                ad_id=r[1],
                date=r[2],
                spend=r[3],
                purchases=r[4] or 0,
                conversions=r[5] or 0,
            )
            for r in rows
        ]
