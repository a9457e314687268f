"""Meta metrics sync.

WHAT:
    Pulls daily insights for every ad a user owns, normalizes them with
    `extract_metrics` and upserts them into `meta_metrics`.

WHY:
    - Sync jobs and HTTP triggers share one code path.
    - The insights client is passed in, so tests (and other transports) can
      supply their own without touching module state.
    - One failing ad never stops the run; failures are collected, reported to
      Sentry, and surfaced to the user as a single `sync_error` notification.
    - After an ad is stored, its most recent day is checked against the ROAS
      and budget alert thresholds.

REFERENCES:
    - growthpilot/services/meta_metrics.py (extract_metrics, batch_store_metrics)
    - growthpilot/services/notification_service.py (notify_sync_error, check_roas, check_budget)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from growthpilot.errors import MetricsParseError
from growthpilot.models import Ad, AdSet, Campaign, Client
from growthpilot.services.meta_metrics import AdMetricsRecord, batch_store_metrics, extract_metrics
from growthpilot.services.notification_service import check_budget, check_roas, notify_sync_error
from growthpilot.telemetry.sentry import capture_exception
from growthpilot.utils.cache import TTLCache

logger = logging.getLogger(__name__)


class InsightsFetchError(Exception):
    """The insights transport failed for one ad (network, auth, rate limit)."""


class InsightsClient(Protocol):
    def get_ad_insights(self, meta_ad_id: str, since: date, until: date) -> List[Dict[str, Any]]:
        """Daily insights rows (`time_increment=1`) for one ad, inclusive range."""
        ...


@dataclass
class MetricsSyncResult:
    ads_processed: int = 0
    rows_written: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


def _load_ads(db: Session, user_id: UUID, client_id: Optional[UUID]) -> List[Ad]:
    query = (
        db.query(Ad)
        .join(AdSet, AdSet.ad_set_id == Ad.ad_set_id)
        .join(Campaign, Campaign.campaign_id == AdSet.campaign_id)
        .join(Client, Client.client_id == Campaign.client_id)
        .filter(Client.user_id == user_id)
    )
    if client_id is not None:
        query = query.filter(Client.client_id == client_id)
    return query.order_by(Ad.meta_ad_id).all()


def _insight_date(insight: Mapping[str, Any]) -> date:
    raw = insight.get("date_start") or insight.get("date_stop")
    if not raw:
        raise MetricsParseError("date_start", raw, "missing day")
    try:
        return date.fromisoformat(str(raw)[:10])
    except ValueError as exc:
        raise MetricsParseError("date_start", raw, "expected YYYY-MM-DD") from exc


def _parse_insights(ad: Ad, insights: List[Mapping[str, Any]]) -> List[Tuple[UUID, date, AdMetricsRecord]]:
    return [(ad.ad_id, _insight_date(insight), extract_metrics(insight)) for insight in insights]


def _check_thresholds(
    db: Session,
    user_id: UUID,
    ad: Ad,
    record: AdMetricsRecord,
    roas_threshold: float,
    budget_multiplier: float,
) -> None:
    campaign_name = ad.ad_set.campaign.campaign_name

    if record.roas is not None and record.roas > 0:
        check_roas(db, user_id, campaign_name, record.roas, threshold=roas_threshold)

    budget = ad.ad_set.budget
    if budget and record.spend > 0:
        check_budget(db, user_id, campaign_name, record.spend, float(budget), multiplier=budget_multiplier)


def sync_ad_metrics(
    db: Session,
    user_id: UUID,
    insights_client: InsightsClient,
    since: date,
    until: date,
    client_id: Optional[UUID] = None,
    roas_threshold: Optional[float] = None,
    budget_multiplier: Optional[float] = None,
    overview_cache: Optional[TTLCache] = None,
) -> MetricsSyncResult:
    """Sync daily metrics for the user's ads in [since, until].

    An ad whose fetch or parse fails is skipped as a whole, so a half-parsed
    day never lands in `meta_metrics`.

    Alert thresholds default to ROAS_ALERT_THRESHOLD and
    BUDGET_ALERT_MULTIPLIER from settings. Once rows are written, the user's
    cached overview results are dropped from `overview_cache` (default: the
    process-wide cache from deps).

    Raises:
        ValueError: `since` is after `until`.
    """
    if since > until:
        raise ValueError("since must not be after until")

    if roas_threshold is None or budget_multiplier is None:
        from growthpilot.deps import get_settings

        settings = get_settings()
        if roas_threshold is None:
            roas_threshold = settings.ROAS_ALERT_THRESHOLD
        if budget_multiplier is None:
            budget_multiplier = settings.BUDGET_ALERT_MULTIPLIER

    start_time = datetime.now(timezone.utc)
    result = MetricsSyncResult()

    logger.info(
        "[META_SYNC] Starting metrics sync: user=%s client=%s range=%s..%s",
        user_id,
        client_id,
        since,
        until,
    )

    ads = _load_ads(db, user_id, client_id)
    if not ads:
        logger.warning("[META_SYNC] No ads found for user=%s client=%s", user_id, client_id)
        return result

    for ad in ads:
        result.ads_processed += 1
        try:
            insights = insights_client.get_ad_insights(ad.meta_ad_id, since, until)
            rows = _parse_insights(ad, insights or [])
        except (InsightsFetchError, MetricsParseError) as e:
            logger.error("[META_SYNC] Failed to sync ad %s: %s", ad.meta_ad_id, e)
            capture_exception(e, extra={"meta_ad_id": ad.meta_ad_id, "user_id": str(user_id)})
            result.errors.append(f"{ad.meta_ad_id}: {e}")
            continue

        if not rows:
            logger.debug("[META_SYNC] No insights for ad %s", ad.meta_ad_id)
            continue

        result.rows_written += batch_store_metrics(db, rows)

        _, _, latest = max(rows, key=lambda row: row[1])
        _check_thresholds(db, user_id, ad, latest, roas_threshold, budget_multiplier)

    db.commit()

    if result.rows_written:
        if overview_cache is None:
            from growthpilot.deps import get_overview_cache

            overview_cache = get_overview_cache()
        overview_cache.invalidate_user(user_id)

    if result.errors:
        notify_sync_error(
            db,
            user_id,
            f"{len(result.errors)} reklam senkronize edilemedi ({result.errors[0]})",
        )

    duration = (datetime.now(timezone.utc) - start_time).total_seconds()
    logger.info(
        "[META_SYNC] Metrics sync complete: ads=%s rows=%s errors=%s duration=%.2fs",
        result.ads_processed,
        result.rows_written,
        len(result.errors),
        duration,
    )
    return result
