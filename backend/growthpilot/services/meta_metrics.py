"""Meta insights extraction.

WHAT:
    Turns one raw Meta Ads insights row (numbers arrive as strings) into a
    normalized `AdMetricsRecord` with derived ratios, and upserts those records
    into `meta_metrics`.

WHY:
    - Every numeric field is parsed and validated at this boundary so NaN or
      negative values can never reach the aggregation engine.
    - Derived ratios follow one policy everywhere: None when the denominator
      is zero, never NaN or Infinity.

Derived metric policy:
    ctr  = clicks / impressions * 100   (clicks > 0 and impressions > 0)
    cpc  = spend / clicks               (clicks > 0)
    cpm  = spend / impressions * 1000   (impressions > 0)
    cpa  = spend / conversions          (conversions > 0)
    roas = purchase value / spend       (spend > 0 and a purchase action value exists)

REFERENCES:
    - growthpilot/services/meta_sync_service.py (calls extract_metrics + batch_store_metrics)
    - growthpilot/models.py:MetaMetric
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, asdict
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy.orm import Session

from growthpilot.errors import MetricsParseError
from growthpilot.models import MetaMetric
from growthpilot.services.commission import round2

logger = logging.getLogger(__name__)

# Meta reports one event under an omni-channel and a pixel tag; omni wins
PURCHASE_ACTION_TYPES = ("omni_purchase", "purchase")
ADD_TO_CART_ACTION_TYPES = ("omni_add_to_cart", "add_to_cart")


@dataclass
class AdMetricsRecord:
    """Normalized daily metrics for a single ad."""
    spend: float = 0.0
    impressions: int = 0
    clicks: int = 0
    conversions: int = 0
    add_to_cart: int = 0
    purchases: int = 0
    revenue: float = 0.0
    roas: Optional[float] = None
    ctr: Optional[float] = None
    cpc: Optional[float] = None
    cpm: Optional[float] = None
    cpa: Optional[float] = None
    frequency: Optional[float] = None

    def as_row(self) -> Dict[str, Any]:
        """Column values for `MetaMetric` (revenue is not persisted)."""
        row = asdict(self)
        row.pop("revenue")
        for key in ("roas", "ctr", "cpc", "cpm", "cpa", "frequency"):
            if row[key] is not None:
                row[key] = round2(row[key])
        return row


def _parse_decimal(field: str, raw: Any) -> Decimal:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return Decimal(0)
    if isinstance(raw, bool):
        raise MetricsParseError(field, raw, "boolean is not a number")
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation as exc:
        raise MetricsParseError(field, raw) from exc
    if not value.is_finite():
        raise MetricsParseError(field, raw, "value is not finite")
    if value < 0:
        raise MetricsParseError(field, raw, "value is negative")
    return value


def _parse_float(field: str, raw: Any) -> float:
    return float(_parse_decimal(field, raw))


def _parse_count(field: str, raw: Any) -> int:
    value = _parse_decimal(field, raw)
    if value != value.to_integral_value():
        raise MetricsParseError(field, raw, "expected a whole number")
    return int(value)


def _pick_action(
    entries: Optional[Iterable[Mapping[str, Any]]],
    action_types: Tuple[str, ...],
    *,
    counts: bool,
) -> Tuple[Union[int, float], bool]:
    """Value of the first tag in `action_types` present in `entries`.

    Tags are tried in order and never summed: Meta reports one event under
    both the omni-channel and the pixel tag.

    Returns:
        Tuple of (value, matched)
    """
    by_type: Dict[str, Any] = {}
    for entry in entries or []:
        action_type = entry.get("action_type", "")
        if action_type in action_types and action_type not in by_type:
            by_type[action_type] = entry.get("value")

    for action_type in action_types:
        if action_type not in by_type:
            continue
        field = f"actions.{action_type}"
        if counts:
            return _parse_count(field, by_type[action_type]), True
        return _parse_float(field, by_type[action_type]), True
    return 0, False


def extract_metrics(insights: Mapping[str, Any]) -> AdMetricsRecord:
    """Parse a raw Meta insights row into an `AdMetricsRecord`.

    Args:
        insights: Mapping with `spend`, `impressions`, `clicks` (strings are
            typical), optional `actions`, `action_values` and `frequency`.

    Returns:
        AdMetricsRecord with every count field numeric and >= 0.

    Raises:
        MetricsParseError: A numeric field is malformed, non-finite or negative.
    """
    spend = _parse_float("spend", insights.get("spend"))
    impressions = _parse_count("impressions", insights.get("impressions"))
    clicks = _parse_count("clicks", insights.get("clicks"))

    raw_frequency = insights.get("frequency")
    frequency = None
    if raw_frequency is not None and raw_frequency != "":
        frequency = _parse_float("frequency", raw_frequency)

    actions = insights.get("actions")
    purchases, _ = _pick_action(actions, PURCHASE_ACTION_TYPES, counts=True)
    add_to_cart, _ = _pick_action(actions, ADD_TO_CART_ACTION_TYPES, counts=True)
    conversions = purchases

    revenue, has_purchase_value = _pick_action(
        insights.get("action_values"), PURCHASE_ACTION_TYPES, counts=False
    )

    record = AdMetricsRecord(
        spend=spend,
        impressions=impressions,
        clicks=clicks,
        conversions=conversions,
        add_to_cart=add_to_cart,
        purchases=purchases,
        revenue=float(revenue),
        frequency=frequency,
    )

    if clicks > 0 and impressions > 0:
        record.ctr = (clicks / impressions) * 100
    if clicks > 0:
        record.cpc = spend / clicks
    if impressions > 0:
        record.cpm = (spend / impressions) * 1000
    if conversions > 0:
        record.cpa = spend / conversions
    if spend > 0 and has_purchase_value:
        record.roas = record.revenue / spend

    return record


# =============================================================================
# PERSISTENCE
# =============================================================================

def store_metrics(
    db: Session,
    ad_id: UUID,
    metric_date: date,
    record: AdMetricsRecord,
) -> Tuple[MetaMetric, bool]:
    """UPSERT one daily row by (ad_id, date) (idempotent).

    A re-sync of the same day overwrites the stored values instead of adding
    a second row, so aggregation never double counts spend.

    Returns:
        Tuple of (row, was_created)
    """
    row = (
        db.query(MetaMetric)
        .filter(
            MetaMetric.ad_id == ad_id,
            MetaMetric.date == metric_date,
        )
        .first()
    )

    values = record.as_row()
    was_created = False

    if row:
        for key, value in values.items():
            setattr(row, key, value)
        logger.debug("[META_METRICS] Updated metrics: ad=%s date=%s", ad_id, metric_date)
    else:
        row = MetaMetric(
            metric_id=uuid.uuid4(),
            ad_id=ad_id,
            date=metric_date,
            **values,
        )
        db.add(row)
        was_created = True
        logger.debug("[META_METRICS] Created metrics: ad=%s date=%s", ad_id, metric_date)

    db.flush()
    return row, was_created


def batch_store_metrics(
    db: Session,
    rows: Iterable[Tuple[UUID, date, AdMetricsRecord]],
) -> int:
    """Upsert many (ad_id, date, record) rows; returns the number written."""
    written = 0
    for ad_id, metric_date, record in rows:
        store_metrics(db, ad_id, metric_date, record)
        written += 1

    logger.info("[META_METRICS] Stored %s metric rows", written)
    return written
