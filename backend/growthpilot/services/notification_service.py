"""Threshold notifications.

WHAT:
    Creates rows in `notifications` when a campaign's ROAS drops below the
    alert threshold, when daily spend runs over the average budget, or when a
    Meta sync run fails.

WHY:
    The dashboard bell reads these rows; checks run after each metrics sync.

REFERENCES:
    - growthpilot/services/meta_sync_service.py (notify_sync_error)
    - growthpilot/models.py:Notification
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from growthpilot.models import Notification, NotificationTypeEnum

logger = logging.getLogger(__name__)

DEFAULT_ROAS_THRESHOLD = 1.5
DEFAULT_BUDGET_MULTIPLIER = 1.2


def create_notification(
    db: Session,
    user_id: UUID,
    message: str,
    type: NotificationTypeEnum,
    commit: bool = True,
) -> Notification:
    """Persist an unread notification for the user and return it."""
    notification = Notification(
        user_id=user_id,
        message=message,
        type=NotificationTypeEnum(type),
        read_status=False,
    )
    db.add(notification)
    if commit:
        db.commit()
        db.refresh(notification)
    else:
        db.flush()

    logger.info("[NOTIFY] Created %s notification for user=%s", notification.type.value, user_id)
    return notification


def check_roas(
    db: Session,
    user_id: UUID,
    campaign_name: str,
    roas: float,
    threshold: float = DEFAULT_ROAS_THRESHOLD,
) -> Optional[Notification]:
    """Create a `roas_alert` when `roas` is strictly below `threshold`."""
    if roas >= threshold:
        return None

    message = (
        f"{campaign_name} kampanyasının ROAS değeri {roas:.2f} seviyesine düştü "
        f"(Eşik: {threshold})"
    )
    return create_notification(db, user_id, message, NotificationTypeEnum.roas_alert)


def check_budget(
    db: Session,
    user_id: UUID,
    campaign_name: str,
    daily_spend: float,
    average_daily_budget: float,
    multiplier: float = DEFAULT_BUDGET_MULTIPLIER,
) -> Optional[Notification]:
    """Create a `budget_alert` when daily spend exceeds budget * multiplier.

    A zero or negative average budget means no budget is configured, so it
    never alerts.
    """
    if average_daily_budget <= 0:
        return None
    if daily_spend <= average_daily_budget * multiplier:
        return None

    over = (Decimal(str(daily_spend)) / Decimal(str(average_daily_budget)) - 1) * 100
    percentage_over = over.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    message = (
        f"{campaign_name} kampanyasının günlük harcaması ortalama bütçenin "
        f"%{percentage_over} üzerinde "
        f"({daily_spend:.2f} TRY / {average_daily_budget:.2f} TRY)"
    )
    return create_notification(db, user_id, message, NotificationTypeEnum.budget_alert)


def notify_sync_error(db: Session, user_id: UUID, error_message: str) -> Notification:
    message = f"Meta API senkronizasyonu başarısız oldu: {error_message}"
    return create_notification(db, user_id, message, NotificationTypeEnum.sync_error)
