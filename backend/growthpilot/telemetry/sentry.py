"""
Sentry Error Tracking
=====================

Centralized error tracking using Sentry.

Related files:
- growthpilot/main.py: Initializes Sentry on app startup
- growthpilot/deps.py: Sets user context after authentication
- growthpilot/services/meta_sync_service.py: Reports per-ad sync failures

Environment Variables:
- SENTRY_DSN: Sentry project DSN (Sentry stays disabled when unset)
- ENVIRONMENT: Environment name (production, staging, development)
"""

from __future__ import annotations

import logging
import os
from typing import Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

logger = logging.getLogger(__name__)


def get_sentry_dsn() -> Optional[str]:
    return os.environ.get("SENTRY_DSN")


def init_sentry() -> bool:
    """
    Initialize Sentry SDK for FastAPI.

    Returns:
        True if Sentry was initialized, False when no DSN is configured.
    """
    dsn = get_sentry_dsn()
    if not dsn:
        logger.debug("[SENTRY] SENTRY_DSN not set - error tracking disabled")
        return False

    environment = os.environ.get("ENVIRONMENT", "development")

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            LoggingIntegration(
                level=logging.INFO,         # Capture INFO+ as breadcrumbs
                event_level=logging.ERROR,  # Send ERROR+ as events
            ),
        ],
        traces_sample_rate=0.1,
        send_default_pii=False,  # User is attached explicitly in set_user_context
        release=os.environ.get("RELEASE_VERSION"),
    )

    logger.info("[SENTRY] Initialized for %s environment", environment)
    return True


def set_user_context(user_id: str, email: Optional[str] = None) -> None:
    """Attach the authenticated user to subsequent Sentry events."""
    sentry_sdk.set_user({"id": user_id, "email": email})


def capture_exception(exception: Exception, extra: Optional[dict] = None) -> None:
    """
    Report an exception that was handled but should still be tracked.

    Example:
        try:
            rows = insights_client.get_ad_insights(...)
        except InsightsFetchError as e:
            capture_exception(e, extra={"meta_ad_id": ad.meta_ad_id})
            errors.append(str(e))
    """
    with sentry_sdk.new_scope() as scope:
        if extra:
            for key, value in extra.items():
                scope.set_extra(key, value)
        sentry_sdk.capture_exception(exception)
