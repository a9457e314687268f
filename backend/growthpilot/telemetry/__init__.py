"""
Telemetry Module
================

Error tracking for the GrowthPilot backend.

Usage:
    from growthpilot.telemetry import init_sentry

    # Initialize on app startup
    init_sentry()
"""

from growthpilot.telemetry.sentry import (
    init_sentry,
    set_user_context,
    capture_exception,
)

__all__ = [
    "init_sentry",
    "set_user_context",
    "capture_exception",
]
