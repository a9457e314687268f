"""Domain validation errors for the commission and metrics engine.

WHAT:
    A small exception hierarchy shared by the commission calculator, the
    metrics extractor and the aggregation engine.

WHY:
    Routers translate every `MetricsValidationError` into a 422 response, so
    the core can fail fast without knowing about HTTP.

REFERENCES:
    - growthpilot/services/commission.py
    - growthpilot/services/meta_metrics.py
    - growthpilot/routers/metrics.py (HTTP translation)
"""

from typing import Any, Optional


class MetricsValidationError(ValueError):
    """Base class for local validation failures in the core."""


class InvalidCommissionPercentageError(MetricsValidationError):
    def __init__(self, percentage: Any):
        self.percentage = percentage
        super().__init__(
            f"Commission percentage must be between 0 and 100 (got {percentage!r})"
        )


class NegativeRevenueError(MetricsValidationError):
    def __init__(self, revenue: Any):
        self.revenue = revenue
        super().__init__(f"Revenue cannot be negative (got {revenue!r})")


class InvalidCalculationBasisError(MetricsValidationError):
    def __init__(self, basis: Any):
        self.basis = basis
        super().__init__(
            f"Calculation basis must be 'sales_revenue' or 'total_revenue' (got {basis!r})"
        )


class MetricsParseError(MetricsValidationError):
    """A platform field could not be parsed into a non-negative number."""

    def __init__(self, field: str, value: Any, reason: Optional[str] = None):
        self.field = field
        self.value = value
        message = f"Cannot parse insights field '{field}' from {value!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
