"""Agency commission calculation.

WHAT:
    Pure functions that turn a revenue figure and a client's commission model
    into the agency's commission amount.

WHY:
    Commission is the agency's revenue line on the dashboard, so rounding must
    be exact to the cent. All arithmetic goes through `Decimal` built from the
    string form of the inputs, which keeps binary float artifacts
    (e.g. 1.005 * 100 == 100.49999...) out of the result.

REFERENCES:
    - growthpilot/services/overview_service.py (sums commissions per client)
    - growthpilot/schemas.py::CommissionModelCreate (reuses the validators)

Examples:
    >>> calculate_commission(10000, 15)
    1500.0
    >>> calculate_commission(1234.56, 20)
    246.91
    >>> calculate_commission_with_model(
    ...     RevenueInput(sales_revenue=50000, total_revenue=75000),
    ...     CommissionModelInput(commission_percentage=15, calculation_basis="sales_revenue"),
    ... )
    7500.0
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Union

from growthpilot.errors import (
    InvalidCalculationBasisError,
    InvalidCommissionPercentageError,
    MetricsValidationError,
    NegativeRevenueError,
)

logger = logging.getLogger(__name__)

Number = Union[int, float, Decimal]

SALES_REVENUE = "sales_revenue"
TOTAL_REVENUE = "total_revenue"
CALCULATION_BASES = (SALES_REVENUE, TOTAL_REVENUE)

_CENT = Decimal("0.01")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class CommissionModelInput:
    """Commission configuration for a single client.

    The ORM `CommissionModel` exposes the same two attributes, so either can be
    passed wherever a model is expected.
    """
    commission_percentage: Number
    calculation_basis: str


@dataclass(frozen=True)
class RevenueInput:
    """Revenue figures for one client over one period."""
    sales_revenue: Number = 0
    total_revenue: Number = 0


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value: Number) -> float:
    """Round half-up to 2 decimal places on the decimal value."""
    return float(_to_decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP))


def is_valid_commission_percentage(percentage: Any) -> bool:
    """Return True iff 0 <= percentage <= 100 (NaN is never valid)."""
    try:
        return 0 <= percentage <= 100
    except TypeError:
        return False


def is_valid_calculation_basis(basis: Any) -> bool:
    """Return True iff basis is exactly 'sales_revenue' or 'total_revenue'."""
    return isinstance(basis, str) and basis in CALCULATION_BASES


def calculate_commission(revenue: Number, percentage: Number) -> float:
    """Calculate the commission owed on `revenue` at `percentage` percent.

    Args:
        revenue: Revenue amount, must be >= 0.
        percentage: Commission percentage in [0, 100], boundaries included.

    Returns:
        revenue * percentage / 100, rounded half-up to 2 decimals.

    Raises:
        InvalidCommissionPercentageError: percentage outside [0, 100].
        NegativeRevenueError: revenue below zero.
    """
    if not is_valid_commission_percentage(percentage):
        raise InvalidCommissionPercentageError(percentage)

    if revenue < 0:
        raise NegativeRevenueError(revenue)

    if not math.isfinite(revenue):
        raise MetricsValidationError(f"Revenue must be a finite number (got {revenue!r})")

    commission = _to_decimal(revenue) * _to_decimal(percentage) / _HUNDRED
    return round2(commission)


def calculate_commission_with_model(revenue: RevenueInput, model: Any) -> float:
    """Calculate commission using a client's commission model.

    Sales revenue is used when the model's basis is 'sales_revenue'; any other
    basis falls through to total revenue. Callers that need strict basis
    checking use `validate_commission_model` first.
    """
    if model.calculation_basis == SALES_REVENUE:
        amount = revenue.sales_revenue
    else:
        amount = revenue.total_revenue

    return calculate_commission(amount, model.commission_percentage)


def validate_commission_model(model: Any) -> None:
    """Raise if the model's percentage or basis is out of contract."""
    if not is_valid_commission_percentage(model.commission_percentage):
        raise InvalidCommissionPercentageError(model.commission_percentage)
    if not is_valid_calculation_basis(model.calculation_basis):
        logger.warning(
            "[COMMISSION] Rejecting commission model with basis=%r",
            model.calculation_basis,
        )
        raise InvalidCalculationBasisError(model.calculation_basis)
