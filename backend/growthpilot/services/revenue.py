"""Revenue derivation for commission calculation.

WHAT:
    Converts a client's metric rows for a period into a `RevenueInput`
    (sales revenue and total revenue).

WHY:
    The business formula is not fixed: the agency currently estimates sales
    revenue from purchase counts and uses ad spend as the total-revenue proxy.
    Keeping it behind a small protocol lets the aggregation engine stay the
    same when real revenue data (e.g. a store integration) replaces the proxy.

REFERENCES:
    - growthpilot/services/overview_service.py (injects a deriver)
    - growthpilot/deps.py::Settings.DEFAULT_AVERAGE_ORDER_VALUE
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Protocol, Union

from growthpilot.services.commission import RevenueInput


class RevenueDeriver(Protocol):
    def derive(self, rows: Iterable) -> RevenueInput:
        """Return the revenue figures for the given metric rows."""


class ProxyRevenueDeriver:
    """Estimate revenue from ad activity.

    sales_revenue = purchases * average_order_value
    total_revenue = spend
    """

    def __init__(self, average_order_value: Union[int, float, Decimal] = 100):
        if average_order_value < 0:
            raise ValueError("average_order_value cannot be negative")
        self.average_order_value = Decimal(str(average_order_value))

    def derive(self, rows: Iterable) -> RevenueInput:
        purchases = 0
        spend = Decimal(0)
        for row in rows:
            purchases += int(row.purchases or 0)
            spend += Decimal(str(row.spend or 0))

        return RevenueInput(
            sales_revenue=purchases * self.average_order_value,
            total_revenue=spend,
        )
