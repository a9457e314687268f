"""Pydantic schemas for request/response payloads."""

from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .services.commission import is_valid_calculation_basis, is_valid_commission_percentage
from .services.report_formatter import METRIC_KEYS


class CamelModel(BaseModel):
    """Serialized with camelCase keys, which is what the dashboard reads."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Commission
# ---------------------------------------------------------------------------

class CommissionModelIn(BaseModel):
    """Commission model as configured for a client."""

    commission_percentage: float = Field(
        description="Commission percentage (0-100, inclusive)",
        examples=[15],
    )
    calculation_basis: str = Field(
        description="Revenue figure the percentage applies to",
        examples=["sales_revenue"],
    )

    @field_validator("commission_percentage")
    @classmethod
    def _check_percentage(cls, v: float) -> float:
        if not is_valid_commission_percentage(v):
            raise ValueError("commission_percentage must be between 0 and 100")
        return v

    @field_validator("calculation_basis")
    @classmethod
    def _check_basis(cls, v: str) -> str:
        if not is_valid_calculation_basis(v):
            raise ValueError("calculation_basis must be 'sales_revenue' or 'total_revenue'")
        return v


class RevenueIn(BaseModel):
    sales_revenue: float = Field(0, ge=0, description="Sales-only revenue for the period")
    total_revenue: float = Field(0, ge=0, description="Total revenue for the period")


class CommissionPreviewRequest(BaseModel):
    """Payload for previewing a client's commission before saving a model."""

    revenue: RevenueIn
    model: CommissionModelIn

    model_config = {
        "protected_namespaces": (),
        "json_schema_extra": {
            "example": {
                "revenue": {"sales_revenue": 50000, "total_revenue": 75000},
                "model": {"commission_percentage": 15, "calculation_basis": "sales_revenue"},
            }
        },
    }


class CommissionPreviewResponse(BaseModel):
    commission: float = Field(description="Commission amount rounded to 2 decimals")


# ---------------------------------------------------------------------------
# Overview metrics
# ---------------------------------------------------------------------------

class OverviewMetricsOut(CamelModel):
    """Dashboard overview cards."""

    total_clients: int = Field(0, description="Clients in scope")
    total_spend_today: float = Field(0, description="Ad spend for the current day")
    total_spend_this_month: float = Field(0, description="Ad spend from the 1st of the month through today")
    total_revenue_this_month: float = Field(0, description="Agency commission for the current month")
    active_campaigns: int = Field(0, description="Campaigns with ACTIVE status")


class TrendPointOut(BaseModel):
    date: str = Field(description="Day (YYYY-MM-DD)")
    spend: float
    revenue: float


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

class ReportMetricsIn(CamelModel):
    """Raw metric values for a report. Omitted values are left out of the text."""

    total_spend: Optional[float] = Field(None, ge=0)
    total_revenue: Optional[float] = Field(None, ge=0)
    roas: Optional[float] = Field(None, ge=0)
    lead_count: Optional[int] = Field(None, ge=0)
    cost_per_lead: Optional[float] = Field(None, ge=0)
    impressions: Optional[int] = Field(None, ge=0)
    clicks: Optional[int] = Field(None, ge=0)
    ctr: Optional[float] = Field(None, ge=0)
    cpc: Optional[float] = Field(None, ge=0)
    conversions: Optional[int] = Field(None, ge=0)
    purchases: Optional[int] = Field(None, ge=0)

    def as_metric_map(self) -> dict:
        """Metric key (camelCase) -> value, as expected by format_report."""
        return self.model_dump(by_alias=True)


class ReportRequest(CamelModel):
    client_name: str = Field(min_length=1)
    report_type: Literal["weekly", "monthly"] = "monthly"
    period_start: date
    period_end: date
    metrics: ReportMetricsIn
    selected_metrics: Optional[List[str]] = Field(
        None,
        description=f"Subset of {', '.join(METRIC_KEYS)}; all when omitted",
    )
    locale: Optional[str] = None

    @model_validator(mode="after")
    def _check_period(self) -> "ReportRequest":
        if self.period_end < self.period_start:
            raise ValueError("period_end must not be before period_start")
        return self


class ReportOut(BaseModel):
    text: str
