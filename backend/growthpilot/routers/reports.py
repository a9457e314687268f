"""
Reports router
--------------
Builds the WhatsApp report text from metric values the dashboard already has.
Nothing is read from the database; the caller must still be authenticated.
"""

from fastapi import APIRouter, Depends

from growthpilot import models
from growthpilot.deps import Settings, get_current_user, get_settings
from growthpilot.schemas import ReportOut, ReportRequest
from growthpilot.services.report_formatter import format_date_range, format_report, period_label_for

router = APIRouter(prefix="/reports", tags=["reports"])


@router.post("/whatsapp", response_model=ReportOut)
def create_whatsapp_report(
    payload: ReportRequest,
    current_user: models.User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    locale = payload.locale or settings.REPORT_LOCALE
    text = format_report(
        client_name=payload.client_name,
        period_label=period_label_for(payload.report_type, locale),
        date_range=format_date_range(payload.period_start, payload.period_end, locale),
        metrics=payload.metrics.as_metric_map(),
        selected_metric_keys=payload.selected_metrics,
        locale=locale,
    )
    return ReportOut(text=text)
