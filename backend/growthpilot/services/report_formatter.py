"""WhatsApp-style report text.

WHAT:
    Builds the plain-text performance summary that agencies paste into
    WhatsApp for their clients.

WHY:
    Clients choose which metrics they want to see. A metric appears in the
    text iff it was provided and selected; filtered metrics leave no label
    behind.

REFERENCES:
    - growthpilot/routers/reports.py (HTTP consumer)
    - growthpilot/utils/locale.py (value formatting)
"""

from __future__ import annotations

from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from growthpilot.utils.locale import (
    DEFAULT_LOCALE,
    format_currency,
    format_date,
    format_date_range,
    format_number,
    format_percentage,
)

__all__ = ["METRIC_KEYS", "format_report", "format_date_range", "period_label_for"]

SEPARATOR = "━" * 20
SIGNATURE = "GrowthPilot AI"


def _count_with_unit(value: Any, locale: str) -> str:
    text = format_number(value, 0, locale)
    return f"{text} adet" if locale == "tr" else text


# key -> (icon, value formatter)
_METRIC_FORMATS: Dict[str, Tuple[str, Callable[[Any, str], str]]] = {
    "totalSpend": ("💰", lambda v, loc: format_currency(v, locale=loc)),
    "totalRevenue": ("💵", lambda v, loc: format_currency(v, locale=loc)),
    "roas": ("📈", lambda v, loc: format_number(v, 2, loc)),
    "leadCount": ("👥", _count_with_unit),
    "costPerLead": ("💸", lambda v, loc: format_currency(v, locale=loc)),
    "impressions": ("👁️", lambda v, loc: format_number(v, 0, loc)),
    "clicks": ("🖱️", lambda v, loc: format_number(v, 0, loc)),
    "ctr": ("📊", lambda v, loc: format_percentage(v, 2, loc)),
    "cpc": ("💰", lambda v, loc: format_currency(v, locale=loc)),
    "conversions": ("✅", lambda v, loc: format_number(v, 0, loc)),
    "purchases": ("🛒", lambda v, loc: format_number(v, 0, loc)),
}

METRIC_KEYS: Tuple[str, ...] = tuple(_METRIC_FORMATS)

LABELS: Dict[str, Dict[str, str]] = {
    "tr": {
        "title": "Performans Raporu",
        "client": "Müşteri",
        "period": "Dönem",
        "footer": "ile oluşturuldu",
        "weekly": "Haftalık",
        "monthly": "Aylık",
        "totalSpend": "Toplam Harcama",
        "totalRevenue": "Toplam Gelir (Komisyon)",
        "roas": "ROAS (Reklam Getirisi)",
        "leadCount": "Lead Sayısı",
        "costPerLead": "Lead Başına Maliyet",
        "impressions": "Gösterim",
        "clicks": "Tıklama",
        "ctr": "CTR",
        "cpc": "CPC",
        "conversions": "Dönüşüm",
        "purchases": "Satın Alma",
    },
    "en": {
        "title": "Performance Report",
        "client": "Client",
        "period": "Period",
        "footer": "generated",
        "weekly": "Weekly",
        "monthly": "Monthly",
        "totalSpend": "Total Spend",
        "totalRevenue": "Total Revenue (Commission)",
        "roas": "ROAS (Return on Ad Spend)",
        "leadCount": "Lead Count",
        "costPerLead": "Cost per Lead",
        "impressions": "Impressions",
        "clicks": "Clicks",
        "ctr": "CTR",
        "cpc": "CPC",
        "conversions": "Conversions",
        "purchases": "Purchases",
    },
}


def _labels(locale: str) -> Dict[str, str]:
    return LABELS.get(locale, LABELS[DEFAULT_LOCALE])


def period_label_for(report_type: str, locale: str = DEFAULT_LOCALE) -> str:
    """'weekly' / 'monthly' -> localized period label."""
    return _labels(locale).get(report_type, report_type)


def format_report(
    client_name: str,
    period_label: str,
    date_range: str,
    metrics: Mapping[str, Any],
    selected_metric_keys: Optional[Iterable[str]] = None,
    *,
    locale: str = DEFAULT_LOCALE,
    generated_on: Optional[date] = None,
) -> str:
    """Render the report text.

    Args:
        client_name: Printed verbatim in the header.
        period_label: e.g. "Aylık"; printed verbatim in the title.
        date_range: e.g. "01.02.2024 - 29.02.2024"; printed verbatim.
        metrics: Metric key -> raw numeric value. None counts as absent.
        selected_metric_keys: Keys to include; all known keys when None.
            Unknown keys are ignored.
        locale: Label and number locale ("tr" or "en").
        generated_on: Date printed in the footer (defaults to today).
    """
    labels = _labels(locale)
    selected = set(METRIC_KEYS if selected_metric_keys is None else selected_metric_keys)

    lines: List[str] = [
        f"📊 *{period_label} {labels['title']}*",
        "",
        f"👤 *{labels['client']}:* {client_name}",
        f"📅 *{labels['period']}:* {date_range}",
        "",
        SEPARATOR,
        "",
    ]

    for key in METRIC_KEYS:
        if key not in selected:
            continue
        value = metrics.get(key)
        if value is None:
            continue
        icon, formatter = _METRIC_FORMATS[key]
        lines.append(f"{icon} *{labels[key]}*")
        lines.append(formatter(value, locale))
        lines.append("")

    lines.extend([
        SEPARATOR,
        "",
        f"📱 *{SIGNATURE}* {labels['footer']}",
        format_date(generated_on or date.today(), locale),
    ])

    return "\n".join(lines) + "\n"
