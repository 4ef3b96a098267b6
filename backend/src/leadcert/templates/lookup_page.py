"""HTML template for the certification lookup page.

The page is a plain GET form; the result card, the error banner and the
not-found banner are rendered server-side from a ``LookupState``. All
values coming from the user or the upstream are escaped.
"""

from __future__ import annotations

from datetime import datetime
from datetime import timezone
from html import escape
from typing import Any

from leadcert.api.schemas import CertificationRecord
from leadcert.services.lookup_client import LookupState

NOT_AVAILABLE = "Not available"

# (border, background, text) per certification status
STATUS_STYLES: dict[str, tuple[str, str, str]] = {
    "Certified": ("#4ade80", "#f0fdf4", "#15803d"),
    "Exempt": ("#9ca3af", "#f9fafb", "#374151"),
    "Pending": ("#facc15", "#fefce8", "#a16207"),
    "Void": ("#f87171", "#fef2f2", "#b91c1c"),
}
DEFAULT_STATUS_STYLE = STATUS_STYLES["Exempt"]

PAGE_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Philly Lead Certification Lookup</title>
</head>
<body style="font-family: Arial, sans-serif; background-color: #f3f4f6; color: #1f2937; margin: 0; padding: 16px;">
    <div style="background-color: #fff; max-width: 576px; margin: 40px auto; border-radius: 8px; box-shadow: 0 4px 12px rgba(0,0,0,0.1);">
        <div style="padding: 24px; border-bottom: 1px solid #e5e7eb;">
            <h1 style="margin: 0; font-size: 24px;">Philly Lead Certification Lookup</h1>
        </div>
        <div style="padding: 24px;">
            <form method="get" action="{action}" style="display: flex; gap: 12px;">
                <input type="text" name="opa" value="{account_input}" placeholder="Enter OPA Account Number (e.g., 081128700)" required
                    style="flex-grow: 1; border: 1px solid #d1d5db; border-radius: 8px; padding: 8px 16px;">
                <button type="submit" style="background-color: #2563eb; color: #fff; border: none; border-radius: 8px; padding: 10px 20px;">Search</button>
            </form>
            {body}
        </div>
        <div style="background-color: #f9fafb; padding: 16px 24px; border-top: 1px solid #e5e7eb; border-radius: 0 0 8px 8px; font-size: 14px; color: #4b5563;">
            <p style="margin: 0;"><strong>Data Source:</strong> OpenDataPhilly.org Lead Certification Database via ArcGIS API</p>
            <p style="margin: 4px 0 0 0; color: #6b7280;">This tool searches the official Philadelphia lead certification records maintained by the city's Lead Hazard Healthy Homes Program.</p>
        </div>
    </div>
</body>
</html>
"""

BANNER_HTML = """
            <div style="margin-top: 24px; border: 1px solid {border}; background-color: {background}; color: {text}; border-radius: 8px; padding: 16px;">
                <p style="margin: 0; font-size: 14px; font-weight: bold;">{message}</p>
            </div>"""

RESULT_HTML = """
            <div style="margin-top: 24px; border: 1px solid #e5e7eb; border-radius: 8px; padding: 24px;">
                <div style="display: flex; justify-content: space-between; align-items: center;">
                    <h3 style="margin: 0;">Certification Status</h3>
                    <a href="{action}" style="font-size: 14px; background-color: #e5e7eb; color: #374151; border-radius: 8px; padding: 4px 12px; text-decoration: none;">Search Again</a>
                </div>
                <p style="margin: 16px 0;">
                    <span style="border: 1px solid {border}; background-color: {background}; color: {text}; border-radius: 9999px; padding: 4px 12px; font-size: 12px; font-weight: bold;">{status}</span>
                </p>
                <table style="width: 100%; font-size: 14px; border-collapse: collapse;">
                    {rows}
                </table>
                {details}
                {exempt}
            </div>"""

ROW_HTML = """<tr><td style="padding: 6px 0; color: #6b7280; font-weight: bold; width: 45%;">{label}</td><td style="padding: 6px 0;">{value}</td></tr>"""

DETAILS_HTML = """
                <div style="margin-top: 24px; padding-top: 16px; border-top: 1px solid #e5e7eb; font-size: 14px;">
                    <p style="margin: 0; color: #6b7280; font-weight: bold;">Status Details:</p>
                    <p style="margin: 4px 0 0 0;">{details}</p>
                </div>"""

EXEMPT_HTML = """
                <div style="margin-top: 16px; padding: 16px; background-color: #f0fdf4; border: 1px solid #bbf7d0; border-radius: 8px;">
                    <p style="margin: 0; color: #166534; font-weight: bold;">Does not need lead certification</p>
                    <p style="margin: 4px 0 0 0; color: #15803d; font-size: 14px;">This property is exempt from lead certification requirements.</p>
                </div>"""


def format_date(value: Any) -> str:
    """Format an ArcGIS epoch-millisecond date as ``MM/DD/YYYY``.

    Returns ``N/A`` for empty values and the raw text for anything that is
    not a timestamp or falls outside the platform's date range.
    """
    if value in (None, ""):
        return "N/A"
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return str(value)
        return moment.strftime("%m/%d/%Y")
    return str(value)


def status_style(status: Any) -> tuple[str, str, str]:
    return STATUS_STYLES.get(str(status or ""), DEFAULT_STATUS_STYLE)


def _text(value: Any) -> str:
    if value in (None, ""):
        return NOT_AVAILABLE
    return escape(str(value))


def render_result(record: CertificationRecord, action: str) -> str:
    border, background, text = status_style(record.lhhp_certification_status)
    rows = [
        ("OPA Number", _text(record.account_number)),
        ("Address", _text(record.address)),
        ("Zip Code", _text(record.zip_code)),
        ("Status Type", _text(record.lhhp_status_type)),
        ("Certification Date", escape(format_date(record.lhhp_cert_date))),
        ("Expiration Date", escape(format_date(record.lhhp_cert_expiration_date))),
    ]
    details = ""
    if record.lhhp_status_details:
        details = DETAILS_HTML.format(details=_text(record.lhhp_status_details))
    return RESULT_HTML.format(
        action=escape(action, quote=True),
        border=border,
        background=background,
        text=text,
        status=escape(str(record.lhhp_certification_status or "Unknown")),
        rows="".join(ROW_HTML.format(label=label, value=value) for label, value in rows),
        details=details,
        exempt=EXEMPT_HTML if record.is_exempt else "",
    )


def render_lookup_page(state: LookupState, action: str = "/lookup") -> str:
    """Render the full page for the given form state."""
    if state.error:
        body = BANNER_HTML.format(
            border="#f87171",
            background="#fef2f2",
            text="#b91c1c",
            message=escape(state.error),
        )
    elif state.not_found:
        body = BANNER_HTML.format(
            border="#facc15",
            background="#fefce8",
            text="#a16207",
            message=escape(state.notice or ""),
        )
    elif state.result is not None:
        body = render_result(state.result, action)
    else:
        body = ""

    return PAGE_HTML.format(
        action=escape(action, quote=True),
        account_input=escape(state.account_input, quote=True),
        body=body,
    )
