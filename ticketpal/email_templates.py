"""
MJML Email Templates
Ticket reminder emails, compiled to HTML by email_service
"""

from html import escape
from typing import Optional

from .config import FRONTEND_URL

THEME = {
    "primary": "#1ABC9C",
    "primary_dark": "#16A085",
    "background": "#f8fafc",
    "text_primary": "#222222",
    "text_secondary": "#484848",
    "text_muted": "#717171",
    "border": "#e2e8f0",
    "warning_bg": "#FFFBEB",
    "warning_border": "#FCD34D",
    "warning_text": "#92400E",
    "details_bg": "#FAFAFA",
}

LOGO_URL = "https://parkingticketpal.com/logos/ptp.png"


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 20px">
          <mj-column>
            <mj-image src="{LOGO_URL}" alt="Parking Ticket Pal" width="140px" href="{FRONTEND_URL}" padding="0" />
          </mj-column>
        </mj-section>

        <mj-section background-color="#ffffff" padding="0 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>
            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              You're receiving this because you added a ticket to Parking Ticket Pal.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _detail_row(label: str, value: str) -> str:
    return f"""
    <mj-text padding="0 0 12px 0">
      <span style="color: {THEME['text_muted']}; font-size: 13px;">{label}</span><br/>
      <strong style="color: {THEME['text_primary']}; font-size: 15px;">{escape(value)}</strong>
    </mj-text>
    """


def ticket_reminder_template(
    name: str,
    reminder_label: str,
    pcn_number: str,
    vehicle_registration: str,
    issue_date: str,
    issuer: Optional[str],
    amount_due: str,
    ticket_url: str,
) -> str:
    """14-day / 28-day deadline reminder"""
    details = "".join(
        [
            _detail_row("PCN number", pcn_number),
            _detail_row("Vehicle", vehicle_registration),
            _detail_row("Issued", issue_date),
            _detail_row("Issuer", issuer or "Unknown issuer"),
            _detail_row("Amount due now", amount_due),
        ]
    )

    content = f"""
    <mj-text>
      Hi {escape(name) or "there"},
    </mj-text>

    <mj-text background-color="{THEME['warning_bg']}" color="{THEME['warning_text']}" align="center"
      font-weight="600" padding="20px 24px" border-radius="12px">
      Your ticket is approaching the {reminder_label} deadline
    </mj-text>

    <mj-text>
      Acting before the deadline keeps your options open. After it passes the amount you owe may increase.
    </mj-text>

    {details}
    """

    return get_base_template(
        title=f"{reminder_label} Ticket Reminder",
        preview_text=f"Your parking ticket {pcn_number} is approaching the {reminder_label} deadline",
        content_sections=content,
        cta_url=ticket_url,
        cta_label="View ticket",
    )

