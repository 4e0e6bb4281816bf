"""
Email Service using Resend
Templates are written in MJML and compiled to HTML before sending
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, FRONTEND_URL, RESEND_API_KEY
from .email_templates import ticket_reminder_template

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY

REMINDER_LABELS = {
    "14-day": "14-Day",
    "28-day": "28-Day",
}


class EmailServiceError(Exception):
    """Raised when an email can't be compiled or sent"""


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns an object/dict with 'html' and 'errors'
        errors = getattr(result, "errors", None)
        html = getattr(result, "html", None)
        if isinstance(result, dict):
            errors = result.get("errors")
            html = result.get("html")
        if errors:
            logger.warning(f"MJML compilation warnings: {errors}")
        return html if html is not None else str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise EmailServiceError(f"Failed to compile MJML template: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email via Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Resend response dict
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise EmailServiceError("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": from_address or EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise EmailServiceError(f"Failed to send email: {str(e)}") from e


def ticket_url(ticket_id: int) -> str:
    return f"{FRONTEND_URL}/tickets/{ticket_id}"


async def send_ticket_reminder_email(
    to: str,
    name: str,
    reminder_type: str,
    pcn_number: str,
    vehicle_registration: str,
    issue_date: str,
    issuer: Optional[str],
    amount_due: str,
    ticket_id: int,
) -> dict:
    """Send a 14-day or 28-day deadline reminder"""
    label = REMINDER_LABELS.get(reminder_type, reminder_type)
    mjml_content = ticket_reminder_template(
        name=name,
        reminder_label=label,
        pcn_number=pcn_number,
        vehicle_registration=vehicle_registration,
        issue_date=issue_date,
        issuer=issuer,
        amount_due=amount_due,
        ticket_url=ticket_url(ticket_id),
    )
    return await send_email(
        to=to,
        subject=f"{label} Reminder: Parking Ticket {pcn_number}",
        mjml_content=mjml_content,
    )

