"""
Ticket deadline reminders

Reminders are plain rows: one per milestone (14 and 28 days after issue) per
delivery channel. Creating them is best-effort and never fails the caller;
sending happens later from the worker cron via dispatch_due_reminders.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..email_service import send_ticket_reminder_email
from ..enums import NotificationEventType, NotificationType, ReminderType
from ..models import Reminder, Ticket
from ..shared.dates import add_days, format_date, is_same_day, to_naive_utc, utcnow
from .amount_due import (
    DISCOUNT_PERIOD_DAYS,
    FULL_CHARGE_PERIOD_DAYS,
    format_currency,
    get_current_amount_due,
)
from .notification_service import create_and_send_notification
from .sms_service import send_sms

logger = logging.getLogger(__name__)

REMINDER_MILESTONES = [
    (ReminderType.DISCOUNT_PERIOD, DISCOUNT_PERIOD_DAYS),
    (ReminderType.FULL_CHARGE, FULL_CHARGE_PERIOD_DAYS),
]

REMINDER_LABELS = {
    ReminderType.DISCOUNT_PERIOD.value: "14-day",
    ReminderType.FULL_CHARGE.value: "28-day",
}


def build_reminders(ticket_id: int, issued_at: datetime, now: Optional[datetime] = None) -> list[Reminder]:
    """Unsaved reminder rows for every milestone that is later today or in the future"""
    now = to_naive_utc(now) if now is not None else utcnow()

    reminders = []
    for reminder_type, days in REMINDER_MILESTONES:
        send_at = add_days(issued_at, days)
        if not (send_at > now or is_same_day(send_at, now)):
            continue
        for notification_type in NotificationType:
            reminders.append(
                Reminder(
                    ticket_id=ticket_id,
                    send_at=send_at,
                    type=reminder_type.value,
                    notification_type=notification_type.value,
                )
            )
    return reminders


def generate_reminders(db: Session, ticket: Ticket, now: Optional[datetime] = None) -> int:
    """
    Create deadline reminders for a ticket.

    Insert failures are logged and rolled back, never raised, so ticket
    creation goes through even when reminders can't be stored.

    Returns:
        Number of reminder rows created
    """
    reminders = build_reminders(ticket.id, ticket.issued_at, now)
    if not reminders:
        logger.debug(f"No upcoming deadlines for ticket {ticket.id}, no reminders created")
        return 0

    try:
        db.add_all(reminders)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Failed to create reminders for ticket {ticket.id}: {e}")
        return 0

    logger.info(f"⏰ Created {len(reminders)} reminders for ticket {ticket.id}")
    return len(reminders)


def regenerate_reminders(db: Session, ticket: Ticket, now: Optional[datetime] = None) -> int:
    """Replace a ticket's unsent reminders, e.g. after its issue date changed"""
    try:
        db.query(Reminder).filter(
            Reminder.ticket_id == ticket.id, Reminder.sent_at.is_(None)
        ).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Failed to clear reminders for ticket {ticket.id}: {e}")
        return 0

    return generate_reminders(db, ticket, now)


async def send_reminder(db: Session, reminder_id: int) -> dict:
    """
    Deliver one reminder on its channel and mark it sent.

    Returns:
        {"success": True} or {"error": message}
    """
    reminder = db.query(Reminder).filter(Reminder.id == reminder_id).first()
    if not reminder:
        return {"error": "Reminder not found"}

    ticket = reminder.ticket
    vehicle = ticket.vehicle
    user = vehicle.user

    reminder_label = REMINDER_LABELS.get(reminder.type, "28-day")
    issue_date = format_date(ticket.issued_at)

    try:
        if reminder.notification_type == NotificationType.PUSH.value:
            await create_and_send_notification(
                db,
                user_id=user.id,
                notification_type=NotificationEventType.TICKET_DEADLINE_REMINDER,
                title=f"{reminder_label} Ticket Reminder",
                body=(
                    f"Your parking ticket {ticket.pcn_number} for {vehicle.registration_number} "
                    f"is approaching the {reminder_label} deadline."
                ),
                ticket_id=ticket.id,
                data={"reminderType": reminder_label, "pcnNumber": ticket.pcn_number},
            )

        elif reminder.notification_type == NotificationType.EMAIL.value:
            if user.email:
                await send_ticket_reminder_email(
                    to=user.email,
                    name=user.name or "",
                    reminder_type=reminder_label,
                    pcn_number=ticket.pcn_number,
                    vehicle_registration=vehicle.registration_number,
                    issue_date=issue_date,
                    issuer=ticket.issuer,
                    amount_due=format_currency(get_current_amount_due(ticket)),
                    ticket_id=ticket.id,
                )
            else:
                logger.warning(f"⚠️ Skipping email reminder {reminder.id} - user {user.id} has no email")

        elif reminder.notification_type == NotificationType.SMS.value:
            if user.phone_number:
                text = (
                    f"Reminder: Your parking ticket {ticket.pcn_number} for vehicle registration "
                    f"{vehicle.registration_number} issued on {issue_date} by "
                    f"{ticket.issuer or 'the issuer'} is approaching the {reminder_label} deadline. "
                    "Please check the app."
                )
                success, error = await send_sms(user.phone_number, text)
                if not success:
                    raise RuntimeError(f"SMS not sent: {error}")
            else:
                logger.warning(f"⚠️ Skipping SMS reminder {reminder.id} - user {user.id} has no phone number")

        reminder.sent_at = utcnow()
        db.commit()
        logger.info(f"✅ Reminder {reminder.id} ({reminder.notification_type}) sent for ticket {ticket.id}")
        return {"success": True}

    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to send reminder {reminder_id}: {e}")
        return {"error": str(e)}


async def dispatch_due_reminders(db: Session, now: Optional[datetime] = None) -> dict:
    """Send every unsent reminder whose send_at has passed"""
    now = to_naive_utc(now) if now is not None else utcnow()

    due_ids = [
        reminder_id
        for (reminder_id,) in db.query(Reminder.id)
        .filter(Reminder.sent_at.is_(None), Reminder.send_at <= now)
        .order_by(Reminder.send_at)
        .all()
    ]

    results = {"processed": len(due_ids), "sent": 0, "failed": 0}
    for reminder_id in due_ids:
        outcome = await send_reminder(db, reminder_id)
        if outcome.get("success"):
            results["sent"] += 1
        else:
            results["failed"] += 1

    logger.info(
        f"📬 Reminder dispatch: {results['sent']} sent, {results['failed']} failed "
        f"of {results['processed']} due"
    )
    return results
