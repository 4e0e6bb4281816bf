"""
Automated ticket status escalation
Run daily from the worker (or POST /cron/escalate-tickets):

- ISSUED_DISCOUNT_PERIOD -> ISSUED_FULL_CHARGE once issued_at is more than 14 days ago
- ISSUED_FULL_CHARGE -> NOTICE_TO_OWNER for council tickets whose status was
  last updated more than 28 days ago
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ..enums import IssuerType, NotificationEventType, TicketStatus
from ..models import Ticket
from ..shared.dates import days_between, to_naive_utc, utcnow
from .amount_due import (
    DISCOUNT_PERIOD_DAYS,
    FULL_CHARGE_PERIOD_DAYS,
    format_currency,
    get_stage_multiplier,
)
from .notification_service import create_and_send_notification

logger = logging.getLogger(__name__)

ESCALATED_BY = "CRON_ESCALATION"


def _discount_cutoff(now: datetime) -> datetime:
    return now - timedelta(days=DISCOUNT_PERIOD_DAYS)


def _notice_to_owner_cutoff(now: datetime) -> datetime:
    return now - timedelta(days=FULL_CHARGE_PERIOD_DAYS)


def overdue_discount_query(db: Session, now: datetime):
    return db.query(Ticket).filter(
        Ticket.status == TicketStatus.ISSUED_DISCOUNT_PERIOD.value,
        Ticket.issued_at < _discount_cutoff(now),
    )


def overdue_full_charge_query(db: Session, now: datetime):
    return db.query(Ticket).filter(
        Ticket.status == TicketStatus.ISSUED_FULL_CHARGE.value,
        Ticket.issuer_type == IssuerType.COUNCIL.value,
        Ticket.status_updated_at.isnot(None),
        Ticket.status_updated_at < _notice_to_owner_cutoff(now),
    )


def count_pending_escalations(db: Session, now: Optional[datetime] = None) -> dict:
    now = to_naive_utc(now) if now is not None else utcnow()
    return {
        "discount_to_full_charge": overdue_discount_query(db, now).count(),
        "full_charge_to_nto": overdue_full_charge_query(db, now).count(),
        "cutoffs": {
            "discount_period": _discount_cutoff(now).isoformat(),
            "nto_escalation": _notice_to_owner_cutoff(now).isoformat(),
        },
    }


async def _notify(db: Session, ticket: Ticket, title: str, body: str, data: dict) -> None:
    try:
        await create_and_send_notification(
            db,
            user_id=ticket.vehicle.user_id,
            notification_type=NotificationEventType.TICKET_STATUS_UPDATE,
            title=title,
            body=body,
            ticket_id=ticket.id,
            data=data,
        )
    except Exception as e:
        logger.error(f"❌ Failed to notify user about escalation of ticket {ticket.id}: {e}")


async def _escalate(db: Session, tickets: list[Ticket], new_status: TicketStatus, now: datetime, notify) -> dict:
    summary = {"processed": len(tickets), "escalated": 0, "errors": 0, "escalated_ids": [], "error_details": []}

    for ticket in tickets:
        previous_status = ticket.status
        try:
            ticket.status = new_status.value
            ticket.status_updated_at = now
            ticket.status_updated_by = ESCALATED_BY
            db.commit()
        except Exception as e:
            db.rollback()
            summary["errors"] += 1
            summary["error_details"].append({"ticket_id": ticket.id, "error": str(e)})
            logger.error(f"❌ Failed to escalate ticket {ticket.id} to {new_status.value}: {e}")
            continue

        summary["escalated"] += 1
        summary["escalated_ids"].append(ticket.id)
        logger.info(
            f"✅ Ticket {ticket.id} ({ticket.pcn_number}) escalated: {previous_status} → {new_status.value} "
            f"({days_between(ticket.issued_at, now)} days since issue)"
        )
        await notify(ticket)

    return summary


async def escalate_ticket_statuses(db: Session, now: Optional[datetime] = None) -> dict:
    """
    Escalate overdue tickets. Per-ticket failures are collected in the
    summary, never raised.

    Returns:
        {"discount_to_full_charge": {...}, "full_charge_to_nto": {...}}
    """
    now = to_naive_utc(now) if now is not None else utcnow()

    discount_tickets = overdue_discount_query(db, now).all()
    logger.info(f"🔎 Found {len(discount_tickets)} tickets to escalate from discount period")

    async def notify_full_charge(ticket: Ticket):
        new_amount = int(ticket.initial_amount * get_stage_multiplier(TicketStatus.ISSUED_FULL_CHARGE))
        await _notify(
            db,
            ticket,
            "Discount Period Ended",
            (
                "Your ticket discount period has ended. The amount due has increased from "
                f"{format_currency(ticket.initial_amount)} to {format_currency(new_amount)}."
            ),
            {
                "previousStatus": TicketStatus.ISSUED_DISCOUNT_PERIOD.value,
                "newStatus": TicketStatus.ISSUED_FULL_CHARGE.value,
                "previousAmount": ticket.initial_amount,
                "newAmount": new_amount,
                "source": "cron_escalation",
            },
        )

    discount_summary = await _escalate(
        db, discount_tickets, TicketStatus.ISSUED_FULL_CHARGE, now, notify_full_charge
    )

    full_charge_tickets = overdue_full_charge_query(db, now).all()
    logger.info(f"🔎 Found {len(full_charge_tickets)} tickets to escalate from full charge to NtO")

    async def notify_notice_to_owner(ticket: Ticket):
        await _notify(
            db,
            ticket,
            "Notice to Owner Stage",
            (
                "Your ticket has progressed to the Notice to Owner (NtO) stage. "
                "You have 28 days to make formal representations."
            ),
            {
                "previousStatus": TicketStatus.ISSUED_FULL_CHARGE.value,
                "newStatus": TicketStatus.NOTICE_TO_OWNER.value,
                "source": "cron_escalation",
            },
        )

    nto_summary = await _escalate(
        db, full_charge_tickets, TicketStatus.NOTICE_TO_OWNER, now, notify_notice_to_owner
    )

    return {"discount_to_full_charge": discount_summary, "full_charge_to_nto": nto_summary}
