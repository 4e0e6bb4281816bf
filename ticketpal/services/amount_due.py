"""
Amount-due calculation for parking tickets

A ticket's initial_amount is always the discounted amount (in pence). Everything
owed after the discount window is derived from it here and never stored:

1. PAID / CANCELLED tickets owe nothing
2. A price increase that is already effective overrides the standard amount
   (latest effective_at wins, future increases are ignored)
3. Otherwise the discount applies for the first 14 days; after that the amount
   is initial_amount x a status multiplier

Statuses missing from STAGE_MULTIPLIERS fall back to DEFAULT_MULTIPLIER. The
fallback may hide statuses that were never added to the table; it is kept as-is.
"""

import math
from datetime import datetime
from typing import Optional

from ..enums import TicketStatus
from ..shared.dates import add_days, days_between, is_same_day, to_naive_utc, utcnow

DISCOUNT_PERIOD_DAYS = 14
FULL_CHARGE_PERIOD_DAYS = 28
NEAR_DUE_THRESHOLD_DAYS = 7

DEFAULT_MULTIPLIER = 2.0

STAGE_MULTIPLIERS: dict[str, float] = {
    TicketStatus.ISSUED_FULL_CHARGE.value: 2.0,
    TicketStatus.NOTICE_TO_OWNER.value: 2.0,
    TicketStatus.FORMAL_REPRESENTATION.value: 2.0,
    TicketStatus.NOTICE_OF_REJECTION.value: 2.0,
    TicketStatus.CHARGE_CERTIFICATE.value: 2.0,
    TicketStatus.ORDER_FOR_RECOVERY.value: 3.0,
    TicketStatus.ENFORCEMENT_BAILIFF_STAGE.value: 3.0,
    TicketStatus.CCJ_ISSUED.value: 3.0,
}

SETTLED_STATUSES = {TicketStatus.PAID.value, TicketStatus.CANCELLED.value}


def _status_value(status) -> str:
    return getattr(status, "value", status)


def get_stage_multiplier(status) -> float:
    return STAGE_MULTIPLIERS.get(_status_value(status), DEFAULT_MULTIPLIER)


def get_effective_price_increase(price_increases, now: Optional[datetime] = None):
    """
    Return the price increase currently in force, or None.

    The latest effective_at that is <= now wins; on an exact tie the first one
    in the given order is kept.
    """
    now = to_naive_utc(now) if now is not None else utcnow()

    effective = None
    for increase in price_increases or []:
        effective_at = to_naive_utc(increase.effective_at)
        if effective_at > now:
            continue
        if effective is None or effective_at > to_naive_utc(effective.effective_at):
            effective = increase
    return effective


def calculate_standard_amount(
    initial_amount: int, issued_at: datetime, status, now: Optional[datetime] = None
) -> int:
    """Standard amount from days since issue and status, ignoring price increases"""
    days_since_issued = days_between(issued_at, now)

    if days_since_issued <= DISCOUNT_PERIOD_DAYS:
        return initial_amount

    return math.floor(initial_amount * get_stage_multiplier(status))


def get_current_amount_due(ticket, now: Optional[datetime] = None) -> int:
    """
    Amount owed right now, in pence.

    Args:
        ticket: anything with initial_amount, issued_at, status and (optionally)
            price_increases, e.g. a Ticket row
        now: evaluation time, defaults to the current UTC time

    Returns:
        Amount due in pence
    """
    if _status_value(ticket.status) in SETTLED_STATUSES:
        return 0

    increase = get_effective_price_increase(getattr(ticket, "price_increases", None), now)
    if increase is not None:
        return increase.amount

    return calculate_standard_amount(ticket.initial_amount, ticket.issued_at, ticket.status, now)


def format_currency(amount_in_pence: int) -> str:
    """Format pence as pounds, e.g. 7000 -> £70.00"""
    return f"£{amount_in_pence / 100:.2f}"


def calculate_due_date(issued_at: datetime) -> datetime:
    """Standard payment due date (28 days after issue)"""
    return add_days(issued_at, FULL_CHARGE_PERIOD_DAYS)


def get_due_date_status(due_date: datetime, now: Optional[datetime] = None) -> dict:
    """Where a due date sits relative to now: today, past, near (within 7 days) or future"""
    now = to_naive_utc(now) if now is not None else utcnow()
    due_date = to_naive_utc(due_date)

    if is_same_day(due_date, now):
        return {"status": "today", "days_message": "Today", "color": "amber"}

    calendar_days = (due_date.date() - now.date()).days
    if calendar_days < 0:
        overdue = abs(calendar_days)
        label = "day" if overdue == 1 else "days"
        return {"status": "past", "days_message": f"{overdue} {label} ago", "color": "red"}

    remaining = calendar_days
    label = "day" if remaining == 1 else "days"
    if remaining <= NEAR_DUE_THRESHOLD_DAYS:
        return {"status": "near", "days_message": f"in {remaining} {label}", "color": "amber"}
    return {"status": "future", "days_message": f"in {remaining} {label}", "color": "green"}


def describe_amount_due(ticket, now: Optional[datetime] = None) -> dict:
    """
    Period breakdown used by the dashboard: discount, standard, overdue, or
    paid/cancelled once settled. The amount is always get_current_amount_due.
    """
    amount = get_current_amount_due(ticket, now)
    status = _status_value(ticket.status)

    if status in SETTLED_STATUSES:
        settled = "paid" if status == TicketStatus.PAID.value else "cancelled"
        return {
            "amount": amount,
            "is_discounted": False,
            "days_until_increase": None,
            "message": "Paid in full" if settled == "paid" else "Penalty cancelled",
            "status": settled,
        }

    increase = get_effective_price_increase(getattr(ticket, "price_increases", None), now)
    days_since_issue = days_between(ticket.issued_at, now)

    if days_since_issue <= DISCOUNT_PERIOD_DAYS and increase is None:
        days_remaining = DISCOUNT_PERIOD_DAYS - days_since_issue
        if days_remaining > 0:
            label = "day" if days_remaining == 1 else "days"
            message = f"Discount price for {days_remaining} more {label}"
        else:
            message = "Last day for discount price"
        return {
            "amount": amount,
            "is_discounted": True,
            "days_until_increase": days_remaining,
            "message": message,
            "status": "discount",
        }

    if days_since_issue <= FULL_CHARGE_PERIOD_DAYS:
        return {
            "amount": amount,
            "is_discounted": False,
            "days_until_increase": None,
            "message": "Increased charge" if increase is not None else "Standard charge (discount expired)",
            "status": "standard",
        }

    return {
        "amount": amount,
        "is_discounted": False,
        "days_until_increase": None,
        "message": "May be subject to further penalties",
        "status": "overdue",
    }

