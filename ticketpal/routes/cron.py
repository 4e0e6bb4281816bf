"""
Cron endpoints

For external schedulers; the arq worker runs the same jobs on its own cron.
When CRON_SECRET is set callers must send it as a Bearer token.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from .. import config
from ..database import get_db
from ..services.reminder_service import dispatch_due_reminders
from ..services.status_escalation import count_pending_escalations, escalate_ticket_statuses
from ..webhook_security import constant_time_compare

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["Cron"])

ESCALATION_DESCRIPTION = (
    "Escalates tickets: discount→full charge (14d), full charge→NtO (28d, council only)"
)


def is_cron_authorized(authorization: Optional[str]) -> bool:
    if not config.CRON_SECRET:
        return True
    return constant_time_compare(authorization, f"Bearer {config.CRON_SECRET}")


def require_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    if not is_cron_authorized(authorization):
        logger.warning("🚫 Unauthorized cron request")
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.post("/escalate-tickets", dependencies=[Depends(require_cron_secret)])
async def escalate_tickets(db: Session = Depends(get_db)):
    """Run the daily status escalation now"""
    summary = await escalate_ticket_statuses(db)
    return {"success": True, **summary}


@router.get("/escalate-tickets")
async def escalation_status(
    authorization: Optional[str] = Header(None), db: Session = Depends(get_db)
):
    """Health check; authorized callers also get pending counts"""
    response = {
        "endpoint": "/cron/escalate-tickets",
        "description": ESCALATION_DESCRIPTION,
        "status": "ready",
    }
    if not is_cron_authorized(authorization):
        response["note"] = "Use POST to trigger escalation"
        return response

    pending = count_pending_escalations(db)
    response["pending"] = {
        "discount_to_full_charge": pending["discount_to_full_charge"],
        "full_charge_to_nto": pending["full_charge_to_nto"],
    }
    response["cutoffs"] = pending["cutoffs"]
    return response


@router.post("/send-reminders", dependencies=[Depends(require_cron_secret)])
async def send_due_reminders(db: Session = Depends(get_db)):
    """Send every reminder that is due"""
    return await dispatch_due_reminders(db)
