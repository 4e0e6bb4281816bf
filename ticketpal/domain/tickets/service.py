"""Ticket service - Business logic for ticket operations

Mutating operations return an ActionResult instead of raising, the router maps
failures to HTTP status codes.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...enums import ChallengeStatus, TicketStatus
from ...models import Challenge, Ticket, User
from ...services.reminder_service import generate_reminders, regenerate_reminders
from ...services.worker_client import WorkerClient
from ...shared.dates import to_naive_utc, utcnow
from ...shared.results import CONFLICT, NOT_FOUND, UPSTREAM, ActionResult
from .repository import TicketRepository
from .schemas import ChallengeCreate, PriceIncreaseCreate, TicketCreate, TicketUpdate

logger = logging.getLogger(__name__)

TICKET_NOT_FOUND = "Ticket not found."
DUPLICATE_PCN = "A ticket with this PCN number already exists."
STATUS_UPDATED_BY_USER = "USER"


class TicketService:
    """Service layer for ticket business logic"""

    def __init__(self, db: Session, worker_client: Optional[WorkerClient] = None):
        self.db = db
        self.repo = TicketRepository()
        self.worker_client = worker_client or WorkerClient()

    def get_ticket(self, ticket_id: int, user: User) -> Optional[Ticket]:
        return self.repo.get_ticket(self.db, ticket_id, user.id)

    def list_tickets(self, user: User, **filters) -> list[Ticket]:
        return self.repo.list_tickets(self.db, user.id, **filters)

    def create_ticket(self, data: TicketCreate, user: User) -> ActionResult:
        """Create a ticket in the discount period and schedule its reminders"""
        logger.info(f"📥 Creating ticket {data.pcnNumber} for user_id: {user.id}")

        if self.repo.get_ticket_by_pcn(self.db, data.pcnNumber, user.id):
            return ActionResult.fail(DUPLICATE_PCN, CONFLICT)

        try:
            vehicle = self.repo.get_or_create_vehicle(self.db, user.id, data.vehicleReg)
            issued_at = to_naive_utc(data.issuedAt)
            ticket = self.repo.create_ticket(
                self.db,
                vehicle,
                pcn_number=data.pcnNumber,
                contravention_code=data.contraventionCode,
                location=data.location,
                type=data.ticketType.value,
                initial_amount=data.initialAmount,
                issuer=data.issuer,
                issuer_type=data.issuerType.value,
                issued_at=issued_at,
                contravention_at=issued_at,
                status=TicketStatus.ISSUED_DISCOUNT_PERIOD.value,
                extracted_text=data.extractedText or "",
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Error creating ticket {data.pcnNumber} for user {user.id}: {e}")
            return ActionResult.fail("Failed to create ticket.")

        generate_reminders(self.db, ticket)

        logger.info(f"✅ Ticket {ticket.id} created for user {user.id}")
        return ActionResult.ok(ticket)

    def update_ticket(self, ticket_id: int, data: TicketUpdate, user: User) -> ActionResult:
        """Update ticket details; reminders are regenerated when the issue date moves"""
        ticket = self.repo.get_ticket(self.db, ticket_id, user.id)
        if not ticket:
            return ActionResult.fail(TICKET_NOT_FOUND, NOT_FOUND)

        new_issued_at = to_naive_utc(data.issuedAt) if data.issuedAt is not None else None
        issued_at_changed = new_issued_at is not None and new_issued_at != to_naive_utc(ticket.issued_at)
        logger.debug(f"Ticket {ticket_id} issued_at changed: {issued_at_changed}")

        if data.pcnNumber and data.pcnNumber != ticket.pcn_number:
            existing = self.repo.get_ticket_by_pcn(self.db, data.pcnNumber, user.id)
            if existing and existing.id != ticket.id:
                return ActionResult.fail(DUPLICATE_PCN, CONFLICT)

        try:
            updates = {
                "pcn_number": data.pcnNumber,
                "contravention_code": data.contraventionCode,
                "location": data.location,
                "issued_at": new_issued_at,
                "contravention_at": new_issued_at,
                "initial_amount": data.initialAmount,
                "issuer": data.issuer,
                "issuer_type": data.issuerType.value if data.issuerType else None,
            }
            if data.vehicleReg:
                vehicle = self.repo.get_or_create_vehicle(self.db, user.id, data.vehicleReg)
                updates["vehicle_id"] = vehicle.id

            ticket = self.repo.update_ticket(self.db, ticket, **updates)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Error updating ticket {ticket_id}: {e}")
            return ActionResult.fail("Failed to update ticket.")

        if issued_at_changed:
            regenerate_reminders(self.db, ticket)

        return ActionResult.ok(ticket)

    def update_status(self, ticket_id: int, status: TicketStatus, user: User) -> ActionResult:
        """Set any status; the issuer timelines are only advisory"""
        ticket = self.repo.get_ticket(self.db, ticket_id, user.id)
        if not ticket:
            return ActionResult.fail(TICKET_NOT_FOUND, NOT_FOUND)

        try:
            ticket = self.repo.update_ticket(
                self.db,
                ticket,
                status=TicketStatus(status).value,
                status_updated_at=utcnow(),
                status_updated_by=STATUS_UPDATED_BY_USER,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Error updating status of ticket {ticket_id} to {status}: {e}")
            return ActionResult.fail("Failed to update ticket status.")

        logger.info(f"🔄 Ticket {ticket_id} status set to {ticket.status} by user {user.id}")
        return ActionResult.ok(ticket)

    def update_notes(self, ticket_id: int, notes: str, user: User) -> ActionResult:
        ticket = self.repo.get_ticket(self.db, ticket_id, user.id)
        if not ticket:
            return ActionResult.fail(TICKET_NOT_FOUND, NOT_FOUND)

        try:
            ticket.notes = notes
            self.db.commit()
            self.db.refresh(ticket)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Error saving notes for ticket {ticket_id}: {e}")
            return ActionResult.fail("Failed to save notes.")

        return ActionResult.ok(ticket)

    def delete_ticket(self, ticket_id: int, user: User) -> ActionResult:
        ticket = self.repo.get_ticket(self.db, ticket_id, user.id)
        if not ticket:
            return ActionResult.fail(TICKET_NOT_FOUND, NOT_FOUND)

        try:
            self.repo.delete_ticket(self.db, ticket)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Error deleting ticket {ticket_id}: {e}")
            return ActionResult.fail("Failed to delete ticket.")

        logger.info(f"🗑️ Ticket {ticket_id} deleted by user {user.id}")
        return ActionResult.ok({"message": "Ticket deleted"})

    def add_price_increase(self, ticket_id: int, data: PriceIncreaseCreate, user: User) -> ActionResult:
        ticket = self.repo.get_ticket(self.db, ticket_id, user.id)
        if not ticket:
            return ActionResult.fail(TICKET_NOT_FOUND, NOT_FOUND)

        try:
            increase = self.repo.add_price_increase(
                self.db,
                ticket,
                amount=data.amount,
                effective_at=to_naive_utc(data.effectiveAt),
                reason=data.reason,
                source_type=data.sourceType.value,
                source_id=data.sourceId,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Error adding price increase to ticket {ticket_id}: {e}")
            return ActionResult.fail("Failed to add price increase.")

        logger.info(f"💷 Price increase {increase.id} ({increase.amount}p) added to ticket {ticket_id}")
        return ActionResult.ok(increase)

    def list_challenges(self, ticket_id: int, user: User) -> ActionResult:
        ticket = self.repo.get_ticket(self.db, ticket_id, user.id)
        if not ticket:
            return ActionResult.fail(TICKET_NOT_FOUND, NOT_FOUND)
        return ActionResult.ok(self.repo.list_challenges(self.db, ticket.id))

    async def challenge_ticket(self, ticket_id: int, data: ChallengeCreate, user: User) -> ActionResult:
        """
        Create a challenge and hand it to the automation worker.

        The worker's job id is stored so the completion webhook can find the
        challenge; if the worker refuses the job the challenge is marked ERROR.
        """
        ticket = self.repo.get_ticket(self.db, ticket_id, user.id)
        if not ticket:
            return ActionResult.fail(TICKET_NOT_FOUND, NOT_FOUND)

        try:
            challenge = self.repo.create_challenge(self.db, ticket, data.reason, data.customReason)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Error creating challenge for ticket {ticket_id}: {e}")
            return ActionResult.fail("Failed to create challenge.")

        result = await self.worker_client.start_challenge(
            challenge_id=challenge.id,
            ticket_id=ticket.id,
            pcn_number=ticket.pcn_number,
            issuer=ticket.issuer,
            reason=data.reason,
            custom_reason=data.customReason,
        )

        job_id = result.get("jobId") if result.get("success") else None
        if job_id:
            challenge.worker_job_id = str(job_id)
        else:
            challenge.status = ChallengeStatus.ERROR.value
            challenge.challenge_metadata = {"error": result.get("error") or "Worker did not return a job id"}
        self.db.commit()
        self.db.refresh(challenge)

        if not job_id:
            return ActionResult(
                success=False,
                data=challenge,
                error=f"Failed to start challenge: {challenge.challenge_metadata['error']}",
                code=UPSTREAM,
            )

        logger.info(f"🤖 Challenge {challenge.id} for ticket {ticket_id} queued as job {job_id}")
        return ActionResult.ok(challenge)


def serialize_challenge(challenge: Challenge) -> dict:
    return {
        "id": challenge.id,
        "ticketId": challenge.ticket_id,
        "reason": challenge.reason,
        "customReason": challenge.custom_reason,
        "status": challenge.status,
        "workerJobId": challenge.worker_job_id,
        "submittedAt": challenge.submitted_at,
        "metadata": challenge.challenge_metadata,
    }
