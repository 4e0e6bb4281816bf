"""Ticket router - FastAPI endpoints for ticket operations"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import PriceIncrease, Ticket, User
from ...services.amount_due import (
    calculate_due_date,
    describe_amount_due,
    format_currency,
    get_current_amount_due,
    get_due_date_status,
    get_effective_price_increase,
)
from ...services.ticket_timelines import (
    TicketStage,
    get_next_stages,
    get_stage_info,
    get_timeline_for_issuer,
)
from ...services.worker_client import WorkerClient
from ...shared.dates import utcnow
from ...shared.results import ActionResult
from .schemas import (
    ChallengeCreate,
    ChallengeResponse,
    PriceIncreaseCreate,
    PriceIncreaseResponse,
    StageResponse,
    TicketCreate,
    TicketNotesUpdate,
    TicketResponse,
    TicketStatusUpdate,
    TicketUpdate,
    TimelineStageResponse,
)
from .service import TicketService, serialize_challenge

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tickets", tags=["Tickets"])


def get_worker_client() -> WorkerClient:
    return WorkerClient()


def get_ticket_service(
    db: Session = Depends(get_db), worker_client: WorkerClient = Depends(get_worker_client)
) -> TicketService:
    """Dependency injection for TicketService"""
    return TicketService(db, worker_client)


def unwrap(result: ActionResult):
    if not result.success:
        raise HTTPException(status_code=result.status_code, detail=result.error)
    return result.data


def stage_response(stage: TicketStage) -> StageResponse:
    return StageResponse(
        status=stage.status.value,
        label=stage.label,
        trigger=stage.trigger,
        next=[s.value for s in stage.next],
    )


def price_increase_response(increase: PriceIncrease) -> PriceIncreaseResponse:
    return PriceIncreaseResponse(
        id=increase.id,
        amount=increase.amount,
        effectiveAt=increase.effective_at,
        reason=increase.reason,
        sourceType=increase.source_type,
        sourceId=increase.source_id,
    )


def ticket_response(ticket: Ticket, now: Optional[datetime] = None) -> TicketResponse:
    now = now or utcnow()
    amount_due = get_current_amount_due(ticket, now)
    due_date = calculate_due_date(ticket.issued_at)
    stage = get_stage_info(ticket.status, ticket.issuer_type)
    latest_increase = get_effective_price_increase(ticket.price_increases, now)

    return TicketResponse(
        id=ticket.id,
        pcnNumber=ticket.pcn_number,
        vehicleReg=ticket.vehicle.registration_number,
        contraventionCode=ticket.contravention_code,
        location=ticket.location,
        type=ticket.type,
        initialAmount=ticket.initial_amount,
        issuer=ticket.issuer,
        issuerType=ticket.issuer_type,
        issuedAt=ticket.issued_at,
        status=ticket.status,
        statusUpdatedAt=ticket.status_updated_at,
        statusUpdatedBy=ticket.status_updated_by,
        notes=ticket.notes,
        verified=bool(ticket.verified),
        createdAt=ticket.created_at,
        amountDue=amount_due,
        amountDueFormatted=format_currency(amount_due),
        dueDate=due_date,
        dueDateStatus=get_due_date_status(due_date, now),
        amountBreakdown=describe_amount_due(ticket, now),
        stage=stage_response(stage) if stage else None,
        nextStages=[stage_response(s) for s in get_next_stages(ticket.status, ticket.issuer_type)],
        latestPriceIncrease=price_increase_response(latest_increase) if latest_increase else None,
    )


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("", response_model=list[TicketResponse])
async def list_tickets(
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
    search: Optional[str] = Query(None),
    status: Optional[list[str]] = Query(None),
    issuer: Optional[list[str]] = Query(None),
    issuerType: Optional[list[str]] = Query(None),
    ticketType: Optional[list[str]] = Query(None),
    dateFrom: Optional[datetime] = Query(None),
    dateTo: Optional[datetime] = Query(None),
    amountMin: Optional[int] = Query(None),
    amountMax: Optional[int] = Query(None),
    verified: Optional[bool] = Query(None),
    sortBy: Optional[str] = Query(None),
    sortOrder: str = Query("asc", pattern="^(asc|desc)$"),
):
    """Get the current user's tickets with optional filters"""
    tickets = service.list_tickets(
        current_user,
        search=search,
        statuses=status,
        issuers=issuer,
        issuer_types=issuerType,
        ticket_types=ticketType,
        date_from=dateFrom,
        date_to=dateTo,
        amount_min=amountMin,
        amount_max=amountMax,
        verified=verified,
        sort_by=sortBy,
        sort_order=sortOrder,
    )
    now = utcnow()
    return [ticket_response(t, now) for t in tickets]


@router.post("", response_model=TicketResponse, status_code=201)
async def create_ticket(
    data: TicketCreate,
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
):
    """Create a new ticket"""
    return ticket_response(unwrap(service.create_ticket(data, current_user)))


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket(
    ticket_id: int,
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
):
    """Get a ticket with its amount due and timeline position"""
    ticket = service.get_ticket(ticket_id, current_user)
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return ticket_response(ticket)


@router.patch("/{ticket_id}", response_model=TicketResponse)
async def update_ticket(
    ticket_id: int,
    data: TicketUpdate,
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
):
    """Update a ticket"""
    return ticket_response(unwrap(service.update_ticket(ticket_id, data, current_user)))


@router.put("/{ticket_id}/status", response_model=TicketResponse)
async def update_ticket_status(
    ticket_id: int,
    data: TicketStatusUpdate,
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
):
    """Set the ticket status"""
    return ticket_response(unwrap(service.update_status(ticket_id, data.status, current_user)))


@router.put("/{ticket_id}/notes", response_model=TicketResponse)
async def update_ticket_notes(
    ticket_id: int,
    data: TicketNotesUpdate,
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
):
    return ticket_response(unwrap(service.update_notes(ticket_id, data.notes, current_user)))


@router.delete("/{ticket_id}")
async def delete_ticket(
    ticket_id: int,
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
):
    """Delete a ticket"""
    return unwrap(service.delete_ticket(ticket_id, current_user))


# ============================================================================
# PRICE INCREASES & TIMELINE
# ============================================================================


@router.get("/{ticket_id}/price-increases", response_model=list[PriceIncreaseResponse])
async def list_price_increases(
    ticket_id: int,
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
):
    ticket = service.get_ticket(ticket_id, current_user)
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return [price_increase_response(i) for i in ticket.price_increases]


@router.post("/{ticket_id}/price-increases", response_model=PriceIncreaseResponse, status_code=201)
async def add_price_increase(
    ticket_id: int,
    data: PriceIncreaseCreate,
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
):
    """Record a price increase, e.g. from a Charge Certificate letter"""
    return price_increase_response(unwrap(service.add_price_increase(ticket_id, data, current_user)))


@router.get("/{ticket_id}/timeline", response_model=list[TimelineStageResponse])
async def get_ticket_timeline(
    ticket_id: int,
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
):
    """The issuer's timeline with the ticket's current stage flagged"""
    ticket = service.get_ticket(ticket_id, current_user)
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")

    return [
        TimelineStageResponse(
            **stage_response(stage).model_dump(),
            current=stage.status.value == ticket.status,
        )
        for stage in get_timeline_for_issuer(ticket.issuer_type)
    ]


# ============================================================================
# CHALLENGES
# ============================================================================


@router.get("/{ticket_id}/challenges", response_model=list[ChallengeResponse])
async def list_challenges(
    ticket_id: int,
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
):
    return [serialize_challenge(c) for c in unwrap(service.list_challenges(ticket_id, current_user))]


@router.post("/{ticket_id}/challenges", response_model=ChallengeResponse, status_code=201)
async def challenge_ticket(
    ticket_id: int,
    data: ChallengeCreate,
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
):
    """Submit a challenge through the automation worker"""
    return serialize_challenge(unwrap(await service.challenge_ticket(ticket_id, data, current_user)))
