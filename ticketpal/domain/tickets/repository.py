"""Ticket repository - Database operations for tickets"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, cast, or_
from sqlalchemy.orm import Session, joinedload

from ...models import Challenge, PriceIncrease, Ticket, Vehicle

SORTABLE_FIELDS = {
    "issuedAt": Ticket.issued_at,
    "initialAmount": Ticket.initial_amount,
    "createdAt": Ticket.created_at,
    "status": Ticket.status,
    "issuer": Ticket.issuer,
}


class TicketRepository:
    """Repository for ticket database operations"""

    @staticmethod
    def get_ticket(db: Session, ticket_id: int, user_id: int) -> Optional[Ticket]:
        """Get a ticket that belongs to one of the user's vehicles"""
        return (
            db.query(Ticket)
            .join(Vehicle, Ticket.vehicle_id == Vehicle.id)
            .options(joinedload(Ticket.vehicle))
            .filter(Ticket.id == ticket_id, Vehicle.user_id == user_id)
            .first()
        )

    @staticmethod
    def get_ticket_by_pcn(db: Session, pcn_number: str, user_id: int) -> Optional[Ticket]:
        return (
            db.query(Ticket)
            .join(Vehicle, Ticket.vehicle_id == Vehicle.id)
            .filter(Ticket.pcn_number == pcn_number, Vehicle.user_id == user_id)
            .first()
        )

    @staticmethod
    def list_tickets(
        db: Session,
        user_id: int,
        search: Optional[str] = None,
        statuses: Optional[list[str]] = None,
        issuers: Optional[list[str]] = None,
        issuer_types: Optional[list[str]] = None,
        ticket_types: Optional[list[str]] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        amount_min: Optional[int] = None,
        amount_max: Optional[int] = None,
        verified: Optional[bool] = None,
        sort_by: Optional[str] = None,
        sort_order: str = "asc",
    ) -> list[Ticket]:
        """List a user's tickets with optional filters, newest issue date first by default"""
        query = (
            db.query(Ticket)
            .join(Vehicle, Ticket.vehicle_id == Vehicle.id)
            .options(joinedload(Ticket.vehicle))
            .filter(Vehicle.user_id == user_id)
        )

        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    Ticket.pcn_number.ilike(pattern),
                    Ticket.issuer.ilike(pattern),
                    Vehicle.registration_number.ilike(pattern),
                    cast(Ticket.location, String).ilike(pattern),
                )
            )

        if statuses:
            query = query.filter(Ticket.status.in_(statuses))
        if issuers:
            query = query.filter(Ticket.issuer.in_(issuers))
        if issuer_types:
            query = query.filter(Ticket.issuer_type.in_(issuer_types))
        if ticket_types:
            query = query.filter(Ticket.type.in_(ticket_types))
        if date_from:
            query = query.filter(Ticket.issued_at >= date_from)
        if date_to:
            query = query.filter(Ticket.issued_at <= date_to)
        if amount_min is not None:
            query = query.filter(Ticket.initial_amount >= amount_min)
        if amount_max is not None:
            query = query.filter(Ticket.initial_amount <= amount_max)
        if verified is not None:
            query = query.filter(Ticket.verified == verified)

        column = SORTABLE_FIELDS.get(sort_by) if sort_by else None
        if column is None:
            query = query.order_by(Ticket.issued_at.desc())
        else:
            query = query.order_by(column.desc() if sort_order == "desc" else column.asc())

        return query.all()

    @staticmethod
    def get_or_create_vehicle(db: Session, user_id: int, registration_number: str) -> Vehicle:
        """Find the user's vehicle by registration, adding it when missing (not committed)"""
        vehicle = (
            db.query(Vehicle)
            .filter(Vehicle.user_id == user_id, Vehicle.registration_number == registration_number)
            .first()
        )
        if vehicle:
            return vehicle

        vehicle = Vehicle(user_id=user_id, registration_number=registration_number)
        db.add(vehicle)
        db.flush()
        return vehicle

    @staticmethod
    def create_ticket(db: Session, vehicle: Vehicle, **ticket_data) -> Ticket:
        """Create a new ticket"""
        ticket = Ticket(vehicle_id=vehicle.id, **ticket_data)
        db.add(ticket)
        db.commit()
        db.refresh(ticket)
        return ticket

    @staticmethod
    def update_ticket(db: Session, ticket: Ticket, **updates) -> Ticket:
        """Update a ticket with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(ticket, key):
                setattr(ticket, key, value)

        db.commit()
        db.refresh(ticket)
        return ticket

    @staticmethod
    def delete_ticket(db: Session, ticket: Ticket) -> None:
        """Delete a ticket along with its reminders, price increases and challenges"""
        db.delete(ticket)
        db.commit()

    @staticmethod
    def add_price_increase(db: Session, ticket: Ticket, **increase_data) -> PriceIncrease:
        increase = PriceIncrease(ticket_id=ticket.id, **increase_data)
        db.add(increase)
        db.commit()
        db.refresh(increase)
        db.refresh(ticket)
        return increase

    @staticmethod
    def create_challenge(db: Session, ticket: Ticket, reason: str, custom_reason: Optional[str]) -> Challenge:
        challenge = Challenge(ticket_id=ticket.id, reason=reason, custom_reason=custom_reason, status="PENDING")
        db.add(challenge)
        db.commit()
        db.refresh(challenge)
        return challenge

    @staticmethod
    def list_challenges(db: Session, ticket_id: int) -> list[Challenge]:
        return (
            db.query(Challenge)
            .filter(Challenge.ticket_id == ticket_id)
            .order_by(Challenge.created_at.desc(), Challenge.id.desc())
            .all()
        )
