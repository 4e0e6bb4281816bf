import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, index=True, default=generate_public_id)
    name = Column(String(255), nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=True)
    phone_number = Column(String(50), nullable=True)  # E.164, used for SMS reminders
    address = Column(JSON, nullable=True)  # {"line1", "line2", "city", "county", "postcode"}
    revenuecat_customer_id = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    vehicles = relationship("Vehicle", back_populates="user", cascade="all, delete-orphan")
    subscription = relationship(
        "Subscription", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    notifications = relationship(
        "Notification", back_populates="user", cascade="all, delete-orphan"
    )
    push_tokens = relationship("PushToken", back_populates="user", cascade="all, delete-orphan")


class Vehicle(Base):
    __tablename__ = "vehicles"
    __table_args__ = (
        UniqueConstraint("registration_number", "user_id", name="uq_vehicle_registration_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    registration_number = Column(String(20), nullable=False)
    make = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    colour = Column(String(50), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="vehicles")
    tickets = relationship("Ticket", back_populates="vehicle", cascade="all, delete-orphan")


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    pcn_number = Column(String(50), nullable=False, index=True)
    contravention_code = Column(String(10), nullable=True)
    location = Column(JSON, nullable=True)
    type = Column(String(50), nullable=False, default="PENALTY_CHARGE_NOTICE")
    # Always the discounted amount in pence; escalated amounts are derived
    initial_amount = Column(Integer, nullable=False)
    issuer = Column(String(255), nullable=True)
    issuer_type = Column(String(50), nullable=False, default="COUNCIL")  # COUNCIL, TFL, PRIVATE_COMPANY
    issued_at = Column(DateTime, nullable=False, index=True)
    contravention_at = Column(DateTime, nullable=True)
    status = Column(String(50), nullable=False, default="ISSUED_DISCOUNT_PERIOD", index=True)
    status_updated_at = Column(DateTime, nullable=True)
    status_updated_by = Column(String(50), nullable=True)  # USER, CRON_ESCALATION, LETTER_PARSER
    notes = Column(Text, nullable=True)
    extracted_text = Column(Text, nullable=True)
    verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    vehicle = relationship("Vehicle", back_populates="tickets")
    price_increases = relationship(
        "PriceIncrease",
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="PriceIncrease.effective_at.desc()",
    )
    reminders = relationship("Reminder", back_populates="ticket", cascade="all, delete-orphan")
    challenges = relationship("Challenge", back_populates="ticket", cascade="all, delete-orphan")


class PriceIncrease(Base):
    __tablename__ = "price_increases"

    id = Column(Integer, primary_key=True, index=True)
    ticket_id = Column(Integer, ForeignKey("tickets.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # Pence, replaces the computed amount once effective
    reason = Column(String(255), nullable=True)
    source_type = Column(String(20), nullable=False)  # LETTER, MANUAL_UPDATE, SYSTEM
    source_id = Column(String(255), nullable=True)
    effective_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    ticket = relationship("Ticket", back_populates="price_increases")


class Reminder(Base):
    __tablename__ = "reminders"

    id = Column(Integer, primary_key=True, index=True)
    ticket_id = Column(Integer, ForeignKey("tickets.id"), nullable=False, index=True)
    send_at = Column(DateTime, nullable=False, index=True)
    type = Column(String(30), nullable=False)  # DISCOUNT_PERIOD, FULL_CHARGE
    notification_type = Column(String(10), nullable=False)  # EMAIL, SMS, PUSH
    sent_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    ticket = relationship("Ticket", back_populates="reminders")


class Challenge(Base):
    __tablename__ = "challenges"

    id = Column(Integer, primary_key=True, index=True)
    ticket_id = Column(Integer, ForeignKey("tickets.id"), nullable=False, index=True)
    reason = Column(String(255), nullable=False)
    custom_reason = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="PENDING")  # PENDING, SUCCESS, ERROR, CANCELLED
    worker_job_id = Column(String(255), nullable=True, index=True)
    submitted_at = Column(DateTime, nullable=True)
    challenge_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    ticket = relationship("Ticket", back_populates="challenges")


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    type = Column(String(20), nullable=False)  # STANDARD, PREMIUM
    source = Column(String(20), nullable=False)  # STRIPE, REVENUECAT
    revenuecat_subscription_id = Column(String(255), nullable=True)
    stripe_subscription_id = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="subscription")


class Notification(Base):
    """In-app notification shown in the user's inbox"""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    ticket_id = Column(Integer, ForeignKey("tickets.id", ondelete="SET NULL"), nullable=True)
    type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="notifications")


class PushToken(Base):
    __tablename__ = "push_tokens"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    token = Column(String(255), unique=True, nullable=False)
    platform = Column(String(20), nullable=True)  # ios, android
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="push_tokens")
