"""Ticket domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...enums import IssuerType, PriceIncreaseSource, TicketStatus, TicketType


def _normalize_registration(v: str) -> str:
    return "".join(v.split()).upper()


class TicketCreate(BaseModel):
    """Schema for creating a new ticket"""

    pcnNumber: str
    vehicleReg: str
    issuedAt: datetime
    initialAmount: int  # Discounted amount in pence
    contraventionCode: Optional[str] = None
    issuer: Optional[str] = None
    issuerType: IssuerType = IssuerType.COUNCIL
    ticketType: TicketType = TicketType.PENALTY_CHARGE_NOTICE
    location: Optional[dict] = None
    extractedText: Optional[str] = None

    @field_validator("pcnNumber")
    @classmethod
    def validate_pcn_number(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("PCN number is required")
        return v

    @field_validator("vehicleReg")
    @classmethod
    def validate_vehicle_reg(cls, v: str) -> str:
        v = _normalize_registration(v)
        if not v:
            raise ValueError("Vehicle registration is required")
        return v

    @field_validator("initialAmount")
    @classmethod
    def validate_amount(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Initial amount must be greater than 0")
        return v


class TicketUpdate(BaseModel):
    """Schema for updating an existing ticket"""

    pcnNumber: Optional[str] = None
    vehicleReg: Optional[str] = None
    issuedAt: Optional[datetime] = None
    initialAmount: Optional[int] = None
    contraventionCode: Optional[str] = None
    issuer: Optional[str] = None
    issuerType: Optional[IssuerType] = None
    location: Optional[dict] = None

    @field_validator("pcnNumber")
    @classmethod
    def validate_pcn_number(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("PCN number cannot be empty")
        return v

    @field_validator("vehicleReg")
    @classmethod
    def validate_vehicle_reg(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _normalize_registration(v) or None

    @field_validator("initialAmount")
    @classmethod
    def validate_amount(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError("Initial amount must be greater than 0")
        return v


class TicketStatusUpdate(BaseModel):
    status: TicketStatus


class TicketNotesUpdate(BaseModel):
    notes: str


class PriceIncreaseCreate(BaseModel):
    """Schema for recording a price increase (e.g. from a letter)"""

    amount: int
    effectiveAt: datetime
    reason: Optional[str] = None
    sourceType: PriceIncreaseSource = PriceIncreaseSource.MANUAL_UPDATE
    sourceId: Optional[str] = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Amount must be greater than 0")
        return v


class PriceIncreaseResponse(BaseModel):
    id: int
    amount: int
    effectiveAt: datetime
    reason: Optional[str] = None
    sourceType: str
    sourceId: Optional[str] = None


class StageResponse(BaseModel):
    status: str
    label: str
    trigger: str
    next: list[str]


class TimelineStageResponse(StageResponse):
    current: bool = False


class ChallengeCreate(BaseModel):
    reason: str
    customReason: Optional[str] = None

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Challenge reason is required")
        return v


class ChallengeResponse(BaseModel):
    id: int
    ticketId: int
    reason: str
    customReason: Optional[str] = None
    status: str
    workerJobId: Optional[str] = None
    submittedAt: Optional[datetime] = None
    metadata: Optional[dict] = None


class TicketResponse(BaseModel):
    """Schema for ticket response, including derived amount and stage"""

    id: int
    pcnNumber: str
    vehicleReg: str
    contraventionCode: Optional[str] = None
    location: Optional[dict] = None
    type: str
    initialAmount: int
    issuer: Optional[str] = None
    issuerType: str
    issuedAt: datetime
    status: str
    statusUpdatedAt: Optional[datetime] = None
    statusUpdatedBy: Optional[str] = None
    notes: Optional[str] = None
    verified: bool = False
    createdAt: Optional[datetime] = None
    amountDue: int
    amountDueFormatted: str
    dueDate: datetime
    dueDateStatus: dict
    amountBreakdown: dict
    stage: Optional[StageResponse] = None
    nextStages: list[StageResponse] = []
    latestPriceIncrease: Optional[PriceIncreaseResponse] = None
