"""String enums shared by models, schemas and services.

Values are stored in plain String columns, so every member's value equals its name.
"""

from enum import Enum


class TicketStatus(str, Enum):
    # Common initial stages
    ISSUED_DISCOUNT_PERIOD = "ISSUED_DISCOUNT_PERIOD"
    ISSUED_FULL_CHARGE = "ISSUED_FULL_CHARGE"

    # Council / TfL flow
    NOTICE_TO_OWNER = "NOTICE_TO_OWNER"
    FORMAL_REPRESENTATION = "FORMAL_REPRESENTATION"
    NOTICE_OF_REJECTION = "NOTICE_OF_REJECTION"
    REPRESENTATION_ACCEPTED = "REPRESENTATION_ACCEPTED"
    CHARGE_CERTIFICATE = "CHARGE_CERTIFICATE"
    ORDER_FOR_RECOVERY = "ORDER_FOR_RECOVERY"
    TEC_OUT_OF_TIME_APPLICATION = "TEC_OUT_OF_TIME_APPLICATION"
    PE2_PE3_APPLICATION = "PE2_PE3_APPLICATION"
    APPEAL_TO_TRIBUNAL = "APPEAL_TO_TRIBUNAL"
    ENFORCEMENT_BAILIFF_STAGE = "ENFORCEMENT_BAILIFF_STAGE"

    # Private parking flow
    NOTICE_TO_KEEPER = "NOTICE_TO_KEEPER"
    APPEAL_SUBMITTED_TO_OPERATOR = "APPEAL_SUBMITTED_TO_OPERATOR"
    APPEAL_REJECTED_BY_OPERATOR = "APPEAL_REJECTED_BY_OPERATOR"
    POPLA_APPEAL = "POPLA_APPEAL"
    IAS_APPEAL = "IAS_APPEAL"
    APPEAL_REJECTED = "APPEAL_REJECTED"
    DEBT_COLLECTION = "DEBT_COLLECTION"
    COURT_PROCEEDINGS = "COURT_PROCEEDINGS"
    CCJ_ISSUED = "CCJ_ISSUED"

    # Outcomes
    APPEAL_UPHELD = "APPEAL_UPHELD"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class IssuerType(str, Enum):
    COUNCIL = "COUNCIL"
    TFL = "TFL"
    PRIVATE_COMPANY = "PRIVATE_COMPANY"


class TicketType(str, Enum):
    PARKING_CHARGE_NOTICE = "PARKING_CHARGE_NOTICE"
    PENALTY_CHARGE_NOTICE = "PENALTY_CHARGE_NOTICE"


class ReminderType(str, Enum):
    DISCOUNT_PERIOD = "DISCOUNT_PERIOD"
    FULL_CHARGE = "FULL_CHARGE"


class NotificationType(str, Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"
    PUSH = "PUSH"


class PriceIncreaseSource(str, Enum):
    LETTER = "LETTER"
    MANUAL_UPDATE = "MANUAL_UPDATE"
    SYSTEM = "SYSTEM"


class ChallengeStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    CANCELLED = "CANCELLED"


class SubscriptionType(str, Enum):
    STANDARD = "STANDARD"
    PREMIUM = "PREMIUM"


class SubscriptionSource(str, Enum):
    STRIPE = "STRIPE"
    REVENUECAT = "REVENUECAT"


class NotificationEventType(str, Enum):
    TICKET_DEADLINE_REMINDER = "TICKET_DEADLINE_REMINDER"
    TICKET_STATUS_UPDATE = "TICKET_STATUS_UPDATE"
    CHALLENGE_UPDATE = "CHALLENGE_UPDATE"
