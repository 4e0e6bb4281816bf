"""
Per-issuer ticket timelines

Display metadata only: each stage lists the statuses a ticket usually moves to
next. Nothing validates a status write against these tables, any status can be
set on any ticket.
"""

from dataclasses import dataclass, field
from typing import Optional

from ..enums import IssuerType
from ..enums import TicketStatus as S


@dataclass(frozen=True)
class TicketStage:
    status: S
    label: str
    trigger: str
    next: list[S] = field(default_factory=list)


COUNCIL_TIMELINE = [
    TicketStage(S.ISSUED_DISCOUNT_PERIOD, "Reduced Payment Period", "Ticket issued", [S.ISSUED_FULL_CHARGE]),
    TicketStage(
        S.ISSUED_FULL_CHARGE,
        "Full Payment Due",
        "14 days passed without payment",
        [S.NOTICE_TO_OWNER],
    ),
    TicketStage(
        S.NOTICE_TO_OWNER,
        "Notice to Owner",
        "28 days passed without payment",
        [S.FORMAL_REPRESENTATION, S.CHARGE_CERTIFICATE, S.PAID],
    ),
    TicketStage(
        S.FORMAL_REPRESENTATION,
        "Formal Representation",
        "Representations sent to the council",
        [S.REPRESENTATION_ACCEPTED, S.NOTICE_OF_REJECTION],
    ),
    TicketStage(
        S.NOTICE_OF_REJECTION,
        "Notice of Rejection",
        "Representations rejected",
        [S.APPEAL_TO_TRIBUNAL, S.CHARGE_CERTIFICATE, S.PAID],
    ),
    TicketStage(
        S.APPEAL_TO_TRIBUNAL,
        "Appeal to Tribunal",
        "Appeal lodged with the independent adjudicator",
        [S.APPEAL_UPHELD, S.CHARGE_CERTIFICATE],
    ),
    TicketStage(
        S.CHARGE_CERTIFICATE,
        "Charge Certificate",
        "No payment or representation after Notice to Owner",
        [S.ORDER_FOR_RECOVERY, S.PAID],
    ),
    TicketStage(
        S.ORDER_FOR_RECOVERY,
        "Order for Recovery",
        "Debt registered with the Traffic Enforcement Centre",
        [S.TEC_OUT_OF_TIME_APPLICATION, S.ENFORCEMENT_BAILIFF_STAGE, S.PAID],
    ),
    TicketStage(
        S.TEC_OUT_OF_TIME_APPLICATION,
        "Witness Statement / Out of Time",
        "TE7 or TE9 filed",
        [S.NOTICE_TO_OWNER, S.ENFORCEMENT_BAILIFF_STAGE],
    ),
    TicketStage(
        S.ENFORCEMENT_BAILIFF_STAGE,
        "Warrant of Control (Bailiffs)",
        "Debt not paid after Order for Recovery",
        [S.PAID],
    ),
    TicketStage(S.REPRESENTATION_ACCEPTED, "Representation Accepted", "Council cancelled the PCN"),
    TicketStage(S.APPEAL_UPHELD, "Appeal Upheld", "Adjudicator allowed the appeal"),
    TicketStage(S.PAID, "Case Closed: Paid", "Penalty paid in full"),
    TicketStage(S.CANCELLED, "Cancelled", "Penalty cancelled"),
]

TFL_TIMELINE = [
    TicketStage(S.ISSUED_DISCOUNT_PERIOD, "Reduced Payment Period", "Ticket issued", [S.ISSUED_FULL_CHARGE]),
    TicketStage(S.ISSUED_FULL_CHARGE, "Full Payment Due", "14 days passed", [S.NOTICE_TO_OWNER]),
    TicketStage(
        S.NOTICE_TO_OWNER,
        "Enforcement Notice",
        "28 days passed",
        [S.FORMAL_REPRESENTATION, S.CHARGE_CERTIFICATE, S.PAID],
    ),
    TicketStage(
        S.FORMAL_REPRESENTATION,
        "Formal Representation",
        "Representations sent to TfL",
        [S.REPRESENTATION_ACCEPTED, S.NOTICE_OF_REJECTION],
    ),
    TicketStage(
        S.NOTICE_OF_REJECTION,
        "Notice of Rejection",
        "Representations rejected",
        [S.APPEAL_TO_TRIBUNAL, S.CHARGE_CERTIFICATE],
    ),
    TicketStage(
        S.APPEAL_TO_TRIBUNAL,
        "London Tribunals Appeal",
        "Appeal lodged with London Tribunals",
        [S.APPEAL_UPHELD, S.CHARGE_CERTIFICATE],
    ),
    TicketStage(
        S.CHARGE_CERTIFICATE,
        "Charge Certificate",
        "No action on Enforcement Notice",
        [S.ORDER_FOR_RECOVERY, S.PAID],
    ),
    TicketStage(
        S.ORDER_FOR_RECOVERY,
        "Order for Recovery",
        "Court application",
        [S.TEC_OUT_OF_TIME_APPLICATION, S.ENFORCEMENT_BAILIFF_STAGE, S.PAID],
    ),
    TicketStage(
        S.TEC_OUT_OF_TIME_APPLICATION,
        "Statutory Declaration",
        "TE7 or TE9 filed",
        [S.NOTICE_TO_OWNER, S.ENFORCEMENT_BAILIFF_STAGE],
    ),
    TicketStage(
        S.ENFORCEMENT_BAILIFF_STAGE,
        "Warrant of Control (Bailiffs)",
        "No statutory declaration",
        [S.PAID],
    ),
    TicketStage(S.REPRESENTATION_ACCEPTED, "Representation Accepted", "TfL cancelled the PCN"),
    TicketStage(S.APPEAL_UPHELD, "Appeal Upheld", "Adjudicator allowed the appeal"),
    TicketStage(S.PAID, "Case Closed: Paid", "Penalty paid in full"),
    TicketStage(S.CANCELLED, "Cancelled", "Penalty cancelled"),
]

PRIVATE_COMPANY_TIMELINE = [
    TicketStage(S.ISSUED_DISCOUNT_PERIOD, "Reduced Payment Period", "Ticket issued", [S.ISSUED_FULL_CHARGE]),
    TicketStage(
        S.ISSUED_FULL_CHARGE,
        "Full Payment Due",
        "14 days passed",
        [S.APPEAL_SUBMITTED_TO_OPERATOR, S.NOTICE_TO_KEEPER],
    ),
    TicketStage(
        S.NOTICE_TO_KEEPER,
        "Notice to Keeper",
        "28 days passed without payment or appeal",
        [S.APPEAL_SUBMITTED_TO_OPERATOR, S.DEBT_COLLECTION],
    ),
    TicketStage(
        S.APPEAL_SUBMITTED_TO_OPERATOR,
        "Appeal Submitted",
        "Appeal sent to the operator",
        [S.APPEAL_UPHELD, S.APPEAL_REJECTED_BY_OPERATOR],
    ),
    TicketStage(
        S.APPEAL_REJECTED_BY_OPERATOR,
        "Appeal Rejected by Operator",
        "Operator rejected the appeal",
        [S.POPLA_APPEAL, S.IAS_APPEAL],
    ),
    TicketStage(
        S.POPLA_APPEAL,
        "POPLA Appeal",
        "Appeal sent to POPLA",
        [S.APPEAL_UPHELD, S.APPEAL_REJECTED],
    ),
    TicketStage(
        S.IAS_APPEAL,
        "IAS Appeal",
        "Appeal sent to the IAS",
        [S.APPEAL_UPHELD, S.APPEAL_REJECTED],
    ),
    TicketStage(
        S.APPEAL_REJECTED,
        "Appeal Rejected",
        "Independent appeal rejected",
        [S.DEBT_COLLECTION, S.PAID],
    ),
    TicketStage(
        S.DEBT_COLLECTION,
        "Final Demand / Debt Recovery",
        "Ignored Notice to Keeper or rejected appeal",
        [S.COURT_PROCEEDINGS, S.PAID],
    ),
    TicketStage(
        S.COURT_PROCEEDINGS,
        "Legal Action Pending",
        "Passed to debt collectors or court",
        [S.CCJ_ISSUED, S.PAID],
    ),
    TicketStage(
        S.CCJ_ISSUED,
        "County Court Judgment",
        "Claim filed and not responded to",
        [S.PAID],
    ),
    TicketStage(S.APPEAL_UPHELD, "Appeal Upheld", "Appeal outcome"),
    TicketStage(S.PAID, "Case Closed: Paid", "Charge paid in full"),
    TicketStage(S.CANCELLED, "Cancelled", "Charge cancelled"),
]

TICKET_TIMELINES: dict[IssuerType, list[TicketStage]] = {
    IssuerType.COUNCIL: COUNCIL_TIMELINE,
    IssuerType.TFL: TFL_TIMELINE,
    IssuerType.PRIVATE_COMPANY: PRIVATE_COMPANY_TIMELINE,
}


def get_timeline_for_issuer(issuer_type) -> list[TicketStage]:
    return TICKET_TIMELINES[IssuerType(issuer_type)]


def get_stage_info(status, issuer_type) -> Optional[TicketStage]:
    """Stage for a status in an issuer's timeline, or None if the timeline doesn't list it"""
    status_value = getattr(status, "value", status)
    for stage in get_timeline_for_issuer(issuer_type):
        if stage.status.value == status_value:
            return stage
    return None


def get_next_stages(status, issuer_type) -> list[TicketStage]:
    """Stages that usually follow the given status (empty when the status isn't in the timeline)"""
    current = get_stage_info(status, issuer_type)
    if current is None:
        return []

    stages = [get_stage_info(next_status, issuer_type) for next_status in current.next]
    return [stage for stage in stages if stage is not None]
