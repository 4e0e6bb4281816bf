import asyncio
from datetime import timedelta

import pytest

from ticketpal import config
from ticketpal.models import Notification, Ticket
from ticketpal.services.status_escalation import (
    ESCALATED_BY,
    count_pending_escalations,
    escalate_ticket_statuses,
)
from ticketpal.shared.dates import utcnow


def test_discount_period_escalates_after_14_days(db_session, make_ticket):
    overdue = make_ticket(pcn_number="OLD", days_ago=15)
    recent = make_ticket(pcn_number="NEW", days_ago=13)

    summary = asyncio.run(escalate_ticket_statuses(db_session))

    assert summary["discount_to_full_charge"]["escalated_ids"] == [overdue.id]
    db_session.refresh(overdue)
    db_session.refresh(recent)
    assert overdue.status == "ISSUED_FULL_CHARGE"
    assert overdue.status_updated_by == ESCALATED_BY
    assert overdue.status_updated_at is not None
    assert recent.status == "ISSUED_DISCOUNT_PERIOD"


def test_discount_escalation_notifies_with_new_amount(db_session, user, make_ticket):
    ticket = make_ticket(days_ago=15, initial_amount=7000)

    asyncio.run(escalate_ticket_statuses(db_session))

    notification = db_session.query(Notification).filter(Notification.ticket_id == ticket.id).one()
    assert notification.user_id == user.id
    assert notification.type == "TICKET_STATUS_UPDATE"
    assert notification.title == "Discount Period Ended"
    assert "£70.00 to £140.00" in notification.body
    assert notification.data["newAmount"] == 14000


def test_full_charge_escalates_council_tickets_only(db_session, make_ticket):
    stale = utcnow() - timedelta(days=29)
    council = make_ticket(
        pcn_number="C1", days_ago=45, status="ISSUED_FULL_CHARGE", status_updated_at=stale
    )
    make_ticket(
        pcn_number="P1",
        days_ago=45,
        status="ISSUED_FULL_CHARGE",
        issuer_type="PRIVATE_COMPANY",
        status_updated_at=stale,
    )
    make_ticket(
        pcn_number="C2",
        days_ago=45,
        status="ISSUED_FULL_CHARGE",
        status_updated_at=utcnow() - timedelta(days=10),
    )
    make_ticket(pcn_number="C3", days_ago=45, status="ISSUED_FULL_CHARGE")

    summary = asyncio.run(escalate_ticket_statuses(db_session))

    assert summary["full_charge_to_nto"]["escalated_ids"] == [council.id]
    statuses = {t.pcn_number: t.status for t in db_session.query(Ticket).all()}
    assert statuses == {
        "C1": "NOTICE_TO_OWNER",
        "P1": "ISSUED_FULL_CHARGE",
        "C2": "ISSUED_FULL_CHARGE",
        "C3": "ISSUED_FULL_CHARGE",
    }


def test_freshly_escalated_ticket_does_not_jump_to_notice_to_owner(db_session, make_ticket):
    ticket = make_ticket(days_ago=40)

    summary = asyncio.run(escalate_ticket_statuses(db_session))

    assert summary["full_charge_to_nto"]["processed"] == 0
    db_session.refresh(ticket)
    assert ticket.status == "ISSUED_FULL_CHARGE"


def test_count_pending_escalations(db_session, make_ticket):
    make_ticket(pcn_number="A", days_ago=20)
    make_ticket(pcn_number="B", days_ago=2)

    pending = count_pending_escalations(db_session)

    assert pending["discount_to_full_charge"] == 1
    assert pending["full_charge_to_nto"] == 0
    assert set(pending["cutoffs"]) == {"discount_period", "nto_escalation"}


class TestCronEndpoints:
    @pytest.fixture
    def cron_secret(self, monkeypatch):
        monkeypatch.setattr(config, "CRON_SECRET", "cron-secret")
        return {"Authorization": "Bearer cron-secret"}

    def test_escalation_requires_secret(self, client, cron_secret):
        assert client.post("/cron/escalate-tickets").status_code == 401
        bad = {"Authorization": "Bearer nope"}
        assert client.post("/cron/escalate-tickets", headers=bad).status_code == 401

    def test_escalation_runs_with_secret(self, client, cron_secret, make_ticket):
        ticket = make_ticket(days_ago=20)

        response = client.post("/cron/escalate-tickets", headers=cron_secret)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["discount_to_full_charge"]["escalated_ids"] == [ticket.id]

    def test_open_when_secret_unset(self, client, monkeypatch):
        monkeypatch.setattr(config, "CRON_SECRET", None)
        assert client.post("/cron/escalate-tickets").status_code == 200

    def test_status_hides_counts_from_unauthorized_callers(self, client, cron_secret):
        data = client.get("/cron/escalate-tickets").json()
        assert data["status"] == "ready"
        assert "pending" not in data
        assert data["note"] == "Use POST to trigger escalation"

    def test_status_shows_pending_counts(self, client, cron_secret, make_ticket):
        make_ticket(days_ago=20)

        data = client.get("/cron/escalate-tickets", headers=cron_secret).json()

        assert data["pending"] == {"discount_to_full_charge": 1, "full_charge_to_nto": 0}
        assert "cutoffs" in data

    def test_send_reminders_endpoint(self, client, cron_secret):
        response = client.post("/cron/send-reminders", headers=cron_secret)
        assert response.json() == {"processed": 0, "sent": 0, "failed": 0}
