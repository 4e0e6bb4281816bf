import json
from datetime import timedelta

import httpx
import pytest

from ticketpal.auth import create_device_token
from ticketpal.domain.tickets.router import get_worker_client
from ticketpal.main import app
from ticketpal.models import Challenge, Reminder, Ticket
from ticketpal.services.worker_client import WorkerClient
from ticketpal.shared.dates import utcnow


def iso_days_ago(days):
    return (utcnow() - timedelta(days=days)).isoformat()


def ticket_payload(**overrides):
    body = {
        "pcnNumber": "WK12345678",
        "vehicleReg": "ab12 cde",
        "issuedAt": iso_days_ago(2),
        "initialAmount": 7000,
        "issuer": "Camden Council",
        "issuerType": "COUNCIL",
        "contraventionCode": "01",
        "location": {"line1": "High Street", "city": "London"},
    }
    body.update(overrides)
    return body


@pytest.fixture
def worker_responses():
    return []


@pytest.fixture
def worker_client(worker_responses):
    requests = []

    def handler(request):
        requests.append(json.loads(request.content))
        return worker_responses.pop(0) if worker_responses else httpx.Response(
            200, json={"success": True, "jobId": "job-1"}
        )

    client = WorkerClient(
        base_url="https://worker.example.com",
        secret="worker-secret",
        app_url="https://api.example.com",
        transport=httpx.MockTransport(handler),
    )
    client.requests = requests
    app.dependency_overrides[get_worker_client] = lambda: client
    yield client
    app.dependency_overrides.pop(get_worker_client, None)


class TestCreateTicket:
    def test_create_ticket(self, client, db_session, auth_headers):
        response = client.post("/tickets", json=ticket_payload(), headers=auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "ISSUED_DISCOUNT_PERIOD"
        assert data["vehicleReg"] == "AB12CDE"
        assert data["amountDue"] == 7000
        assert data["amountDueFormatted"] == "£70.00"
        assert data["stage"]["label"] == "Reduced Payment Period"
        assert [s["status"] for s in data["nextStages"]] == ["ISSUED_FULL_CHARGE"]
        assert data["amountBreakdown"]["is_discounted"] is True
        assert db_session.query(Reminder).filter(Reminder.ticket_id == data["id"]).count() == 6

    def test_duplicate_pcn_conflicts(self, client, auth_headers):
        client.post("/tickets", json=ticket_payload(), headers=auth_headers)
        response = client.post("/tickets", json=ticket_payload(), headers=auth_headers)

        assert response.status_code == 409
        assert response.json()["detail"] == "A ticket with this PCN number already exists."

    def test_same_pcn_allowed_for_another_user(self, client, auth_headers, other_user):
        client.post("/tickets", json=ticket_payload(), headers=auth_headers)
        other_headers = {"Authorization": f"Bearer {create_device_token('device-2', other_user.public_id)}"}

        assert client.post("/tickets", json=ticket_payload(), headers=other_headers).status_code == 201

    def test_old_ticket_gets_no_reminders(self, client, db_session, auth_headers):
        response = client.post("/tickets", json=ticket_payload(issuedAt=iso_days_ago(40)), headers=auth_headers)

        assert response.status_code == 201
        assert db_session.query(Reminder).count() == 0

    def test_rejects_non_positive_amount(self, client, auth_headers):
        response = client.post("/tickets", json=ticket_payload(initialAmount=0), headers=auth_headers)
        assert response.status_code == 422

    def test_rejects_unknown_issuer_type(self, client, auth_headers):
        response = client.post("/tickets", json=ticket_payload(issuerType="AIRPORT"), headers=auth_headers)
        assert response.status_code == 422

    def test_invalid_token(self, client):
        response = client.post("/tickets", json=ticket_payload(), headers={"Authorization": "Bearer junk"})
        assert response.status_code == 401


class TestReadTickets:
    def test_get_ticket_computes_amount_due(self, client, auth_headers, make_ticket):
        ticket = make_ticket(days_ago=22, status="ISSUED_FULL_CHARGE")

        data = client.get(f"/tickets/{ticket.id}", headers=auth_headers).json()

        assert data["amountDue"] == 14000
        assert data["amountBreakdown"]["status"] == "standard"
        assert data["dueDateStatus"]["status"] == "near"

    @pytest.mark.parametrize(
        "status,amount,label",
        [("PAID", 0, "paid"), ("CANCELLED", 0, "cancelled"), ("ORDER_FOR_RECOVERY", 21000, "overdue")],
    )
    def test_breakdown_matches_amount_due(self, client, auth_headers, make_ticket, status, amount, label):
        ticket = make_ticket(days_ago=40, status=status)

        data = client.get(f"/tickets/{ticket.id}", headers=auth_headers).json()

        assert data["amountDue"] == amount
        assert data["amountBreakdown"]["amount"] == amount
        assert data["amountBreakdown"]["status"] == label

    def test_other_users_ticket_is_hidden(self, client, auth_headers, make_ticket, other_user):
        ticket = make_ticket(owner=other_user)
        assert client.get(f"/tickets/{ticket.id}", headers=auth_headers).status_code == 404

    def test_list_filters(self, client, auth_headers, make_ticket, other_user):
        make_ticket(pcn_number="A1", registration="AB12CDE", days_ago=3)
        make_ticket(pcn_number="B2", registration="XY99ZZZ", days_ago=1, status="PAID")
        make_ticket(pcn_number="C3", owner=other_user)

        all_tickets = client.get("/tickets", headers=auth_headers).json()
        assert [t["pcnNumber"] for t in all_tickets] == ["B2", "A1"]

        by_reg = client.get("/tickets", params={"search": "xy99"}, headers=auth_headers).json()
        assert [t["pcnNumber"] for t in by_reg] == ["B2"]

        by_status = client.get(
            "/tickets", params={"status": ["ISSUED_DISCOUNT_PERIOD"]}, headers=auth_headers
        ).json()
        assert [t["pcnNumber"] for t in by_status] == ["A1"]

        sorted_asc = client.get(
            "/tickets", params={"sortBy": "issuedAt", "sortOrder": "asc"}, headers=auth_headers
        ).json()
        assert [t["pcnNumber"] for t in sorted_asc] == ["A1", "B2"]

    def test_timeline_flags_current_stage(self, client, auth_headers, make_ticket):
        ticket = make_ticket(status="NOTICE_TO_OWNER")

        stages = client.get(f"/tickets/{ticket.id}/timeline", headers=auth_headers).json()

        current = [s["status"] for s in stages if s["current"]]
        assert current == ["NOTICE_TO_OWNER"]
        assert stages[0]["status"] == "ISSUED_DISCOUNT_PERIOD"


class TestUpdateTicket:
    def test_any_status_can_be_set(self, client, auth_headers, make_ticket):
        ticket = make_ticket()

        response = client.put(
            f"/tickets/{ticket.id}/status", json={"status": "CCJ_ISSUED"}, headers=auth_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "CCJ_ISSUED"
        assert data["statusUpdatedBy"] == "USER"
        assert data["stage"] is None
        assert data["nextStages"] == []

    def test_unknown_status_rejected(self, client, auth_headers, make_ticket):
        ticket = make_ticket()
        response = client.put(f"/tickets/{ticket.id}/status", json={"status": "LOST"}, headers=auth_headers)
        assert response.status_code == 422

    def test_changing_issue_date_regenerates_reminders(self, client, db_session, auth_headers):
        ticket_id = client.post("/tickets", json=ticket_payload(), headers=auth_headers).json()["id"]

        response = client.patch(
            f"/tickets/{ticket_id}", json={"issuedAt": iso_days_ago(20)}, headers=auth_headers
        )

        assert response.status_code == 200
        reminders = db_session.query(Reminder).filter(Reminder.ticket_id == ticket_id).all()
        assert {r.type for r in reminders} == {"FULL_CHARGE"}
        assert len(reminders) == 3

    def test_renaming_pcn_to_existing_one_conflicts(self, client, db_session, auth_headers, make_ticket):
        make_ticket(pcn_number="TAKEN01")
        ticket = make_ticket(pcn_number="MINE01")

        response = client.patch(f"/tickets/{ticket.id}", json={"pcnNumber": "TAKEN01"}, headers=auth_headers)

        assert response.status_code == 409
        assert response.json()["detail"] == "A ticket with this PCN number already exists."
        db_session.refresh(ticket)
        assert ticket.pcn_number == "MINE01"

    def test_pcn_can_be_resubmitted_unchanged(self, client, auth_headers, make_ticket):
        ticket = make_ticket(pcn_number="MINE01")

        response = client.patch(
            f"/tickets/{ticket.id}", json={"pcnNumber": " MINE01 ", "issuer": "Westminster"}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["pcnNumber"] == "MINE01"

    def test_renaming_to_another_users_pcn_allowed(self, client, auth_headers, make_ticket, other_user):
        make_ticket(pcn_number="SHARED01", owner=other_user)
        ticket = make_ticket(pcn_number="MINE01")

        response = client.patch(f"/tickets/{ticket.id}", json={"pcnNumber": "SHARED01"}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["pcnNumber"] == "SHARED01"

    @pytest.mark.parametrize("pcn", ["", "   "])
    def test_blank_pcn_rejected(self, client, db_session, auth_headers, make_ticket, pcn):
        ticket = make_ticket(pcn_number="MINE01")

        response = client.patch(f"/tickets/{ticket.id}", json={"pcnNumber": pcn}, headers=auth_headers)

        assert response.status_code == 422
        db_session.refresh(ticket)
        assert ticket.pcn_number == "MINE01"

    def test_update_missing_ticket(self, client, auth_headers):
        response = client.patch("/tickets/999", json={"issuer": "Westminster"}, headers=auth_headers)
        assert response.status_code == 404

    def test_notes(self, client, auth_headers, make_ticket):
        ticket = make_ticket()
        response = client.put(
            f"/tickets/{ticket.id}/notes", json={"notes": "Sign was hidden"}, headers=auth_headers
        )
        assert response.json()["notes"] == "Sign was hidden"

    def test_delete(self, client, db_session, auth_headers):
        ticket_id = client.post("/tickets", json=ticket_payload(), headers=auth_headers).json()["id"]

        assert client.delete(f"/tickets/{ticket_id}", headers=auth_headers).json() == {
            "message": "Ticket deleted"
        }
        assert client.get(f"/tickets/{ticket_id}", headers=auth_headers).status_code == 404
        assert db_session.query(Reminder).count() == 0
        assert db_session.query(Ticket).count() == 0


class TestPriceIncreases:
    def test_effective_increase_overrides_amount_due(self, client, auth_headers, make_ticket):
        ticket = make_ticket(days_ago=40, status="CHARGE_CERTIFICATE")

        response = client.post(
            f"/tickets/{ticket.id}/price-increases",
            json={
                "amount": 10500,
                "effectiveAt": iso_days_ago(1),
                "reason": "Charge Certificate",
                "sourceType": "LETTER",
            },
            headers=auth_headers,
        )
        assert response.status_code == 201

        data = client.get(f"/tickets/{ticket.id}", headers=auth_headers).json()
        assert data["amountDue"] == 10500
        assert data["latestPriceIncrease"]["sourceType"] == "LETTER"

        listed = client.get(f"/tickets/{ticket.id}/price-increases", headers=auth_headers).json()
        assert [i["amount"] for i in listed] == [10500]

    def test_future_increase_not_applied_yet(self, client, auth_headers, make_ticket):
        ticket = make_ticket(days_ago=3)
        client.post(
            f"/tickets/{ticket.id}/price-increases",
            json={"amount": 10500, "effectiveAt": (utcnow() + timedelta(days=5)).isoformat()},
            headers=auth_headers,
        )

        data = client.get(f"/tickets/{ticket.id}", headers=auth_headers).json()
        assert data["amountDue"] == 7000
        assert data["latestPriceIncrease"] is None


class TestChallenges:
    def test_challenge_queued_with_worker(self, client, db_session, auth_headers, make_ticket, worker_client):
        ticket = make_ticket()

        response = client.post(
            f"/tickets/{ticket.id}/challenges",
            json={"reason": "SIGNAGE_UNCLEAR", "customReason": "Sign covered by a tree"},
            headers=auth_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "PENDING"
        assert data["workerJobId"] == "job-1"
        assert worker_client.requests[0]["pcnNumber"] == ticket.pcn_number
        assert worker_client.requests[0]["customReason"] == "Sign covered by a tree"

        listed = client.get(f"/tickets/{ticket.id}/challenges", headers=auth_headers).json()
        assert [c["id"] for c in listed] == [data["id"]]

    def test_worker_failure_marks_challenge_error(
        self, client, db_session, auth_headers, make_ticket, worker_client, worker_responses
    ):
        worker_responses.append(httpx.Response(503, json={"error": "Worker busy"}))
        ticket = make_ticket()

        response = client.post(
            f"/tickets/{ticket.id}/challenges", json={"reason": "OTHER"}, headers=auth_headers
        )

        assert response.status_code == 502
        assert "Worker busy" in response.json()["detail"]
        challenge = db_session.query(Challenge).one()
        assert challenge.status == "ERROR"
        assert challenge.challenge_metadata == {"error": "Worker busy"}
        assert challenge.worker_job_id is None

    def test_non_json_worker_reply_marks_challenge_error(
        self, client, db_session, auth_headers, make_ticket, worker_client, worker_responses
    ):
        worker_responses.append(httpx.Response(200, text="<html>ok</html>"))
        ticket = make_ticket()

        response = client.post(
            f"/tickets/{ticket.id}/challenges", json={"reason": "OTHER"}, headers=auth_headers
        )

        assert response.status_code == 502
        challenge = db_session.query(Challenge).one()
        assert challenge.status == "ERROR"
        assert "Invalid response" in challenge.challenge_metadata["error"]
        assert challenge.worker_job_id is None

    def test_challenge_for_missing_ticket(self, client, auth_headers, worker_client):
        response = client.post("/tickets/999/challenges", json={"reason": "OTHER"}, headers=auth_headers)
        assert response.status_code == 404
