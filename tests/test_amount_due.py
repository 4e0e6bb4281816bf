from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from ticketpal.services.amount_due import (
    DEFAULT_MULTIPLIER,
    STAGE_MULTIPLIERS,
    calculate_due_date,
    describe_amount_due,
    format_currency,
    get_current_amount_due,
    get_due_date_status,
    get_effective_price_increase,
    get_stage_multiplier,
)

NOW = datetime(2024, 6, 1, 12, 0, 0)


def make_ticket(days_ago, status="ISSUED_DISCOUNT_PERIOD", initial_amount=7000, price_increases=None):
    return SimpleNamespace(
        initial_amount=initial_amount,
        issued_at=NOW - timedelta(days=days_ago),
        status=status,
        price_increases=price_increases or [],
    )


def increase(amount, days_from_now):
    return SimpleNamespace(amount=amount, effective_at=NOW + timedelta(days=days_from_now))


class TestCurrentAmountDue:
    def test_discount_period_charges_initial_amount(self):
        assert get_current_amount_due(make_ticket(10), NOW) == 7000

    def test_last_discount_day_still_discounted(self):
        assert get_current_amount_due(make_ticket(14, status="ISSUED_FULL_CHARGE"), NOW) == 7000

    def test_full_charge_doubles(self):
        assert get_current_amount_due(make_ticket(20, status="ISSUED_FULL_CHARGE"), NOW) == 14000

    def test_order_for_recovery_triples(self):
        assert get_current_amount_due(make_ticket(60, status="ORDER_FOR_RECOVERY"), NOW) == 21000

    @pytest.mark.parametrize("status", ["PAID", "CANCELLED"])
    def test_settled_tickets_owe_nothing(self, status):
        ticket = make_ticket(60, status=status, price_increases=[increase(9900, -1)])
        assert get_current_amount_due(ticket, NOW) == 0

    def test_unmapped_status_uses_fallback_multiplier(self):
        ticket = make_ticket(20, status="APPEAL_TO_TRIBUNAL")
        assert get_stage_multiplier("APPEAL_TO_TRIBUNAL") == DEFAULT_MULTIPLIER
        assert get_current_amount_due(ticket, NOW) == 14000

    def test_effective_price_increase_overrides(self):
        ticket = make_ticket(5, price_increases=[increase(10500, -1)])
        assert get_current_amount_due(ticket, NOW) == 10500

    def test_future_price_increase_ignored(self):
        ticket = make_ticket(5, price_increases=[increase(10500, 2)])
        assert get_current_amount_due(ticket, NOW) == 7000

    def test_latest_effective_increase_wins(self):
        older = increase(9000, -10)
        newer = increase(12000, -2)
        ticket = make_ticket(30, status="CHARGE_CERTIFICATE", price_increases=[newer, older])
        assert get_current_amount_due(ticket, NOW) == 12000

    def test_tie_keeps_first_in_order(self):
        first = increase(9000, -3)
        second = increase(9500, -3)
        assert get_effective_price_increase([first, second], NOW) is first

    @pytest.mark.parametrize("status,multiplier", sorted(STAGE_MULTIPLIERS.items()))
    def test_each_stage_multiplier_after_discount(self, status, multiplier):
        assert get_current_amount_due(make_ticket(15, status=status), NOW) == int(7000 * multiplier)

    @pytest.mark.parametrize(
        "days_ago,status,expected",
        [
            (10, "ISSUED_DISCOUNT_PERIOD", 7000),
            (20, "NOTICE_TO_OWNER", 14000),
            (40, "ORDER_FOR_RECOVERY", 21000),
        ],
    )
    def test_worked_examples(self, days_ago, status, expected):
        assert get_current_amount_due(make_ticket(days_ago, status=status), NOW) == expected

    def test_amounts_are_floored(self):
        ticket = make_ticket(60, status="ORDER_FOR_RECOVERY", initial_amount=3333)
        assert get_current_amount_due(ticket, NOW) == 9999


def test_format_currency():
    assert format_currency(7000) == "£70.00"
    assert format_currency(5) == "£0.05"


def test_due_date_is_28_days_after_issue():
    assert calculate_due_date(datetime(2024, 1, 1)) == datetime(2024, 1, 29)


class TestDueDateStatus:
    def test_today(self):
        assert get_due_date_status(NOW.replace(hour=23), NOW)["status"] == "today"

    def test_past(self):
        result = get_due_date_status(NOW - timedelta(days=1), NOW)
        assert result == {"status": "past", "days_message": "1 day ago", "color": "red"}

    def test_near(self):
        result = get_due_date_status(NOW + timedelta(days=7), NOW)
        assert result["status"] == "near"
        assert result["days_message"] == "in 7 days"

    def test_future(self):
        assert get_due_date_status(NOW + timedelta(days=8), NOW)["color"] == "green"


class TestDescribeAmountDue:
    def test_discount_period(self):
        result = describe_amount_due(make_ticket(13), NOW)
        assert result["is_discounted"] is True
        assert result["days_until_increase"] == 1
        assert result["message"] == "Discount price for 1 more day"

    def test_last_discount_day(self):
        result = describe_amount_due(make_ticket(14), NOW)
        assert result["message"] == "Last day for discount price"

    def test_standard_and_overdue(self):
        standard = describe_amount_due(make_ticket(20, status="ISSUED_FULL_CHARGE"), NOW)
        assert standard["status"] == "standard"
        assert standard["amount"] == 14000
        overdue = describe_amount_due(make_ticket(40, status="NOTICE_TO_OWNER"), NOW)
        assert overdue["status"] == "overdue"
        assert overdue["amount"] == 14000

    def test_amount_follows_status_multiplier(self):
        result = describe_amount_due(make_ticket(40, status="ORDER_FOR_RECOVERY"), NOW)
        assert result["amount"] == 21000

    @pytest.mark.parametrize("status,label", [("PAID", "paid"), ("CANCELLED", "cancelled")])
    def test_settled_ticket_owes_nothing(self, status, label):
        result = describe_amount_due(make_ticket(40, status=status), NOW)
        assert result["amount"] == 0
        assert result["status"] == label
        assert "further penalties" not in result["message"]

    def test_price_increase_ends_discount(self):
        ticket = make_ticket(5, price_increases=[increase(10500, -1)])
        result = describe_amount_due(ticket, NOW)
        assert result["amount"] == 10500
        assert result["is_discounted"] is False
        assert result["message"] == "Increased charge"
