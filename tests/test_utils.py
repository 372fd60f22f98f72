"""
Tests for payments, formatting and pagination helpers.
"""

from decimal import Decimal

import pytest

from dashboard.app.services.appointments import build_settlement
from dashboard.app.services.errors import ValidationFailed
from dashboard.app.utils.formatting import format_amount, format_appointment_number
from dashboard.app.utils.pagination import build_page_window, clamp_page

from conftest import make_appointment


class TestPayments:

    def test_remaining_amount_defaults_to_total_minus_deposit(self):
        assert make_appointment().remaining_amount == Decimal("80.00")
        assert make_appointment(depositAmount=None).remaining_amount == Decimal("100.00")

    def test_explicit_remaining_is_kept(self):
        appointment = make_appointment(remainingAmount="5.00")
        assert appointment.remaining_amount == Decimal("5.00")

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationFailed) as exc:
            build_settlement(make_appointment(), "-1")
        assert exc.value.field == "final_total_price"

    def test_non_numeric_price_rejected(self):
        with pytest.raises(ValidationFailed, match="number"):
            build_settlement(make_appointment(), "abc")

    def test_unknown_payment_method_rejected(self):
        with pytest.raises(ValidationFailed) as exc:
            build_settlement(make_appointment(), "10", payment_method="barter")
        assert exc.value.field == "payment_method"

    @pytest.mark.parametrize("status", ["cancelled", "no_show", "expired"])
    def test_unsettleable_statuses(self, status):
        with pytest.raises(ValidationFailed):
            build_settlement(make_appointment(status=status), "10")

    def test_zero_price_allowed(self):
        settlement = build_settlement(make_appointment(), 0, mark_as_paid=False, internal_notes="  ")
        assert settlement.final_total_price == Decimal("0")
        assert settlement.internal_notes is None


class TestFormatting:

    @pytest.mark.parametrize("number,country,expected", [
        ("1", "TR", "#RV-001"),
        (42, "US", "#APP-042"),
        ("RV-7", "TR", "#RV-007"),
        ("APP-1234", "DE", "#APP-1234"),
        (None, "TR", ""),
    ])
    def test_appointment_number(self, number, country, expected):
        assert format_appointment_number(number, country) == expected

    def test_amount(self):
        assert format_amount(Decimal("1500")).startswith("₺")


class TestPagination:

    def test_window(self):
        window = build_page_window(2, 20, 8)
        assert (window.page, window.total_pages, window.start_index, window.end_index) == (2, 3, 9, 16)
        assert window.can_go_previous and window.can_go_next

    def test_last_page(self):
        window = build_page_window(3, 20, 8)
        assert (window.start_index, window.end_index) == (17, 20)
        assert not window.can_go_next

    def test_out_of_range_page_is_clamped(self):
        assert build_page_window(9, 20, 8).page == 3
        assert clamp_page(0, 3) == 1

    def test_empty(self):
        window = build_page_window(1, 0, 8)
        assert (window.page, window.total_pages, window.start_index, window.end_index) == (1, 0, 0, 0)
        assert not window.can_go_next
