"""
Test suite for schedule generation date and amount math
"""

import pytest
from decimal import Decimal
from datetime import date
from types import SimpleNamespace

from loan_ledger.errors import ValidationError
from loan_ledger.schedule import ScheduledInstallment, add_months, generate_schedule, monthly_dates, parse_date
from loan_ledger.strategies import build_terms


def make_loan(strategy, start_date, **params):
    return SimpleNamespace(start_date=start_date, terms=build_terms(strategy, params))


class TestAddMonths:
    """Month arithmetic clamps to the end of shorter months"""

    def test_simple(self):
        assert add_months(date(2025, 1, 15), 1) == date(2025, 2, 15)

    def test_year_rollover(self):
        assert add_months(date(2025, 12, 1), 1) == date(2026, 1, 1)
        assert add_months(date(2025, 1, 1), 24) == date(2027, 1, 1)

    def test_month_end_clamp(self):
        assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2025, 3, 31), 1) == date(2025, 4, 30)

    def test_zero_months(self):
        assert add_months(date(2025, 5, 5), 0) == date(2025, 5, 5)

    @pytest.mark.parametrize("start, months", [
        (date(9999, 12, 15), 1),
        (date(2025, 1, 1), 10 ** 6),
        (date(1, 1, 1), -1),
    ])
    def test_out_of_range_is_validation_error(self, start, months):
        with pytest.raises(ValidationError):
            add_months(start, months)

    def test_last_representable_month(self):
        assert add_months(date(9999, 11, 30), 1) == date(9999, 12, 30)


class TestMonthlyDates:

    def test_dates_computed_from_anchor(self):
        assert monthly_dates(date(2025, 1, 31), 3) == [
            date(2025, 2, 28), date(2025, 3, 31), date(2025, 4, 30)
        ]

    def test_offset_zero_starts_on_anchor(self):
        assert monthly_dates(date(2025, 6, 10), 2, offset=0) == [date(2025, 6, 10), date(2025, 7, 10)]


class TestGenerateSchedule:
    """Initial schedule per strategy"""

    def test_emi_example(self):
        loan = make_loan("emi", date(2025, 1, 1), tenure=12, custom_emi_amount="1000")
        schedule = generate_schedule(loan)

        assert len(schedule) == 12
        assert schedule[0] == ScheduledInstallment(date(2025, 2, 1), Decimal("1000.00"))
        assert schedule[-1].due_date == date(2026, 1, 1)
        assert all(item.amount == Decimal("1000.00") for item in schedule)

    def test_emi_dates_strictly_increasing_one_month_apart(self):
        loan = make_loan("emi", date(2025, 1, 31), tenure=6, custom_emi_amount="100")
        dates = [item.due_date for item in generate_schedule(loan)]

        assert dates == sorted(set(dates))
        assert dates == [add_months(date(2025, 1, 31), i) for i in range(1, 7)]

    def test_emi_rounding_not_trued_up(self):
        loan = make_loan("emi", date(2025, 1, 1), tenure=3, custom_emi_amount="333.333")
        schedule = generate_schedule(loan)

        assert all(item.amount == Decimal("333.33") for item in schedule)
        assert sum(item.amount for item in schedule) == Decimal("999.99")

    def test_flat_generates_first_month_only(self):
        loan = make_loan("flat", date(2025, 3, 10), flat_monthly_amount="1500")
        schedule = generate_schedule(loan)

        assert schedule == [ScheduledInstallment(date(2025, 4, 10), Decimal("1500.00"))]

    @pytest.mark.parametrize("strategy, params", [
        ("custom", {}),
        ("gold_silver", {"metal_type": "gold", "metal_weight": "10", "purity": "75"}),
    ])
    def test_open_ended_manual_strategies_start_empty(self, strategy, params):
        loan = make_loan(strategy, date(2025, 1, 1), **params)
        assert generate_schedule(loan) == []


class TestParseDate:

    def test_iso_string(self):
        assert parse_date("2025-02-01") == date(2025, 2, 1)

    def test_datetime_string_truncated(self):
        assert parse_date("2025-02-01T10:30:00Z") == date(2025, 2, 1)
        assert parse_date("2025-02-01 10:30") == date(2025, 2, 1)
        assert parse_date("2025-02-01T10:30:00.123+05:30") == date(2025, 2, 1)

    def test_date_passthrough(self):
        assert parse_date(date(2025, 2, 1)) == date(2025, 2, 1)

    @pytest.mark.parametrize("value", [
        None, "", "01/02/2025", "2025-02-30", "2025-01-01garbage", "2025-01-01Tnoon"
    ])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            parse_date(value, "start_date")
