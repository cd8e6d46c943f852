"""
Test suite for the schedule extender

Tests bulk monthly extension, single custom payments, recorded past
payments, and rejection of duplicate due dates.
"""

import pytest
from decimal import Decimal
from datetime import date

from loan_ledger.borrowers import BorrowerManager
from loan_ledger.errors import DuplicatePaymentError, InvalidStateError, LoanNotFoundError, ValidationError
from loan_ledger.extender import ScheduleExtender
from loan_ledger.loans import LoanManager, PaymentState
from loan_ledger.storage import InMemoryStorage


class TestExtendBulk:
    """Bulk monthly extension"""

    def setup_method(self):
        """Set up test fixtures"""
        self.storage = InMemoryStorage()
        self.borrower_manager = BorrowerManager(self.storage)
        self.loan_manager = LoanManager(self.storage, self.borrower_manager)
        self.extender = ScheduleExtender(self.loan_manager)
        self.borrower = self.borrower_manager.create_borrower("Devi", "9666666666", "North Street")

    def create(self, strategy, **params):
        loan, _ = self.loan_manager.create_loan(self.borrower.id, "10000", strategy, "2025-01-01", params)
        return loan

    def test_flat_continues_after_last_due_date(self):
        loan = self.create("flat", flat_monthly_amount="1500")
        created = self.extender.extend_bulk(loan.id, 3)

        assert [p.due_date for p in created] == [date(2025, 3, 1), date(2025, 4, 1), date(2025, 5, 1)]
        assert all(p.amount == Decimal("1500.00") for p in created)
        assert all(p.status == PaymentState.UPCOMING for p in created)
        assert len(self.loan_manager.list_payments(loan.id)) == 4

    def test_emi_extra_installments(self):
        loan = self.create("emi", tenure=2, custom_emi_amount="5000")
        created = self.extender.extend_bulk(loan.id, 1)
        assert created[0].due_date == date(2025, 4, 1)
        assert created[0].amount == Decimal("5000.00")

    def test_override_start_date_is_first_due_date(self):
        loan = self.create("flat", flat_monthly_amount="1000")
        created = self.extender.extend_bulk(loan.id, 2, start_date="2025-06-15")
        assert [p.due_date for p in created] == [date(2025, 6, 15), date(2025, 7, 15)]

    def test_custom_amount_overrides_installment(self):
        loan = self.create("flat", flat_monthly_amount="1000")
        created = self.extender.extend_bulk(loan.id, 1, custom_amount="750.50")
        assert created[0].amount == Decimal("750.50")

    def test_custom_loan_requires_amount(self):
        loan = self.create("custom")
        with pytest.raises(ValidationError) as exc_info:
            self.extender.extend_bulk(loan.id, 2)
        assert exc_info.value.details["field"] == "custom_amount"
        assert self.loan_manager.list_payments(loan.id) == []

    def test_empty_schedule_starts_one_month_after_start(self):
        loan = self.create("gold_silver", metal_type="gold", metal_weight="10", purity="90")
        created = self.extender.extend_bulk(loan.id, 2, custom_amount="2000")
        assert [p.due_date for p in created] == [date(2025, 2, 1), date(2025, 3, 1)]

    @pytest.mark.parametrize("months", [0, -1, "two", True, 1201, 200000])
    def test_invalid_months(self, months):
        loan = self.create("flat", flat_monthly_amount="1000")
        with pytest.raises(ValidationError):
            self.extender.extend_bulk(loan.id, months)

    def test_unknown_loan(self):
        with pytest.raises(LoanNotFoundError):
            self.extender.extend_bulk(999, 1, custom_amount="100")

    def test_extension_past_last_representable_date(self):
        loan, payments = self.loan_manager.create_loan(
            self.borrower.id, "5000", "flat", "9999-09-01", {"flat_monthly_amount": "500"}
        )
        with pytest.raises(ValidationError):
            self.extender.extend_bulk(loan.id, 6)
        assert self.loan_manager.list_payments(loan.id) == payments

    def test_override_start_date_past_last_representable_date(self):
        loan = self.create("flat", flat_monthly_amount="1000")
        with pytest.raises(ValidationError):
            self.extender.extend_bulk(loan.id, 2, start_date="9999-12-01")
        assert len(self.loan_manager.list_payments(loan.id)) == 1

    def test_duplicate_due_date_rejects_whole_batch(self):
        loan = self.create("flat", flat_monthly_amount="1000")   # payment due 2025-02-01
        with pytest.raises(DuplicatePaymentError):
            self.extender.extend_bulk(loan.id, 3, start_date="2025-01-01")

        assert len(self.loan_manager.list_payments(loan.id)) == 1

    def test_duplicate_is_invalid_state(self):
        assert issubclass(DuplicatePaymentError, InvalidStateError)

    def test_collected_payment_on_same_date_is_not_a_duplicate(self):
        loan = self.create("custom")
        self.extender.add_custom_payment(loan.id, "500", "2025-02-01", today=date(2025, 3, 1))
        created = self.extender.extend_bulk(loan.id, 1, custom_amount="500", start_date="2025-02-01")
        assert created[0].status == PaymentState.UPCOMING


class TestAddCustomPayment:
    """Single hand-entered payments"""

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.borrower_manager = BorrowerManager(self.storage)
        self.loan_manager = LoanManager(self.storage, self.borrower_manager)
        self.extender = ScheduleExtender(self.loan_manager)
        borrower = self.borrower_manager.create_borrower("Anil", "9777777777", "South Street")
        self.loan, _ = self.loan_manager.create_loan(borrower.id, "8000", "custom", "2025-01-01")

    def test_future_payment_is_upcoming(self):
        payment = self.extender.add_custom_payment(
            self.loan.id, "2000", "2025-04-10", notes="first", today=date(2025, 3, 1)
        )
        assert payment.status == PaymentState.UPCOMING
        assert payment.paid_date is None
        assert payment.paid_amount is None
        assert payment.notes == "first"

    def test_past_payment_created_collected(self):
        payment = self.extender.add_custom_payment(self.loan.id, "2000", "2025-02-10", today=date(2025, 3, 1))
        assert payment.status == PaymentState.COLLECTED
        assert payment.paid_date == date(2025, 2, 10)
        assert payment.paid_amount == Decimal("2000.00")
        assert payment.due_amount == Decimal("0.00")

    def test_payment_due_today_created_collected(self):
        payment = self.extender.add_custom_payment(self.loan.id, "100", "2025-03-01", today=date(2025, 3, 1))
        assert payment.status == PaymentState.COLLECTED

    def test_duplicate_open_payment_rejected(self):
        self.extender.add_custom_payment(self.loan.id, "100", "2025-05-01", today=date(2025, 3, 1))
        with pytest.raises(DuplicatePaymentError):
            self.extender.add_custom_payment(self.loan.id, "200", "2025-05-01", today=date(2025, 3, 1))
        assert len(self.loan_manager.list_payments(self.loan.id)) == 1

    @pytest.mark.parametrize("amount, due", [("0", "2025-05-01"), ("100", "someday"), (None, "2025-05-01")])
    def test_invalid_input(self, amount, due):
        with pytest.raises(ValidationError):
            self.extender.add_custom_payment(self.loan.id, amount, due, today=date(2025, 3, 1))

    def test_unknown_loan(self):
        with pytest.raises(LoanNotFoundError):
            self.extender.add_custom_payment(999, "100", "2025-05-01")
