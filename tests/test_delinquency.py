"""
Test suite for the delinquency detector

Tests the consecutive-missed walk, reset on collection, the defaulter
threshold, and classification across a borrower's loans.
"""

import pytest
from decimal import Decimal
from datetime import date, datetime, timezone

from loan_ledger.borrowers import BorrowerManager
from loan_ledger.collections import CollectionProcessor
from loan_ledger.delinquency import DelinquencyDetector, evaluate
from loan_ledger.errors import BorrowerNotFoundError, LoanNotFoundError
from loan_ledger.extender import ScheduleExtender
from loan_ledger.loans import LoanManager, Payment, PaymentState
from loan_ledger.storage import InMemoryStorage


def make_payment(payment_id, due, state=PaymentState.UPCOMING, amount="1000", due_amount="0", paid_date=None):
    now = datetime.now(timezone.utc)
    return Payment(
        id=payment_id,
        created_at=now,
        updated_at=now,
        loan_id=1,
        due_date=due,
        amount=Decimal(amount),
        status=state,
        due_amount=Decimal(due_amount),
        paid_date=paid_date
    )


class TestEvaluate:
    """The walk itself, over in-memory payments"""

    def test_reset_by_latest_collection(self):
        payments = [
            make_payment(1, date(2025, 1, 1)),
            make_payment(2, date(2025, 2, 1)),
            make_payment(3, date(2025, 3, 1), PaymentState.COLLECTED, paid_date=date(2025, 3, 2)),
        ]
        report = evaluate(payments, date(2025, 3, 15))

        assert report.consecutive_missed == 0
        assert not report.is_defaulter
        assert [p.id for p in report.missed_payments] == [1, 2]
        assert report.last_payment_date == date(2025, 3, 2)

    def test_two_consecutive_missed_is_defaulter(self):
        payments = [
            make_payment(1, date(2025, 1, 1), PaymentState.COLLECTED, paid_date=date(2025, 1, 1)),
            make_payment(2, date(2025, 2, 1)),
            make_payment(3, date(2025, 3, 1)),
            make_payment(4, date(2025, 4, 1)),
        ]
        report = evaluate(payments, date(2025, 3, 15))

        assert report.consecutive_missed == 2
        assert report.is_defaulter
        assert report.total_outstanding == Decimal("2000")
        assert report.max_days_overdue == 42

    def test_single_missed_not_defaulter(self):
        report = evaluate([make_payment(1, date(2025, 3, 1))], date(2025, 3, 15))
        assert report.consecutive_missed == 1
        assert not report.is_defaulter

    def test_input_order_does_not_matter(self):
        payments = [
            make_payment(3, date(2025, 3, 1), PaymentState.COLLECTED),
            make_payment(1, date(2025, 1, 1)),
            make_payment(2, date(2025, 2, 1)),
        ]
        assert evaluate(payments, date(2025, 3, 15)).consecutive_missed == 0
        assert evaluate(list(reversed(payments)), date(2025, 3, 15)).consecutive_missed == 0

    def test_due_today_and_future_ignored(self):
        payments = [
            make_payment(1, date(2025, 3, 1)),
            make_payment(2, date(2025, 3, 15)),
            make_payment(3, date(2025, 4, 1)),
        ]
        report = evaluate(payments, date(2025, 3, 15))
        assert report.consecutive_missed == 1

    def test_partially_paid_overdue_counts_as_missed(self):
        payments = [
            make_payment(1, date(2025, 1, 1), PaymentState.DUE_SOON, due_amount="400"),
            make_payment(2, date(2025, 2, 1)),
        ]
        report = evaluate(payments, date(2025, 3, 15))

        assert report.consecutive_missed == 2
        assert report.is_defaulter
        assert report.total_outstanding == Decimal("1400")

    def test_custom_threshold(self):
        payments = [make_payment(i, date(2025, i, 1)) for i in range(1, 3)]
        assert not evaluate(payments, date(2025, 3, 15), threshold=3).is_defaulter

    def test_no_payments(self):
        report = evaluate([], date(2025, 3, 15))
        assert report.consecutive_missed == 0
        assert report.missed_payments == []
        assert report.last_payment_date is None


class TestDelinquencyDetector:
    """Borrower and loan classification through the managers"""

    def setup_method(self):
        """Set up test fixtures"""
        self.storage = InMemoryStorage()
        self.borrower_manager = BorrowerManager(self.storage)
        self.loan_manager = LoanManager(self.storage, self.borrower_manager)
        self.extender = ScheduleExtender(self.loan_manager)
        self.processor = CollectionProcessor(self.loan_manager)
        self.detector = DelinquencyDetector(self.loan_manager)

        self.borrower = self.borrower_manager.create_borrower("Prakash", "9345678901", "Mill Road")
        self.loan, _ = self.loan_manager.create_loan(self.borrower.id, "5000", "custom", "2024-12-01")

    def add(self, due, collected_on=None):
        payment = self.extender.add_custom_payment(self.loan.id, "1000", due, today=date(2024, 12, 1))
        if collected_on:
            self.processor.collect_payment(payment.id, "1000", collected_on, "cash")
        return payment

    def test_example_borrower_not_currently_defaulter(self):
        self.add("2025-01-01")
        self.add("2025-02-01")
        self.add("2025-03-01", collected_on="2025-03-01")

        report = self.detector.classify_borrower(self.borrower.id, date(2025, 3, 15))
        assert report.consecutive_missed == 0
        assert not report.is_defaulter
        assert report.borrower_id == self.borrower.id

    def test_defaulter_across_loans(self):
        other, _ = self.loan_manager.create_loan(self.borrower.id, "2000", "custom", "2024-12-01")
        self.add("2025-01-01")
        self.extender.add_custom_payment(other.id, "500", "2025-02-01", today=date(2024, 12, 1))

        report = self.detector.classify_borrower(self.borrower.id, date(2025, 3, 15))
        assert report.consecutive_missed == 2
        assert report.is_defaulter

        loan_report = self.detector.classify_loan(self.loan.id, date(2025, 3, 15))
        assert loan_report.consecutive_missed == 1
        assert not loan_report.is_defaulter
        assert loan_report.loan_id == self.loan.id

    def test_settlement_resets_run(self):
        first = self.add("2025-01-01")
        self.add("2025-02-01")
        self.processor.collect_payment(first.id, "200", "2025-01-05", "cash")
        assert self.detector.classify_borrower(self.borrower.id, date(2025, 3, 15)).is_defaulter

        self.processor.settle_payment(first.id, "2025-03-10")
        assert self.detector.classify_borrower(self.borrower.id, date(2025, 3, 15)).consecutive_missed == 1

    def test_configured_threshold(self):
        detector = DelinquencyDetector(self.loan_manager, threshold=3)
        self.add("2025-01-01")
        self.add("2025-02-01")
        assert not detector.classify_borrower(self.borrower.id, date(2025, 3, 15)).is_defaulter

    def test_unknown_ids(self):
        with pytest.raises(BorrowerNotFoundError):
            self.detector.classify_borrower(999, date(2025, 3, 15))
        with pytest.raises(LoanNotFoundError):
            self.detector.classify_loan(999, date(2025, 3, 15))
