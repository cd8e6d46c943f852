"""
Delinquency Detector

Walks a borrower's or loan's payments in due date order and counts the
current run of consecutive missed payments. A collected payment resets the
run; the borrower is a defaulter while the run is at the threshold or above.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .loans import LoanManager, Payment, sort_payments
from .money import ZERO
from .status import days_overdue, is_overdue


DEFAULTER_THRESHOLD = 2


@dataclass
class DelinquencyReport:
    """Result of a delinquency walk as of one day"""
    consecutive_missed: int = 0
    is_defaulter: bool = False
    missed_payments: List[Payment] = field(default_factory=list)
    total_outstanding: Decimal = ZERO
    last_payment_date: Optional[date] = None
    max_days_overdue: int = 0
    borrower_id: Optional[int] = None
    loan_id: Optional[int] = None


def evaluate(
    payments: Iterable[Payment],
    today: date,
    threshold: int = DEFAULTER_THRESHOLD
) -> DelinquencyReport:
    """
    Run the consecutive-missed walk over a set of payments

    Payments are visited by (due_date, id). Collected payments reset the
    counter, overdue uncollected ones (partially paid included) increment
    it, and payments not yet due are skipped.
    """
    report = DelinquencyReport()

    for payment in sort_payments(list(payments)):
        if payment.is_collected:
            report.consecutive_missed = 0
            if payment.paid_date:
                report.last_payment_date = payment.paid_date
        elif is_overdue(payment, today):
            report.consecutive_missed += 1
            report.missed_payments.append(payment)
            report.total_outstanding += payment.outstanding
            report.max_days_overdue = max(report.max_days_overdue, days_overdue(payment, today))

    report.is_defaulter = report.consecutive_missed >= threshold
    return report


class DelinquencyDetector:
    """Classifies borrowers and loans from their payment history"""

    def __init__(self, loan_manager: LoanManager, threshold: int = DEFAULTER_THRESHOLD):
        self.loan_manager = loan_manager
        self.threshold = threshold

    def classify_borrower(self, borrower_id: int, today: date) -> DelinquencyReport:
        """
        Classify a borrower across all of their loans

        Raises:
            BorrowerNotFoundError: unknown borrower
        """
        self.loan_manager.borrower_manager.require_borrower(borrower_id)
        report = evaluate(self.loan_manager.payments_for_borrower(borrower_id), today, self.threshold)
        report.borrower_id = borrower_id
        return report

    def classify_loan(self, loan_id: int, today: date) -> DelinquencyReport:
        """
        Classify a single loan

        Raises:
            LoanNotFoundError: unknown loan
        """
        loan = self.loan_manager.require_loan(loan_id)
        report = evaluate(self.loan_manager.list_payments(loan_id), today, self.threshold)
        report.borrower_id = loan.borrower_id
        report.loan_id = loan_id
        return report
