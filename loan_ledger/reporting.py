"""
Reporting Module

Read-only views for the dashboard, defaulter and payments pages. Every label
comes from the status classifier and the delinquency detector; nothing here
re-derives lateness on its own.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

from .borrowers import Borrower, BorrowerManager
from .delinquency import DelinquencyDetector, DelinquencyReport
from .errors import ValidationError
from .loans import LoanManager, Payment, PaymentState
from .money import ZERO
from .schedule import add_months
from .status import PaymentStatus, days_overdue, payment_status
from .storage import encode_value


STATUS_ORDER = {
    PaymentStatus.MISSED: 0,
    PaymentStatus.DUE_TODAY: 1,
    PaymentStatus.DUE_SOON: 2,
    PaymentStatus.UPCOMING: 3,
    PaymentStatus.COLLECTED: 4,
}


class _Report:
    def to_dict(self) -> Dict[str, Any]:
        return encode_value(asdict(self))


@dataclass
class DashboardStats(_Report):
    total_loans: int
    active_loans: int          # Loans with at least one uncollected payment
    overdue_payments: int
    total_amount: Decimal      # Sum of principal across all loans


@dataclass
class UpcomingPayment(_Report):
    payment: Payment
    borrower_id: int
    borrower_name: str
    days_left: int
    status: PaymentStatus


@dataclass
class RecentLoan(_Report):
    loan_id: int
    borrower_id: int
    borrower_name: str
    amount: Decimal
    loan_strategy: str
    start_date: date
    next_payment: Optional[date]
    label: str                 # Active, Overdue or Defaulter


@dataclass
class DefaulterEntry(_Report):
    borrower_id: int
    borrower_name: str
    phone: str
    guarantor_name: Optional[str]
    guarantor_phone: Optional[str]
    report: DelinquencyReport


@dataclass
class MissedPaymentEntry(_Report):
    payment: Payment
    borrower_id: int
    borrower_name: str
    phone: str
    days_overdue: int


@dataclass
class PaymentLedgerEntry(_Report):
    payment: Payment
    borrower_name: str
    phone: str
    loan_strategy: str
    status: PaymentStatus


def parse_month(value: str):
    """Parse a `YYYY-MM` filter into (year, month)"""
    try:
        year, month = (int(part) for part in value.split('-'))
        date(year, month, 1)
    except ValueError:
        raise ValidationError("month must be formatted as YYYY-MM", {'field': 'month', 'value': value})
    return year, month


class ReportingEngine:
    """Builds dashboard and delinquency read models"""

    def __init__(
        self,
        borrower_manager: BorrowerManager,
        loan_manager: LoanManager,
        detector: DelinquencyDetector,
        due_soon_days: int = 3,
        upcoming_window_months: int = 1
    ):
        self.borrower_manager = borrower_manager
        self.loan_manager = loan_manager
        self.detector = detector
        self.due_soon_days = due_soon_days
        self.upcoming_window_months = upcoming_window_months

    def dashboard_stats(self, today: date) -> DashboardStats:
        loans = self.loan_manager.list_loans()
        payments = self.loan_manager.list_all_payments()

        open_loans = {p.loan_id for p in payments if not p.is_collected}
        overdue = [p for p in payments if self._status(p, today) == PaymentStatus.MISSED]

        return DashboardStats(
            total_loans=len(loans),
            active_loans=len(open_loans),
            overdue_payments=len(overdue),
            total_amount=sum((loan.amount for loan in loans), ZERO)
        )

    def upcoming_payments(self, today: date, limit: Optional[int] = None) -> List[UpcomingPayment]:
        """Payments with nothing collected, due from today until the end of the window"""
        window_end = add_months(today, self.upcoming_window_months)
        names = self._borrowers_by_loan()

        entries = []
        for payment in self.loan_manager.list_all_payments():
            if payment.status != PaymentState.UPCOMING:
                continue
            if not today <= payment.due_date < window_end:
                continue
            borrower = names.get(payment.loan_id)
            entries.append(UpcomingPayment(
                payment=payment,
                borrower_id=borrower.id if borrower else 0,
                borrower_name=borrower.name if borrower else "Unknown",
                days_left=(payment.due_date - today).days,
                status=self._status(payment, today)
            ))

        if limit is not None:
            entries = entries[:limit]
        return entries

    def recent_loans(self, today: date, limit: int = 4) -> List[RecentLoan]:
        """Newest loans first, labelled by the delinquency walk"""
        loans = sorted(self.loan_manager.list_loans(), key=lambda loan: (loan.created_at, loan.id), reverse=True)

        entries = []
        for loan in loans[:limit]:
            borrower = self.borrower_manager.get_borrower(loan.borrower_id)
            report = self.detector.classify_loan(loan.id, today)
            next_payment = self.loan_manager.next_upcoming_payment(loan.id)

            if report.is_defaulter:
                label = "Defaulter"
            elif report.missed_payments:
                label = "Overdue"
            else:
                label = "Active"

            entries.append(RecentLoan(
                loan_id=loan.id,
                borrower_id=loan.borrower_id,
                borrower_name=borrower.name if borrower else "Unknown",
                amount=loan.amount,
                loan_strategy=loan.strategy.value,
                start_date=loan.start_date,
                next_payment=next_payment.due_date if next_payment else None,
                label=label
            ))
        return entries

    def defaulters(self, today: date) -> List[DefaulterEntry]:
        """Every borrower currently at or above the defaulter threshold"""
        entries = []
        for borrower in self.borrower_manager.list_borrowers():
            report = self.detector.classify_borrower(borrower.id, today)
            if report.is_defaulter:
                entries.append(DefaulterEntry(
                    borrower_id=borrower.id,
                    borrower_name=borrower.name,
                    phone=borrower.phone,
                    guarantor_name=borrower.guarantor_name,
                    guarantor_phone=borrower.guarantor_phone,
                    report=report
                ))
        return entries

    def missed_payments(self, today: date) -> List[MissedPaymentEntry]:
        """Overdue payments of borrowers who are not defaulters"""
        entries = []
        for borrower in self.borrower_manager.list_borrowers():
            report = self.detector.classify_borrower(borrower.id, today)
            if report.is_defaulter:
                continue
            for payment in report.missed_payments:
                entries.append(MissedPaymentEntry(
                    payment=payment,
                    borrower_id=borrower.id,
                    borrower_name=borrower.name,
                    phone=borrower.phone,
                    days_overdue=days_overdue(payment, today)
                ))
        return sorted(entries, key=lambda e: (e.payment.due_date, e.payment.id))

    def payment_ledger(
        self,
        today: date,
        loan_id: Optional[int] = None,
        month: Optional[str] = None
    ) -> List[PaymentLedgerEntry]:
        """
        Payments with borrower details, most urgent first

        Args:
            today: As-of date for status labels
            loan_id: Restrict to one loan
            month: Restrict to due dates in a `YYYY-MM` month
        """
        if loan_id is not None:
            payments = self.loan_manager.list_payments(loan_id)
        else:
            payments = self.loan_manager.list_all_payments()

        if month:
            year, month_number = parse_month(month)
            payments = [p for p in payments if (p.due_date.year, p.due_date.month) == (year, month_number)]

        borrowers = self._borrowers_by_loan()
        strategies = {loan.id: loan.strategy.value for loan in self.loan_manager.list_loans()}

        entries = []
        for payment in payments:
            borrower = borrowers.get(payment.loan_id)
            entries.append(PaymentLedgerEntry(
                payment=payment,
                borrower_name=borrower.name if borrower else "Unknown",
                phone=borrower.phone if borrower else "",
                loan_strategy=strategies.get(payment.loan_id, "unknown"),
                status=self._status(payment, today)
            ))
        return sorted(entries, key=lambda e: (STATUS_ORDER[e.status], e.payment.due_date, e.payment.id))

    def _status(self, payment: Payment, today: date) -> PaymentStatus:
        return payment_status(payment, today, self.due_soon_days)

    def _borrowers_by_loan(self) -> Dict[int, Borrower]:
        borrowers = {b.id: b for b in self.borrower_manager.list_borrowers()}
        return {
            loan.id: borrowers[loan.borrower_id]
            for loan in self.loan_manager.list_loans()
            if loan.borrower_id in borrowers
        }
