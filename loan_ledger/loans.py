"""
Loan Module

Handles loan creation with its initial payment schedule, loan and payment
lookup, loan status changes and the cascade that removes a loan's payments.
"""

from decimal import Decimal
from datetime import datetime, timezone, date
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
from enum import Enum

from .borrowers import BorrowerManager
from .errors import LoanNotFoundError, PaymentNotFoundError, ValidationError
from .logging_config import get_logger, log_action
from .money import ZERO, format_amount, parse_positive_amount
from .schedule import generate_schedule, parse_date
from .storage import StorageInterface, StorageRecord
from .strategies import LoanStrategy, SchedulePolicy, StrategyTerms, build_terms, terms_from_dict


logger = get_logger(__name__)


class LoanStatus(Enum):
    """Loan lifecycle states"""
    ACTIVE = "active"
    COMPLETED = "completed"
    DEFAULTED = "defaulted"
    CANCELLED = "cancelled"


class PaymentState(Enum):
    """
    Stored payment state

    Only the collection fact is persisted. Time-relative labels such as
    "missed" are derived on read by the status classifier.
    """
    UPCOMING = "upcoming"    # Nothing collected yet
    DUE_SOON = "due_soon"    # Partially collected, shortfall outstanding
    COLLECTED = "collected"  # Fully collected or settled


class PaymentMethod(Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    UPI = "upi"
    CHEQUE = "cheque"


def parse_payment_method(value: Union[str, PaymentMethod, None]) -> PaymentMethod:
    if isinstance(value, PaymentMethod):
        return value
    try:
        return PaymentMethod(str(value).strip().lower())
    except ValueError:
        raise ValidationError(
            f"Unknown payment method: {value}",
            {'field': 'payment_method', 'allowed': [m.value for m in PaymentMethod]}
        )


def _get_date(data: Mapping[str, Any], field: str) -> Optional[date]:
    if data.get(field):
        return date.fromisoformat(data[field])
    return None


def _get_amount(data: Mapping[str, Any], field: str) -> Optional[Decimal]:
    if data.get(field) is not None:
        return Decimal(data[field])
    return None


@dataclass
class Loan(StorageRecord):
    """Borrowing agreement owned by one borrower"""
    borrower_id: int
    amount: Decimal
    terms: StrategyTerms
    start_date: date
    status: LoanStatus = LoanStatus.ACTIVE
    notes: Optional[str] = None

    @property
    def strategy(self) -> LoanStrategy:
        return self.terms.strategy

    @property
    def policy(self) -> SchedulePolicy:
        return self.terms.policy

    @property
    def installment_amount(self) -> Optional[Decimal]:
        """Strategy-implied installment, None for CUSTOM and GOLD_SILVER"""
        return self.terms.installment_amount

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['terms'] = self.terms.to_dict()
        result['loan_strategy'] = self.strategy.value
        return result

    @classmethod
    def from_dict(cls, data: Dict) -> 'Loan':
        return cls(
            id=data['id'],
            **cls._timestamps(data),
            borrower_id=data['borrower_id'],
            amount=Decimal(data['amount']),
            terms=terms_from_dict(data['terms']),
            start_date=date.fromisoformat(data['start_date']),
            status=LoanStatus(data['status']),
            notes=data.get('notes')
        )


@dataclass
class Payment(StorageRecord):
    """One scheduled installment of a loan"""
    loan_id: int
    due_date: date
    amount: Decimal                       # Scheduled amount, never changed by collection
    status: PaymentState = PaymentState.UPCOMING
    paid_date: Optional[date] = None
    paid_amount: Optional[Decimal] = None
    due_amount: Decimal = ZERO            # Shortfall after a partial collection
    excess_amount: Decimal = ZERO         # Overage beyond the expected installment
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None

    @property
    def is_collected(self) -> bool:
        return self.status == PaymentState.COLLECTED

    @property
    def has_collection(self) -> bool:
        """True once any money has been recorded against the payment"""
        return self.status != PaymentState.UPCOMING

    @property
    def outstanding(self) -> Decimal:
        """Amount still owed on this installment"""
        if self.status == PaymentState.UPCOMING:
            return self.amount
        return self.due_amount

    @classmethod
    def from_dict(cls, data: Dict) -> 'Payment':
        method = data.get('payment_method')
        return cls(
            id=data['id'],
            **cls._timestamps(data),
            loan_id=data['loan_id'],
            due_date=date.fromisoformat(data['due_date']),
            amount=Decimal(data['amount']),
            status=PaymentState(data['status']),
            paid_date=_get_date(data, 'paid_date'),
            paid_amount=_get_amount(data, 'paid_amount'),
            due_amount=_get_amount(data, 'due_amount') or ZERO,
            excess_amount=_get_amount(data, 'excess_amount') or ZERO,
            payment_method=PaymentMethod(method) if method else None,
            notes=data.get('notes')
        )


def sort_payments(payments: List[Payment]) -> List[Payment]:
    """Ascending by due date, ties broken by id"""
    return sorted(payments, key=lambda p: (p.due_date, p.id))


class LoanManager:
    """
    Manages loans and their payment rows
    """

    def __init__(self, storage: StorageInterface, borrower_manager: BorrowerManager):
        self.storage = storage
        self.borrower_manager = borrower_manager

        self.loans_table = "loans"
        self.payments_table = "payments"

    def create_loan(
        self,
        borrower_id: int,
        amount: Union[Decimal, str, int, float],
        loan_strategy: Union[str, LoanStrategy],
        start_date: Union[date, str],
        strategy_params: Optional[Mapping[str, Any]] = None,
        notes: Optional[str] = None
    ) -> Tuple[Loan, List[Payment]]:
        """
        Create a loan and its initial payment schedule

        The loan row and every generated payment are written in one
        transaction; a failure leaves neither behind.

        Args:
            borrower_id: Owning borrower
            amount: Principal
            loan_strategy: One of emi, flat, custom, gold_silver
            start_date: Loan start date; the first installment falls one month later
            strategy_params: Strategy parameters (tenure, custom_emi_amount,
                flat_monthly_amount, metal_type, metal_weight, purity)
            notes: Optional free text

        Returns:
            The loan and its generated payments

        Raises:
            ValidationError: invalid amount, date or strategy parameters
            BorrowerNotFoundError: unknown borrower
        """
        principal = parse_positive_amount(amount, 'amount')
        start = parse_date(start_date, 'start_date')
        terms = build_terms(loan_strategy, strategy_params)
        now = datetime.now(timezone.utc)

        with self.storage.atomic():
            self.borrower_manager.require_borrower(borrower_id)

            loan = Loan(
                id=self.storage.next_id(self.loans_table),
                created_at=now,
                updated_at=now,
                borrower_id=borrower_id,
                amount=principal,
                terms=terms,
                start_date=start,
                notes=notes
            )
            self._save_loan(loan)

            payments = [
                self.add_payment(loan.id, installment.due_date, installment.amount)
                for installment in generate_schedule(loan)
            ]

        log_action(logger, "info", f"Loan {loan.id} created for borrower {borrower_id}",
                   action="loan_created", resource=f"loan:{loan.id}",
                   extra={
                       'borrower_id': borrower_id,
                       'amount': format_amount(principal),
                       'strategy': terms.strategy.value,
                       'payments_generated': len(payments)
                   })
        return loan, payments

    def add_payment(
        self,
        loan_id: int,
        due_date: date,
        amount: Decimal,
        notes: Optional[str] = None,
        collected: bool = False
    ) -> Payment:
        """
        Write one payment row

        Callers validate the loan and run inside their own transaction. A
        payment created as collected is recorded as paid in full on its due date.
        """
        now = datetime.now(timezone.utc)
        payment = Payment(
            id=self.storage.next_id(self.payments_table),
            created_at=now,
            updated_at=now,
            loan_id=loan_id,
            due_date=due_date,
            amount=amount,
            notes=notes
        )
        if collected:
            payment.status = PaymentState.COLLECTED
            payment.paid_date = due_date
            payment.paid_amount = amount
        self.save_payment(payment)
        return payment

    def get_loan(self, loan_id: int) -> Optional[Loan]:
        """Get loan by ID"""
        data = self.storage.load(self.loans_table, loan_id)
        if data:
            return Loan.from_dict(data)
        return None

    def require_loan(self, loan_id: int) -> Loan:
        """Get loan by ID, raising LoanNotFoundError when absent"""
        loan = self.get_loan(loan_id)
        if not loan:
            raise LoanNotFoundError(loan_id)
        return loan

    def list_loans(self, borrower_id: Optional[int] = None) -> List[Loan]:
        """All loans, or a borrower's loans, ordered by id"""
        if borrower_id is None:
            rows = self.storage.load_all(self.loans_table)
        else:
            rows = self.storage.find(self.loans_table, {'borrower_id': borrower_id})
        return sorted((Loan.from_dict(data) for data in rows), key=lambda loan: loan.id)

    def update_loan_status(self, loan_id: int, status: Union[str, LoanStatus]) -> Loan:
        """Move a loan to another lifecycle status"""
        if not isinstance(status, LoanStatus):
            try:
                status = LoanStatus(str(status).strip().lower())
            except ValueError:
                raise ValidationError(
                    f"Unknown loan status: {status}",
                    {'field': 'status', 'allowed': [s.value for s in LoanStatus]}
                )

        with self.storage.atomic():
            loan = self.require_loan(loan_id)
            old_status = loan.status
            loan.status = status
            loan.touch()
            self._save_loan(loan)

        log_action(logger, "info", f"Loan {loan_id} status changed",
                   action="loan_status_changed", resource=f"loan:{loan_id}",
                   extra={'old_status': old_status.value, 'new_status': status.value})
        return loan

    def delete_loan(self, loan_id: int) -> int:
        """
        Delete a loan and all of its payments

        Returns:
            Number of payments deleted with the loan
        """
        with self.storage.atomic():
            self.require_loan(loan_id)
            payments = self.storage.find(self.payments_table, {'loan_id': loan_id})
            for payment in payments:
                self.storage.delete(self.payments_table, payment['id'])
            self.storage.delete(self.loans_table, loan_id)

        log_action(logger, "warning", f"Loan {loan_id} deleted",
                   action="loan_deleted", resource=f"loan:{loan_id}",
                   extra={'payments_deleted': len(payments)})
        return len(payments)

    def get_payment(self, payment_id: int) -> Optional[Payment]:
        """Get payment by ID"""
        data = self.storage.load(self.payments_table, payment_id)
        if data:
            return Payment.from_dict(data)
        return None

    def require_payment(self, payment_id: int) -> Payment:
        """Get payment by ID, raising PaymentNotFoundError when absent"""
        payment = self.get_payment(payment_id)
        if not payment:
            raise PaymentNotFoundError(payment_id)
        return payment

    def list_payments(self, loan_id: int) -> List[Payment]:
        """Payments of a loan ordered by due date"""
        rows = self.storage.find(self.payments_table, {'loan_id': loan_id})
        return sort_payments([Payment.from_dict(data) for data in rows])

    def list_all_payments(self) -> List[Payment]:
        return sort_payments([Payment.from_dict(data) for data in self.storage.load_all(self.payments_table)])

    def payments_for_borrower(self, borrower_id: int) -> List[Payment]:
        """Every payment across a borrower's loans, ordered by due date"""
        payments = []
        for loan in self.list_loans(borrower_id):
            payments.extend(self.list_payments(loan.id))
        return sort_payments(payments)

    def next_upcoming_payment(self, loan_id: int) -> Optional[Payment]:
        """Earliest payment of the loan with nothing collected yet"""
        for payment in self.list_payments(loan_id):
            if payment.status == PaymentState.UPCOMING:
                return payment
        return None

    def save_payment(self, payment: Payment) -> None:
        self.storage.save(self.payments_table, payment.id, payment.to_dict())

    def _save_loan(self, loan: Loan) -> None:
        self.storage.save(self.loans_table, loan.id, loan.to_dict())
