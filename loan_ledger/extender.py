"""
Schedule Extender

Appends payments to an existing loan: a run of monthly installments, or a
single hand-entered payment. Open-ended loans grow only through here.
"""

from decimal import Decimal
from datetime import date
from typing import List, Optional, Union

from .errors import DuplicatePaymentError, ValidationError
from .loans import LoanManager, Payment
from .logging_config import get_logger, log_action
from .money import format_amount, parse_positive_amount
from .schedule import monthly_dates, parse_date
from .strategies import MAX_SCHEDULE_MONTHS


logger = get_logger(__name__)


def _parse_months(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        try:
            value = int(str(value).strip())
        except ValueError:
            raise ValidationError("months must be a whole number", {'field': 'months', 'value': str(value)})
    if value <= 0:
        raise ValidationError("months must be positive", {'field': 'months', 'value': value})
    if value > MAX_SCHEDULE_MONTHS:
        raise ValidationError(
            f"months must be at most {MAX_SCHEDULE_MONTHS}",
            {'field': 'months', 'value': value}
        )
    return value


class ScheduleExtender:
    """Adds installments to loans after creation"""

    def __init__(self, loan_manager: LoanManager):
        self.loan_manager = loan_manager
        self.storage = loan_manager.storage

    def extend_bulk(
        self,
        loan_id: int,
        months: int,
        custom_amount: Optional[Union[Decimal, str, int, float]] = None,
        start_date: Optional[Union[date, str]] = None
    ) -> List[Payment]:
        """
        Append `months` monthly payments to a loan

        Without `start_date` the run continues one month after the loan's
        latest due date (one month after the start date for a loan with no
        payments). With `start_date` the first new payment falls on that date.

        Args:
            loan_id: Loan to extend
            months: Number of payments to add
            custom_amount: Amount per payment; defaults to the strategy installment
            start_date: Due date of the first new payment

        Returns:
            The created payments in due date order

        Raises:
            ValidationError: bad months/amount/date, or no amount available
            LoanNotFoundError: unknown loan
            DuplicatePaymentError: a new due date matches an open payment
        """
        months = _parse_months(months)
        amount = parse_positive_amount(custom_amount, 'custom_amount') if custom_amount is not None else None
        override = parse_date(start_date, 'start_date') if start_date is not None else None

        with self.storage.atomic():
            loan = self.loan_manager.require_loan(loan_id)

            if amount is None:
                amount = loan.installment_amount
            if amount is None:
                raise ValidationError(
                    f"custom_amount is required to extend {loan.strategy.value} loans",
                    {'field': 'custom_amount', 'loan_id': loan_id}
                )

            existing = self.loan_manager.list_payments(loan_id)
            if override is not None:
                due_dates = monthly_dates(override, months, offset=0)
            else:
                anchor = existing[-1].due_date if existing else loan.start_date
                due_dates = monthly_dates(anchor, months)

            self._reject_duplicates(loan_id, existing, due_dates)
            created = [self.loan_manager.add_payment(loan_id, d, amount) for d in due_dates]

        log_action(logger, "info", f"Loan {loan_id} extended by {months} payments",
                   action="schedule_extended", resource=f"loan:{loan_id}",
                   extra={
                       'months': months,
                       'amount': format_amount(amount),
                       'first_due_date': due_dates[0].isoformat()
                   })
        return created

    def add_custom_payment(
        self,
        loan_id: int,
        amount: Union[Decimal, str, int, float],
        due_date: Union[date, str],
        notes: Optional[str] = None,
        today: Optional[date] = None
    ) -> Payment:
        """
        Add one payment to a loan

        A payment dated on or before `today` records money already received,
        so it is created collected and paid in full on its due date.

        Raises:
            ValidationError: bad amount or date
            LoanNotFoundError: unknown loan
            DuplicatePaymentError: an open payment already falls on `due_date`
        """
        amount = parse_positive_amount(amount, 'amount')
        due = parse_date(due_date, 'due_date')
        today = today or date.today()

        with self.storage.atomic():
            self.loan_manager.require_loan(loan_id)
            self._reject_duplicates(loan_id, self.loan_manager.list_payments(loan_id), [due])
            payment = self.loan_manager.add_payment(
                loan_id, due, amount, notes=notes, collected=due <= today
            )

        log_action(logger, "info", f"Payment {payment.id} added to loan {loan_id}",
                   action="custom_payment_added", resource=f"payment:{payment.id}",
                   extra={
                       'loan_id': loan_id,
                       'amount': format_amount(amount),
                       'due_date': due.isoformat(),
                       'status': payment.status.value
                   })
        return payment

    @staticmethod
    def _reject_duplicates(loan_id: int, existing: List[Payment], due_dates: List[date]) -> None:
        open_dates = {p.due_date for p in existing if not p.is_collected}
        for due in due_dates:
            if due in open_dates:
                raise DuplicatePaymentError(loan_id, due)
