"""
Collection and Settlement Processor

Records money received against a scheduled payment, tracks any shortfall
left by a partial collection, and settles that shortfall in one lump sum.
Every operation re-reads the payment inside its transaction.
"""

from decimal import Decimal
from datetime import date
from typing import Optional, Union

from .errors import InvalidStateError
from .loans import LoanManager, Payment, PaymentMethod, PaymentState, parse_payment_method
from .logging_config import get_logger, log_action
from .money import ZERO, format_amount, parse_positive_amount
from .schedule import parse_date


logger = get_logger(__name__)


class CollectionProcessor:
    """
    Transitions payments from scheduled to collected
    """

    def __init__(self, loan_manager: LoanManager):
        self.loan_manager = loan_manager
        self.storage = loan_manager.storage

    def expected_amount(self, payment: Payment) -> Decimal:
        """
        Amount a collection is measured against

        EMI and FLAT loans expect their installment; CUSTOM and GOLD_SILVER
        payments expect their own scheduled amount.
        """
        loan = self.loan_manager.require_loan(payment.loan_id)
        installment = loan.installment_amount
        return installment if installment is not None else payment.amount

    def collect_payment(
        self,
        payment_id: int,
        paid_amount: Union[Decimal, str, int, float],
        paid_date: Union[date, str],
        payment_method: Union[PaymentMethod, str],
        notes: Optional[str] = None
    ) -> Payment:
        """
        Record a collection against a payment

        A shortfall leaves the payment in DUE_SOON with `due_amount` set; a
        full or larger collection marks it COLLECTED, with any overage kept
        in `excess_amount`.

        Raises:
            ValidationError: non-positive amount, bad date or method
            PaymentNotFoundError: unknown payment
            InvalidStateError: a collection was already recorded
        """
        paid = parse_positive_amount(paid_amount, 'paid_amount')
        paid_on = parse_date(paid_date, 'paid_date')
        method = parse_payment_method(payment_method)

        with self.storage.atomic():
            payment = self.loan_manager.require_payment(payment_id)
            if payment.has_collection:
                raise InvalidStateError(
                    f"Payment {payment_id} already has a collection recorded",
                    {'payment_id': payment_id, 'status': payment.status.value}
                )

            expected = self.expected_amount(payment)
            payment.paid_amount = paid
            payment.paid_date = paid_on
            payment.payment_method = method
            payment.notes = notes
            payment.due_amount = max(ZERO, expected - paid)
            payment.excess_amount = max(ZERO, paid - expected)
            payment.status = PaymentState.DUE_SOON if payment.due_amount > ZERO else PaymentState.COLLECTED
            payment.touch()
            self.loan_manager.save_payment(payment)

        log_action(logger, "info", f"Payment {payment_id} collected",
                   action="payment_collected", resource=f"payment:{payment_id}",
                   extra={
                       'loan_id': payment.loan_id,
                       'paid_amount': format_amount(paid),
                       'expected_amount': format_amount(expected),
                       'due_amount': format_amount(payment.due_amount),
                       'payment_method': method.value
                   })
        return payment

    def settle_payment(
        self,
        payment_id: int,
        settlement_date: Union[date, str],
        notes: Optional[str] = None
    ) -> Payment:
        """
        Pay off a payment's outstanding shortfall in full

        Original notes are kept after the settlement note.

        Raises:
            PaymentNotFoundError: unknown payment
            InvalidStateError: nothing is outstanding
        """
        settled_on = parse_date(settlement_date, 'settlement_date')

        with self.storage.atomic():
            payment = self.loan_manager.require_payment(payment_id)
            if payment.due_amount <= ZERO:
                raise InvalidStateError(
                    f"Payment {payment_id} has no outstanding amount to settle",
                    {'payment_id': payment_id, 'status': payment.status.value}
                )

            settled_amount = payment.due_amount
            payment.paid_amount = (payment.paid_amount or ZERO) + settled_amount
            payment.due_amount = ZERO
            payment.status = PaymentState.COLLECTED
            payment.paid_date = settled_on
            settlement_note = f"Settlement: {notes or ''}"
            if payment.notes:
                settlement_note += f" | Original: {payment.notes}"
            payment.notes = settlement_note
            payment.touch()
            self.loan_manager.save_payment(payment)

        log_action(logger, "info", f"Payment {payment_id} settled",
                   action="payment_settled", resource=f"payment:{payment_id}",
                   extra={
                       'loan_id': payment.loan_id,
                       'settled_amount': format_amount(settled_amount),
                       'paid_amount': format_amount(payment.paid_amount)
                   })
        return payment

    def delete_payment(self, payment_id: int) -> bool:
        """
        Permanently remove a payment

        Raises:
            PaymentNotFoundError: unknown payment, including one already deleted
        """
        with self.storage.atomic():
            payment = self.loan_manager.require_payment(payment_id)
            self.storage.delete(self.loan_manager.payments_table, payment_id)

        log_action(logger, "warning", f"Payment {payment_id} deleted",
                   action="payment_deleted", resource=f"payment:{payment_id}",
                   extra={'loan_id': payment.loan_id, 'due_date': payment.due_date.isoformat()})
        return True
