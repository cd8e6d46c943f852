"""
Payment Status Classifier

The one place that turns a payment's stored state and due date into the
label shown to users. The as-of date is always passed in.
"""

from datetime import date
from enum import Enum
from typing import Union

from .loans import Payment, PaymentState


DUE_SOON_DAYS = 3


class PaymentStatus(Enum):
    """Presentation status of a payment on a given day"""
    COLLECTED = "collected"
    MISSED = "missed"
    DUE_TODAY = "due_today"
    DUE_SOON = "due_soon"
    UPCOMING = "upcoming"


def classify_payment(
    stored_status: Union[PaymentState, str],
    due_date: date,
    today: date,
    due_soon_days: int = DUE_SOON_DAYS
) -> PaymentStatus:
    """
    Classify a payment as of `today`

    Collected payments stay collected regardless of dates. Anything else is
    missed once its due date has passed, due today on the day itself, due
    soon within `due_soon_days` days, and upcoming beyond that.
    """
    if PaymentState(stored_status) == PaymentState.COLLECTED:
        return PaymentStatus.COLLECTED
    if due_date < today:
        return PaymentStatus.MISSED
    if due_date == today:
        return PaymentStatus.DUE_TODAY
    if (due_date - today).days <= due_soon_days:
        return PaymentStatus.DUE_SOON
    return PaymentStatus.UPCOMING


def payment_status(payment: Payment, today: date, due_soon_days: int = DUE_SOON_DAYS) -> PaymentStatus:
    return classify_payment(payment.status, payment.due_date, today, due_soon_days)


def is_overdue(payment: Payment, today: date) -> bool:
    """True when the payment is not collected and its due date has passed"""
    return payment_status(payment, today) == PaymentStatus.MISSED


def days_overdue(payment: Payment, today: date) -> int:
    if not is_overdue(payment, today):
        return 0
    return (today - payment.due_date).days
