"""
Schedule Generator

Builds the initial payment schedule for a loan from its strategy terms.
Pure date and amount arithmetic; nothing here touches storage.
"""

from decimal import Decimal
from datetime import MAXYEAR, MINYEAR, date, datetime
from dataclasses import dataclass
from typing import Any, List, Union
import calendar
import re

from .errors import ValidationError
from .money import to_amount
from .strategies import StrategyTerms


TIME_SUFFIX = re.compile(r"[T ]\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:?\d{2})?")


@dataclass(frozen=True)
class ScheduledInstallment:
    """One installment to be written as a Payment"""
    due_date: date
    amount: Decimal


def add_months(start_date: date, months: int) -> date:
    """Add months to a date, clamping to the last day of the target month"""
    month = start_date.month - 1 + months
    year = start_date.year + month // 12
    month = month % 12 + 1
    if not MINYEAR <= year <= MAXYEAR:
        raise ValidationError(
            "due date out of range",
            {'start_date': start_date.isoformat(), 'months': months}
        )
    day = min(start_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def parse_date(value: Union[date, str, None], field: str = "date") -> date:
    """Accept a date or an ISO `YYYY-MM-DD` string"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None:
        raise ValidationError(f"{field} is required", {'field': field})
    try:
        text = str(value).strip()
        # Drop a time-of-day suffix only
        if TIME_SUFFIX.fullmatch(text[10:]):
            text = text[:10]
        return date.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD)", {'field': field, 'value': str(value)})


def monthly_dates(anchor: date, count: int, offset: int = 1) -> List[date]:
    """`count` monthly due dates, the first `offset` months after `anchor`

    Every date is computed from the anchor so month-end clamping does not
    accumulate (Jan 31 gives Feb 28 then Mar 31).
    """
    return [add_months(anchor, offset + i) for i in range(count)]


def generate_schedule(loan: Any) -> List[ScheduledInstallment]:
    """
    Generate the initial schedule for a loan

    EMI loans get `tenure` installments starting one month after the start
    date; FLAT loans get the first month only; CUSTOM and GOLD_SILVER loans
    start empty. Each amount is rounded on its own and the total is not
    trued up against the principal.

    Args:
        loan: Any object exposing `start_date` and `terms`

    Returns:
        Installments in ascending due date order
    """
    terms: StrategyTerms = loan.terms
    count = terms.initial_installment_count
    if count == 0 or terms.installment_amount is None:
        return []

    amount = to_amount(terms.installment_amount)
    return [ScheduledInstallment(due_date=d, amount=amount) for d in monthly_dates(loan.start_date, count)]
