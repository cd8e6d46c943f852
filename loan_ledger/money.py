"""
Money Handling Module

All amounts in the ledger are Decimal values in a single currency, rounded to
the smallest currency unit (two places). NEVER uses float for stored values.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from typing import Optional, Union
import re

from .errors import ValidationError

getcontext().prec = 28

CENT = Decimal('0.01')
ZERO = Decimal('0.00')

AMOUNT_PATTERN = re.compile(r'[+-]?(\d+(\.\d*)?|\.\d+)')

AmountLike = Union[Decimal, int, float, str]


def to_amount(value: AmountLike) -> Decimal:
    """Convert a value to a Decimal rounded to the currency unit"""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(value: Optional[AmountLike], field: str = "amount") -> Decimal:
    """
    Parse an amount supplied by a caller

    Accepts Decimal, int, float or plain decimal strings such as "1,200.50"
    or "₹ 500". Only the rupee sign, whitespace and grouping commas are
    stripped; anything else in a string is rejected.

    Raises:
        ValidationError: if the value is missing or not a number
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required", {'field': field})

    if isinstance(value, str):
        clean_value = re.sub(r'[\s,₹]', '', value)
        if not AMOUNT_PATTERN.fullmatch(clean_value):
            raise ValidationError(f"{field} must be a number", {'field': field, 'value': value})
        value = clean_value

    try:
        amount = to_amount(value)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number", {'field': field, 'value': str(value)})

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number", {'field': field})
    return amount


def parse_positive_amount(value: Optional[AmountLike], field: str = "amount") -> Decimal:
    """Parse an amount that must be strictly greater than zero"""
    amount = parse_amount(value, field)
    if amount <= ZERO:
        raise ValidationError(f"{field} must be positive", {'field': field, 'value': str(amount)})
    return amount


def format_amount(amount: Decimal) -> str:
    """Format for display using Indian digit grouping, e.g. ₹1,23,456.00"""
    amount = to_amount(amount)
    sign = "-" if amount < 0 else ""
    whole, fraction = f"{abs(amount):.2f}".split(".")

    # Last three digits, then groups of two
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])

    return f"{sign}₹{whole}.{fraction}"
