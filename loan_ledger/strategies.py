"""
Repayment Strategy Catalog

Defines the supported repayment strategies, the parameters each one requires
and the schedule policy it follows. Validation here happens before anything
is written, so a rejected loan never leaves rows behind.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union
from enum import Enum

from .errors import ValidationError
from .money import parse_positive_amount


class LoanStrategy(Enum):
    """Repayment strategies"""
    EMI = "emi"                  # Fixed tenure, equal installments
    FLAT = "flat"                # Fixed monthly amount, no end date
    CUSTOM = "custom"            # Installments added by hand
    GOLD_SILVER = "gold_silver"  # Metal-backed, installments added by hand


class SchedulePolicy(Enum):
    """How a strategy's schedule grows over time"""
    FIXED_LENGTH = "fixed_length"  # Whole schedule generated at creation
    OPEN_ENDED = "open_ended"      # Extended on demand


class MetalType(Enum):
    GOLD = "gold"
    SILVER = "silver"


WEIGHT_PLACES = Decimal('0.001')

# Longest schedule a single loan or extension may span (100 years)
MAX_SCHEDULE_MONTHS = 1200


@dataclass(frozen=True)
class EmiTerms:
    """EMI: `tenure` monthly installments of `custom_emi_amount` (no interest)"""
    tenure: int
    custom_emi_amount: Decimal

    strategy = LoanStrategy.EMI
    policy = SchedulePolicy.FIXED_LENGTH

    @property
    def installment_amount(self) -> Optional[Decimal]:
        return self.custom_emi_amount

    @property
    def initial_installment_count(self) -> int:
        return self.tenure

    def to_dict(self) -> Dict[str, Any]:
        return {
            'strategy': self.strategy.value,
            'tenure': self.tenure,
            'custom_emi_amount': str(self.custom_emi_amount),
        }


@dataclass(frozen=True)
class FlatTerms:
    """FLAT: one installment generated up front, the rest extended monthly"""
    flat_monthly_amount: Decimal

    strategy = LoanStrategy.FLAT
    policy = SchedulePolicy.OPEN_ENDED

    @property
    def installment_amount(self) -> Optional[Decimal]:
        return self.flat_monthly_amount

    @property
    def initial_installment_count(self) -> int:
        return 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'strategy': self.strategy.value,
            'flat_monthly_amount': str(self.flat_monthly_amount),
        }


@dataclass(frozen=True)
class CustomTerms:
    """CUSTOM: no parameters, every payment is added manually"""

    strategy = LoanStrategy.CUSTOM
    policy = SchedulePolicy.OPEN_ENDED

    @property
    def installment_amount(self) -> Optional[Decimal]:
        return None

    @property
    def initial_installment_count(self) -> int:
        return 0

    def to_dict(self) -> Dict[str, Any]:
        return {'strategy': self.strategy.value}


@dataclass(frozen=True)
class GoldSilverTerms:
    """GOLD_SILVER: pledged metal details; net weight is recorded, never scheduled on"""
    metal_type: MetalType
    metal_weight: Decimal
    purity: Decimal
    net_weight: Decimal

    strategy = LoanStrategy.GOLD_SILVER
    policy = SchedulePolicy.OPEN_ENDED

    @property
    def installment_amount(self) -> Optional[Decimal]:
        return None

    @property
    def initial_installment_count(self) -> int:
        return 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'strategy': self.strategy.value,
            'metal_type': self.metal_type.value,
            'metal_weight': str(self.metal_weight),
            'purity': str(self.purity),
            'net_weight': str(self.net_weight),
        }


StrategyTerms = Union[EmiTerms, FlatTerms, CustomTerms, GoldSilverTerms]


def parse_strategy(value: Union[str, LoanStrategy, None]) -> LoanStrategy:
    """Resolve a strategy name, raising ValidationError for unknown values"""
    if isinstance(value, LoanStrategy):
        return value
    if value is None:
        raise ValidationError("loan_strategy is required", {'field': 'loan_strategy'})
    try:
        return LoanStrategy(str(value).strip().lower())
    except ValueError:
        raise ValidationError(
            f"Unknown loan strategy: {value}",
            {'field': 'loan_strategy', 'allowed': [s.value for s in LoanStrategy]}
        )


def _require(params: Mapping[str, Any], field: str, strategy: LoanStrategy) -> Any:
    value = params.get(field)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(
            f"{field} is required for {strategy.value} loans",
            {'field': field, 'strategy': strategy.value}
        )
    return value


def _parse_tenure(value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError("tenure must be a whole number of months", {'field': 'tenure'})
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError("tenure must be a whole number of months", {'field': 'tenure', 'value': str(value)})
    if not number.is_finite() or number != number.to_integral_value():
        raise ValidationError("tenure must be a whole number of months", {'field': 'tenure', 'value': str(value)})
    tenure = int(number)
    if tenure <= 0:
        raise ValidationError("tenure must be positive", {'field': 'tenure', 'value': tenure})
    if tenure > MAX_SCHEDULE_MONTHS:
        raise ValidationError(
            f"tenure must be at most {MAX_SCHEDULE_MONTHS} months",
            {'field': 'tenure', 'value': tenure}
        )
    return tenure


def _parse_measure(value: Any, field: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", {'field': field})
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number", {'field': field, 'value': str(value)})
    if not number.is_finite():
        raise ValidationError(f"{field} must be a finite number", {'field': field})
    return number


def _parse_metal_type(value: Any) -> MetalType:
    if isinstance(value, MetalType):
        return value
    try:
        return MetalType(str(value).strip().lower())
    except ValueError:
        raise ValidationError(
            f"Unknown metal type: {value}",
            {'field': 'metal_type', 'allowed': [m.value for m in MetalType]}
        )


def build_terms(strategy: Union[str, LoanStrategy], params: Optional[Mapping[str, Any]] = None) -> StrategyTerms:
    """
    Validate strategy parameters and build the matching terms object

    Args:
        strategy: Strategy name or enum member
        params: Raw parameter mapping (API payload or stored document)

    Returns:
        Terms object for the strategy

    Raises:
        ValidationError: if a required parameter is missing or invalid
    """
    strategy = parse_strategy(strategy)
    params = params or {}

    if strategy == LoanStrategy.EMI:
        tenure = _parse_tenure(_require(params, 'tenure', strategy))
        amount = parse_positive_amount(_require(params, 'custom_emi_amount', strategy), 'custom_emi_amount')
        return EmiTerms(tenure=tenure, custom_emi_amount=amount)

    if strategy == LoanStrategy.FLAT:
        amount = parse_positive_amount(_require(params, 'flat_monthly_amount', strategy), 'flat_monthly_amount')
        return FlatTerms(flat_monthly_amount=amount)

    if strategy == LoanStrategy.CUSTOM:
        return CustomTerms()

    metal_type = _parse_metal_type(_require(params, 'metal_type', strategy))
    weight = _parse_measure(_require(params, 'metal_weight', strategy), 'metal_weight')
    if weight <= 0:
        raise ValidationError("metal_weight must be positive", {'field': 'metal_weight', 'value': str(weight)})
    purity = _parse_measure(_require(params, 'purity', strategy), 'purity')
    if purity <= 0 or purity > 100:
        raise ValidationError("purity must be greater than 0 and at most 100", {'field': 'purity', 'value': str(purity)})

    net_weight = (weight * purity / Decimal('100')).quantize(WEIGHT_PLACES, rounding=ROUND_HALF_UP)
    return GoldSilverTerms(metal_type=metal_type, metal_weight=weight, purity=purity, net_weight=net_weight)


def terms_from_dict(data: Mapping[str, Any]) -> StrategyTerms:
    """Rebuild terms from a stored document"""
    terms = build_terms(data['strategy'], data)
    if isinstance(terms, GoldSilverTerms) and data.get('net_weight') is not None:
        # Keep the recorded figure rather than recomputing it
        terms = GoldSilverTerms(
            metal_type=terms.metal_type,
            metal_weight=terms.metal_weight,
            purity=terms.purity,
            net_weight=Decimal(data['net_weight'])
        )
    return terms
