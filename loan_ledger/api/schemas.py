"""
Pydantic schemas for API requests and response helpers
"""

from datetime import date
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ..delinquency import DelinquencyReport
from ..loans import Loan, Payment
from ..status import payment_status
from ..storage import encode_value


# Borrower schemas
class CreateBorrowerRequest(BaseModel):
    name: str
    phone: str
    address: str
    document_type: Optional[str] = None
    document_number: Optional[str] = None
    guarantor_name: Optional[str] = None
    guarantor_phone: Optional[str] = None
    guarantor_address: Optional[str] = None
    notes: Optional[str] = None
    photo_url: Optional[str] = None


class UpdateBorrowerRequest(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    document_type: Optional[str] = None
    document_number: Optional[str] = None
    guarantor_name: Optional[str] = None
    guarantor_phone: Optional[str] = None
    guarantor_address: Optional[str] = None
    notes: Optional[str] = None
    photo_url: Optional[str] = None


# Loan schemas
class CreateLoanRequest(BaseModel):
    borrower_id: int
    amount: str = Field(..., description="Principal as decimal string")
    loan_strategy: str = Field("emi", description="emi, flat, custom or gold_silver")
    start_date: str = Field(..., description="ISO date string")
    notes: Optional[str] = None

    # EMI
    tenure: Optional[int] = None
    custom_emi_amount: Optional[str] = None

    # FLAT
    flat_monthly_amount: Optional[str] = None

    # GOLD_SILVER
    metal_type: Optional[str] = None
    metal_weight: Optional[str] = None
    purity: Optional[str] = None

    def strategy_params(self) -> Dict[str, Any]:
        return {
            'tenure': self.tenure,
            'custom_emi_amount': self.custom_emi_amount,
            'flat_monthly_amount': self.flat_monthly_amount,
            'metal_type': self.metal_type,
            'metal_weight': self.metal_weight,
            'purity': self.purity,
        }


class UpdateLoanStatusRequest(BaseModel):
    status: str = Field(..., description="active, completed, defaulted or cancelled")


class BulkExtendRequest(BaseModel):
    months: int = Field(..., description="Number of monthly payments to add")
    custom_amount: Optional[str] = Field(None, description="Amount per payment as decimal string")
    start_date: Optional[str] = Field(None, description="Due date of the first new payment")


class CustomPaymentRequest(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")
    due_date: str = Field(..., description="ISO date string")
    notes: Optional[str] = None


# Payment schemas
class CollectPaymentRequest(BaseModel):
    paid_amount: str = Field(..., description="Decimal amount as string")
    paid_date: str = Field(..., description="ISO date string")
    payment_method: str = Field("cash", description="cash, bank_transfer, upi or cheque")
    notes: Optional[str] = None


class SettlePaymentRequest(BaseModel):
    settlement_date: str = Field(..., description="ISO date string")
    notes: Optional[str] = None


def loan_response(loan: Loan) -> Dict[str, Any]:
    result = loan.to_dict()
    result['schedule_policy'] = loan.policy.value
    return result


def payment_response(payment: Payment, today: date, due_soon_days: int = 3) -> Dict[str, Any]:
    """Stored payment fields plus the status label as of `today`"""
    result = payment.to_dict()
    result['display_status'] = payment_status(payment, today, due_soon_days).value
    return result


def classification_response(report: DelinquencyReport) -> Dict[str, Any]:
    return encode_value({
        "borrower_id": report.borrower_id,
        "loan_id": report.loan_id,
        "is_defaulter": report.is_defaulter,
        "consecutive_missed": report.consecutive_missed,
        "missed_payment_ids": [p.id for p in report.missed_payments],
        "total_outstanding": report.total_outstanding,
        "last_payment_date": report.last_payment_date,
        "max_days_overdue": report.max_days_overdue
    })
