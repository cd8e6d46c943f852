"""
Payment endpoints
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends

from .schemas import CollectPaymentRequest, SettlePaymentRequest, payment_response
from .system import LedgerSystem, get_ledger_system, http_error
from ..errors import LedgerError


router = APIRouter()


@router.get("")
async def list_payments(
    loan_id: Optional[int] = None,
    month: Optional[str] = None,
    as_of: Optional[date] = None,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Payments with borrower details, most urgent first"""
    try:
        entries = system.reporting_engine.payment_ledger(as_of or date.today(), loan_id=loan_id, month=month)
        return {
            "payments": [entry.to_dict() for entry in entries],
            "count": len(entries)
        }

    except LedgerError as e:
        raise http_error(e)


@router.get("/{payment_id}")
async def get_payment(
    payment_id: int,
    as_of: Optional[date] = None,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get payment details"""
    try:
        payment = system.loan_manager.require_payment(payment_id)
        return payment_response(payment, as_of or date.today(), system.config.due_soon_days)

    except LedgerError as e:
        raise http_error(e)


@router.post("/{payment_id}/collect")
async def collect_payment(
    payment_id: int,
    request: CollectPaymentRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Record a collection against a payment"""
    try:
        payment = system.collection_processor.collect_payment(
            payment_id,
            paid_amount=request.paid_amount,
            paid_date=request.paid_date,
            payment_method=request.payment_method,
            notes=request.notes
        )
        return payment_response(payment, date.today(), system.config.due_soon_days)

    except LedgerError as e:
        raise http_error(e)


@router.post("/{payment_id}/settle")
async def settle_payment(
    payment_id: int,
    request: SettlePaymentRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Pay off a payment's outstanding shortfall"""
    try:
        payment = system.collection_processor.settle_payment(
            payment_id,
            settlement_date=request.settlement_date,
            notes=request.notes
        )
        return payment_response(payment, date.today(), system.config.due_soon_days)

    except LedgerError as e:
        raise http_error(e)


@router.delete("/{payment_id}")
async def delete_payment(
    payment_id: int,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Permanently delete a payment"""
    try:
        success = system.collection_processor.delete_payment(payment_id)
        return {
            "payment_id": payment_id,
            "success": success,
            "message": "Payment deleted successfully"
        }

    except LedgerError as e:
        raise http_error(e)
