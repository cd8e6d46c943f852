"""
Loan endpoints
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, status

from .schemas import (
    BulkExtendRequest, CreateLoanRequest, CustomPaymentRequest, UpdateLoanStatusRequest,
    classification_response, loan_response, payment_response
)
from .system import LedgerSystem, get_ledger_system, http_error
from ..errors import LedgerError


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_loan(
    request: CreateLoanRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Create a loan and its initial payment schedule"""
    try:
        loan, payments = system.loan_manager.create_loan(
            borrower_id=request.borrower_id,
            amount=request.amount,
            loan_strategy=request.loan_strategy,
            start_date=request.start_date,
            strategy_params=request.strategy_params(),
            notes=request.notes
        )
        today = date.today()
        return {
            "loan": loan_response(loan),
            "payments": [payment_response(p, today, system.config.due_soon_days) for p in payments],
            "message": "Loan created successfully"
        }

    except LedgerError as e:
        raise http_error(e)


@router.get("")
async def list_loans(
    borrower_id: Optional[int] = None,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """List loans, optionally for one borrower"""
    loans = system.loan_manager.list_loans(borrower_id)
    return {
        "loans": [loan_response(loan) for loan in loans],
        "count": len(loans)
    }


@router.get("/{loan_id}")
async def get_loan(
    loan_id: int,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get loan details"""
    try:
        return loan_response(system.loan_manager.require_loan(loan_id))

    except LedgerError as e:
        raise http_error(e)


@router.patch("/{loan_id}/status")
async def update_loan_status(
    loan_id: int,
    request: UpdateLoanStatusRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Change a loan's lifecycle status"""
    try:
        return loan_response(system.loan_manager.update_loan_status(loan_id, request.status))

    except LedgerError as e:
        raise http_error(e)


@router.delete("/{loan_id}")
async def delete_loan(
    loan_id: int,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Delete a loan with all of its payments"""
    try:
        payments_deleted = system.loan_manager.delete_loan(loan_id)
        return {
            "loan_id": loan_id,
            "payments_deleted": payments_deleted,
            "message": "Loan deleted successfully"
        }

    except LedgerError as e:
        raise http_error(e)


@router.get("/{loan_id}/payments")
async def list_loan_payments(
    loan_id: int,
    as_of: Optional[date] = None,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Payments of a loan in due date order"""
    try:
        system.loan_manager.require_loan(loan_id)
        today = as_of or date.today()
        payments = system.loan_manager.list_payments(loan_id)
        return {
            "loan_id": loan_id,
            "payments": [payment_response(p, today, system.config.due_soon_days) for p in payments]
        }

    except LedgerError as e:
        raise http_error(e)


@router.post("/{loan_id}/payments/bulk", status_code=status.HTTP_201_CREATED)
async def extend_schedule(
    loan_id: int,
    request: BulkExtendRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Append monthly payments to a loan"""
    try:
        payments = system.schedule_extender.extend_bulk(
            loan_id,
            request.months,
            custom_amount=request.custom_amount,
            start_date=request.start_date
        )
        today = date.today()
        return {
            "loan_id": loan_id,
            "payments": [payment_response(p, today, system.config.due_soon_days) for p in payments],
            "message": f"{len(payments)} payments added"
        }

    except LedgerError as e:
        raise http_error(e)


@router.post("/{loan_id}/payments/custom", status_code=status.HTTP_201_CREATED)
async def add_custom_payment(
    loan_id: int,
    request: CustomPaymentRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Add a single payment to a loan"""
    try:
        today = date.today()
        payment = system.schedule_extender.add_custom_payment(
            loan_id, request.amount, request.due_date, notes=request.notes, today=today
        )
        return payment_response(payment, today, system.config.due_soon_days)

    except LedgerError as e:
        raise http_error(e)


@router.get("/{loan_id}/classification")
async def classify_loan(
    loan_id: int,
    as_of: Optional[date] = None,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Defaulter classification for a single loan"""
    try:
        report = system.delinquency_detector.classify_loan(loan_id, as_of or date.today())
        return classification_response(report)

    except LedgerError as e:
        raise http_error(e)
