"""
Borrower endpoints
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, status

from .schemas import CreateBorrowerRequest, UpdateBorrowerRequest, classification_response, loan_response
from .system import LedgerSystem, get_ledger_system, http_error
from ..errors import LedgerError


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_borrower(
    request: CreateBorrowerRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Create a new borrower"""
    try:
        borrower = system.borrower_manager.create_borrower(**request.model_dump())
        return borrower.to_dict()

    except LedgerError as e:
        raise http_error(e)


@router.get("")
async def list_borrowers(
    q: Optional[str] = None,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """List borrowers, optionally filtered by a search term"""
    borrowers = system.borrower_manager.search_borrowers(q or "")
    return {
        "borrowers": [b.to_dict() for b in borrowers],
        "count": len(borrowers)
    }


@router.get("/{borrower_id}")
async def get_borrower(
    borrower_id: int,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get borrower details"""
    try:
        return system.borrower_manager.require_borrower(borrower_id).to_dict()

    except LedgerError as e:
        raise http_error(e)


@router.put("/{borrower_id}")
async def update_borrower(
    borrower_id: int,
    request: UpdateBorrowerRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Update borrower profile"""
    try:
        borrower = system.borrower_manager.update_borrower(
            borrower_id, **request.model_dump(exclude_none=True)
        )
        return borrower.to_dict()

    except LedgerError as e:
        raise http_error(e)


@router.delete("/{borrower_id}")
async def delete_borrower(
    borrower_id: int,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Delete a borrower with all loans and payments"""
    try:
        deleted = system.borrower_manager.delete_borrower(borrower_id)
        return {
            "borrower_id": borrower_id,
            "loans_deleted": deleted['loans'],
            "payments_deleted": deleted['payments'],
            "message": "Borrower deleted successfully"
        }

    except LedgerError as e:
        raise http_error(e)


@router.get("/{borrower_id}/loans")
async def get_borrower_loans(
    borrower_id: int,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """List a borrower's loans"""
    try:
        system.borrower_manager.require_borrower(borrower_id)
        loans = system.loan_manager.list_loans(borrower_id)
        return {
            "borrower_id": borrower_id,
            "loans": [loan_response(loan) for loan in loans]
        }

    except LedgerError as e:
        raise http_error(e)


@router.get("/{borrower_id}/classification")
async def classify_borrower(
    borrower_id: int,
    as_of: Optional[date] = None,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Defaulter classification for a borrower"""
    try:
        report = system.delinquency_detector.classify_borrower(borrower_id, as_of or date.today())
        return classification_response(report)

    except LedgerError as e:
        raise http_error(e)
