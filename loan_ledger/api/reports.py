"""
Dashboard and delinquency report endpoints
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends

from .system import LedgerSystem, get_ledger_system


router = APIRouter()


@router.get("/dashboard")
async def dashboard_stats(
    as_of: Optional[date] = None,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Headline loan and payment counts"""
    return system.reporting_engine.dashboard_stats(as_of or date.today()).to_dict()


@router.get("/upcoming-payments")
async def upcoming_payments(
    as_of: Optional[date] = None,
    limit: Optional[int] = None,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Uncollected payments due within the upcoming window"""
    entries = system.reporting_engine.upcoming_payments(
        as_of or date.today(),
        limit=limit if limit is not None else system.config.upcoming_payments_limit
    )
    return {"payments": [entry.to_dict() for entry in entries]}


@router.get("/recent-loans")
async def recent_loans(
    as_of: Optional[date] = None,
    limit: Optional[int] = None,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Newest loans with their next due date and standing"""
    entries = system.reporting_engine.recent_loans(
        as_of or date.today(),
        limit=limit if limit is not None else system.config.recent_loans_limit
    )
    return {"loans": [entry.to_dict() for entry in entries]}


@router.get("/defaulters")
async def defaulters(
    as_of: Optional[date] = None,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Defaulters and the overdue payments of everyone else"""
    today = as_of or date.today()
    entries = system.reporting_engine.defaulters(today)
    missed = system.reporting_engine.missed_payments(today)
    return {
        "defaulters": [entry.to_dict() for entry in entries],
        "missed_payments": [entry.to_dict() for entry in missed]
    }
