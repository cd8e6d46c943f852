"""
Ledger system wiring and request dependencies
"""

from typing import Optional

from fastapi import HTTPException, status

from ..borrowers import BorrowerManager
from ..collections import CollectionProcessor
from ..config import LedgerConfig, get_config
from ..delinquency import DelinquencyDetector
from ..errors import InvalidStateError, LedgerError, NotFoundError, PersistenceError, ValidationError
from ..extender import ScheduleExtender
from ..loans import LoanManager
from ..logging_config import get_logger
from ..reporting import ReportingEngine
from ..storage import InMemoryStorage, SQLiteStorage


logger = get_logger(__name__)


class LedgerSystem:
    """Lending ledger with all components initialized"""

    def __init__(self, use_sqlite: Optional[bool] = None, config: Optional[LedgerConfig] = None):
        self.config = config or get_config()
        if use_sqlite is None:
            use_sqlite = self.config.use_sqlite

        # Initialize storage
        if use_sqlite:
            self.storage = SQLiteStorage(self.config.database_path)
        else:
            self.storage = InMemoryStorage()

        self.borrower_manager = BorrowerManager(self.storage)
        self.loan_manager = LoanManager(self.storage, self.borrower_manager)
        self.schedule_extender = ScheduleExtender(self.loan_manager)
        self.collection_processor = CollectionProcessor(self.loan_manager)
        self.delinquency_detector = DelinquencyDetector(
            self.loan_manager, threshold=self.config.defaulter_threshold
        )
        self.reporting_engine = ReportingEngine(
            self.borrower_manager, self.loan_manager, self.delinquency_detector,
            due_soon_days=self.config.due_soon_days,
            upcoming_window_months=self.config.upcoming_window_months
        )

    def close(self) -> None:
        self.storage.close()


_ledger_system: Optional[LedgerSystem] = None


def get_ledger_system() -> LedgerSystem:
    """Dependency returning the process-wide ledger system, created on first use"""
    global _ledger_system
    if _ledger_system is None:
        _ledger_system = LedgerSystem()
    return _ledger_system


def http_error(error: LedgerError) -> HTTPException:
    """Map a ledger error onto the HTTP status callers expect"""
    if isinstance(error, ValidationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, InvalidStateError):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
        if isinstance(error, PersistenceError):
            logger.error("Storage failure: %s", error)

    return HTTPException(status_code=code, detail={'message': error.message, 'details': error.details})
