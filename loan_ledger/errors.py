"""
Ledger Exceptions

Error kinds raised by the lending core. Every operation reports failures
synchronously through one of these; nothing is retried internally.
"""

from typing import Any, Dict, Optional


class LedgerError(Exception):
    """Base exception for all ledger errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class ValidationError(LedgerError, ValueError):
    """Raised when input is missing or invalid; nothing has been written"""
    pass


class NotFoundError(LedgerError, LookupError):
    """Raised when a borrower, loan or payment id does not exist"""

    entity = "Record"

    def __init__(self, record_id: Any = None):
        details = {}
        message = f"{self.entity} not found"
        if record_id is not None:
            details['id'] = record_id
            message = f"{self.entity} {record_id} not found"
        super().__init__(message, details)


class BorrowerNotFoundError(NotFoundError):
    entity = "Borrower"


class LoanNotFoundError(NotFoundError):
    entity = "Loan"


class PaymentNotFoundError(NotFoundError):
    entity = "Payment"


class InvalidStateError(LedgerError):
    """Raised when an operation is not allowed in the record's current state"""
    pass


class DuplicatePaymentError(InvalidStateError):
    """Raised when a new payment would duplicate an open payment on the same due date"""

    def __init__(self, loan_id: int, due_date):
        super().__init__(
            f"Loan {loan_id} already has an open payment due on {due_date.isoformat()}",
            {'loan_id': loan_id, 'due_date': due_date.isoformat()}
        )


class PersistenceError(LedgerError):
    """Raised when the storage backend fails; the transaction has been rolled back"""
    pass
