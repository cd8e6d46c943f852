"""
Borrower Management Module

Manages borrower profiles, guarantor details and the identity document,
which may be recorded once and is never changed afterwards.
"""

from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Dict, List, Optional

from .errors import BorrowerNotFoundError, ValidationError
from .logging_config import get_logger, log_action
from .storage import StorageInterface, StorageRecord


logger = get_logger(__name__)


@dataclass
class Borrower(StorageRecord):
    """Borrower identity and contact record"""
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

    def __post_init__(self):
        for field_name in ('name', 'phone', 'address'):
            value = getattr(self, field_name)
            if value is None or not str(value).strip():
                raise ValidationError(f"Borrower {field_name} is required", {'field': field_name})
            setattr(self, field_name, str(value).strip())

    def matches(self, query: str) -> bool:
        """Case-insensitive match on name, phone, address and guarantor contact"""
        query = query.lower()
        haystack = (
            self.name, self.phone, self.address,
            self.guarantor_name, self.guarantor_phone
        )
        return any(value and query in value.lower() for value in haystack)

    @classmethod
    def from_dict(cls, data: Dict) -> 'Borrower':
        return cls(
            id=data['id'],
            **cls._timestamps(data),
            name=data['name'],
            phone=data['phone'],
            address=data['address'],
            document_type=data.get('document_type'),
            document_number=data.get('document_number'),
            guarantor_name=data.get('guarantor_name'),
            guarantor_phone=data.get('guarantor_phone'),
            guarantor_address=data.get('guarantor_address'),
            notes=data.get('notes'),
            photo_url=data.get('photo_url')
        )


class BorrowerManager:
    """
    Manages borrower records and the cascade that removes a borrower's loans
    and payments with them
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "borrowers"
        self.loans_table = "loans"
        self.payments_table = "payments"

    def create_borrower(
        self,
        name: str,
        phone: str,
        address: str,
        document_type: Optional[str] = None,
        document_number: Optional[str] = None,
        guarantor_name: Optional[str] = None,
        guarantor_phone: Optional[str] = None,
        guarantor_address: Optional[str] = None,
        notes: Optional[str] = None,
        photo_url: Optional[str] = None
    ) -> Borrower:
        """
        Create a new borrower

        Raises:
            ValidationError: if name, phone or address is blank
        """
        now = datetime.now(timezone.utc)

        with self.storage.atomic():
            borrower = Borrower(
                id=0,
                created_at=now,
                updated_at=now,
                name=name,
                phone=phone,
                address=address,
                document_type=document_type,
                document_number=document_number,
                guarantor_name=guarantor_name,
                guarantor_phone=guarantor_phone,
                guarantor_address=guarantor_address,
                notes=notes,
                photo_url=photo_url
            )
            borrower.id = self.storage.next_id(self.table_name)
            self._save_borrower(borrower)

        log_action(logger, "info", f"Borrower {borrower.id} created",
                   action="borrower_created", resource=f"borrower:{borrower.id}")
        return borrower

    def get_borrower(self, borrower_id: int) -> Optional[Borrower]:
        """Get borrower by ID"""
        data = self.storage.load(self.table_name, borrower_id)
        if data:
            return Borrower.from_dict(data)
        return None

    def require_borrower(self, borrower_id: int) -> Borrower:
        """Get borrower by ID, raising BorrowerNotFoundError when absent"""
        borrower = self.get_borrower(borrower_id)
        if not borrower:
            raise BorrowerNotFoundError(borrower_id)
        return borrower

    def list_borrowers(self) -> List[Borrower]:
        """All borrowers ordered by id"""
        borrowers = [Borrower.from_dict(data) for data in self.storage.load_all(self.table_name)]
        return sorted(borrowers, key=lambda b: b.id)

    def search_borrowers(self, query: str) -> List[Borrower]:
        """Search borrowers by name, phone, address or guarantor name/phone"""
        query = (query or "").strip()
        borrowers = self.list_borrowers()
        if not query:
            return borrowers
        return [b for b in borrowers if b.matches(query)]

    def update_borrower(
        self,
        borrower_id: int,
        name: Optional[str] = None,
        phone: Optional[str] = None,
        address: Optional[str] = None,
        document_type: Optional[str] = None,
        document_number: Optional[str] = None,
        guarantor_name: Optional[str] = None,
        guarantor_phone: Optional[str] = None,
        guarantor_address: Optional[str] = None,
        notes: Optional[str] = None,
        photo_url: Optional[str] = None
    ) -> Borrower:
        """
        Update borrower profile fields; None leaves a field unchanged

        The document number may be filled in when it is empty. Any attempt to
        change a recorded document number raises ValidationError.
        """
        with self.storage.atomic():
            borrower = self.require_borrower(borrower_id)

            if document_number is not None:
                if borrower.document_number and document_number != borrower.document_number:
                    raise ValidationError(
                        "Document number cannot be changed once recorded",
                        {'field': 'document_number', 'borrower_id': borrower_id}
                    )
                borrower.document_number = document_number

            updates = {
                'name': name,
                'phone': phone,
                'address': address,
                'document_type': document_type,
                'guarantor_name': guarantor_name,
                'guarantor_phone': guarantor_phone,
                'guarantor_address': guarantor_address,
                'notes': notes,
                'photo_url': photo_url,
            }
            changed = [field_name for field_name, value in updates.items() if value is not None]
            for field_name in changed:
                setattr(borrower, field_name, updates[field_name])

            # Re-run required field checks
            borrower.__post_init__()
            borrower.touch()
            self._save_borrower(borrower)

        log_action(logger, "info", f"Borrower {borrower_id} updated",
                   action="borrower_updated", resource=f"borrower:{borrower_id}",
                   extra={'fields': changed})
        return borrower

    def delete_borrower(self, borrower_id: int) -> Dict[str, int]:
        """
        Delete a borrower with all of their loans and payments

        Returns:
            Counts of deleted loans and payments
        """
        with self.storage.atomic():
            self.require_borrower(borrower_id)

            loans = self.storage.find(self.loans_table, {'borrower_id': borrower_id})
            payments_deleted = 0
            for loan in loans:
                for payment in self.storage.find(self.payments_table, {'loan_id': loan['id']}):
                    self.storage.delete(self.payments_table, payment['id'])
                    payments_deleted += 1
                self.storage.delete(self.loans_table, loan['id'])

            self.storage.delete(self.table_name, borrower_id)

        result = {'loans': len(loans), 'payments': payments_deleted}
        log_action(logger, "warning", f"Borrower {borrower_id} deleted",
                   action="borrower_deleted", resource=f"borrower:{borrower_id}",
                   extra=result)
        return result

    def _save_borrower(self, borrower: Borrower) -> None:
        self.storage.save(self.table_name, borrower.id, borrower.to_dict())
