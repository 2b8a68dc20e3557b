"""
Transaction Log Module

Append-only history of ledger events per user. Records are created by the seed
data, by deposits and withdrawals, and by the transfer orchestrator; they are
never updated or deleted.
"""

from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from enum import Enum

from .money import format_amount, to_decimal
from .storage import StorageInterface, StorageRecord, utcnow
from .exceptions import ValidationError


class TransactionType(Enum):
    """Types of ledger events"""
    DEPOSIT = "deposit"        # Adds to the owner's balance
    WITHDRAWAL = "withdrawal"  # Subtracts from the owner's balance
    TRANSFER = "transfer"      # Subtracts from the initiating user


@dataclass
class Transaction(StorageRecord):
    """
    One immutable ledger event. ``amount`` is always positive; the sign is
    implied by ``transaction_type``.
    """
    user_id: int
    transaction_type: TransactionType
    amount: Decimal
    description: str
    timestamp: datetime

    @property
    def signed_amount(self) -> Decimal:
        """Effect on the owner's balance"""
        if self.transaction_type == TransactionType.DEPOSIT:
            return self.amount
        return -self.amount

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['amount'] = format_amount(self.amount)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        data = dict(data)
        data['transaction_type'] = TransactionType(data['transaction_type'])
        data['amount'] = to_decimal(data['amount'])
        data['timestamp'] = datetime.fromisoformat(data['timestamp'])
        return super().from_dict(data)

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "amount": format_amount(self.amount),
            "type": self.transaction_type.value,
            "description": self.description,
            "timestamp": self.timestamp.isoformat(),
        }


class TransactionLog:
    """Append-only transaction store"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "transactions"

    def append(
        self,
        user_id: int,
        transaction_type: TransactionType,
        amount: Decimal,
        description: str,
        timestamp: Optional[datetime] = None
    ) -> Transaction:
        """
        Append one transaction to a user's history

        Raises:
            ValidationError: If the amount is not positive
        """
        if amount <= 0:
            raise ValidationError("Transaction amount must be positive")

        now = utcnow()
        transaction = Transaction(
            id=self.storage.next_id(self.table_name),
            created_at=now,
            updated_at=now,
            user_id=user_id,
            transaction_type=transaction_type,
            amount=amount,
            description=description,
            timestamp=timestamp or now
        )
        self.storage.save(self.table_name, transaction.id, transaction.to_dict())
        return transaction

    def get(self, transaction_id: int) -> Optional[Transaction]:
        data = self.storage.load(self.table_name, transaction_id)
        if data:
            return Transaction.from_dict(data)
        return None

    def list_by_user(self, user_id: int) -> List[Transaction]:
        """A user's transactions in the order they were appended"""
        found = self.storage.find(self.table_name, {"user_id": user_id})
        return [Transaction.from_dict(data) for data in found]
