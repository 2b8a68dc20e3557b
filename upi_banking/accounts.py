"""
Account Directory Module

Payment-receivable accounts keyed by UPI ID. An account may be linked to a
user for display purposes, but transfers always resolve the receiver by UPI ID
alone and credit the account's own balance.
"""

from decimal import Decimal
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import re
import secrets

from .money import ZERO, format_amount, to_decimal
from .storage import StorageInterface, StorageRecord, utcnow
from .exceptions import (
    AccountNotFoundError, DuplicateAccountError, InvalidPaymentIdError, ValidationError
)

UPI_ID_PATTERN = re.compile(r'^[a-z0-9][a-z0-9._-]{1,254}@[a-z][a-z0-9]{1,63}$')


def normalize_upi_id(upi_id: str) -> str:
    """UPI IDs are case-insensitive; store and compare them lowercased"""
    return upi_id.strip().lower()


@dataclass
class Account(StorageRecord):
    """Payment account reachable through a UPI ID"""
    upi_id: str
    account_number: str
    holder_name: str
    balance: Decimal = ZERO
    user_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['balance'] = format_amount(self.balance)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Account':
        data = dict(data)
        data['balance'] = to_decimal(data['balance'])
        return super().from_dict(data)

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "upi_id": self.upi_id,
            "account_number": self.account_number,
            "holder_name": self.holder_name,
            "balance": format_amount(self.balance),
            "user_id": self.user_id,
        }


class AccountDirectory:
    """
    Maps payment identifiers to accounts and owns the account balance cells
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "accounts"

    def create_account(
        self,
        upi_id: str,
        holder_name: str,
        account_number: Optional[str] = None,
        balance: Decimal = ZERO,
        user_id: Optional[int] = None
    ) -> Account:
        """
        Register a new payment account

        Args:
            upi_id: Payment identifier in handle@provider form
            holder_name: Name shown to senders
            account_number: Specific account number (generated if not provided)
            balance: Opening balance
            user_id: Optional linked user

        Returns:
            Created Account

        Raises:
            InvalidPaymentIdError: If the UPI ID is malformed
            DuplicateAccountError: If the UPI ID or account number is taken
        """
        upi_id = normalize_upi_id(upi_id)
        if not UPI_ID_PATTERN.match(upi_id):
            raise InvalidPaymentIdError(f"Invalid UPI ID: {upi_id}")
        if not holder_name.strip():
            raise ValidationError("Holder name is required")
        if balance < 0:
            raise ValidationError("Opening balance cannot be negative")

        with self.storage.atomic():
            if self.lookup_by_payment_id(upi_id):
                raise DuplicateAccountError(f"UPI ID {upi_id} is already registered")

            if account_number is None:
                account_number = self._generate_account_number()
            elif self.storage.find(self.table_name, {"account_number": account_number}):
                raise DuplicateAccountError(f"Account number {account_number} is already registered")

            now = utcnow()
            account = Account(
                id=self.storage.next_id(self.table_name),
                created_at=now,
                updated_at=now,
                upi_id=upi_id,
                account_number=account_number,
                holder_name=holder_name.strip(),
                balance=balance,
                user_id=user_id
            )
            self._save_account(account)

        return account

    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID"""
        data = self.storage.load(self.table_name, account_id)
        if data:
            return Account.from_dict(data)
        return None

    def lookup_by_payment_id(self, upi_id: str) -> Optional[Account]:
        """Resolve a UPI ID to its account, or None"""
        found = self.storage.find(self.table_name, {"upi_id": normalize_upi_id(upi_id)})
        if found:
            return Account.from_dict(found[0])
        return None

    def list_accounts(self) -> List[Account]:
        return [Account.from_dict(data) for data in self.storage.load_all(self.table_name)]

    def credit(self, account_id: int, amount: Decimal) -> Account:
        """
        Increase an account balance by a positive amount

        Raises:
            AccountNotFoundError: If the account does not exist
        """
        if amount <= 0:
            raise ValidationError("Credit amount must be positive")

        with self.storage.atomic():
            account = self.get_account(account_id)
            if not account:
                raise AccountNotFoundError(f"Account {account_id} not found")

            account.balance = account.balance + amount
            account.updated_at = utcnow()
            self._save_account(account)

        return account

    def _generate_account_number(self) -> str:
        while True:
            candidate = "".join(str(secrets.randbelow(10)) for _ in range(12))
            if not self.storage.find(self.table_name, {"account_number": candidate}):
                return candidate

    def _save_account(self, account: Account) -> None:
        self.storage.save(self.table_name, account.id, account.to_dict())
