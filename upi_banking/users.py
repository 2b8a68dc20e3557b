"""
User Ledger Module

Manages user profiles and their wallet balances. The balance of a user is only
changed through ``adjust_balance``, which is called by the transfer
orchestrator inside an atomic storage scope.
"""

from decimal import Decimal
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from enum import Enum
import hashlib
import hmac
import secrets

from .money import ZERO, format_amount, to_decimal
from .storage import StorageInterface, StorageRecord, utcnow
from .exceptions import (
    DuplicateUserError, NegativeBalanceRejectedError, UserNotFoundError, ValidationError
)


class UserRole(Enum):
    """Roles a user can hold"""
    CUSTOMER = "customer"
    MANAGER = "manager"


@dataclass
class User(StorageRecord):
    """Registered user with a wallet balance"""
    username: str
    password_hash: str
    role: UserRole
    full_name: str
    balance: Decimal = ZERO

    @property
    def is_manager(self) -> bool:
        return self.role == UserRole.MANAGER

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['balance'] = format_amount(self.balance)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        data = dict(data)
        data['role'] = UserRole(data['role'])
        data['balance'] = to_decimal(data['balance'])
        return super().from_dict(data)

    def to_public_dict(self) -> Dict[str, Any]:
        """Serialise without the password hash"""
        return {
            "id": self.id,
            "username": self.username,
            "role": self.role.value,
            "full_name": self.full_name,
            "balance": format_amount(self.balance),
        }


def hash_password(password: str, salt: Optional[str] = None) -> str:
    """Hash password with scrypt, returned as '<hash>.<salt>'"""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.scrypt(password.encode(), salt=salt.encode(), n=16384, r=8, p=1, dklen=64)
    return f"{digest.hex()}.{salt}"


def verify_password(password: str, stored: str) -> bool:
    """Constant-time check of a password against a '<hash>.<salt>' string"""
    try:
        _, salt = stored.split(".", 1)
    except ValueError:
        return False
    return hmac.compare_digest(hash_password(password, salt), stored)


class UserLedger:
    """
    Stores users and owns the user balance cells
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "users"

    def create_user(
        self,
        username: str,
        password: str,
        full_name: str,
        role: UserRole = UserRole.CUSTOMER,
        balance: Decimal = ZERO
    ) -> User:
        """
        Create a new user

        Args:
            username: Unique login name
            password: Plain-text password (stored hashed)
            full_name: Display name
            role: Customer or manager
            balance: Opening balance

        Returns:
            Created User

        Raises:
            DuplicateUserError: If the username is taken
            ValidationError: If a required field is empty or balance is negative
        """
        username = username.strip()
        if not username or not full_name.strip():
            raise ValidationError("Username and full name are required")
        if balance < 0:
            raise ValidationError("Opening balance cannot be negative")
        password_hash = hash_password(password)

        with self.storage.atomic():
            if self.get_user_by_username(username):
                raise DuplicateUserError(f"Username {username} already exists")

            now = utcnow()
            user = User(
                id=self.storage.next_id(self.table_name),
                created_at=now,
                updated_at=now,
                username=username,
                password_hash=password_hash,
                role=role,
                full_name=full_name.strip(),
                balance=balance
            )
            self._save_user(user)

        return user

    def get_user(self, user_id: int) -> Optional[User]:
        """Get user by ID"""
        data = self.storage.load(self.table_name, user_id)
        if data:
            return User.from_dict(data)
        return None

    def get_user_by_username(self, username: str) -> Optional[User]:
        """Get user by login name"""
        found = self.storage.find(self.table_name, {"username": username})
        if found:
            return User.from_dict(found[0])
        return None

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """Return the user when the credentials match, else None"""
        user = self.get_user_by_username(username)
        if user and verify_password(password, user.password_hash):
            return user
        return None

    def list_users(self) -> List[User]:
        return [User.from_dict(data) for data in self.storage.load_all(self.table_name)]

    def list_customers(self) -> List[User]:
        """All users with the customer role, in registration order"""
        found = self.storage.find(self.table_name, {"role": UserRole.CUSTOMER.value})
        return [User.from_dict(data) for data in found]

    def adjust_balance(self, user_id: int, delta: Decimal) -> User:
        """
        Add ``delta`` (may be negative) to a user's balance

        Raises:
            UserNotFoundError: If the user does not exist
            NegativeBalanceRejectedError: If the result would be below zero
        """
        with self.storage.atomic():
            user = self.get_user(user_id)
            if not user:
                raise UserNotFoundError(user_id)

            new_balance = user.balance + delta
            if new_balance < 0:
                raise NegativeBalanceRejectedError(user_id, user.balance, delta)

            user.balance = new_balance
            user.updated_at = utcnow()
            self._save_user(user)

        return user

    def _save_user(self, user: User) -> None:
        self.storage.save(self.table_name, user.id, user.to_dict())
