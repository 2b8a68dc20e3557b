"""
Banking Exceptions

Typed failure reasons raised by the ledger, directory and transfer components.
Each class carries a machine-readable ``code`` and the HTTP status the API layer
answers with.
"""

from decimal import Decimal
from typing import Optional


class BankingError(Exception):
    """Base exception for all banking failures"""
    code = "banking_error"
    status_code = 400

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


# Validation errors

class ValidationError(BankingError):
    """Request data is malformed"""
    code = "validation_error"
    status_code = 400


class InvalidAmountError(ValidationError):
    """Amount must be a positive decimal with at most two fractional digits"""
    code = "invalid_amount"


class InvalidPaymentIdError(ValidationError):
    """Payment identifier is malformed"""
    code = "invalid_payment_id"


# Not-found errors

class NotFoundError(BankingError):
    """Referenced record does not exist"""
    code = "not_found"
    status_code = 404


class SenderNotFoundError(NotFoundError):
    """Sender user not found"""
    code = "sender_not_found"

    def __init__(self, user_id: int):
        super().__init__(f"Sender user {user_id} not found")
        self.user_id = user_id


class ReceiverNotFoundError(NotFoundError):
    """Receiver account not found"""
    code = "receiver_not_found"

    def __init__(self, upi_id: str):
        super().__init__(f"No account found for UPI ID {upi_id}")
        self.upi_id = upi_id


class UserNotFoundError(NotFoundError):
    """User not found"""
    code = "user_not_found"

    def __init__(self, user_id: int):
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class AccountNotFoundError(NotFoundError):
    """Account not found"""
    code = "account_not_found"


# Business-rule errors

class BusinessRuleError(BankingError):
    """Operation violates a banking rule"""
    code = "business_rule_violation"
    status_code = 409


class InsufficientBalanceError(BusinessRuleError):
    """Balance too low for the requested amount"""
    code = "insufficient_balance"

    def __init__(self, amount: Decimal, available: Decimal):
        super().__init__(
            f"Insufficient balance: attempted {amount:.2f}, available {available:.2f}"
        )
        self.amount = amount
        self.available = available


class NegativeBalanceRejectedError(BusinessRuleError):
    """Balance adjustment would make the balance negative"""
    code = "negative_balance_rejected"

    def __init__(self, user_id: int, balance: Decimal, delta: Decimal):
        super().__init__(
            f"Adjusting balance of user {user_id} by {delta:.2f} "
            f"would leave {balance + delta:.2f}"
        )
        self.user_id = user_id
        self.balance = balance
        self.delta = delta


class DuplicateUserError(BusinessRuleError):
    """Username already exists"""
    code = "duplicate_user"


class DuplicateAccountError(BusinessRuleError):
    """UPI ID or account number already exists"""
    code = "duplicate_account"


# Storage errors

class StorageError(BankingError):
    """Storage operation failed"""
    code = "storage_error"
    status_code = 500


class TransferFailedError(StorageError):
    """Transfer failed"""
    code = "transfer_failed"


# Access errors

class AuthenticationError(BankingError):
    """Not authenticated"""
    code = "unauthenticated"
    status_code = 401


class AuthorizationError(BankingError):
    """Insufficient permissions"""
    code = "forbidden"
    status_code = 403
