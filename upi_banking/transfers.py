"""
Transfer Orchestrator Module

Moves money from a user's wallet balance to a payment account identified by
UPI ID. Precondition checks and the three writes (sender debit, receiver
credit, transaction record) run inside one atomic storage scope: either all of
them are applied or none are.
"""

from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .money import AmountLike, format_amount, parse_amount
from .storage import StorageInterface
from .users import UserLedger
from .accounts import AccountDirectory
from .transactions import Transaction, TransactionLog, TransactionType
from .exceptions import (
    BankingError, InsufficientBalanceError, ReceiverNotFoundError,
    SenderNotFoundError, StorageError, TransferFailedError, UserNotFoundError
)
from .logging_config import get_logger, log_action


@dataclass(frozen=True)
class TransferReceipt:
    """Outcome of a committed transfer"""
    transaction: Transaction
    amount: Decimal
    sender_balance: Decimal
    receiver_upi_id: str
    receiver_name: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transaction_id": self.transaction.id,
            "amount": format_amount(self.amount),
            "balance": format_amount(self.sender_balance),
            "to_upi_id": self.receiver_upi_id,
            "to_name": self.receiver_name,
            "timestamp": self.transaction.timestamp.isoformat(),
        }


class TransferOrchestrator:
    """
    Executes transfers and external balance events against the user ledger,
    account directory and transaction log
    """

    def __init__(
        self,
        storage: StorageInterface,
        user_ledger: UserLedger,
        account_directory: AccountDirectory,
        transaction_log: TransactionLog
    ):
        self.storage = storage
        self.user_ledger = user_ledger
        self.account_directory = account_directory
        self.transaction_log = transaction_log
        self.logger = get_logger("upi_banking.transfers")

    def transfer_money(
        self,
        sender_user_id: int,
        amount: AmountLike,
        receiver_upi_id: str
    ) -> TransferReceipt:
        """
        Transfer ``amount`` from a user to the account behind a UPI ID

        Args:
            sender_user_id: ID of the paying user
            amount: Positive amount with at most two decimal places
            receiver_upi_id: Payment identifier of the receiving account

        Returns:
            TransferReceipt for the committed transfer

        Raises:
            InvalidAmountError: Amount is malformed or not positive (no lookup done)
            SenderNotFoundError: Sender user does not exist
            ReceiverNotFoundError: No account has this UPI ID
            InsufficientBalanceError: Sender balance is below the amount
            TransferFailedError: Storage failed while committing; nothing was applied
        """
        context = {
            "sender_user_id": sender_user_id,
            "receiver_upi_id": receiver_upi_id,
            "amount": str(amount),
        }

        try:
            value = parse_amount(amount)

            with self.storage.atomic():
                sender = self.user_ledger.get_user(sender_user_id)
                if not sender:
                    raise SenderNotFoundError(sender_user_id)

                receiver = self.account_directory.lookup_by_payment_id(receiver_upi_id)
                if not receiver:
                    raise ReceiverNotFoundError(receiver_upi_id)

                if sender.balance < value:
                    raise InsufficientBalanceError(value, sender.balance)

                sender = self.user_ledger.adjust_balance(sender.id, -value)
                receiver = self.account_directory.credit(receiver.id, value)
                transaction = self.transaction_log.append(
                    user_id=sender.id,
                    transaction_type=TransactionType.TRANSFER,
                    amount=value,
                    description=f"Transfer to {receiver.holder_name} ({receiver.upi_id})"
                )
        except BankingError as e:
            self._log_failure("transfer_money", e, context)
            raise
        except Exception as e:
            self._log_failure("transfer_money", e, context)
            raise TransferFailedError(f"Transfer failed: {e}") from e

        log_action(
            self.logger, "info", "Transfer completed",
            user_id=sender.id, action="transfer_money",
            resource=f"account:{receiver.upi_id}",
            extra={
                "transaction_id": transaction.id,
                "amount": format_amount(value),
                "sender_balance": format_amount(sender.balance),
            }
        )

        return TransferReceipt(
            transaction=transaction,
            amount=value,
            sender_balance=sender.balance,
            receiver_upi_id=receiver.upi_id,
            receiver_name=receiver.holder_name
        )

    def deposit(
        self,
        user_id: int,
        amount: AmountLike,
        description: str = "Deposit",
        timestamp: Optional[datetime] = None
    ) -> Transaction:
        """Credit a user's balance from outside the system and log it"""
        return self._apply_balance_event(user_id, amount, TransactionType.DEPOSIT, description, timestamp)

    def withdraw(
        self,
        user_id: int,
        amount: AmountLike,
        description: str = "Withdrawal",
        timestamp: Optional[datetime] = None
    ) -> Transaction:
        """
        Debit a user's balance to outside the system and log it

        Raises:
            InsufficientBalanceError: If the balance is below the amount
        """
        return self._apply_balance_event(user_id, amount, TransactionType.WITHDRAWAL, description, timestamp)

    def _apply_balance_event(
        self,
        user_id: int,
        amount: AmountLike,
        transaction_type: TransactionType,
        description: str,
        timestamp: Optional[datetime]
    ) -> Transaction:
        action = transaction_type.value
        context = {"user_id": user_id, "amount": str(amount)}

        try:
            value = parse_amount(amount)

            with self.storage.atomic():
                user = self.user_ledger.get_user(user_id)
                if not user:
                    raise UserNotFoundError(user_id)

                if transaction_type == TransactionType.WITHDRAWAL:
                    if user.balance < value:
                        raise InsufficientBalanceError(value, user.balance)
                    delta = -value
                else:
                    delta = value

                user = self.user_ledger.adjust_balance(user_id, delta)
                transaction = self.transaction_log.append(
                    user_id=user_id,
                    transaction_type=transaction_type,
                    amount=value,
                    description=description,
                    timestamp=timestamp
                )
        except BankingError as e:
            self._log_failure(action, e, context)
            raise
        except Exception as e:
            self._log_failure(action, e, context)
            raise StorageError(f"{transaction_type.value.capitalize()} failed: {e}") from e

        log_action(
            self.logger, "info", f"{transaction_type.value.capitalize()} recorded",
            user_id=user_id, action=action, resource=f"user:{user_id}",
            extra={
                "transaction_id": transaction.id,
                "amount": format_amount(value),
                "balance": format_amount(user.balance),
            }
        )
        return transaction

    def _log_failure(self, action: str, error: Exception, context: Dict[str, Any]) -> None:
        """Rejections are warnings; storage failures are errors"""
        if isinstance(error, BankingError) and not isinstance(error, StorageError):
            log_action(
                self.logger, "warning", f"{action} rejected: {error}",
                action=action, extra=dict(context, code=error.code)
            )
        else:
            self.logger.error(
                f"{action} rolled back: {error}", exc_info=error,
                extra={"action": action, "extra": context}
            )
