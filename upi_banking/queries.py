"""
Read Facade

Side-effect-free queries for the presentation layer. Unknown IDs yield empty
sequences (or None for single lookups) rather than errors.
"""

from typing import List, Optional

from .users import User, UserLedger
from .accounts import Account, AccountDirectory
from .transactions import Transaction, TransactionLog
from .fraud import FraudAlert, FraudAlertRegistry


class BankingQueries:

    def __init__(
        self,
        user_ledger: UserLedger,
        account_directory: AccountDirectory,
        transaction_log: TransactionLog,
        fraud_registry: FraudAlertRegistry
    ):
        self.user_ledger = user_ledger
        self.account_directory = account_directory
        self.transaction_log = transaction_log
        self.fraud_registry = fraud_registry

    def list_transactions(self, user_id: int) -> List[Transaction]:
        """Transactions of a user, oldest first"""
        return self.transaction_log.list_by_user(user_id)

    def list_fraud_alerts(self, user_id: int) -> List[FraudAlert]:
        return self.fraud_registry.list_by_user(user_id)

    def list_active_fraud_alerts(self) -> List[FraudAlert]:
        """Unresolved alerts of every user, for the manager view"""
        return self.fraud_registry.list_unresolved()

    def list_customers(self) -> List[User]:
        return self.user_ledger.list_customers()

    def find_account_by_upi(self, upi_id: str) -> Optional[Account]:
        return self.account_directory.lookup_by_payment_id(upi_id)

    def get_user(self, user_id: int) -> Optional[User]:
        return self.user_ledger.get_user(user_id)
