"""
Banking System Container

Selects the storage backend at startup and wires the ledger, directory, log,
orchestrator, read facade and chat assistant together.
"""

from typing import Optional

from .config import UpiBankConfig, get_config
from .storage import StorageInterface, InMemoryStorage, SQLiteStorage
from .users import UserLedger
from .accounts import AccountDirectory
from .transactions import TransactionLog
from .fraud import FraudAlertRegistry
from .transfers import TransferOrchestrator
from .queries import BankingQueries
from .conversation import TransferAssistant


def create_storage(config: UpiBankConfig) -> StorageInterface:
    """Build the storage backend named by the configuration"""
    if config.storage_backend == "memory":
        return InMemoryStorage()
    if config.storage_backend == "sqlite":
        return SQLiteStorage(config.database_path)
    raise ValueError(f"Unknown storage backend: {config.storage_backend}")


class BankingSystem:
    """Core banking system with all components initialized"""

    def __init__(self, storage: Optional[StorageInterface] = None,
                 config: Optional[UpiBankConfig] = None):
        self.config = config or get_config()
        self.storage = storage or create_storage(self.config)

        self.user_ledger = UserLedger(self.storage)
        self.account_directory = AccountDirectory(self.storage)
        self.transaction_log = TransactionLog(self.storage)
        self.fraud_registry = FraudAlertRegistry(self.storage)

        self.transfers = TransferOrchestrator(
            self.storage, self.user_ledger, self.account_directory, self.transaction_log
        )
        self.queries = BankingQueries(
            self.user_ledger, self.account_directory, self.transaction_log, self.fraud_registry
        )
        self.assistant = TransferAssistant(self.queries, self.transfers)

    def close(self) -> None:
        self.storage.close()
