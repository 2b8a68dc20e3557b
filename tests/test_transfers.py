"""
Tests for the transfer orchestrator

Covers the transfer scenarios, atomicity under storage failure, conservation of
money, rejection without side effects and concurrent transfers, on both the
in-memory and SQLite backends.
"""

import pytest
import tempfile
import threading
import os
from decimal import Decimal
from datetime import datetime, timezone

from upi_banking.storage import InMemoryStorage, SQLiteStorage
from upi_banking.users import UserLedger
from upi_banking.accounts import AccountDirectory
from upi_banking.transactions import TransactionLog, TransactionType
from upi_banking.transfers import TransferOrchestrator
from upi_banking.exceptions import (
    InsufficientBalanceError, InvalidAmountError, ReceiverNotFoundError,
    SenderNotFoundError, TransferFailedError, UserNotFoundError
)


class FailingInMemoryStorage(InMemoryStorage):
    """Raises on writes to one table once armed"""

    def __init__(self, failing_table):
        super().__init__()
        self.failing_table = failing_table
        self.armed = False

    def save(self, table, record_id, data):
        if self.armed and table == self.failing_table:
            raise IOError("disk full")
        super().save(table, record_id, data)


class FailingSQLiteStorage(SQLiteStorage):

    def __init__(self, db_path, failing_table):
        super().__init__(db_path)
        self.failing_table = failing_table
        self.armed = False

    def save(self, table, record_id, data):
        if self.armed and table == self.failing_table:
            raise IOError("disk full")
        super().save(table, record_id, data)


class TransferFixture:
    """Builds the components over a storage and seeds a sender and a receiver"""

    def build(self, storage, sender_balance="10000.00", receiver_balance="0.00"):
        self.storage = storage
        self.users = UserLedger(storage)
        self.accounts = AccountDirectory(storage)
        self.log = TransactionLog(storage)
        self.orchestrator = TransferOrchestrator(storage, self.users, self.accounts, self.log)

        self.sender = self.users.create_user("abhay0123", "1234", "Abhay Borase", balance=Decimal(sender_balance))
        self.receiver = self.accounts.create_account("bob@upi", "Bob Kumar", balance=Decimal(receiver_balance))

    def sender_balance(self):
        return self.users.get_user(self.sender.id).balance

    def receiver_balance(self):
        return self.accounts.get_account(self.receiver.id).balance

    def total_money(self):
        return (sum(u.balance for u in self.users.list_users()) +
                sum(a.balance for a in self.accounts.list_accounts()))

    def assert_unchanged(self, sender_balance, receiver_balance):
        assert self.sender_balance() == Decimal(sender_balance)
        assert self.receiver_balance() == Decimal(receiver_balance)
        assert self.log.list_by_user(self.sender.id) == []


class TestTransferMoney(TransferFixture):

    def setup_method(self):
        self.build(InMemoryStorage())

    def test_successful_transfer(self):
        receipt = self.orchestrator.transfer_money(self.sender.id, "2500.00", "bob@upi")

        assert receipt.amount == Decimal("2500.00")
        assert receipt.sender_balance == Decimal("7500.00")
        assert receipt.receiver_upi_id == "bob@upi"
        assert receipt.receiver_name == "Bob Kumar"
        assert self.sender_balance() == Decimal("7500.00")
        assert self.receiver_balance() == Decimal("2500.00")

        history = self.log.list_by_user(self.sender.id)
        assert len(history) == 1
        assert history[0].transaction_type == TransactionType.TRANSFER
        assert history[0].amount == Decimal("2500.00")
        assert history[0].description == "Transfer to Bob Kumar (bob@upi)"
        assert history[0].id == receipt.transaction.id
        assert self.log.get(receipt.transaction.id).description == history[0].description

    def test_receipt_to_dict(self):
        receipt = self.orchestrator.transfer_money(self.sender.id, 2500, "bob@upi")
        data = receipt.to_dict()

        assert data["amount"] == "2500.00"
        assert data["balance"] == "7500.00"
        assert data["to_upi_id"] == "bob@upi"
        assert data["to_name"] == "Bob Kumar"
        assert data["transaction_id"] == receipt.transaction.id

    def test_receiver_matched_case_insensitively(self):
        self.orchestrator.transfer_money(self.sender.id, "1.00", "BOB@UPI")
        assert self.receiver_balance() == Decimal("1.00")

    def test_insufficient_balance(self):
        self.build(InMemoryStorage(), sender_balance="100.00")

        with pytest.raises(InsufficientBalanceError) as exc_info:
            self.orchestrator.transfer_money(self.sender.id, "500.00", "bob@upi")

        assert "500.00" in exc_info.value.message
        assert "100.00" in exc_info.value.message
        self.assert_unchanged("100.00", "0.00")

    def test_exact_balance_is_sufficient(self):
        self.build(InMemoryStorage(), sender_balance="100.00")

        receipt = self.orchestrator.transfer_money(self.sender.id, "100.00", "bob@upi")
        assert receipt.sender_balance == Decimal("0.00")

    def test_unknown_receiver(self):
        with pytest.raises(ReceiverNotFoundError):
            self.orchestrator.transfer_money(self.sender.id, "10.00", "nobody@upi")
        self.assert_unchanged("10000.00", "0.00")

    def test_unknown_sender(self):
        with pytest.raises(SenderNotFoundError):
            self.orchestrator.transfer_money(999, "10.00", "bob@upi")
        self.assert_unchanged("10000.00", "0.00")

    @pytest.mark.parametrize("amount", ["-5", "0", 0, "abc", "1.234"])
    def test_invalid_amount_fails_before_lookup(self, amount):
        # Unknown sender and receiver: the amount error must win
        with pytest.raises(InvalidAmountError):
            self.orchestrator.transfer_money(999, amount, "nobody@upi")
        self.assert_unchanged("10000.00", "0.00")

    def test_money_is_conserved(self):
        before = self.total_money()

        self.orchestrator.transfer_money(self.sender.id, "2500.00", "bob@upi")
        self.orchestrator.transfer_money(self.sender.id, "0.01", "bob@upi")
        with pytest.raises(InsufficientBalanceError):
            self.orchestrator.transfer_money(self.sender.id, "99999.00", "bob@upi")

        assert self.total_money() == before
        assert len(self.log.list_by_user(self.sender.id)) == 2


class TestBalanceEvents(TransferFixture):

    def setup_method(self):
        self.build(InMemoryStorage(), sender_balance="0.00")

    def test_deposit_and_withdraw(self):
        when = datetime(2024, 2, 15, tzinfo=timezone.utc)
        deposit = self.orchestrator.deposit(self.sender.id, "3000.00", "Salary Advance", timestamp=when)
        self.orchestrator.withdraw(self.sender.id, "500.00")

        assert self.sender_balance() == Decimal("2500.00")
        assert deposit.timestamp == when

        history = self.log.list_by_user(self.sender.id)
        assert [t.transaction_type for t in history] == [TransactionType.DEPOSIT, TransactionType.WITHDRAWAL]
        assert sum(t.signed_amount for t in history) == self.sender_balance()

    def test_withdraw_insufficient(self):
        with pytest.raises(InsufficientBalanceError):
            self.orchestrator.withdraw(self.sender.id, "1.00")
        assert self.log.list_by_user(self.sender.id) == []

    def test_deposit_unknown_user(self):
        with pytest.raises(UserNotFoundError):
            self.orchestrator.deposit(999, "1.00")

    def test_deposit_invalid_amount(self):
        with pytest.raises(InvalidAmountError):
            self.orchestrator.deposit(self.sender.id, "-1")


class TestTransferAtomicity(TransferFixture):

    @pytest.mark.parametrize("failing_table", ["transactions", "accounts", "users"])
    def test_storage_failure_rolls_back_everything(self, failing_table):
        self.build(FailingInMemoryStorage(failing_table))
        self.storage.armed = True

        with pytest.raises(TransferFailedError) as exc_info:
            self.orchestrator.transfer_money(self.sender.id, "2500.00", "bob@upi")

        assert isinstance(exc_info.value.__cause__, IOError)
        self.storage.armed = False
        self.assert_unchanged("10000.00", "0.00")

    def test_storage_usable_after_failure(self):
        self.build(FailingInMemoryStorage("transactions"))
        self.storage.armed = True
        with pytest.raises(TransferFailedError):
            self.orchestrator.transfer_money(self.sender.id, "2500.00", "bob@upi")

        self.storage.armed = False
        receipt = self.orchestrator.transfer_money(self.sender.id, "2500.00", "bob@upi")
        assert receipt.sender_balance == Decimal("7500.00")
        assert self.receiver_balance() == Decimal("2500.00")


class TestConcurrentTransfers(TransferFixture):

    def run_concurrently(self, amount, count):
        barrier = threading.Barrier(count)
        results, errors = [], []

        def worker():
            barrier.wait()
            try:
                results.append(self.orchestrator.transfer_money(self.sender.id, amount, "bob@upi"))
            except InsufficientBalanceError as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return results, errors

    def test_only_one_of_two_overdrawing_transfers_succeeds(self):
        self.build(InMemoryStorage())

        results, errors = self.run_concurrently("6000.00", 2)

        assert len(results) == 1
        assert len(errors) == 1
        assert self.sender_balance() == Decimal("4000.00")
        assert self.receiver_balance() == Decimal("6000.00")
        assert len(self.log.list_by_user(self.sender.id)) == 1

    def test_many_small_transfers(self):
        self.build(InMemoryStorage(), sender_balance="100.00")

        results, errors = self.run_concurrently("10.00", 15)

        assert len(results) == 10
        assert len(errors) == 5
        assert self.sender_balance() == Decimal("0.00")
        assert self.receiver_balance() == Decimal("100.00")


class TestSQLiteTransfers(TransferFixture):

    def setup_method(self):
        fd, self.db_path = tempfile.mkstemp(suffix=".db")
        os.close(fd)

    def teardown_method(self):
        self.storage.close()
        for suffix in ("", "-wal", "-shm"):
            if os.path.exists(self.db_path + suffix):
                os.unlink(self.db_path + suffix)

    def test_successful_transfer(self):
        self.build(SQLiteStorage(self.db_path))

        self.orchestrator.transfer_money(self.sender.id, "2500.00", "bob@upi")

        assert self.sender_balance() == Decimal("7500.00")
        assert self.receiver_balance() == Decimal("2500.00")
        assert len(self.log.list_by_user(self.sender.id)) == 1

    def test_storage_failure_rolls_back_everything(self):
        self.build(FailingSQLiteStorage(self.db_path, "transactions"))
        self.storage.armed = True

        with pytest.raises(TransferFailedError):
            self.orchestrator.transfer_money(self.sender.id, "2500.00", "bob@upi")

        self.storage.armed = False
        self.assert_unchanged("10000.00", "0.00")

    def test_rejection_leaves_no_trace(self):
        self.build(SQLiteStorage(self.db_path), sender_balance="100.00")

        with pytest.raises(InsufficientBalanceError):
            self.orchestrator.transfer_money(self.sender.id, "500.00", "bob@upi")
        self.assert_unchanged("100.00", "0.00")

    def test_concurrent_overdraw(self):
        self.build(SQLiteStorage(self.db_path))
        barrier = threading.Barrier(2)
        outcomes = []

        def worker():
            barrier.wait()
            try:
                self.orchestrator.transfer_money(self.sender.id, "6000.00", "bob@upi")
                outcomes.append("ok")
            except InsufficientBalanceError:
                outcomes.append("insufficient")

        threads = [threading.Thread(target=worker) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(outcomes) == ["insufficient", "ok"]
        assert self.sender_balance() == Decimal("4000.00")
