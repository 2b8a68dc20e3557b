"""
Tests for the account directory
"""

import pytest
from decimal import Decimal

from upi_banking.storage import InMemoryStorage
from upi_banking.accounts import AccountDirectory
from upi_banking.exceptions import (
    AccountNotFoundError, DuplicateAccountError, InvalidPaymentIdError, ValidationError
)


class TestAccountDirectory:

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.directory = AccountDirectory(self.storage)

    def test_create_and_lookup(self):
        account = self.directory.create_account("Bob@UPI", "Bob Kumar", balance=Decimal("10.00"))

        assert account.upi_id == "bob@upi"
        assert len(account.account_number) == 12
        assert account.account_number.isdigit()

        found = self.directory.lookup_by_payment_id("bob@upi")
        assert found.id == account.id
        assert found.holder_name == "Bob Kumar"
        assert found.balance == Decimal("10.00")
        assert self.directory.lookup_by_payment_id(" BOB@upi ").id == account.id

    def test_lookup_unknown(self):
        assert self.directory.lookup_by_payment_id("nobody@upi") is None
        assert self.directory.lookup_by_payment_id("not a upi id") is None
        assert self.directory.get_account(5) is None

    @pytest.mark.parametrize("upi_id", ["bob", "@upi", "bob@", "bob@1upi", "b@upi", "bob smith@upi"])
    def test_rejects_malformed_upi_id(self, upi_id):
        with pytest.raises(InvalidPaymentIdError):
            self.directory.create_account(upi_id, "Bob")

    def test_rejects_duplicates(self):
        self.directory.create_account("bob@upi", "Bob", account_number="111122223333")

        with pytest.raises(DuplicateAccountError):
            self.directory.create_account("BOB@upi", "Another Bob")
        with pytest.raises(DuplicateAccountError):
            self.directory.create_account("carol@upi", "Carol", account_number="111122223333")
        assert len(self.directory.list_accounts()) == 1

    def test_credit(self):
        account = self.directory.create_account("bob@upi", "Bob", balance=Decimal("10.00"))

        credited = self.directory.credit(account.id, Decimal("2.50"))
        assert credited.balance == Decimal("12.50")
        assert self.directory.get_account(account.id).balance == Decimal("12.50")

    def test_credit_rejects_bad_input(self):
        account = self.directory.create_account("bob@upi", "Bob")

        with pytest.raises(ValidationError):
            self.directory.credit(account.id, Decimal("0"))
        with pytest.raises(AccountNotFoundError):
            self.directory.credit(999, Decimal("1.00"))
