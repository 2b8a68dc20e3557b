"""
Tests for the read facade
"""

from decimal import Decimal

from upi_banking.storage import InMemoryStorage
from upi_banking.system import BankingSystem
from upi_banking.config import UpiBankConfig
from upi_banking.fraud import FraudSeverity
from upi_banking.users import UserRole


class TestBankingQueries:

    def setup_method(self):
        self.system = BankingSystem(storage=InMemoryStorage(), config=UpiBankConfig(seed_demo_data=False))
        self.queries = self.system.queries
        self.user = self.system.user_ledger.create_user("abhay0123", "1234", "Abhay Borase")
        self.system.account_directory.create_account("bob@upi", "Bob Kumar")

    def test_empty_results_for_unknown_user(self):
        assert self.queries.list_transactions(999) == []
        assert self.queries.list_fraud_alerts(999) == []
        assert self.queries.get_user(999) is None
        assert self.queries.find_account_by_upi("nobody@upi") is None

    def test_transactions_in_order(self):
        self.system.transfers.deposit(self.user.id, "100.00", "First")
        self.system.transfers.deposit(self.user.id, "50.00", "Second")
        self.system.transfers.transfer_money(self.user.id, "30.00", "bob@upi")

        descriptions = [t.description for t in self.queries.list_transactions(self.user.id)]
        assert descriptions == ["First", "Second", "Transfer to Bob Kumar (bob@upi)"]

    def test_reads_are_idempotent(self):
        self.system.transfers.deposit(self.user.id, "100.00")
        self.system.fraud_registry.raise_alert(self.user.id, "Odd login", FraudSeverity.LOW)

        first = (self.queries.list_transactions(self.user.id), self.queries.list_fraud_alerts(self.user.id),
                 self.queries.list_customers(), self.queries.find_account_by_upi("bob@upi"))
        second = (self.queries.list_transactions(self.user.id), self.queries.list_fraud_alerts(self.user.id),
                  self.queries.list_customers(), self.queries.find_account_by_upi("bob@upi"))

        assert first == second
        assert self.queries.get_user(self.user.id).balance == Decimal("100.00")

    def test_fraud_alerts(self):
        alert = self.system.fraud_registry.raise_alert(self.user.id, "Odd login", FraudSeverity.HIGH)

        alerts = self.queries.list_fraud_alerts(self.user.id)
        assert len(alerts) == 1
        assert alerts[0].severity == FraudSeverity.HIGH
        assert alerts[0].resolved is False
        assert alerts[0].to_public_dict()["id"] == alert.id

    def test_list_customers(self):
        self.system.user_ledger.create_user("boss", "1234", "The Manager", role=UserRole.MANAGER)
        assert [c.username for c in self.queries.list_customers()] == ["abhay0123"]

    def test_active_fraud_alerts_span_users_and_skip_resolved(self):
        other = self.system.user_ledger.create_user("priya.k", "1234", "Priya Kulkarni")
        first = self.system.fraud_registry.raise_alert(self.user.id, "Odd login", FraudSeverity.MEDIUM)
        closed = self.system.fraud_registry.raise_alert(other.id, "Old alert", FraudSeverity.LOW)
        self.system.fraud_registry.raise_alert(other.id, "Card used abroad", FraudSeverity.HIGH)

        closed.resolved = True
        self.system.storage.save("fraud_alerts", closed.id, closed.to_dict())

        active = self.queries.list_active_fraud_alerts()
        assert [a.description for a in active] == ["Odd login", "Card used abroad"]
        assert [a.user_id for a in active] == [first.user_id, other.id]

    def test_no_active_fraud_alerts(self):
        assert self.queries.list_active_fraud_alerts() == []
