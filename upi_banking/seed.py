"""
Demo data for the UPI banking backend

Installs the sample customer, transactions and fraud alerts, a manager, and a
handful of payment accounts to transfer to.

Run with: python -m upi_banking.seed
"""

from datetime import datetime, timezone
from decimal import Decimal

from .fraud import FraudSeverity
from .system import BankingSystem
from .users import UserRole
from .logging_config import get_logger, setup_logging
from .config import get_config

DEMO_PASSWORD = "1234"

DEMO_USERS = [
    # username, full name, role
    ("abhay0123", "Abhay Borase", UserRole.CUSTOMER),
    ("priya.k", "Priya Kulkarni", UserRole.CUSTOMER),
    ("manager01", "Meera Shah", UserRole.MANAGER),
]

DEMO_DEPOSITS = [
    # username, amount, description, date
    ("abhay0123", "3000.00", "Salary Advance", datetime(2024, 2, 15, tzinfo=timezone.utc)),
    ("abhay0123", "2000.00", "Savings Transfer", datetime(2024, 2, 18, tzinfo=timezone.utc)),
    ("priya.k", "10000.00", "Salary Credit", datetime(2024, 2, 1, tzinfo=timezone.utc)),
]

DEMO_FRAUD_ALERTS = [
    ("abhay0123", "Unusual login attempt detected from new location", FraudSeverity.MEDIUM,
     datetime(2024, 2, 15, tzinfo=timezone.utc)),
    ("abhay0123", "Multiple failed transactions in quick succession", FraudSeverity.HIGH,
     datetime(2024, 2, 18, tzinfo=timezone.utc)),
]

DEMO_ACCOUNTS = [
    # upi id, holder name, account number, opening balance, linked username
    ("abhay@okaxis", "Abhay Borase", "100200300401", "0.00", "abhay0123"),
    ("priya@okhdfc", "Priya Kulkarni", "100200300402", "50000.00", "priya.k"),
    ("freshmart@ybl", "FreshMart Groceries", "900800700601", "125000.00", None),
]


def seed_demo_data(system: BankingSystem) -> bool:
    """
    Populate an empty system with demo records

    Returns:
        True if data was written, False if users already existed
    """
    logger = get_logger("upi_banking.seed")
    users = {}
    with system.storage.atomic():
        if system.storage.count(system.user_ledger.table_name) > 0:
            logger.info("Demo data already present, skipping seed")
            return False

        for username, full_name, role in DEMO_USERS:
            users[username] = system.user_ledger.create_user(
                username=username, password=DEMO_PASSWORD, full_name=full_name, role=role
            )

        # Balances come from the deposits so the history adds up
        for username, amount, description, when in DEMO_DEPOSITS:
            system.transfers.deposit(users[username].id, amount, description, timestamp=when)

        for username, description, severity, when in DEMO_FRAUD_ALERTS:
            system.fraud_registry.raise_alert(users[username].id, description, severity, timestamp=when)

        for upi_id, holder_name, account_number, balance, username in DEMO_ACCOUNTS:
            system.account_directory.create_account(
                upi_id=upi_id,
                holder_name=holder_name,
                account_number=account_number,
                balance=Decimal(balance),
                user_id=users[username].id if username else None
            )

    logger.info(f"Seeded {len(users)} users and {len(DEMO_ACCOUNTS)} accounts")
    return True


if __name__ == "__main__":
    config = get_config()
    setup_logging(config.log_level, fmt=config.log_format, log_file=config.log_file)
    system = BankingSystem(config=config)
    try:
        seed_demo_data(system)
    finally:
        system.close()
