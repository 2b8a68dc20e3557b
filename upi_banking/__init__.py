"""
UPI Banking Core

Demo banking backend with customer balances, transaction history, fraud alerts
and atomic money transfers to UPI payment identifiers. All monetary values use
Decimal precision.
"""

__version__ = "1.0.0"
