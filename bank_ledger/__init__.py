"""
Bank Ledger

An in-memory bank ledger tracking users, accounts, balances and payment
cards, with money transfers that never create or destroy funds.
"""

__version__ = "1.0.0"
