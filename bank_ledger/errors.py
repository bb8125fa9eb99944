"""
Ledger Errors

Flat error taxonomy raised by ledger operations. Every error derives from
BankError (itself a ValueError) so callers can catch one family or a single
kind.
"""


class BankError(ValueError):
    """Base class for all ledger errors"""
    pass


class AccountNotFoundError(BankError):
    """An operation referenced an account id absent from the ledger"""

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account {account_id} not found")


class UserNotFoundError(BankError):
    """An operation referenced a user id absent from the ledger"""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


class LowBalanceError(BankError):
    """A decrease would drive a balance below zero"""

    def __init__(self, balance: int, amount: int):
        self.balance = balance
        self.amount = amount
        super().__init__(f"Insufficient balance: {balance} available, {amount} requested")


class BalanceOverflowError(BankError):
    """An increase would push a balance past the unsigned 64-bit maximum"""

    def __init__(self, balance: int, amount: int):
        self.balance = balance
        self.amount = amount
        super().__init__(f"Balance overflow: {balance} + {amount} exceeds maximum balance")


class InvalidAmountError(BankError):
    """An amount is not a non-negative integer within the balance range"""

    def __init__(self, amount):
        self.amount = amount
        super().__init__(f"Invalid amount: {amount!r}")
