"""
Account Module

Accounts hold a balance, the id of their owning user, a category and the
ids of attached cards. Balances are unsigned 64-bit magnitudes: a decrease
past zero or an increase past the maximum is rejected, never clamped.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Set
from enum import Enum

from .identifiers import AccountId, CardId, UserId, generate_id
from .errors import BalanceOverflowError, InvalidAmountError, LowBalanceError


MAX_BALANCE = 2 ** 64 - 1


class AccountCategory(Enum):
    """Account kinds"""
    CHECKING = "checking"
    SAVINGS = "savings"
    BUSINESS = "business"


def validate_amount(amount: int) -> int:
    """Ensure an amount is an integer in [0, MAX_BALANCE]"""
    # bool is an int subclass but never a valid amount
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError(amount)
    if amount < 0 or amount > MAX_BALANCE:
        raise InvalidAmountError(amount)
    return amount


@dataclass
class Account:
    """
    Bank account owned by exactly one user

    The account references its owner and cards by id only; the ledger owns
    the user and card records.
    """
    id: AccountId
    owner: UserId
    category: AccountCategory
    balance: int = 0
    cards: Set[CardId] = field(default_factory=set)

    @staticmethod
    def generate_id() -> AccountId:
        """Generate a fresh account id"""
        return AccountId(generate_id())

    def can_increase(self, amount: int) -> bool:
        """Check if amount can be added without exceeding MAX_BALANCE"""
        return self.balance + validate_amount(amount) <= MAX_BALANCE

    def can_decrease(self, amount: int) -> bool:
        """Check if amount can be removed without going negative"""
        return validate_amount(amount) <= self.balance

    def increase_balance(self, amount: int) -> None:
        """
        Add amount to the balance

        Raises:
            InvalidAmountError: If amount is not a valid unsigned amount
            BalanceOverflowError: If the new balance would exceed MAX_BALANCE
        """
        if not self.can_increase(amount):
            raise BalanceOverflowError(self.balance, amount)
        self.balance += amount

    def decrease_balance(self, amount: int) -> None:
        """
        Subtract amount from the balance

        Raises:
            InvalidAmountError: If amount is not a valid unsigned amount
            LowBalanceError: If amount is greater than the balance
        """
        if not self.can_decrease(amount):
            raise LowBalanceError(self.balance, amount)
        self.balance -= amount

    def register_card(self, card_id: CardId) -> None:
        """Attach a card id (idempotent)"""
        self.cards.add(card_id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return {
            "id": self.id,
            "owner": self.owner,
            "category": self.category.value,
            # Stored as a string: JSON consumers may not hold 64-bit integers
            "balance": str(self.balance),
            "cards": sorted(self.cards),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Account':
        """Create instance from dictionary"""
        return cls(
            id=AccountId(data["id"]),
            owner=UserId(data["owner"]),
            category=AccountCategory(data["category"]),
            balance=validate_amount(int(data["balance"])),
            cards={CardId(card_id) for card_id in data.get("cards", [])},
        )
