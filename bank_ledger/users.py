"""
User Module

Users own accounts. A user only records the ids of the accounts it owns.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set

from .identifiers import AccountId, UserId, generate_id


@dataclass
class User:
    """
    Ledger user
    
    The id is assigned by the ledger on registration, so a freshly built
    User has none.
    """
    id: Optional[UserId] = None
    accounts: Set[AccountId] = field(default_factory=set)
    
    @staticmethod
    def generate_id() -> UserId:
        """Generate a fresh user id"""
        return UserId(generate_id())
    
    def add_account(self, account_id: AccountId) -> None:
        """Record ownership of an account (idempotent)"""
        self.accounts.add(account_id)
    
    def owns(self, account_id: AccountId) -> bool:
        """Check if the user owns an account"""
        return account_id in self.accounts
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return {
            "id": self.id,
            "accounts": sorted(self.accounts),
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        """Create instance from dictionary"""
        return cls(
            id=UserId(data["id"]),
            accounts={AccountId(account_id) for account_id in data.get("accounts", [])},
        )
