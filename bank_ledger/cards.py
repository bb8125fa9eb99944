"""
Card Module

Minimal payment card record. A card is attached to exactly one account; the
account tracks the card id and the ledger keeps the record.
"""

from dataclasses import dataclass
from typing import Any, Dict

from .identifiers import CardId, generate_id


@dataclass
class Card:
    """Payment card attached to an account"""
    id: CardId
    
    @staticmethod
    def generate_id() -> CardId:
        """Generate a fresh card id"""
        return CardId(generate_id())
    
    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id}
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Card':
        return cls(id=CardId(data["id"]))
