"""
Identifier Generation Module

Opaque identifiers for users, accounts and cards. Identifiers are random
UUID4 strings: they support equality and hashing only and are never reused.
"""

from typing import NewType
import uuid


UserId = NewType("UserId", str)
AccountId = NewType("AccountId", str)
CardId = NewType("CardId", str)


def generate_id() -> str:
    """Generate a fresh random identifier"""
    return str(uuid.uuid4())
