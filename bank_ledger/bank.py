"""
Bank Ledger Module

The Bank is the aggregate root of the ledger: it owns every user, account
and card by id and is the only component that mutates them. Multi-entity
invariants live here:

- every account id in a user's account set is a key of the accounts table
  and that account's owner is the user
- every card id in an account's card set is a key of the cards table, and
  every card is attached to exactly one account
- a transfer never creates or destroys money, even when it fails

All public operations run under a single re-entrant lock so a host that
shares the bank between threads is serialized.
"""

from typing import Any, Dict, List, Optional
import copy
import threading

from .identifiers import AccountId, CardId, UserId
from .accounts import Account, AccountCategory, validate_amount
from .cards import Card
from .users import User
from .errors import (
    AccountNotFoundError, BalanceOverflowError, BankError, LowBalanceError,
    UserNotFoundError
)
from .events import EventSink, Publisher, SubscribeEvent
from .storage import StorageInterface
from .logging_config import get_logger, log_action


class Bank:
    """
    In-memory bank ledger

    The event sink is a transient collaborator owned by whoever assembles the
    bank. It is never part of a snapshot; a fresh Publisher is used when none
    is injected.
    """

    ACCOUNTS_TABLE = "accounts"
    USERS_TABLE = "users"
    CARDS_TABLE = "cards"

    def __init__(self, event_sink: Optional[EventSink] = None, log_events: bool = True):
        self._accounts: Dict[AccountId, Account] = {}
        self._users: Dict[UserId, User] = {}
        self._cards: Dict[CardId, Card] = {}
        self._lock = threading.RLock()
        self.events = event_sink if event_sink is not None else Publisher()
        self.log_events = log_events
        self.logger = get_logger("bank_ledger.bank")

    def _notify(self, event_kind: SubscribeEvent, payload: str) -> None:
        """Deliver an event; sink failures never fail the operation"""
        if self.log_events:
            log_action(
                self.logger, "debug", f"Event emitted: {event_kind.value}",
                action="notify", extra={"event": event_kind.value, "payload": payload}
            )
        try:
            self.events.notify(event_kind, payload)
        except Exception as e:
            self.logger.error(f"Error notifying event sink of {event_kind.value}: {e}")

    def _reject(self, action: str, error: BankError, resource: Optional[str] = None) -> BankError:
        """Log a rejected operation and hand the error back for raising"""
        log_action(
            self.logger, "warning", f"Rejected {action}: {error}",
            action=action, resource=resource,
            extra={"error": type(error).__name__}
        )
        return error

    def _require_account(self, action: str, account_id: AccountId) -> Account:
        account = self._accounts.get(account_id)
        if account is None:
            raise self._reject(action, AccountNotFoundError(account_id), f"account:{account_id}")
        return account

    # Users

    def register_user(self, user: Optional[User] = None) -> UserId:
        """
        Register a user under a freshly generated id

        The ledger stores its own record: account ownership is only ever
        granted through create_account, so any account ids already on the
        given user are not carried over. The given user's id is set to the
        new id.

        Args:
            user: User to register (a new one is created if omitted)

        Returns:
            The new user id
        """
        with self._lock:
            user_id = User.generate_id()
            record = User(id=user_id)
            self._users[user_id] = record
            if user is not None:
                user.id = user_id

            log_action(
                self.logger, "info", "User registered",
                user_id=user_id, action="register_user", resource=f"user:{user_id}"
            )
            return user_id

    def get_user(self, user_id: UserId) -> Optional[User]:
        """Get a copy of a user, or None if not registered"""
        with self._lock:
            user = self._users.get(user_id)
            return copy.deepcopy(user) if user is not None else None

    def get_user_accounts(self, user_id: UserId) -> List[Account]:
        """
        Get copies of every account a user owns

        Raises:
            UserNotFoundError: If the user is not registered
        """
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                raise self._reject("get_user_accounts", UserNotFoundError(user_id), f"user:{user_id}")
            return [copy.deepcopy(self._accounts[account_id]) for account_id in sorted(user.accounts)]

    # Accounts

    def create_account(self, owner_id: UserId, category: AccountCategory) -> AccountId:
        """
        Open a zero-balance account for a registered user

        Args:
            owner_id: Id of the owning user
            category: Account category

        Returns:
            The new account id

        Raises:
            UserNotFoundError: If the owner is not registered
        """
        with self._lock:
            user = self._users.get(owner_id)
            if user is None:
                raise self._reject("create_account", UserNotFoundError(owner_id), f"user:{owner_id}")

            account_id = Account.generate_id()
            account = Account(id=account_id, owner=owner_id, category=AccountCategory(category))

            # Insert and ownership update happen together under the lock
            self._accounts[account_id] = account
            user.add_account(account_id)

            log_action(
                self.logger, "info", f"Account created: {account.category.value}",
                user_id=owner_id, action="create_account", resource=f"account:{account_id}",
                extra={"category": account.category.value}
            )
            snapshot = repr(account)

        self._notify(SubscribeEvent.CREATE_ACCOUNT, snapshot)
        return account_id

    def get_account(self, account_id: AccountId) -> Optional[Account]:
        """Get a copy of an account, or None if it does not exist"""
        with self._lock:
            account = self._accounts.get(account_id)
            return copy.deepcopy(account) if account is not None else None

    def reward_account(self, account_id: AccountId, amount: int) -> None:
        """
        Credit an account

        Raises:
            AccountNotFoundError: If the account does not exist
            BalanceOverflowError: If the balance would exceed the maximum
            InvalidAmountError: If amount is not a valid unsigned amount
        """
        with self._lock:
            account = self._require_account("reward_account", account_id)
            try:
                account.increase_balance(amount)
            except BankError as e:
                raise self._reject("reward_account", e, f"account:{account_id}")

            log_action(
                self.logger, "info", "Account rewarded",
                user_id=account.owner, action="reward_account", resource=f"account:{account_id}",
                extra={"amount": amount, "balance": account.balance}
            )

    def change_account_type(self, account_id: AccountId, new_category: AccountCategory) -> None:
        """
        Set an account's category; any category may follow any other

        Raises:
            AccountNotFoundError: If the account does not exist
        """
        with self._lock:
            account = self._require_account("change_account_type", account_id)
            new_category = AccountCategory(new_category)
            old_category = account.category
            account.category = new_category

            log_action(
                self.logger, "info", "Account category changed",
                user_id=account.owner, action="change_account_type", resource=f"account:{account_id}",
                extra={"old_category": old_category.value, "new_category": new_category.value}
            )

    # Cards

    def create_card(self, account_id: AccountId) -> CardId:
        """
        Issue a card on an account

        Returns:
            The new card id

        Raises:
            AccountNotFoundError: If the account does not exist
        """
        with self._lock:
            account = self._require_account("create_card", account_id)
            card_id = Card.generate_id()
            self._cards[card_id] = Card(id=card_id)
            account.register_card(card_id)

            log_action(
                self.logger, "info", "Card created",
                user_id=account.owner, action="create_card", resource=f"card:{card_id}",
                extra={"account_id": account_id}
            )
            return card_id

    def get_card(self, card_id: CardId) -> Optional[Card]:
        """Get a copy of a card, or None if it does not exist"""
        with self._lock:
            card = self._cards.get(card_id)
            return copy.deepcopy(card) if card is not None else None

    # Money movement

    def transfer_money(self, from_account_id: AccountId, to_account_id: AccountId, amount: int) -> None:
        """
        Move money between two accounts

        Both accounts and both balance preconditions are checked before
        anything is mutated. Should the credit still fail, the debit is
        reversed before the error propagates, so the total balance held by
        the ledger is the same whether the transfer succeeds or not.

        Args:
            from_account_id: Account to debit
            to_account_id: Account to credit
            amount: Amount to move

        Raises:
            AccountNotFoundError: If either account does not exist
            LowBalanceError: If the source balance is below amount
            BalanceOverflowError: If the destination balance would overflow
            InvalidAmountError: If amount is not a valid unsigned amount
        """
        with self._lock:
            resource = f"transfer:{from_account_id}->{to_account_id}"
            from_account = self._require_account("transfer_money", from_account_id)
            to_account = self._require_account("transfer_money", to_account_id)

            try:
                validate_amount(amount)
                if not from_account.can_decrease(amount):
                    raise LowBalanceError(from_account.balance, amount)
                # A self-transfer nets to zero and cannot overflow
                if to_account is not from_account and not to_account.can_increase(amount):
                    raise BalanceOverflowError(to_account.balance, amount)
            except BankError as e:
                raise self._reject("transfer_money", e, resource)

            from_account.decrease_balance(amount)
            try:
                to_account.increase_balance(amount)
            except Exception:
                from_account.increase_balance(amount)
                self.logger.error(f"Transfer credit failed, debit of {amount} on {from_account_id} reversed")
                raise

            log_action(
                self.logger, "info", "Money transferred",
                user_id=from_account.owner, action="transfer_money", resource=resource,
                extra={
                    "from_account": from_account_id,
                    "to_account": to_account_id,
                    "amount": amount
                }
            )

    def total_balance(self) -> int:
        """Sum of every account balance held by the ledger"""
        with self._lock:
            return sum(account.balance for account in self._accounts.values())

    # Snapshots

    def to_dict(self) -> Dict[str, Any]:
        """Serialize accounts, users and cards (never the event sink)"""
        with self._lock:
            return {
                self.ACCOUNTS_TABLE: {
                    account_id: account.to_dict() for account_id, account in self._accounts.items()
                },
                self.USERS_TABLE: {
                    user_id: user.to_dict() for user_id, user in self._users.items()
                },
                self.CARDS_TABLE: {
                    card_id: card.to_dict() for card_id, card in self._cards.items()
                },
            }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], event_sink: Optional[EventSink] = None) -> 'Bank':
        """
        Rebuild a bank from a snapshot

        Raises:
            ValueError: If the snapshot breaks a ledger invariant
        """
        bank = cls(event_sink=event_sink)
        for account_id, record in data.get(cls.ACCOUNTS_TABLE, {}).items():
            bank._accounts[AccountId(account_id)] = Account.from_dict(record)
        for user_id, record in data.get(cls.USERS_TABLE, {}).items():
            bank._users[UserId(user_id)] = User.from_dict(record)
        for card_id, record in data.get(cls.CARDS_TABLE, {}).items():
            bank._cards[CardId(card_id)] = Card.from_dict(record)

        bank._check_consistency()
        return bank

    def _check_consistency(self) -> None:
        """Verify the cross-entity invariants of a restored snapshot"""
        for table in (self._accounts, self._users, self._cards):
            for key, record in table.items():
                if record.id != key:
                    raise ValueError(f"Snapshot record {record.id} stored under key {key}")

        for user_id, user in self._users.items():
            for account_id in user.accounts:
                account = self._accounts.get(account_id)
                if account is None:
                    raise ValueError(f"User {user_id} references missing account {account_id}")
                if account.owner != user_id:
                    raise ValueError(f"Account {account_id} is not owned by user {user_id}")

        card_owners: Dict[CardId, AccountId] = {}
        for account_id, account in self._accounts.items():
            owner = self._users.get(account.owner)
            if owner is None or not owner.owns(account_id):
                raise ValueError(f"Account {account_id} is missing from its owner's accounts")
            for card_id in account.cards:
                if card_id not in self._cards:
                    raise ValueError(f"Account {account_id} references missing card {card_id}")
                if card_id in card_owners:
                    raise ValueError(
                        f"Card {card_id} is attached to both {card_owners[card_id]} and {account_id}"
                    )
                card_owners[card_id] = account_id

        for card_id in self._cards:
            if card_id not in card_owners:
                raise ValueError(f"Card {card_id} is not attached to any account")

    def save(self, storage: StorageInterface) -> None:
        """Write a full snapshot to storage, replacing any previous one"""
        snapshot = self.to_dict()
        with storage.atomic():
            for table, records in snapshot.items():
                storage.clear_table(table)
                for record_id, record in records.items():
                    storage.save(table, record_id, record)

        log_action(
            self.logger, "info", "Ledger snapshot saved", action="save_snapshot",
            extra={table: len(records) for table, records in snapshot.items()}
        )

    @classmethod
    def load(cls, storage: StorageInterface, event_sink: Optional[EventSink] = None) -> 'Bank':
        """Rebuild a bank from the snapshot held in storage"""
        snapshot = {
            table: {record["id"]: record for record in storage.load_all(table)}
            for table in (cls.ACCOUNTS_TABLE, cls.USERS_TABLE, cls.CARDS_TABLE)
        }
        bank = cls.from_dict(snapshot, event_sink=event_sink)

        log_action(
            bank.logger, "info", "Ledger snapshot loaded", action="load_snapshot",
            extra={table: len(records) for table, records in snapshot.items()}
        )
        return bank
