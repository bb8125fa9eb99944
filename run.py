#!/usr/bin/env python3
"""
Bank Ledger Demo Entry Point

Assembles a ledger from LEDGER_* configuration, runs a short scenario and
saves the resulting snapshot to the configured database.
"""

import sys

from bank_ledger.accounts import AccountCategory
from bank_ledger.bootstrap import create_bank
from bank_ledger.errors import BankError
from bank_ledger.events import SubscribeEvent


def main() -> int:
    bank, storage = create_bank()
    bank.events.subscribe(SubscribeEvent.CREATE_ACCOUNT, lambda payload: print(f"📣 {payload}"))

    try:
        user_id = bank.register_user()
        checking = bank.create_account(user_id, AccountCategory.CHECKING)
        savings = bank.create_account(user_id, AccountCategory.SAVINGS)

        bank.reward_account(checking, 100)
        bank.transfer_money(checking, savings, 40)
        bank.create_card(checking)

        try:
            bank.transfer_money(checking, savings, 1000)
        except BankError as e:
            print(f"❌ {e}")

        for account in bank.get_user_accounts(user_id):
            print(f"💰 {account.category.value}: {account.balance} ({len(account.cards)} card(s))")
        print(f"🏦 Total held by ledger: {bank.total_balance()}")

        bank.save(storage)
    finally:
        storage.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
