"""
Tests for the event sink (Observer Pattern)

Tests the Publisher and its integration with the ledger.
"""

import pytest
from unittest.mock import Mock

from bank_ledger.accounts import AccountCategory
from bank_ledger.bank import Bank
from bank_ledger.events import EventSink, Publisher, SubscribeEvent


class TestPublisher:
    """Test the default event sink"""

    def test_subscribe_and_notify(self):
        publisher = Publisher()
        listener = Mock()

        publisher.subscribe(SubscribeEvent.CREATE_ACCOUNT, listener)
        publisher.notify(SubscribeEvent.CREATE_ACCOUNT, "payload")

        listener.assert_called_once_with("payload")

    def test_notify_without_listeners(self):
        publisher = Publisher()

        publisher.notify(SubscribeEvent.CREATE_ACCOUNT, "payload")

        assert publisher.listener_count() == 0

    def test_unsubscribe(self):
        publisher = Publisher()
        listener = Mock()

        publisher.subscribe(SubscribeEvent.CREATE_ACCOUNT, listener)
        publisher.unsubscribe(SubscribeEvent.CREATE_ACCOUNT, listener)
        publisher.notify(SubscribeEvent.CREATE_ACCOUNT, "payload")

        listener.assert_not_called()
        assert publisher.listener_count(SubscribeEvent.CREATE_ACCOUNT) == 0

    def test_unsubscribe_unknown_listener_is_harmless(self):
        publisher = Publisher()

        publisher.unsubscribe(SubscribeEvent.CREATE_ACCOUNT, Mock())

    def test_failing_listener_does_not_stop_others(self):
        publisher = Publisher()
        failing = Mock(side_effect=RuntimeError("boom"))
        working = Mock()

        publisher.subscribe(SubscribeEvent.CREATE_ACCOUNT, failing)
        publisher.subscribe(SubscribeEvent.CREATE_ACCOUNT, working)
        publisher.notify(SubscribeEvent.CREATE_ACCOUNT, "payload")

        failing.assert_called_once_with("payload")
        working.assert_called_once_with("payload")

    def test_listener_count(self):
        publisher = Publisher()
        publisher.subscribe(SubscribeEvent.CREATE_ACCOUNT, Mock())
        publisher.subscribe(SubscribeEvent.CREATE_ACCOUNT, Mock())

        assert publisher.listener_count(SubscribeEvent.CREATE_ACCOUNT) == 2
        assert publisher.listener_count() == 2

    def test_event_sink_is_abstract(self):
        with pytest.raises(TypeError):
            EventSink()


class TestLedgerEvents:
    """Test events emitted by the bank"""

    def test_create_account_emits_snapshot(self):
        bank = Bank()
        listener = Mock()
        bank.events.subscribe(SubscribeEvent.CREATE_ACCOUNT, listener)

        user_id = bank.register_user()
        account_id = bank.create_account(user_id, AccountCategory.SAVINGS)

        listener.assert_called_once()
        payload = listener.call_args[0][0]
        assert isinstance(payload, str)
        assert account_id in payload
        assert user_id in payload
        assert "SAVINGS" in payload

    def test_injected_sink_receives_notify(self):
        sink = Mock(spec=EventSink)
        bank = Bank(event_sink=sink)

        user_id = bank.register_user()
        bank.create_account(user_id, AccountCategory.CHECKING)

        sink.notify.assert_called_once()
        event_kind, payload = sink.notify.call_args[0]
        assert event_kind == SubscribeEvent.CREATE_ACCOUNT
        assert "Account(" in payload

    def test_failing_sink_does_not_fail_create_account(self):
        sink = Mock(spec=EventSink)
        sink.notify.side_effect = RuntimeError("sink down")
        bank = Bank(event_sink=sink)

        user_id = bank.register_user()
        account_id = bank.create_account(user_id, AccountCategory.CHECKING)

        assert bank.get_account(account_id) is not None
        assert account_id in bank.get_user(user_id).accounts

    def test_failed_create_account_emits_nothing(self):
        sink = Mock(spec=EventSink)
        bank = Bank(event_sink=sink)

        with pytest.raises(ValueError):
            bank.create_account("missing-user", AccountCategory.CHECKING)

        sink.notify.assert_not_called()

    def test_other_operations_emit_nothing(self):
        sink = Mock(spec=EventSink)
        bank = Bank(event_sink=sink)
        user_id = bank.register_user()
        first = bank.create_account(user_id, AccountCategory.CHECKING)
        second = bank.create_account(user_id, AccountCategory.CHECKING)
        sink.reset_mock()

        bank.reward_account(first, 10)
        bank.transfer_money(first, second, 5)
        bank.create_card(first)
        bank.change_account_type(first, AccountCategory.BUSINESS)

        sink.notify.assert_not_called()
