"""
Event Sink Module

The ledger notifies an injected event sink on state-changing operations.
Publisher is the default sink: an observer-pattern registry of listeners per
event kind. Delivery is synchronous and fire-and-forget; a failing listener
is logged and never breaks the operation that triggered it.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Dict, List, Optional
import logging
from threading import RLock


class SubscribeEvent(Enum):
    """Event kinds emitted by the ledger"""
    CREATE_ACCOUNT = "account.created"


Listener = Callable[[str], None]


class EventSink(ABC):
    """Collaborator notified of ledger state changes"""

    @abstractmethod
    def notify(self, event_kind: SubscribeEvent, payload: str) -> None:
        """Deliver an event; must not raise into the ledger"""
        pass


class Publisher(EventSink):
    """Listener registry keyed by event kind"""

    def __init__(self):
        self._listeners: Dict[SubscribeEvent, List[Listener]] = {}
        self._lock = RLock()
        self.logger = logging.getLogger("bank_ledger.events")

    def subscribe(self, event_kind: SubscribeEvent, listener: Listener) -> None:
        """Subscribe a listener to an event kind"""
        with self._lock:
            self._listeners.setdefault(event_kind, []).append(listener)
            self.logger.debug(f"Subscribed listener {getattr(listener, '__name__', repr(listener))} to {event_kind.value}")

    def unsubscribe(self, event_kind: SubscribeEvent, listener: Listener) -> None:
        """Unsubscribe a listener from an event kind"""
        with self._lock:
            try:
                self._listeners.get(event_kind, []).remove(listener)
                self.logger.debug(f"Unsubscribed listener {getattr(listener, '__name__', repr(listener))} from {event_kind.value}")
            except ValueError:
                self.logger.warning(f"Listener {getattr(listener, '__name__', repr(listener))} was not subscribed to {event_kind.value}")

    def notify(self, event_kind: SubscribeEvent, payload: str) -> None:
        """Deliver payload to every listener of event_kind"""
        with self._lock:
            listeners = list(self._listeners.get(event_kind, []))

        self.logger.debug(f"Publishing event {event_kind.value} to {len(listeners)} listener(s)")
        for listener in listeners:
            try:
                listener(payload)
            except Exception as e:
                # Log but don't break the main operation
                self.logger.error(f"Error in listener {getattr(listener, '__name__', repr(listener))} for {event_kind.value}: {e}")

    def listener_count(self, event_kind: Optional[SubscribeEvent] = None) -> int:
        """Count listeners for one event kind, or all of them"""
        with self._lock:
            if event_kind:
                return len(self._listeners.get(event_kind, []))
            return sum(len(listeners) for listeners in self._listeners.values())
