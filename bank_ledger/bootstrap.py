"""
Ledger Assembly

Builds a Bank from configuration: logging, snapshot storage and the event
sink are wired here so the Bank itself never reads global configuration.
"""

from typing import Optional, Tuple

from .bank import Bank
from .config import LedgerConfig, get_config
from .events import EventSink, Publisher
from .logging_config import setup_logging
from .storage import SQLiteStorage, StorageInterface


def create_storage(config: Optional[LedgerConfig] = None) -> StorageInterface:
    """Open the snapshot storage named by the configuration"""
    config = config or get_config()
    return SQLiteStorage(config.database_url)


def create_bank(
    config: Optional[LedgerConfig] = None,
    storage: Optional[StorageInterface] = None,
    event_sink: Optional[EventSink] = None
) -> Tuple[Bank, StorageInterface]:
    """
    Assemble a bank, restoring the last snapshot if storage holds one

    Args:
        config: Configuration (global configuration if omitted)
        storage: Snapshot storage (opened from config.database_url if omitted)
        event_sink: Event sink (a fresh Publisher if omitted)

    Returns:
        Tuple of the bank and the storage it was loaded from
    """
    config = config or get_config()
    setup_logging(config.log_level, "bank_ledger", config.log_format, config.log_file)

    storage = storage if storage is not None else create_storage(config)
    event_sink = event_sink if event_sink is not None else Publisher()

    bank = Bank.load(storage, event_sink=event_sink)
    bank.log_events = config.enable_event_logging
    return bank, storage
