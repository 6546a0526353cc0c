"""Ledger core: store, aggregator, reconciler and service."""

from finbot.ledger import aggregator
from finbot.ledger.reconciler import Reconciler, RemoteFactory
from finbot.ledger.service import LedgerService
from finbot.ledger.store import (
    CHAT_HISTORY_KEY,
    SETTINGS_KEY,
    TRANSACTIONS_KEY,
    LedgerSnapshot,
    LedgerStore,
    append_transactions,
    remove_by_id,
    replace_by_id,
    same_id,
)

__all__ = [
    "aggregator",
    "CHAT_HISTORY_KEY",
    "SETTINGS_KEY",
    "TRANSACTIONS_KEY",
    "LedgerService",
    "LedgerSnapshot",
    "LedgerStore",
    "Reconciler",
    "RemoteFactory",
    "append_transactions",
    "remove_by_id",
    "replace_by_id",
    "same_id",
]
