"""
Storage Services Package

Provides abstract interfaces and concrete implementations for the local
ledger store and the remote ledger mirror.
"""

from finbot.services.storage.interface import (
    ConnectionError,
    KeyValueStoreInterface,
    MalformedPayloadError,
    PersistenceError,
    RemoteLedgerInterface,
    RemoteSyncError,
    StorageError,
)
from finbot.services.storage.local import FileKeyValueStore, InMemoryKeyValueStore
from finbot.services.storage.records import coerce_remote_record, coerce_remote_records
from finbot.services.storage.apps_script import AppsScriptRemote
from finbot.services.storage.google_sheets import GoogleSheetsClient, GoogleSheetsRemote

__all__ = [
    # Interfaces
    "KeyValueStoreInterface",
    "RemoteLedgerInterface",
    # Exceptions
    "ConnectionError",
    "MalformedPayloadError",
    "PersistenceError",
    "RemoteSyncError",
    "StorageError",
    # Local stores
    "FileKeyValueStore",
    "InMemoryKeyValueStore",
    # Remote backends
    "AppsScriptRemote",
    "GoogleSheetsClient",
    "GoogleSheetsRemote",
    "coerce_remote_record",
    "coerce_remote_records",
]
