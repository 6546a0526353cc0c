"""Services package."""

from finbot.services.storage import (
    AppsScriptRemote,
    ConnectionError,
    FileKeyValueStore,
    GoogleSheetsClient,
    GoogleSheetsRemote,
    InMemoryKeyValueStore,
    KeyValueStoreInterface,
    MalformedPayloadError,
    PersistenceError,
    RemoteLedgerInterface,
    RemoteSyncError,
    StorageError,
)

__all__ = [
    "AppsScriptRemote",
    "ConnectionError",
    "FileKeyValueStore",
    "GoogleSheetsClient",
    "GoogleSheetsRemote",
    "InMemoryKeyValueStore",
    "KeyValueStoreInterface",
    "MalformedPayloadError",
    "PersistenceError",
    "RemoteLedgerInterface",
    "RemoteSyncError",
    "StorageError",
]
