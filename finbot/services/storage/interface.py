"""
Abstract Storage Interfaces

DESIGN DECISION: FinBot talks to two kinds of storage:
1. A local key-value store holding the ledger, chat log and settings
2. A remote ledger mirror (spreadsheet web app, or the sheet itself)

Both are defined as abstract interfaces so that:
1. The remote backend can be swapped (web-app endpoint vs direct Sheets)
2. In-memory implementations can be used for testing
3. The ledger core never imports a transport library
"""

from abc import ABC, abstractmethod
from typing import Optional

from finbot.models.transaction import SyncAction, Transaction


class KeyValueStoreInterface(ABC):
    """
    Minimal text key-value store.
    
    Values are opaque text (JSON in practice). A missing key is
    reported as None, never as an error.
    """
    
    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read the text stored under a key.
        
        Returns:
            The stored text, or None if the key is absent
            
        Raises:
            PersistenceError: If the backend cannot be read
        """
        pass
    
    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Store text under a key, replacing any previous value.
        
        Raises:
            PersistenceError: If the write fails
        """
        pass


class RemoteLedgerInterface(ABC):
    """
    Abstract interface for the remote ledger mirror.
    
    The remote side treats every push as an idempotent upsert/removal
    keyed by transaction id. There is no ordering or version token.
    """
    
    @abstractmethod
    async def fetch_transactions(self) -> list[Transaction]:
        """
        Fetch the complete remote transaction list.
        
        Malformed individual records are dropped; a malformed
        response as a whole is an error.
        
        Returns:
            Every well-formed remote transaction
            
        Raises:
            RemoteSyncError: Network error or non-success status
            MalformedPayloadError: Response body is not the expected shape
        """
        pass
    
    @abstractmethod
    async def push(self, action: SyncAction, transaction: Transaction) -> bool:
        """
        Mirror one local mutation to the remote store.
        
        Args:
            action: ADD, UPDATE or DELETE
            transaction: The transaction affected, keyed by id
            
        Returns:
            True if the remote side accepted the request
            
        Raises:
            RemoteSyncError: If the request could not be delivered
        """
        pass
    
    @abstractmethod
    async def notify(self, chat_id: str, message: str) -> bool:
        """
        Ask the remote side to forward a reminder message.
        
        Returns:
            True if the remote side accepted the request
            
        Raises:
            RemoteSyncError: If the request could not be delivered
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class PersistenceError(StorageError):
    """Local key-value store read/write failed."""
    pass


class RemoteSyncError(StorageError):
    """Remote store could not be reached or refused the request."""
    pass


class MalformedPayloadError(RemoteSyncError):
    """Remote store answered with something that is not a ledger."""
    pass


class ConnectionError(RemoteSyncError):
    """Could not connect to the storage backend."""
    pass
