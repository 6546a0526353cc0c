"""
Ledger Service

The single entry point for ledger mutations. Each operation applies the
change locally first (optimistic), then hands the same change to the
reconciler to mirror remotely. The local result never waits for, or
depends on, the remote outcome.
"""

from decimal import Decimal
from typing import Any, Iterable, Optional

from finbot.logger import get_logger
from finbot.models.transaction import SyncAction, Transaction, UserSettings
from finbot.ledger import aggregator
from finbot.ledger.reconciler import Reconciler
from finbot.ledger.store import LedgerSnapshot, LedgerStore


logger = get_logger(__name__)


class LedgerService:
    """Local-first CRUD over the ledger with remote mirroring."""
    
    def __init__(self, store: LedgerStore, reconciler: Reconciler):
        self._store = store
        self._reconciler = reconciler
    
    @property
    def store(self) -> LedgerStore:
        return self._store
    
    @property
    def reconciler(self) -> Reconciler:
        return self._reconciler
    
    @property
    def settings(self) -> UserSettings:
        return self._store.settings
    
    @property
    def transactions(self) -> list[Transaction]:
        return self._store.transactions
    
    async def start(self) -> LedgerSnapshot:
        """Load local state, then pull from the remote if one is configured."""
        snapshot = self._store.load()
        if await self._reconciler.pull(snapshot.settings):
            snapshot.transactions = self._store.transactions
        return snapshot
    
    def add_transactions(self, items: Transaction | Iterable[Transaction]) -> list[Transaction]:
        added = self._store.add(items)
        if added:
            logger.info("transactions_added", count=len(added))
            self._reconciler.push(self.settings, SyncAction.ADD, added)
        return added
    
    def edit_transaction(self, updated: Transaction) -> bool:
        if not self._store.replace(updated):
            logger.warning("edit_unknown_transaction", transaction_id=updated.id)
            return False
        self._reconciler.push(self.settings, SyncAction.UPDATE, updated)
        return True
    
    def delete_transaction(self, transaction_id: Any) -> Optional[Transaction]:
        """Remove locally, then mirror the removal. Returns the removed item."""
        removed = self._store.remove(transaction_id)
        if removed is None:
            logger.warning("delete_unknown_transaction", transaction_id=str(transaction_id))
            return None
        self._reconciler.push(self.settings, SyncAction.DELETE, removed)
        return removed
    
    async def update_settings(self, settings: UserSettings) -> UserSettings:
        """Save settings; a new non-empty endpoint triggers a pull."""
        previous_url = self._store.settings.app_script_url
        self._store.update_settings(settings)
        if settings.app_script_url and settings.app_script_url != previous_url:
            await self._reconciler.pull(settings)
        return settings
    
    def correct_balance(self, target: Decimal) -> UserSettings:
        """Re-derive the initial balance so the current balance equals target."""
        corrected = aggregator.correct_balance(
            self._store.settings,
            self._store.transactions,
            target,
        )
        logger.info("balance_corrected", initial_balance=str(corrected.initial_balance))
        return self._store.update_settings(corrected)
    
    async def sync(self) -> bool:
        return await self._reconciler.pull(self.settings)
