"""
Ledger Reconciler

Keeps the local ledger and the remote mirror approximately consistent,
favoring local availability over remote consistency.

PULL: the remote list fully replaces the local list (last pull wins at
list granularity, no field merge). A failed pull changes nothing.

PUSH: each local mutation is mirrored as one fire-and-forget request
(ADD / UPDATE / DELETE keyed by id). Failures are logged, never retried,
never rolled back. Pushes race each other; there is no ordering guarantee.

STALE PULLS: every pull takes a generation number when it starts. A pull
that completes after a newer one was started is discarded, so a slow
stale pull can never clobber a fresher one.
"""

import asyncio
from typing import Callable, Iterable, Optional

from finbot.logger import get_logger
from finbot.models.transaction import SyncAction, Transaction, UserSettings
from finbot.ledger.store import LedgerStore
from finbot.services.storage import RemoteLedgerInterface


logger = get_logger(__name__)

RemoteFactory = Callable[[str], RemoteLedgerInterface]


class Reconciler:
    """
    Stateless sync pass between a LedgerStore and a remote ledger.
    
    The only state held is the pull generation counter and the set of
    in-flight push tasks; neither is persisted.
    """
    
    def __init__(self, store: LedgerStore, remote_factory: RemoteFactory):
        """
        Args:
            store: The local ledger
            remote_factory: Builds a remote client from the endpoint
                            reference held in the user's settings
        """
        self._store = store
        self._remote_factory = remote_factory
        self._pull_generation = 0
        self._inflight: set[asyncio.Task] = set()
    
    def remote_for(self, settings: UserSettings) -> Optional[RemoteLedgerInterface]:
        """Remote client for the configured endpoint, or None if sync is off."""
        if not settings.app_script_url:
            return None
        try:
            return self._remote_factory(settings.app_script_url)
        except Exception as e:
            logger.error("remote_unavailable", error=str(e))
            return None
    
    # -------------------------------------------------------------------------
    # Pull
    # -------------------------------------------------------------------------
    
    async def pull(self, settings: UserSettings) -> bool:
        """
        Replace the local list with the remote one.
        
        Returns:
            True if the local list was replaced; False on any failure,
            when sync is not configured, or when a newer pull superseded
            this one.
        """
        remote = self.remote_for(settings)
        if remote is None:
            return False
        
        self._pull_generation += 1
        generation = self._pull_generation
        
        try:
            transactions = await remote.fetch_transactions()
        except Exception as e:
            logger.error("pull_failed", generation=generation, error=str(e))
            return False
        
        if generation != self._pull_generation:
            logger.info(
                "pull_superseded",
                generation=generation,
                latest=self._pull_generation,
            )
            return False
        
        self._store.replace_all(transactions)
        logger.info("pull_applied", generation=generation, transactions=len(transactions))
        return True
    
    async def test_connection(self, settings: UserSettings) -> bool:
        """Explicit connection check; a successful test also syncs."""
        return await self.pull(settings)
    
    # -------------------------------------------------------------------------
    # Push
    # -------------------------------------------------------------------------
    
    async def push_now(
        self,
        remote: RemoteLedgerInterface,
        action: SyncAction,
        transaction: Transaction,
    ) -> bool:
        """Deliver one push and report the outcome. Never raises."""
        try:
            accepted = await remote.push(action, transaction)
        except Exception as e:
            logger.error(
                "push_failed",
                action=action.value,
                transaction_id=transaction.id,
                error=str(e),
            )
            return False
        
        if not accepted:
            logger.warning(
                "push_rejected",
                action=action.value,
                transaction_id=transaction.id,
            )
        return accepted
    
    def push(
        self,
        settings: UserSettings,
        action: SyncAction,
        transactions: Transaction | Iterable[Transaction],
    ) -> list[asyncio.Task]:
        """
        Schedule one fire-and-forget push per transaction.
        
        Returns the scheduled tasks. Nothing is scheduled when sync is off
        or when there is no running event loop; the local change stands
        without being mirrored.
        """
        remote = self.remote_for(settings)
        if remote is None:
            return []
        
        items = [transactions] if isinstance(transactions, Transaction) else list(transactions)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                "push_skipped",
                action=action.value,
                count=len(items),
                reason="no running event loop",
            )
            return []
        
        tasks = []
        for transaction in items:
            task = loop.create_task(
                self.push_now(remote, action, transaction)
            )
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
            tasks.append(task)
        return tasks
    
    async def drain(self) -> None:
        """Wait for every in-flight push to finish."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight))
    
    # -------------------------------------------------------------------------
    # Notify
    # -------------------------------------------------------------------------
    
    async def notify(self, settings: UserSettings, message: str) -> bool:
        """Best-effort remote reminder. Never raises."""
        if not settings.telegram_chat_id:
            return False
        remote = self.remote_for(settings)
        if remote is None:
            return False
        try:
            return await remote.notify(settings.telegram_chat_id, message)
        except Exception as e:
            logger.error("notify_failed", error=str(e))
            return False
