"""
Tests for the reconciler and the ledger service.

Covers pull (full replace, no-op on failure, stale pull discard) and
push (fire-and-forget, never rolled back).
"""

import asyncio
import json
from decimal import Decimal

import httpx
import pytest

from finbot.ledger import LedgerService, LedgerStore, Reconciler
from finbot.ledger.store import TRANSACTIONS_KEY
from finbot.models import SyncAction, ThemeColor, TransactionType, UserSettings
from finbot.services.storage import (
    AppsScriptRemote,
    InMemoryKeyValueStore,
    MalformedPayloadError,
    RemoteSyncError,
)

from conftest import SYNC_URL, FakeRemote, make_tx


class SlowRemote(FakeRemote):
    """Remote whose fetch waits until released."""
    
    def __init__(self, transactions):
        super().__init__(transactions)
        self.release = asyncio.Event()
    
    async def fetch_transactions(self):
        await self.release.wait()
        return await super().fetch_transactions()


class TestPull:
    """Tests for Reconciler.pull()."""
    
    @pytest.mark.asyncio
    async def test_pull_replaces_local_list(self, store, remote, reconciler, sync_settings):
        """Test that a successful pull fully replaces local transactions."""
        store.add([make_tx(1), make_tx(2)])
        remote.transactions = [make_tx(3)]
        
        assert await reconciler.pull(sync_settings)
        assert [t.amount for t in store.transactions] == [Decimal(3)]
    
    @pytest.mark.asyncio
    async def test_pull_without_endpoint_is_noop(self, store, remote, reconciler):
        """Test that no endpoint means no fetch and no change."""
        store.add(make_tx(1))
        assert not await reconciler.pull(UserSettings())
        assert remote.fetches == 0
        assert len(store.transactions) == 1
    
    @pytest.mark.asyncio
    async def test_failed_pull_leaves_local_state(self, store, remote, reconciler, sync_settings):
        """Test that a remote error is a no-op reported as False."""
        store.add(make_tx(1))
        remote.error = RemoteSyncError("boom")
        
        assert not await reconciler.pull(sync_settings)
        assert [t.amount for t in store.transactions] == [Decimal(1)]
    
    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self, store, remote, reconciler, sync_settings):
        """Test that even a non-storage exception does not escape a pull."""
        remote.error = RuntimeError("bug in backend")
        assert not await reconciler.pull(sync_settings)
    
    @pytest.mark.asyncio
    async def test_malformed_json_leaves_local_state(self, sync_settings):
        """Test a pull against an endpoint that answers with HTML."""
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, text="<html>Sign in</html>")
        )
        store = LedgerStore(InMemoryKeyValueStore())
        store.add(make_tx(1))
        reconciler = Reconciler(
            store,
            lambda url: AppsScriptRemote(url, transport=transport, retry_backoff=0),
        )
        
        assert not await reconciler.pull(sync_settings)
        assert len(store.transactions) == 1
    
    @pytest.mark.asyncio
    async def test_stale_pull_is_discarded(self, store, sync_settings):
        """Test that a slow older pull cannot clobber a newer one."""
        slow = SlowRemote([make_tx(1)])
        fast = FakeRemote([make_tx(2), make_tx(3)])
        remotes = iter([slow, fast])
        reconciler = Reconciler(store, lambda url: next(remotes))
        
        first = asyncio.create_task(reconciler.pull(sync_settings))
        await asyncio.sleep(0)
        
        assert await reconciler.pull(sync_settings)
        slow.release.set()
        assert not await first
        assert [t.amount for t in store.transactions] == [Decimal(2), Decimal(3)]
    
    @pytest.mark.asyncio
    async def test_factory_failure_is_contained(self, store, sync_settings):
        """Test that an unbuildable remote reads as sync unavailable."""
        def factory(url):
            raise ValueError("bad url")
        
        reconciler = Reconciler(store, factory)
        assert reconciler.remote_for(sync_settings) is None
        assert not await reconciler.pull(sync_settings)


class TestPush:
    """Tests for fire-and-forget pushes through the ledger service."""
    
    @pytest.mark.asyncio
    async def test_add_edit_delete_are_mirrored(self, store, remote, service, sync_settings):
        """Test one push per mutation with the right action tag."""
        store.update_settings(sync_settings)
        tx = make_tx(1000)
        
        service.add_transactions(tx)
        updated = tx.model_copy(update={"amount": Decimal(2000)})
        assert service.edit_transaction(updated)
        removed = service.delete_transaction(tx.id)
        await service.reconciler.drain()
        
        assert removed.amount == Decimal(2000)
        actions = sorted(action.value for action, _ in remote.pushes)
        assert actions == ["ADD", "DELETE", "UPDATE"]
        assert {t.id for _, t in remote.pushes} == {tx.id}
        assert store.transactions == []
    
    @pytest.mark.asyncio
    async def test_batch_add_pushes_each_item(self, store, remote, service, sync_settings):
        """Test a batch add sends one ADD per transaction."""
        store.update_settings(sync_settings)
        service.add_transactions([make_tx(1), make_tx(2), make_tx(3)])
        await service.reconciler.drain()
        assert [a for a, _ in remote.pushes] == [SyncAction.ADD] * 3
    
    @pytest.mark.asyncio
    async def test_push_failure_keeps_local_change(self, store, remote, service, sync_settings):
        """Test a failing push is logged, not retried, not rolled back."""
        store.update_settings(sync_settings)
        remote.error = RemoteSyncError("offline")
        
        service.add_transactions(make_tx(1000))
        await service.reconciler.drain()
        
        assert len(store.transactions) == 1
        assert len(remote.pushes) == 1
    
    @pytest.mark.asyncio
    async def test_rejected_push_reports_false(self, reconciler, remote):
        """Test push_now reports a non-success answer."""
        remote.accept = False
        assert not await reconciler.push_now(remote, SyncAction.ADD, make_tx(1))
    
    def test_mutation_outside_event_loop_keeps_local_change(self, store, remote, service, sync_settings):
        """Test that with sync on but no running loop the mutation still succeeds."""
        store.update_settings(sync_settings)
        tx = make_tx(1000)
        
        assert service.add_transactions(tx) == [tx]
        assert service.edit_transaction(tx.model_copy(update={"amount": Decimal(2000)}))
        assert [t.amount for t in store.transactions] == [Decimal(2000)]
        assert service.delete_transaction(tx.id) is not None
        assert store.transactions == []
        assert remote.pushes == []
        assert service.reconciler.push(sync_settings, SyncAction.ADD, tx) == []
    
    def test_no_push_without_endpoint(self, remote, service):
        """Test that local mutations work with sync switched off."""
        service.add_transactions(make_tx(1))
        assert service.delete_transaction(service.transactions[0].id) is not None
        assert remote.pushes == []
    
    def test_unknown_ids(self, service):
        """Test edits and deletes of missing ids change nothing."""
        assert not service.edit_transaction(make_tx(1))
        assert service.delete_transaction("missing") is None


class TestService:
    """Tests for start-up, settings changes and balance correction."""
    
    @pytest.mark.asyncio
    async def test_start_loads_then_pulls(self, kv, remote, sync_settings):
        """Test that start() reads local data and then syncs."""
        kv.set("finbot_settings", json.dumps(sync_settings.to_payload()))
        kv.set(TRANSACTIONS_KEY, json.dumps([make_tx(1).to_payload()]))
        remote.transactions = [make_tx(5), make_tx(6)]
        
        store = LedgerStore(kv)
        service = LedgerService(store, Reconciler(store, lambda url: remote))
        snapshot = await service.start()
        
        assert remote.fetches == 1
        assert [t.amount for t in snapshot.transactions] == [Decimal(5), Decimal(6)]
    
    @pytest.mark.asyncio
    async def test_start_offline_keeps_local(self, kv, remote, sync_settings):
        """Test that a failing start-up pull leaves the local ledger."""
        kv.set("finbot_settings", json.dumps(sync_settings.to_payload()))
        kv.set(TRANSACTIONS_KEY, json.dumps([make_tx(1).to_payload()]))
        remote.error = RemoteSyncError("offline")
        
        store = LedgerStore(kv)
        snapshot = await LedgerService(store, Reconciler(store, lambda url: remote)).start()
        assert len(snapshot.transactions) == 1
    
    @pytest.mark.asyncio
    async def test_new_endpoint_triggers_pull(self, remote, service, sync_settings):
        """Test that changing the endpoint syncs, saving it again does not."""
        remote.transactions = [make_tx(9)]
        await service.update_settings(sync_settings)
        assert remote.fetches == 1
        
        await service.update_settings(sync_settings.model_copy(update={"theme_color": ThemeColor.RED}))
        assert remote.fetches == 1
        assert service.settings.theme_color == ThemeColor.RED
    
    def test_correct_balance_persists(self, kv, service):
        """Test that correction is saved and yields the target balance."""
        from finbot.ledger import aggregator
        
        service.add_transactions([
            make_tx(1_000_000, type=TransactionType.INCOME),
            make_tx(300_000),
        ])
        service.correct_balance(Decimal(2_000_000))
        
        assert aggregator.balance(service.settings, service.transactions) == Decimal(2_000_000)
        assert json.loads(kv.data["finbot_settings"])["initialBalance"] == 1_300_000
    
    @pytest.mark.asyncio
    async def test_notify_requires_chat_id(self, reconciler, remote):
        """Test that remote reminders need both endpoint and chat id."""
        assert not await reconciler.notify(UserSettings(app_script_url=SYNC_URL), "hi")
        assert remote.notifications == []
        
        assert await reconciler.notify(
            UserSettings(app_script_url=SYNC_URL, telegram_chat_id="42"),
            "hi",
        )
        assert remote.notifications == [("42", "hi")]


def test_malformed_payload_is_a_sync_error():
    """Test the storage exception hierarchy."""
    assert issubclass(MalformedPayloadError, RemoteSyncError)
