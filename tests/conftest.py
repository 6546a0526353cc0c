"""
Shared fixtures.

No test talks to a real network: the remote ledger and the parser are
in-memory fakes, and local persistence is a dict.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

import pytest

from finbot.agents import TransactionParserInterface
from finbot.ledger import LedgerService, LedgerStore, Reconciler
from finbot.models.intake import ParserResponse
from finbot.models.transaction import (
    SyncAction,
    Transaction,
    TransactionStatus,
    TransactionType,
    UserSettings,
)
from finbot.services.storage import InMemoryKeyValueStore, RemoteLedgerInterface


SYNC_URL = "https://script.example.test/macros/s/abc/exec"


def make_tx(
    amount,
    type=TransactionType.EXPENSE,
    on=date(2024, 1, 15),
    category="Ăn uống",
    status=TransactionStatus.CONFIRMED,
    **kwargs,
) -> Transaction:
    return Transaction(
        amount=Decimal(amount),
        type=type,
        date=on,
        category=category,
        status=status,
        description=kwargs.pop("description", "item"),
        **kwargs,
    )


class FakeRemote(RemoteLedgerInterface):
    """Remote ledger that records every call."""
    
    def __init__(
        self,
        transactions: Optional[list[Transaction]] = None,
        error: Optional[Exception] = None,
    ):
        self.transactions = list(transactions or [])
        self.error = error
        self.accept = True
        self.fetches = 0
        self.pushes: list[tuple[SyncAction, Transaction]] = []
        self.notifications: list[tuple[str, str]] = []
    
    async def fetch_transactions(self) -> list[Transaction]:
        self.fetches += 1
        if self.error:
            raise self.error
        return list(self.transactions)
    
    async def push(self, action: SyncAction, transaction: Transaction) -> bool:
        self.pushes.append((action, transaction))
        if self.error:
            raise self.error
        return self.accept
    
    async def notify(self, chat_id: str, message: str) -> bool:
        self.notifications.append((chat_id, message))
        if self.error:
            raise self.error
        return self.accept


class FakeParser(TransactionParserInterface):
    """Parser that returns a canned response or raises a canned error."""
    
    def __init__(
        self,
        response: Optional[ParserResponse] = None,
        error: Optional[Exception] = None,
    ):
        self.response = response or ParserResponse()
        self.error = error
        self.calls = []
    
    async def parse(self, request, history):
        self.calls.append((request, list(history)))
        if self.error:
            raise self.error
        return self.response
    
    async def analyze_spending(self, transactions):
        return f"advice for {len(transactions)} transactions"


@pytest.fixture
def kv():
    return InMemoryKeyValueStore()


@pytest.fixture
def store(kv):
    return LedgerStore(kv)


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def reconciler(store, remote):
    return Reconciler(store, lambda url: remote)


@pytest.fixture
def service(store, reconciler):
    return LedgerService(store, reconciler)


@pytest.fixture
def sync_settings():
    return UserSettings(app_script_url=SYNC_URL, telegram_chat_id="12345")
