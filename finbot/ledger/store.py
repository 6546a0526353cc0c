"""
Ledger Store

The store owns the transaction list, the chat log and the user settings
for the lifetime of the process.

DESIGN DECISION: In-memory state is the source of truth.
- Every mutation persists the full resulting list synchronously
- A failed write is logged and NEVER rolls back the in-memory change
- A corrupt or missing payload loads as documented defaults, never raises
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from finbot.logger import get_logger
from finbot.models.chat import ChatMessage
from finbot.models.transaction import Transaction, UserSettings
from finbot.services.storage import KeyValueStoreInterface


logger = get_logger(__name__)

TRANSACTIONS_KEY = "finbot_transactions"
CHAT_HISTORY_KEY = "finbot_chat_history"
SETTINGS_KEY = "finbot_settings"

Transform = Callable[[list[Transaction]], list[Transaction]]

# Older payload keys that feed a field through the legacy migration
LEGACY_SETTING_KEYS = {"notification_times": ("notificationTime",)}


def _invalid_setting_keys(error: ValidationError, data: dict) -> set[str]:
    """Payload keys behind the fields named in a settings ValidationError."""
    locs = {str(err["loc"][0]) for err in error.errors() if err["loc"]}
    keys: set[str] = set()
    for name, info in UserSettings.model_fields.items():
        names = {name, info.alias or to_camel(name)}
        if names & locs:
            keys.update(names)
            keys.update(LEGACY_SETTING_KEYS.get(name, ()))
    return keys & set(data)


@dataclass
class LedgerSnapshot:
    """Everything the store holds, as loaded."""
    transactions: list[Transaction] = field(default_factory=list)
    settings: UserSettings = field(default_factory=UserSettings)
    chat_history: list[ChatMessage] = field(default_factory=list)


# =============================================================================
# LIST TRANSFORMS - pure, usable with LedgerStore.mutate()
# =============================================================================

def same_id(left: Any, right: Any) -> bool:
    """Id equality tolerant of ids that round-tripped as numbers."""
    return str(left) == str(right)


def append_transactions(items: Iterable[Transaction]) -> Transform:
    new_items = list(items)
    return lambda txs: [*txs, *new_items]


def replace_by_id(updated: Transaction) -> Transform:
    return lambda txs: [updated if same_id(t.id, updated.id) else t for t in txs]


def remove_by_id(transaction_id: Any) -> Transform:
    return lambda txs: [t for t in txs if not same_id(t.id, transaction_id)]


class LedgerStore:
    """Authoritative session state, persisted to a key-value store."""
    
    def __init__(
        self,
        kv_store: KeyValueStoreInterface,
        default_settings: Optional[UserSettings] = None,
    ):
        self._kv = kv_store
        self._default_settings = default_settings or UserSettings()
        self._transactions: list[Transaction] = []
        self._chat_history: list[ChatMessage] = []
        self._settings = self._default_settings.model_copy(deep=True)
    
    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------
    
    @property
    def transactions(self) -> list[Transaction]:
        return list(self._transactions)
    
    @property
    def settings(self) -> UserSettings:
        return self._settings
    
    @property
    def chat_history(self) -> list[ChatMessage]:
        return list(self._chat_history)
    
    def find(self, transaction_id: Any) -> Optional[Transaction]:
        for transaction in self._transactions:
            if same_id(transaction.id, transaction_id):
                return transaction
        return None
    
    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------
    
    def _read_json(self, key: str) -> Any:
        """Read and decode one key; any failure reads as absent."""
        try:
            raw = self._kv.get(key)
        except Exception as e:
            logger.error("ledger_read_failed", key=key, error=str(e))
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.error("ledger_payload_corrupt", key=key, error=str(e))
            return None
    
    def _load_transactions(self) -> list[Transaction]:
        data = self._read_json(TRANSACTIONS_KEY)
        if not isinstance(data, list):
            if data is not None:
                logger.error("ledger_payload_corrupt", key=TRANSACTIONS_KEY, error="not a list")
            return []
        
        transactions = []
        for item in data:
            try:
                transactions.append(Transaction.model_validate(item))
            except ValidationError as e:
                logger.warning(
                    "stored_transaction_dropped",
                    record_id=str(item.get("id")) if isinstance(item, dict) else None,
                    error=str(e),
                )
        return transactions
    
    def _load_settings(self) -> UserSettings:
        data = self._read_json(SETTINGS_KEY)
        if not isinstance(data, dict):
            return self._default_settings.model_copy(deep=True)
        
        # An invalid field is dropped on its own so the rest of the payload survives
        parsed = None
        while parsed is None:
            try:
                parsed = UserSettings.model_validate(data)
            except ValidationError as e:
                invalid = _invalid_setting_keys(e, data)
                if not invalid:
                    logger.error("stored_settings_invalid", error=str(e))
                    return self._default_settings.model_copy(deep=True)
                logger.warning(
                    "stored_settings_field_dropped",
                    fields=sorted(invalid),
                    error=str(e),
                )
                data = {k: v for k, v in data.items() if k not in invalid}
        
        # Fields the payload did not carry come from the configured defaults
        missing = {
            name: getattr(self._default_settings, name)
            for name in UserSettings.model_fields
            if name not in parsed.model_fields_set
        }
        return parsed.model_copy(update=missing, deep=True)
    
    def _load_chat_history(self) -> list[ChatMessage]:
        data = self._read_json(CHAT_HISTORY_KEY)
        if not isinstance(data, list):
            return []
        
        messages = []
        for item in data:
            try:
                messages.append(ChatMessage.model_validate(item))
            except ValidationError:
                logger.warning("stored_chat_message_dropped")
        return messages
    
    def load(self) -> LedgerSnapshot:
        """
        Load persisted state, replacing what is held in memory.
        
        Never raises: absent or unparseable data degrades to defaults.
        """
        self._transactions = self._load_transactions()
        self._settings = self._load_settings()
        self._chat_history = self._load_chat_history()
        
        logger.info(
            "ledger_loaded",
            transactions=len(self._transactions),
            chat_messages=len(self._chat_history),
        )
        return LedgerSnapshot(
            transactions=self.transactions,
            settings=self._settings,
            chat_history=self.chat_history,
        )
    
    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------
    
    def _persist(self, key: str, payload: Any) -> bool:
        """Write one key. Failure is logged, not raised."""
        try:
            self._kv.set(key, json.dumps(payload, ensure_ascii=False))
            return True
        except Exception as e:
            logger.error("ledger_persist_failed", key=key, error=str(e))
            return False
    
    def _persist_transactions(self) -> bool:
        return self._persist(
            TRANSACTIONS_KEY,
            [t.to_payload() for t in self._transactions],
        )
    
    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------
    
    def mutate(self, transform: Transform) -> list[Transaction]:
        """
        Apply a list transform and persist the result.
        
        The in-memory update always stands, even if the write fails.
        """
        self._transactions = list(transform(list(self._transactions)))
        self._persist_transactions()
        return self.transactions
    
    def add(self, items: Transaction | Iterable[Transaction]) -> list[Transaction]:
        """Append one or many transactions; returns what was added."""
        new_items = [items] if isinstance(items, Transaction) else list(items)
        if new_items:
            self.mutate(append_transactions(new_items))
        return new_items
    
    def replace(self, updated: Transaction) -> bool:
        """Replace the transaction with the same id. Returns False if absent."""
        if self.find(updated.id) is None:
            return False
        self.mutate(replace_by_id(updated))
        return True
    
    def remove(self, transaction_id: Any) -> Optional[Transaction]:
        """Remove by id; returns the removed transaction, if there was one."""
        existing = self.find(transaction_id)
        if existing is None:
            return None
        self.mutate(remove_by_id(transaction_id))
        return existing
    
    def replace_all(self, transactions: Iterable[Transaction]) -> list[Transaction]:
        """Swap in a whole new list (used by a successful pull)."""
        new_list = list(transactions)
        return self.mutate(lambda _: new_list)
    
    def update_settings(self, settings: UserSettings) -> UserSettings:
        self._settings = settings
        self._persist(SETTINGS_KEY, settings.to_payload())
        return settings
    
    def append_chat(self, messages: ChatMessage | Iterable[ChatMessage]) -> list[ChatMessage]:
        """
        Append chat messages in send order.
        
        Timestamps are bumped where needed so the log stays strictly
        increasing even when several messages share a clock tick.
        """
        new_messages = [messages] if isinstance(messages, ChatMessage) else list(messages)
        last = self._chat_history[-1].timestamp if self._chat_history else -1
        
        appended = []
        for message in new_messages:
            if message.timestamp <= last:
                message = message.model_copy(update={"timestamp": last + 1})
            last = message.timestamp
            appended.append(message)
        
        if appended:
            self._chat_history.extend(appended)
            self._persist(
                CHAT_HISTORY_KEY,
                [m.to_payload() for m in self._chat_history],
            )
        return appended
    
    # -------------------------------------------------------------------------
    # Backup
    # -------------------------------------------------------------------------
    
    def export_data(self, now: datetime) -> str:
        """Serialize everything into one backup document."""
        return json.dumps(
            {
                "transactions": [t.to_payload() for t in self._transactions],
                "settings": self._settings.to_payload(),
                "chatHistory": [m.to_payload() for m in self._chat_history],
                "exportDate": now.isoformat(),
            },
            ensure_ascii=False,
            indent=2,
        )
    
    def import_data(self, text: str) -> bool:
        """
        Restore a backup produced by export_data().
        
        Each section present in the backup overwrites its key; the store
        is then reloaded. Returns False, changing nothing, if the backup
        cannot be parsed.
        """
        try:
            data = json.loads(text)
        except ValueError as e:
            logger.error("import_failed", error=str(e))
            return False
        if not isinstance(data, dict):
            logger.error("import_failed", error="backup is not an object")
            return False
        
        sections = {
            "transactions": TRANSACTIONS_KEY,
            "settings": SETTINGS_KEY,
            "chatHistory": CHAT_HISTORY_KEY,
        }
        for section, key in sections.items():
            if data.get(section) is not None:
                self._persist(key, data[section])
        
        self.load()
        return True
