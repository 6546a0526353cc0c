"""
Application Wiring

Builds the object graph: local store -> ledger store -> reconciler ->
ledger service -> intake pipeline and reminder scheduler.

Control flow at runtime:
    IntakePipeline -> LedgerService +-> LedgerStore (persist)
                                    +-> Reconciler (push to remote)
    Aggregator / history queries read LedgerStore snapshots on demand.
"""

from dataclasses import dataclass
from typing import Optional

from finbot.agents import GeminiTransactionParser, TransactionParserInterface
from finbot.config import get_settings, optional_section
from finbot.intake import IntakePipeline
from finbot.ledger import LedgerService, LedgerStore, Reconciler, RemoteFactory
from finbot.logger import configure_logging, get_logger
from finbot.models.transaction import UserSettings
from finbot.notifications import LocalNotifier, ReminderScheduler
from finbot.services.storage import (
    AppsScriptRemote,
    FileKeyValueStore,
    GoogleSheetsClient,
    GoogleSheetsRemote,
    KeyValueStoreInterface,
)
from finbot.validation import EntryValidator


logger = get_logger(__name__)


@dataclass
class AppComponents:
    """Everything a front end needs to drive the ledger."""
    store: LedgerStore
    reconciler: Reconciler
    service: LedgerService
    pipeline: IntakePipeline
    scheduler: ReminderScheduler
    validator: EntryValidator


def default_user_settings() -> UserSettings:
    """User settings used when nothing valid is persisted."""
    app = get_settings().app
    return UserSettings(
        daily_limit=app.default_daily_limit,
        notification_times=app.notification_times_list,
    )


def default_remote_factory(use_sheets: bool = False) -> RemoteFactory:
    """
    Remote client factory keyed by the endpoint stored in user settings.
    
    With use_sheets the spreadsheet configured in the environment is used
    directly; the stored endpoint then only switches sync on or off.
    """
    if use_sheets:
        sheets_settings = optional_section("google_sheets")
        if sheets_settings is not None:
            sheets_remote = GoogleSheetsRemote(GoogleSheetsClient(sheets_settings))
            return lambda url: sheets_remote
        logger.warning("sheets_not_configured", fallback="web_app")
    return lambda url: AppsScriptRemote(url)


def create_app_components(
    kv_store: Optional[KeyValueStoreInterface] = None,
    parser: Optional[TransactionParserInterface] = None,
    remote_factory: Optional[RemoteFactory] = None,
    local_notifier: Optional[LocalNotifier] = None,
    use_sheets: bool = False,
) -> AppComponents:
    """
    Factory function to create all application components.
    
    Args:
        kv_store: Local persistence. Defaults to files in the configured
                  data directory.
        parser: Parsing collaborator. Defaults to Gemini (needs GEMINI_API_KEY).
        remote_factory: Builds remote clients. Defaults to the web-app endpoint.
        local_notifier: Local reminder callback
        use_sheets: Sync straight to the configured Google spreadsheet
        
    Returns:
        AppComponents, with the ledger NOT yet loaded (call service.start())
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)
    
    if kv_store is None:
        kv_store = FileKeyValueStore(settings.storage.data_dir)
    if remote_factory is None:
        remote_factory = default_remote_factory(use_sheets)
    if parser is None:
        gemini = settings.gemini
        parser = GeminiTransactionParser(gemini)
        history_limit = gemini.history_limit
    else:
        history_limit = 100
    
    store = LedgerStore(kv_store, default_settings=default_user_settings())
    reconciler = Reconciler(store, remote_factory)
    service = LedgerService(store, reconciler)
    validator = EntryValidator()
    
    pipeline = IntakePipeline(
        parser,
        service,
        history_limit=history_limit,
        validator=validator,
    )
    scheduler = ReminderScheduler(reconciler, local_notifier=local_notifier)
    
    logger.info(
        "components_created",
        data_store=type(kv_store).__name__,
        parser=type(parser).__name__,
    )
    return AppComponents(
        store=store,
        reconciler=reconciler,
        service=service,
        pipeline=pipeline,
        scheduler=scheduler,
        validator=validator,
    )
