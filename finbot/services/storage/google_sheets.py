"""
Google Sheets Remote Implementation

DESIGN DECISION: The sheet itself can serve as the remote ledger, without
the web-app layer in between:
1. The user can view and edit their ledger directly in Sheets
2. No endpoint deployment required, only a service account
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- No transactions (rows are located by id on every write)
- Reminder messages need the web app; NOTIFY is not supported here

One transaction per row, transaction id in the first column.
"""

import asyncio
from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from finbot.config import GoogleSheetsSettings, get_settings
from finbot.logger import get_logger
from finbot.models.transaction import SyncAction, Transaction
from finbot.services.storage.interface import (
    ConnectionError,
    RemoteLedgerInterface,
    RemoteSyncError,
)
from finbot.services.storage.records import REMOTE_FIELDS, coerce_remote_records


logger = get_logger(__name__)

TRANSACTION_COLUMNS = list(REMOTE_FIELDS)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.
    
    Handles authentication and provides retry logic for connecting.
    """
    
    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets
    
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.
        
        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")
        
        return self._client
    
    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet
    
    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.transactions_sheet_name)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=self._settings.transactions_sheet_name,
                rows=1000,
                cols=len(TRANSACTION_COLUMNS),
            )
            sheet.append_row(TRANSACTION_COLUMNS)
        return sheet


class GoogleSheetsRemote(RemoteLedgerInterface):
    """
    Google Sheets implementation of the remote ledger.
    
    ADD and UPDATE are both upserts by id; DELETE of a missing id
    succeeds. This makes every push idempotent.
    """
    
    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
    
    def _transaction_to_row(self, transaction: Transaction) -> list:
        """Convert a Transaction to a spreadsheet row."""
        payload = transaction.to_payload()
        return [payload.get(column, "") for column in TRANSACTION_COLUMNS]
    
    def _row_to_record(self, row: list) -> dict:
        """Convert a spreadsheet row to a loose record dict."""
        record = {}
        for index, column in enumerate(TRANSACTION_COLUMNS):
            value = row[index] if index < len(row) else ""
            if value != "":
                record[column] = value
        return record
    
    def _find_row(self, sheet: gspread.Worksheet, transaction_id: str) -> Optional[int]:
        """1-based sheet row index of a transaction, or None."""
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if row and str(row[0]) == str(transaction_id):
                return idx
        return None
    
    def _read_rows(self) -> list[list]:
        sheet = self._client.get_transactions_sheet()
        return sheet.get_all_values()[1:]  # Skip header
    
    def _write(self, action: SyncAction, transaction: Transaction) -> None:
        sheet = self._client.get_transactions_sheet()
        row_idx = self._find_row(sheet, transaction.id)
        
        if action == SyncAction.DELETE:
            if row_idx is not None:
                sheet.delete_rows(row_idx)
            return
        
        row = self._transaction_to_row(transaction)
        if row_idx is None:
            sheet.append_row(row, value_input_option="RAW")
        else:
            sheet.update(range_name=f"A{row_idx}", values=[row], value_input_option="RAW")
    
    # gspread is blocking; sheet calls run in a worker thread
    async def fetch_transactions(self) -> list[Transaction]:
        try:
            rows = await asyncio.to_thread(self._read_rows)
        except RemoteSyncError:
            raise
        except Exception as e:
            raise RemoteSyncError(f"Failed to read transactions sheet: {e}")
        
        records = [self._row_to_record(row) for row in rows if row and row[0]]
        return coerce_remote_records(records)
    
    async def push(self, action: SyncAction, transaction: Transaction) -> bool:
        if action == SyncAction.NOTIFY:
            raise ValueError("Use notify() for NOTIFY requests")
        try:
            await asyncio.to_thread(self._write, action, transaction)
            return True
        except RemoteSyncError:
            raise
        except Exception as e:
            raise RemoteSyncError(f"Failed to {action.value} transaction {transaction.id}: {e}")
    
    async def notify(self, chat_id: str, message: str) -> bool:
        logger.warning("notify_unsupported", backend="google_sheets", chat_id=chat_id)
        return False
