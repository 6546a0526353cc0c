"""
Spreadsheet Web-App Remote

The remote ledger is a spreadsheet published as a web app:
- GET returns {"status": "success", "data": [transaction, ...]}
- POST {"action": "ADD"|"UPDATE"|"DELETE", "data": transaction}
- POST {"action": "NOTIFY", "chatId": ..., "message": ...}

POST bodies are sent as text/plain JSON; the web app host rejects the
CORS preflight an application/json body would trigger.

TRADEOFFS:
- Only the full-list GET is retried (it is idempotent)
- Pushes are delivered at most once; a lost push heals on the next pull
"""

import json
from typing import Optional

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finbot.config import get_settings
from finbot.logger import get_logger
from finbot.models.transaction import SyncAction, Transaction
from finbot.services.storage.interface import (
    MalformedPayloadError,
    RemoteLedgerInterface,
    RemoteSyncError,
)
from finbot.services.storage.records import coerce_remote_records


logger = get_logger(__name__)

POST_HEADERS = {"Content-Type": "text/plain;charset=utf-8"}


class AppsScriptRemote(RemoteLedgerInterface):
    """
    httpx client for the spreadsheet web-app endpoint.
    
    A fresh AsyncClient is opened per request; pushes are independent
    and may be in flight concurrently.
    """
    
    def __init__(
        self,
        url: str,
        timeout: Optional[float] = None,
        pull_attempts: Optional[int] = None,
        retry_backoff: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not url:
            raise ValueError("Remote endpoint URL is required")
        sync = get_settings().sync
        self._url = url
        self._timeout = timeout if timeout is not None else sync.timeout_seconds
        self._pull_attempts = pull_attempts or sync.pull_attempts
        self._retry_backoff = (
            retry_backoff if retry_backoff is not None else sync.retry_backoff
        )
        self._transport = transport
    
    @property
    def url(self) -> str:
        return self._url
    
    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout,
            follow_redirects=True,
            transport=self._transport,
        )
    
    async def fetch_transactions(self) -> list[Transaction]:
        """Fetch and coerce the full remote list."""
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._pull_attempts),
                wait=wait_exponential(multiplier=self._retry_backoff, max=10),
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    async with self._client() as client:
                        response = await client.get(self._url)
        except httpx.HTTPError as e:
            raise RemoteSyncError(f"Failed to reach sync endpoint: {e}")
        
        if not response.is_success:
            raise RemoteSyncError(
                f"Sync endpoint answered HTTP {response.status_code}"
            )
        
        try:
            body = response.json()
        except ValueError as e:
            raise MalformedPayloadError(f"Sync endpoint returned invalid JSON: {e}")
        
        if not isinstance(body, dict):
            raise MalformedPayloadError("Sync endpoint response is not an object")
        if body.get("status") != "success":
            raise RemoteSyncError(
                f"Sync endpoint reported status {body.get('status')!r}"
            )
        if not isinstance(body.get("data"), list):
            raise MalformedPayloadError("Sync endpoint response has no data list")
        
        return coerce_remote_records(body["data"])
    
    async def _post(self, payload: dict) -> bool:
        try:
            async with self._client() as client:
                response = await client.post(
                    self._url,
                    content=json.dumps(payload, ensure_ascii=False).encode("utf-8"),
                    headers=POST_HEADERS,
                )
        except httpx.HTTPError as e:
            raise RemoteSyncError(f"Failed to reach sync endpoint: {e}")
        return response.is_success
    
    async def push(self, action: SyncAction, transaction: Transaction) -> bool:
        if action == SyncAction.NOTIFY:
            raise ValueError("Use notify() for NOTIFY requests")
        return await self._post({
            "action": action.value,
            "data": transaction.to_payload(),
        })
    
    async def notify(self, chat_id: str, message: str) -> bool:
        return await self._post({
            "action": SyncAction.NOTIFY.value,
            "chatId": chat_id,
            "message": message,
        })
