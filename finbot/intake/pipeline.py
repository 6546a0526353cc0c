"""
Intake Pipeline

Turns one round of raw user input into ledger mutations and a reply.

FLOW:
1. Reject empty input and unsupported uploads (no parser call)
2. Append the user's message to the chat log
3. Ask the parser, with the most recent confirmed transactions as context
4. Keep every proposal with amount > 0, add them in ONE batch
5. Reply: the parser's answer (if any), one confirmation per new
   transaction, or the fixed fallback when the parser found nothing

A parser failure produces a fixed error reply and changes no ledger state.
"""

import base64
from datetime import datetime
from typing import Callable, Optional

from pydantic import ValidationError

from finbot.agents import (
    ParserResponseError,
    TransactionParserInterface,
)
from finbot.ledger import LedgerService, aggregator
from finbot.logger import get_logger
from finbot.models.chat import ChatMessage
from finbot.models.intake import (
    IntakeResult,
    ParsedTransaction,
    ParseRequest,
    ParserResponse,
)
from finbot.models.transaction import (
    Category,
    Transaction,
    TransactionStatus,
)
from finbot.validation import EntryValidator
from finbot.intake.replies import (
    CONNECTION_ERROR_MESSAGE,
    DEFAULT_DESCRIPTION,
    FALLBACK_MESSAGE,
    IMAGE_PLACEHOLDER,
    PENDING_NOT_UNDERSTOOD_MESSAGE,
    PROCESSING_ERROR_MESSAGE,
    PROCESSED_VERB,
    UNSUPPORTED_UPLOAD_MESSAGE,
    VOICE_PLACEHOLDER,
    generate_bot_response,
)


logger = get_logger(__name__)

MAX_HISTORY = 100


def to_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def shows_fallback(response: ParserResponse) -> bool:
    """
    The fallback clarification is shown only when the parser returned no
    answer and no proposals at all (None or []). A non-empty list whose
    items are all rejected later does not count as "nothing".
    """
    return response.analysis_answer is None and not response.transactions


class IntakePipeline:
    """
    Orchestrates parsing of user input into ledger transactions.
    
    GUARANTEES:
    - The parser never writes to the ledger; only accepted proposals do
    - All accepted proposals of one response are added together
    - Nothing raised by the parser escapes submit()
    """
    
    def __init__(
        self,
        parser: TransactionParserInterface,
        service: LedgerService,
        history_limit: int = MAX_HISTORY,
        validator: Optional[EntryValidator] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Args:
            parser: External parsing collaborator
            service: Ledger service used for every mutation
            history_limit: How many recent confirmed transactions are
                           sent as context (capped at 100)
            validator: Upload checks; defaults to the configured types
            clock: Source of "now" when a call does not pass one
        """
        self._parser = parser
        self._service = service
        self._history_limit = max(0, min(history_limit, MAX_HISTORY))
        self._validator = validator or EntryValidator()
        self._clock = clock
    
    def recent_history(self) -> list[Transaction]:
        """Most recent confirmed transactions, oldest first."""
        if self._history_limit == 0:
            return []
        history = aggregator.confirmed(self._service.transactions)
        return history[-self._history_limit:]
    
    def _bot_message(
        self,
        content: str,
        now: datetime,
        related_transaction_id: Optional[str] = None,
    ) -> ChatMessage:
        return ChatMessage(
            role="bot",
            content=content,
            timestamp=to_millis(now),
            related_transaction_id=related_transaction_id,
        )
    
    def _user_message(self, request: ParseRequest, now: datetime) -> ChatMessage:
        text = (request.text or "").strip()
        audio_base64 = None
        if request.audio_data:
            audio_base64 = base64.b64encode(request.audio_data).decode("ascii")
        
        if not text:
            text = VOICE_PLACEHOLDER if request.audio_data and not request.image_data else IMAGE_PLACEHOLDER
        
        return ChatMessage(
            role="user",
            content=text,
            timestamp=to_millis(now),
            audio_base64=audio_base64,
        )
    
    def _to_transaction(
        self,
        proposal: ParsedTransaction,
        now: datetime,
    ) -> Optional[Transaction]:
        """Accept a proposal as a CONFIRMED transaction, or drop it."""
        if proposal.amount <= 0:
            logger.info("proposal_dropped", reason="non_positive_amount", amount=str(proposal.amount))
            return None
        try:
            return Transaction(
                amount=proposal.amount,
                category=proposal.category or Category.OTHER.value,
                description=proposal.description or DEFAULT_DESCRIPTION,
                date=proposal.date or now.date(),
                type=proposal.type,
                status=TransactionStatus.CONFIRMED,
                person=proposal.person,
                location=proposal.location,
            )
        except ValidationError as e:
            logger.warning("proposal_dropped", reason="invalid", error=str(e))
            return None
    
    async def _call_parser(
        self,
        request: ParseRequest,
        history: list[Transaction],
    ) -> tuple[Optional[ParserResponse], Optional[str]]:
        """Returns (response, None) or (None, fixed error message)."""
        try:
            return await self._parser.parse(request, history), None
        except ParserResponseError as e:
            logger.error("parser_bad_response", error=str(e))
            return None, PROCESSING_ERROR_MESSAGE
        except Exception as e:
            logger.error("parser_failed", error=str(e))
            return None, CONNECTION_ERROR_MESSAGE
    
    async def submit(
        self,
        request: ParseRequest,
        now: Optional[datetime] = None,
    ) -> IntakeResult:
        """
        Process one round of user input.
        
        Returns:
            IntakeResult with the bot replies that were appended, the
            transactions that were added, and whether the parser failed
        """
        now = now or self._clock()
        
        if request.is_empty:
            return IntakeResult()
        
        if request.image_data or request.audio_data:
            issues = self._validator.validate_upload(request.mime_type)
            if issues:
                logger.warning("upload_rejected", mime_type=request.mime_type)
                reply = self._bot_message(UNSUPPORTED_UPLOAD_MESSAGE, now)
                return IntakeResult(messages=self._service.store.append_chat(reply))
        
        self._service.store.append_chat(self._user_message(request, now))
        
        response, error_message = await self._call_parser(request, self.recent_history())
        if response is None:
            reply = self._bot_message(error_message, now)
            return IntakeResult(
                messages=self._service.store.append_chat(reply),
                parser_failed=True,
            )
        
        replies: list[ChatMessage] = []
        if response.analysis_answer is not None:
            replies.append(self._bot_message(response.analysis_answer, now))
        
        accepted = [
            tx for tx in (self._to_transaction(p, now) for p in response.transactions or [])
            if tx is not None
        ]
        added = self._service.add_transactions(accepted) if accepted else []
        for transaction in added:
            replies.append(self._bot_message(
                generate_bot_response(transaction),
                now,
                related_transaction_id=transaction.id,
            ))
        
        if shows_fallback(response):
            replies.append(self._bot_message(FALLBACK_MESSAGE, now))
        
        logger.info(
            "intake_processed",
            proposals=len(response.transactions or []),
            added=len(added),
            answered=response.analysis_answer is not None,
        )
        return IntakeResult(
            messages=self._service.store.append_chat(replies),
            transactions=added,
        )
    
    async def process_pending(
        self,
        transaction: Transaction,
        now: Optional[datetime] = None,
    ) -> tuple[str, Optional[Transaction]]:
        """
        Enrich a PENDING transaction from its description and confirm it.
        
        The description is parsed with no history. The first usable
        proposal supplies amount, category, description and type; its date
        is used when present, otherwise the original date is kept.
        
        Returns:
            (reply text, the updated transaction or None if unchanged)
        """
        now = now or self._clock()
        request = ParseRequest(text=transaction.description)
        
        response, error_message = await self._call_parser(request, [])
        if response is None:
            return error_message, None
        
        proposal = next(iter(response.transactions or []), None)
        if proposal is None or proposal.amount <= 0:
            return PENDING_NOT_UNDERSTOOD_MESSAGE, None
        
        try:
            updated = Transaction(
                id=transaction.id,
                amount=proposal.amount,
                category=proposal.category or transaction.category,
                description=proposal.description or transaction.description,
                date=proposal.date or transaction.date,
                type=proposal.type,
                status=TransactionStatus.CONFIRMED,
                person=proposal.person or transaction.person,
                location=proposal.location or transaction.location,
            )
        except ValidationError as e:
            logger.warning("pending_update_invalid", transaction_id=transaction.id, error=str(e))
            return PENDING_NOT_UNDERSTOOD_MESSAGE, None
        
        if not self._service.edit_transaction(updated):
            return PENDING_NOT_UNDERSTOOD_MESSAGE, None
        
        logger.info("pending_confirmed", transaction_id=updated.id)
        return generate_bot_response(updated, verb=PROCESSED_VERB), updated
    
    async def advise(self) -> str:
        """Free-text spending advice over the confirmed history."""
        return await self._parser.analyze_spending(
            aggregator.confirmed(self._service.transactions)
        )
