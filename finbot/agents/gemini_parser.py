"""
Gemini Transaction Parser

DESIGN DECISION: Gemini does the language work, Python does the bookkeeping.

The model:
- CAN: split an utterance, photo or voice note into transaction proposals
- CAN: answer a question about the recent history it is shown
- CANNOT: write to the ledger (the intake pipeline decides what is kept)

Only the most recent transactions (at most 100) are sent as context.
"""

import json
from datetime import date
from io import BytesIO
from typing import Any, Optional

import google.generativeai as genai
from PIL import Image, UnidentifiedImageError
from pydantic import ValidationError

from finbot.config import GeminiSettings, get_settings
from finbot.logger import get_logger
from finbot.models.intake import ParseRequest, ParserResponse
from finbot.models.transaction import Category, Transaction
from finbot.agents.interface import (
    ParserResponseError,
    ParserUnavailableError,
    TransactionParserInterface,
)


logger = get_logger(__name__)

DEFAULT_IMAGE_MIME = "image/jpeg"
DEFAULT_AUDIO_MIME = "audio/webm"
ADVICE_HISTORY_LIMIT = 60

IMAGE_PROMPT = "Analyze this image for expenses."
AUDIO_PROMPT = "Listen carefully. Split multiple items if spoken. Answer if it's a question."

ADVICE_UNAVAILABLE = "Không thể phân tích lúc này."
ADVICE_FAILED = "Lỗi kết nối khi phân tích chi tiêu."


def history_line(transaction: Transaction) -> str:
    """One context line: date, description, category, amount, who, where."""
    line = (
        f"- [{transaction.date.isoformat()}] {transaction.description} "
        f"({transaction.category}): {transaction.amount}"
    )
    if transaction.person:
        line += f" | With: {transaction.person}"
    if transaction.location:
        line += f" | At: {transaction.location}"
    return line


def build_history_context(history: list[Transaction], limit: int = 100) -> str:
    """Most recent `limit` transactions, oldest first."""
    if limit <= 0:
        return ""
    return "\n".join(history_line(t) for t in history[-limit:])


def build_system_instruction(history_context: str, today: date) -> str:
    categories = ", ".join(f'"{c.value}"' for c in Category)
    return f"""You are a smart financial assistant for a Vietnamese user.
CURRENT DATE: {today.strftime('%d/%m/%Y')} ({today.isoformat()})

Your task is TWO-FOLD:
1. RECORD TRANSACTIONS: Extract spending or income from user input.
   - CRITICAL: The user might say multiple items. Split them.
   - Currency: "k" = 000.
   - Categories: {categories}.
   - EXTRACTION RULES:
     1. description: The main item or action (e.g., "Ăn phở", "Mua áo thun").
     2. person: Specific name of the person involved (e.g., "Châu", "Nam", "Mẹ").
     3. location: Specific place or brand (e.g., "Quán Bà Hằng", "Vinmart", "Shopee").
     4. date: YYYY-MM-DD, today unless the user says otherwise.
     5. type: "EXPENSE" or "INCOME".

2. ANALYZE DATA: If the user asks a question, return 'analysisAnswer' in Vietnamese.

CONTEXT (Recent User Transactions):
{history_context or "(none)"}

OUTPUT FORMAT (JSON only):
{{
  "transactions": [{{"amount": 30000, "category": "...", "description": "...", "date": "YYYY-MM-DD", "type": "EXPENSE", "person": null, "location": null}}] OR null,
  "analysisAnswer": "String" OR null
}}"""


def sniff_image_mime(data: bytes) -> str:
    """Detect an image's mime type from its bytes, defaulting to JPEG."""
    try:
        with Image.open(BytesIO(data)) as img:
            return Image.MIME.get(img.format or "", DEFAULT_IMAGE_MIME)
    except (UnidentifiedImageError, OSError):
        return DEFAULT_IMAGE_MIME


def build_parts(request: ParseRequest) -> list[Any]:
    """Content parts for one request: text first, then inline media."""
    parts: list[Any] = []
    if request.text:
        parts.append(request.text)
    
    if request.image_data:
        mime_type = request.mime_type or sniff_image_mime(request.image_data)
        parts.append({"mime_type": mime_type, "data": request.image_data})
        if not request.text:
            parts.append(IMAGE_PROMPT)
    
    if request.audio_data:
        parts.append({
            "mime_type": request.mime_type or DEFAULT_AUDIO_MIME,
            "data": request.audio_data,
        })
        if not request.text:
            parts.append(AUDIO_PROMPT)
    
    return parts


def decode_response_text(text: Optional[str]) -> ParserResponse:
    """
    Validate the model's JSON output.
    
    Tolerates prose or code fences around the JSON object.
    
    Raises:
        ParserResponseError: If no valid JSON object can be found
    """
    if not text:
        raise ParserResponseError("Empty response from parser")
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        raise ParserResponseError("No JSON object in parser response")
    try:
        return ParserResponse.model_validate(json.loads(text[start:end]))
    except (ValueError, ValidationError) as e:
        raise ParserResponseError(f"Invalid parser response: {e}")


class GeminiTransactionParser(TransactionParserInterface):
    """Transaction parser backed by Google Gemini."""
    
    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        today_provider=date.today,
    ):
        self._settings = settings or get_settings().gemini
        self._today = today_provider
        genai.configure(api_key=self._settings.api_key)
    
    def _model(self, system_instruction: Optional[str] = None, json_output: bool = True):
        generation_config: dict[str, Any] = {
            "temperature": self._settings.temperature,
            "max_output_tokens": self._settings.max_tokens,
        }
        if json_output:
            generation_config["response_mime_type"] = "application/json"
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=system_instruction,
            generation_config=generation_config,
        )
    
    async def parse(
        self,
        request: ParseRequest,
        history: list[Transaction],
    ) -> ParserResponse:
        parts = build_parts(request)
        if not parts:
            raise ParserResponseError("Nothing to parse")
        
        instruction = build_system_instruction(
            build_history_context(history, self._settings.history_limit),
            self._today(),
        )
        
        try:
            response = await self._model(instruction).generate_content_async(parts)
        except Exception as e:
            logger.error("parser_call_failed", model=self._settings.model_name, error=str(e))
            raise ParserUnavailableError(f"Gemini request failed: {e}")
        
        try:
            text = response.text
        except ValueError as e:
            # Raised when the candidate was blocked or has no text part
            raise ParserResponseError(f"Gemini returned no text: {e}")
        
        return decode_response_text(text)
    
    async def analyze_spending(self, transactions: list[Transaction]) -> str:
        if not transactions:
            return ADVICE_UNAVAILABLE
        
        recent = "\n".join(history_line(t) for t in transactions[-ADVICE_HISTORY_LIMIT:])
        prompt = f"""Based on this transaction history:
{recent}

Act as a personal finance expert and give a focused analysis (about 150 words):
1. Habits by PERSON and LOCATION (who do they spend with, where do they shop?).
2. Spending trend (rising or falling).
3. Concrete advice.
4. Cheerful tone, in Vietnamese."""
        
        try:
            response = await self._model(json_output=False).generate_content_async(prompt)
            return response.text.strip() or ADVICE_UNAVAILABLE
        except Exception as e:
            logger.error("advice_call_failed", error=str(e))
            return ADVICE_FAILED
