"""AI Agents package."""

from finbot.agents.interface import (
    ParserError,
    ParserResponseError,
    ParserUnavailableError,
    TransactionParserInterface,
)
from finbot.agents.gemini_parser import (
    GeminiTransactionParser,
    build_history_context,
    build_parts,
    decode_response_text,
    sniff_image_mime,
)

__all__ = [
    "GeminiTransactionParser",
    "ParserError",
    "ParserResponseError",
    "ParserUnavailableError",
    "TransactionParserInterface",
    "build_history_context",
    "build_parts",
    "decode_response_text",
    "sniff_image_mime",
]
