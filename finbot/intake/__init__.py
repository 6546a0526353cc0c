"""Intake package: user input to ledger transactions."""

from finbot.intake.pipeline import IntakePipeline, shows_fallback
from finbot.intake.replies import (
    CONNECTION_ERROR_MESSAGE,
    FALLBACK_MESSAGE,
    PENDING_NOT_UNDERSTOOD_MESSAGE,
    PROCESSING_ERROR_MESSAGE,
    UNSUPPORTED_UPLOAD_MESSAGE,
    format_currency,
    generate_bot_response,
)

__all__ = [
    "IntakePipeline",
    "shows_fallback",
    "CONNECTION_ERROR_MESSAGE",
    "FALLBACK_MESSAGE",
    "PENDING_NOT_UNDERSTOOD_MESSAGE",
    "PROCESSING_ERROR_MESSAGE",
    "UNSUPPORTED_UPLOAD_MESSAGE",
    "format_currency",
    "generate_bot_response",
]
