"""
Data Models Package

All data flowing through FinBot must conform to these schemas.
"""

from finbot.models.chat import ChatMessage
from finbot.models.intake import (
    IntakeResult,
    ParsedTransaction,
    ParseRequest,
    ParserResponse,
)
from finbot.models.transaction import (
    CATEGORY_ICONS,
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    Category,
    SyncAction,
    ThemeColor,
    Transaction,
    TransactionStatus,
    TransactionType,
    UserSettings,
    to_decimal,
)
from finbot.models.validation import ValidationIssue, ValidationResult

__all__ = [
    # Ledger models
    "CATEGORY_ICONS",
    "EXPENSE_CATEGORIES",
    "INCOME_CATEGORIES",
    "Category",
    "SyncAction",
    "ThemeColor",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
    "UserSettings",
    "to_decimal",
    # Chat
    "ChatMessage",
    # Intake
    "IntakeResult",
    "ParsedTransaction",
    "ParseRequest",
    "ParserResponse",
    # Validation
    "ValidationIssue",
    "ValidationResult",
]
