"""
Intake Models

Shapes exchanged with the external parsing collaborator.

CRITICAL: A ParsedTransaction is a PROPOSAL. It becomes a ledger
Transaction only after the intake pipeline has checked it.
"""

import datetime as dt
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from finbot.models.chat import ChatMessage
from finbot.models.transaction import (
    Category,
    Transaction,
    TransactionType,
    to_decimal,
)


class ParseRequest(BaseModel):
    """Raw user input for one intake round."""
    
    text: Optional[str] = None
    image_data: Optional[bytes] = None
    audio_data: Optional[bytes] = None
    mime_type: Optional[str] = None
    
    @property
    def is_empty(self) -> bool:
        return not (
            (self.text and self.text.strip())
            or self.image_data
            or self.audio_data
        )


class ParsedTransaction(BaseModel):
    """
    A transaction proposed by the parser.
    
    Deliberately lenient: a bad amount is kept so the pipeline can drop
    the item, and a bad date becomes None so the pipeline can default it.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")
    
    amount: Decimal = Decimal(0)
    category: str = Category.OTHER.value
    description: str = ""
    date: Optional[dt.date] = None
    type: TransactionType = TransactionType.EXPENSE
    person: Optional[str] = None
    location: Optional[str] = None
    
    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, v: Any) -> Decimal:
        try:
            return to_decimal(v)
        except ValueError:
            return Decimal(0)
    
    @field_validator('date', mode='before')
    @classmethod
    def lenient_date(cls, v: Any) -> Optional[dt.date]:
        if isinstance(v, dt.date):
            return v
        if not v or not isinstance(v, str):
            return None
        try:
            return dt.date.fromisoformat(v.strip()[:10])
        except ValueError:
            return None
    
    @field_validator('type', mode='before')
    @classmethod
    def lenient_type(cls, v: Any) -> TransactionType:
        if isinstance(v, str) and v.strip().upper() == TransactionType.INCOME.value:
            return TransactionType.INCOME
        if isinstance(v, TransactionType):
            return v
        return TransactionType.EXPENSE
    
    @field_validator('category', 'description', mode='before')
    @classmethod
    def none_to_blank(cls, v: Any) -> str:
        return "" if v is None else str(v)
    
    @field_validator('person', 'location', mode='before')
    @classmethod
    def blank_to_none(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip()
        return v or None


class ParserResponse(BaseModel):
    """
    Structured output of the parser.
    
    `transactions` is None when the parser found nothing to record, and may
    be an empty list; the two are handled identically by the pipeline.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )
    
    transactions: Optional[list[ParsedTransaction]] = None
    analysis_answer: Optional[str] = None
    
    @field_validator('analysis_answer', mode='before')
    @classmethod
    def blank_answer(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip()
        return v or None


class IntakeResult(BaseModel):
    """What one intake round changed."""
    
    messages: list[ChatMessage] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    parser_failed: bool = False
