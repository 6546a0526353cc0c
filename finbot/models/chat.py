"""
Chat Models

The assistant conversation is append-only. A bot message may point at the
transaction it created; that link is the only relation between the chat
log and the ledger.
"""

from typing import Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ChatMessage(BaseModel):
    """A single message in the assistant conversation."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )
    
    id: str = Field(default_factory=lambda: str(uuid4()))
    role: Literal["user", "bot"]
    content: str = Field(
        ...,
        description="Message text, may contain lightweight markdown"
    )
    timestamp: int = Field(
        ...,
        ge=0,
        description="Send order, epoch milliseconds, strictly increasing"
    )
    related_transaction_id: Optional[str] = Field(
        default=None,
        description="Transaction created by this message, if any"
    )
    audio_base64: Optional[str] = Field(
        default=None,
        description="Embedded voice note"
    )
    
    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
