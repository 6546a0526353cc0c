"""
Core Ledger Models for FinBot

These models define the strict schemas for everything the ledger stores.
They are designed to:
1. Enforce the transaction schema at every boundary (local store, remote sheet)
2. Coerce the loose shapes the remote sheet sends back
3. Serialize to the camelCase JSON the web-app endpoint expects

DESIGN DECISION: Amounts are Decimal, never float. Balance correction is an
algebraic inverse of the balance formula and must be exact.
"""

import datetime as dt
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


def _money_to_json(value: Decimal) -> int | float:
    """Render a Decimal as a JSON number, integral amounts as int."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


Money = Annotated[Decimal, PlainSerializer(_money_to_json, when_used="json")]


def to_decimal(value: Any) -> Decimal:
    """
    Convert a loosely-typed amount to Decimal.
    
    Accepts ints, floats, Decimals and numeric strings with
    thousand separators ("1,000,000").
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError("Amount must be numeric")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, str):
        cleaned = value.replace(",", "").strip()
        try:
            result = Decimal(cleaned)
        except InvalidOperation:
            raise ValueError(f"Amount is not numeric: {value!r}")
        if not result.is_finite():
            raise ValueError(f"Amount is not numeric: {value!r}")
        return result
    raise ValueError(f"Amount is not numeric: {value!r}")


def to_iso_date(value: Any) -> Any:
    """
    Normalize a date-ish value to a date.
    
    The sheet returns dates as full ISO timestamps
    ("2024-01-05T00:00:00.000Z"); only the calendar part is used.
    """
    if isinstance(value, str):
        return date.fromisoformat(value.strip()[:10])
    return value


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of money flow. Mutually exclusive."""
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"


class TransactionStatus(str, Enum):
    """
    Transaction lifecycle status.
    
    CRITICAL: PENDING transactions have zero effect on any aggregate
    until they are promoted to CONFIRMED.
    """
    PENDING = "PENDING"      # Captured remotely, awaiting enrichment
    CONFIRMED = "CONFIRMED"  # Counted in every aggregate


class Category(str, Enum):
    """
    Known categories.
    
    Values are the labels stored in the sheet and returned by the parser.
    Any other free-text label is accepted and treated like OTHER.
    """
    FOOD = "Ăn uống"
    TRANSPORT = "Di chuyển"
    SHOPPING = "Mua sắm"
    BILLS = "Hóa đơn"
    ENTERTAINMENT = "Giải trí"
    HEALTH = "Sức khỏe"
    EDUCATION = "Giáo dục"
    SALARY = "Lương"
    INVESTMENT = "Đầu tư"
    OTHER = "Khác"


CATEGORY_ICONS: dict[str, str] = {
    Category.FOOD.value: "🍔",
    Category.TRANSPORT.value: "🛵",
    Category.SHOPPING.value: "🛍️",
    Category.BILLS.value: "🧾",
    Category.ENTERTAINMENT.value: "🎬",
    Category.HEALTH.value: "💊",
    Category.EDUCATION.value: "📚",
    Category.SALARY.value: "💰",
    Category.INVESTMENT.value: "📈",
    Category.OTHER.value: "📦",
}

INCOME_CATEGORIES = [Category.SALARY, Category.INVESTMENT, Category.OTHER]
EXPENSE_CATEGORIES = [
    Category.FOOD,
    Category.TRANSPORT,
    Category.SHOPPING,
    Category.BILLS,
    Category.ENTERTAINMENT,
    Category.HEALTH,
    Category.EDUCATION,
    Category.OTHER,
]


class ThemeColor(str, Enum):
    """UI accent color."""
    INDIGO = "indigo"
    ORANGE = "orange"
    RED = "red"
    YELLOW = "yellow"


class SyncAction(str, Enum):
    """Action tag carried by every POST to the remote endpoint."""
    ADD = "ADD"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    NOTIFY = "NOTIFY"


# =============================================================================
# TRANSACTION
# =============================================================================

class Transaction(BaseModel):
    """
    A single ledger entry.
    
    The `id` is generated client-side and is the ONLY join key between the
    local ledger and the remote sheet. It is always held as a string, even
    when the sheet hands it back as a number.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        use_enum_values=False,
    )
    
    id: str = Field(
        default_factory=lambda: str(uuid4()),
        min_length=1,
        description="Globally unique transaction id"
    )
    amount: Money = Field(
        ...,
        ge=0,
        description="Amount in whole currency units (e.g. VND)"
    )
    category: str = Field(
        default=Category.OTHER.value,
        description="Known category label or free text"
    )
    description: str = Field(
        default="",
        description="What the money was for"
    )
    date: dt.date = Field(
        ...,
        description="Calendar date of the transaction"
    )
    type: TransactionType = Field(
        ...,
        description="EXPENSE or INCOME"
    )
    status: TransactionStatus = Field(
        default=TransactionStatus.CONFIRMED,
        description="PENDING items are excluded from aggregates"
    )
    person: Optional[str] = Field(
        default=None,
        description="Who was involved"
    )
    location: Optional[str] = Field(
        default=None,
        description="Where it happened"
    )
    
    @field_validator('id', mode='before')
    @classmethod
    def normalize_id(cls, v: Any) -> str:
        """Numeric ids from the sheet become their string form."""
        if isinstance(v, bool) or v is None:
            raise ValueError("Transaction id is required")
        if isinstance(v, float) and v.is_integer():
            v = int(v)
        return str(v)
    
    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, v: Any) -> Decimal:
        return to_decimal(v)
    
    @field_validator('date', mode='before')
    @classmethod
    def coerce_date(cls, v: Any) -> Any:
        return to_iso_date(v)
    
    @field_validator('type', 'status', mode='before')
    @classmethod
    def upper_enum(cls, v: Any, info: ValidationInfo) -> Any:
        if not v and info.field_name == "status":
            return TransactionStatus.CONFIRMED
        if isinstance(v, str):
            return v.strip().upper()
        return v
    
    @field_validator('category', 'description', mode='before')
    @classmethod
    def none_to_blank(cls, v: Any) -> Any:
        return "" if v is None else str(v)
    
    @field_validator('person', 'location', mode='before')
    @classmethod
    def blank_to_none(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip()
        return v or None
    
    @property
    def is_confirmed(self) -> bool:
        return self.status == TransactionStatus.CONFIRMED
    
    def to_payload(self) -> dict:
        """JSON-ready dict in the shape the sheet and local store use."""
        return self.model_dump(mode="json", exclude_none=True)


# =============================================================================
# USER SETTINGS
# =============================================================================

DEFAULT_DAILY_LIMIT = Decimal(500000)
DEFAULT_NOTIFICATION_TIMES = ["09:00", "12:00", "20:00"]


class UserSettings(BaseModel):
    """
    User-editable ledger settings.
    
    Persisted as camelCase JSON. Passed explicitly to every aggregator and
    reconciler call - there is no process-wide settings singleton.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )
    
    initial_balance: Money = Field(
        default=Decimal(0),
        description="Opening balance; only changed by balance correction"
    )
    daily_limit: Money = Field(
        default=DEFAULT_DAILY_LIMIT,
        ge=0,
        description="Daily spending limit; 0 means no limit"
    )
    app_script_url: str = Field(
        default="",
        description="Remote sync endpoint; empty disables sync"
    )
    telegram_chat_id: str = Field(
        default="",
        description="Chat id used for remote reminder messages"
    )
    notification_enabled: bool = False
    notification_times: list[str] = Field(
        default_factory=lambda: list(DEFAULT_NOTIFICATION_TIMES)
    )
    theme_color: ThemeColor = ThemeColor.INDIGO
    
    @model_validator(mode='before')
    @classmethod
    def migrate_legacy(cls, data: Any) -> Any:
        """
        Upgrade older persisted shapes.
        
        - a single `notificationTime` becomes `notificationTimes`
        - a missing/zero daily limit falls back to the default
        - null values fall back to defaults
        """
        if not isinstance(data, dict):
            return data
        data = {k: v for k, v in data.items() if v is not None}
        
        if "notificationTimes" not in data and "notification_times" not in data:
            legacy = data.pop("notificationTime", None)
            if legacy:
                data["notificationTimes"] = [legacy]
        
        for key in ("dailyLimit", "daily_limit"):
            if key in data and not data[key]:
                data.pop(key)
        return data
    
    @field_validator('initial_balance', 'daily_limit', mode='before')
    @classmethod
    def coerce_money(cls, v: Any) -> Decimal:
        return to_decimal(v)
    
    @field_validator('notification_times')
    @classmethod
    def validate_times(cls, v: list[str]) -> list[str]:
        """Reminder times must be HH:MM."""
        for value in v:
            hours, sep, minutes = value.partition(":")
            if (
                not sep
                or len(hours) != 2
                or len(minutes) != 2
                or not (hours.isdigit() and minutes.isdigit())
                or int(hours) > 23
                or int(minutes) > 59
            ):
                raise ValueError(f"Invalid reminder time: {value!r}")
        return v
    
    @property
    def sync_enabled(self) -> bool:
        return bool(self.app_script_url)
    
    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
