"""
Input Boundary Validation

DESIGN DECISION: Invalid user input is rejected BEFORE it reaches the ledger.

Checks performed here:
- Amount text must be numeric once thousand separators are stripped
- Manual entries need a positive amount and a non-empty description
- Uploads must have a supported mime type

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the caller can show them to the user; no mutation
happens for an invalid entry.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

from finbot.config import get_settings
from finbot.models.transaction import (
    Category,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from finbot.models.validation import ValidationIssue, ValidationResult


THOUSAND_SEPARATORS = (",", ".", " ", "_", "\u00a0")
CURRENCY_MARKS = ("₫", "đ", "VND", "vnd")


def parse_amount_input(text: Optional[str], allow_negative: bool = False) -> Optional[Decimal]:
    """
    Parse a typed amount such as "50,000" or "1.250.000 ₫".
    
    Currency amounts are whole units, so both "," and "." are treated as
    thousand separators.
    
    Returns:
        The amount, or None if the text is not a number (or is negative
        when negatives are not allowed)
    """
    if text is None:
        return None
    cleaned = text.strip()
    for mark in CURRENCY_MARKS:
        cleaned = cleaned.replace(mark, "")
    for sep in THOUSAND_SEPARATORS:
        cleaned = cleaned.replace(sep, "")
    
    if not cleaned:
        return None
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    if value < 0 and not allow_negative:
        return None
    return value


class EntryValidator:
    """
    Validates what the user types or uploads.
    
    Manual entries become CONFIRMED transactions only when no
    error-level issue was found.
    """
    
    def __init__(
        self,
        supported_types: Optional[list[str]] = None,
        today_provider: Callable[[], date] = date.today,
    ):
        """
        Args:
            supported_types: Accepted upload mime types. Defaults to the
                             configured list.
            today_provider: Source of "today" for entries without a date
        """
        if supported_types is None:
            supported_types = get_settings().app.supported_types_list
        self._supported = [t.lower() for t in supported_types]
        self._today = today_provider
    
    def _amount_issues(self, amount_text: Optional[str]) -> tuple[Optional[Decimal], list[ValidationIssue]]:
        if amount_text is None or not amount_text.strip():
            return None, [ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Vui lòng nhập số tiền",
                suggested_fix="Nhập số tiền đã chi hoặc đã nhận",
            )]
        
        amount = parse_amount_input(amount_text, allow_negative=True)
        if amount is None:
            return None, [ValidationIssue(
                field="amount",
                issue_type="not_numeric",
                message=f"'{amount_text}' không phải là số",
                suggested_fix="Chỉ dùng chữ số, ví dụ 50000",
            )]
        
        if amount <= 0:
            return None, [ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Số tiền phải lớn hơn 0",
            )]
        
        return amount, []
    
    def validate_manual_entry(
        self,
        amount_text: Optional[str],
        description: Optional[str],
        category: Optional[str] = None,
        transaction_type: TransactionType = TransactionType.EXPENSE,
        on_date: Optional[date] = None,
        person: Optional[str] = None,
        location: Optional[str] = None,
    ) -> ValidationResult:
        """
        Validate a hand-typed transaction.
        
        Returns:
            ValidationResult whose `transaction` is set only when valid.
            The transaction is CONFIRMED, defaults to category "Khác"
            and to today's date.
        """
        amount, issues = self._amount_issues(amount_text)
        
        if not description or not description.strip():
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Vui lòng nhập mô tả",
                suggested_fix="Ghi rõ khoản tiền dùng vào việc gì",
            ))
        
        if on_date is not None and on_date > self._today():
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Ngày {on_date.isoformat()} ở trong tương lai",
                severity="warning",
            ))
        
        result = ValidationResult(issues=issues)
        if result.has_errors:
            return result
        
        result.transaction = Transaction(
            amount=amount,
            category=(category or "").strip() or Category.OTHER.value,
            description=description,
            date=on_date or self._today(),
            type=transaction_type,
            status=TransactionStatus.CONFIRMED,
            person=person,
            location=location,
        )
        return result
    
    def validate_balance_target(
        self,
        text: Optional[str],
    ) -> tuple[Optional[Decimal], list[ValidationIssue]]:
        """Parse the target of a balance correction. Negative targets are allowed."""
        value = parse_amount_input(text, allow_negative=True)
        if value is None:
            return None, [ValidationIssue(
                field="balance",
                issue_type="not_numeric",
                message=f"'{text}' không phải là số dư hợp lệ",
            )]
        return value, []
    
    def validate_upload(self, mime_type: Optional[str]) -> list[ValidationIssue]:
        """An upload is accepted only with a supported mime type."""
        if not mime_type:
            return []
        base = mime_type.split(";")[0].strip().lower()
        if base in self._supported:
            return []
        return [ValidationIssue(
            field="mime_type",
            issue_type="unsupported",
            message=f"Định dạng tệp không được hỗ trợ: {mime_type}",
            suggested_fix="Gửi ảnh (JPEG, PNG, WebP) hoặc ghi âm",
        )]
