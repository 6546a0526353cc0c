"""
Tests for FinBot

Test strategy:
1. Unit tests for individual components (models, aggregator, validators)
2. Integration tests for flows (with fake remote and parser collaborators)
3. No real API calls in tests (use fakes and mock transports)
"""

import pytest
from datetime import date
from decimal import Decimal

from pydantic import ValidationError

from finbot.models import (
    ChatMessage,
    ParsedTransaction,
    ParserResponse,
    ParseRequest,
    ThemeColor,
    Transaction,
    TransactionStatus,
    TransactionType,
    UserSettings,
    ValidationIssue,
    ValidationResult,
)


class TestTransactionModel:
    """Tests for the Transaction schema and its boundary coercion."""
    
    def test_transaction_creation(self):
        """Test Transaction model creation with defaults."""
        tx = Transaction(
            amount=Decimal("30000"),
            description="Cà phê",
            date=date(2024, 1, 5),
            type=TransactionType.EXPENSE,
        )
        assert tx.status == TransactionStatus.CONFIRMED
        assert tx.category == "Khác"
        assert tx.id
        assert tx.is_confirmed
    
    def test_generated_ids_are_unique(self):
        """Test that client-side ids do not collide."""
        ids = {
            Transaction(amount=1, date=date(2024, 1, 1), type="EXPENSE").id
            for _ in range(50)
        }
        assert len(ids) == 50
    
    def test_numeric_id_becomes_string(self):
        """Test that numeric ids from the sheet are held as strings."""
        assert Transaction(id=5, amount=1, date="2024-01-01", type="EXPENSE").id == "5"
        assert Transaction(id=5.0, amount=1, date="2024-01-01", type="EXPENSE").id == "5"
    
    def test_timestamp_date_keeps_calendar_part(self):
        """Test that a full ISO timestamp is cut to its date."""
        tx = Transaction(amount=1, date="2024-01-05T17:00:00.000Z", type="EXPENSE")
        assert tx.date == date(2024, 1, 5)
    
    def test_amount_string_with_separators(self):
        """Test that "1,000,000" is parsed exactly."""
        tx = Transaction(amount="1,000,000", date="2024-01-05", type="INCOME")
        assert tx.amount == Decimal(1000000)
    
    def test_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValidationError):
            Transaction(amount=-10, date="2024-01-05", type="EXPENSE")
    
    def test_rejects_non_numeric_amount(self):
        """Test that text amounts are rejected."""
        with pytest.raises(ValidationError):
            Transaction(amount="abc", date="2024-01-05", type="EXPENSE")
        with pytest.raises(ValidationError):
            Transaction(amount="NaN", date="2024-01-05", type="EXPENSE")
    
    def test_enums_case_insensitive_and_blank_status(self):
        """Test lowercase type and blank status coercion."""
        tx = Transaction(amount=1, date="2024-01-05", type="income", status="")
        assert tx.type == TransactionType.INCOME
        assert tx.status == TransactionStatus.CONFIRMED
    
    def test_blank_person_location_become_absent(self):
        """Test that empty tags from the sheet are dropped."""
        tx = Transaction(amount=1, date="2024-01-05", type="EXPENSE", person="  ", location="")
        assert tx.person is None
        assert tx.location is None
    
    def test_payload_serializes_amount_as_number(self):
        """Test the JSON payload shape sent to the remote."""
        tx = Transaction(
            id="abc",
            amount=Decimal("30000"),
            date=date(2024, 1, 5),
            type=TransactionType.EXPENSE,
            description="Phở",
        )
        payload = tx.to_payload()
        assert payload["amount"] == 30000
        assert isinstance(payload["amount"], int)
        assert payload["date"] == "2024-01-05"
        assert payload["type"] == "EXPENSE"
        assert payload["status"] == "CONFIRMED"
        assert "person" not in payload


class TestUserSettings:
    """Tests for user-editable settings and legacy migration."""
    
    def test_defaults(self):
        """Test default settings values."""
        settings = UserSettings()
        assert settings.initial_balance == Decimal(0)
        assert settings.daily_limit == Decimal(500000)
        assert settings.notification_times == ["09:00", "12:00", "20:00"]
        assert settings.notification_enabled is False
        assert settings.theme_color == ThemeColor.INDIGO
        assert not settings.sync_enabled
    
    def test_legacy_single_notification_time(self):
        """Test that notificationTime migrates to a one-element list."""
        settings = UserSettings.model_validate({"notificationTime": "08:30"})
        assert settings.notification_times == ["08:30"]
    
    def test_zero_daily_limit_falls_back_to_default(self):
        """Test that a falsy persisted daily limit is replaced."""
        settings = UserSettings.model_validate({"dailyLimit": 0})
        assert settings.daily_limit == Decimal(500000)
    
    def test_rejects_bad_reminder_time(self):
        """Test that reminder times must be HH:MM."""
        with pytest.raises(ValidationError):
            UserSettings(notification_times=["9:00"])
        with pytest.raises(ValidationError):
            UserSettings(notification_times=["24:00"])
    
    def test_payload_is_camel_case(self):
        """Test camelCase persistence keys."""
        payload = UserSettings(app_script_url="https://x.test").to_payload()
        assert payload["appScriptUrl"] == "https://x.test"
        assert payload["dailyLimit"] == 500000
        assert "initialBalance" in payload


class TestIntakeModels:
    """Tests for parser request/response shapes."""
    
    def test_empty_request(self):
        """Test detection of empty input."""
        assert ParseRequest().is_empty
        assert ParseRequest(text="   ").is_empty
        assert not ParseRequest(text="phở 40k").is_empty
        assert not ParseRequest(image_data=b"\x89PNG").is_empty
    
    def test_parsed_transaction_is_lenient(self):
        """Test that a proposal never fails validation on loose values."""
        proposal = ParsedTransaction.model_validate({
            "amount": "abc",
            "date": "tomorrow",
            "type": "income",
            "category": None,
            "person": "",
        })
        assert proposal.amount == Decimal(0)
        assert proposal.date is None
        assert proposal.type == TransactionType.INCOME
        assert proposal.category == ""
        assert proposal.person is None
    
    def test_unknown_type_defaults_to_expense(self):
        """Test that anything but INCOME is an expense."""
        assert ParsedTransaction(type="refund").type == TransactionType.EXPENSE
    
    def test_parser_response_aliases(self):
        """Test analysisAnswer alias and blank-answer handling."""
        response = ParserResponse.model_validate({
            "transactions": None,
            "analysisAnswer": "  ",
        })
        assert response.transactions is None
        assert response.analysis_answer is None
        
        response = ParserResponse.model_validate({"analysisAnswer": "Bạn đã tiêu 200k"})
        assert response.analysis_answer == "Bạn đã tiêu 200k"


class TestChatAndValidationModels:
    """Tests for chat messages and validation results."""
    
    def test_chat_message_payload(self):
        """Test camelCase chat payload without empty fields."""
        msg = ChatMessage(role="bot", content="ok", timestamp=1, related_transaction_id="t1")
        payload = msg.to_payload()
        assert payload["relatedTransactionId"] == "t1"
        assert "audioBase64" not in payload
    
    def test_chat_message_rejects_unknown_role(self):
        """Test that only user and bot roles exist."""
        with pytest.raises(ValidationError):
            ChatMessage(role="system", content="x", timestamp=1)
    
    def test_validation_result_with_warnings_only(self):
        """Test that warnings do not make a result invalid."""
        result = ValidationResult(
            issues=[ValidationIssue(
                field="date",
                issue_type="future_date",
                message="Date is in the future",
                severity="warning",
            )],
            transaction=Transaction(amount=1, date="2024-01-01", type="EXPENSE"),
        )
        assert not result.has_errors
        assert result.is_valid
    
    def test_validation_result_with_error(self):
        """Test that errors make a result invalid."""
        result = ValidationResult(issues=[ValidationIssue(
            field="amount",
            issue_type="missing",
            message="Amount is required",
        )])
        assert result.has_errors
        assert not result.is_valid
