"""Tests for the Gemini parsing collaborator (no real API calls)."""

from datetime import date
from decimal import Decimal
from io import BytesIO
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest
from PIL import Image

from finbot.agents import (
    GeminiTransactionParser,
    ParserResponseError,
    ParserUnavailableError,
    build_history_context,
    build_parts,
    decode_response_text,
    sniff_image_mime,
)
from finbot.agents import gemini_parser
from finbot.config import GeminiSettings
from finbot.models import ParseRequest, TransactionType

from conftest import make_tx


def png_bytes() -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (4, 4), color="white").save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def fake_model(monkeypatch):
    """Replace GenerativeModel with a mock whose reply text is settable."""
    model = Mock()
    model.generate_content_async = AsyncMock(return_value=SimpleNamespace(text="{}"))
    factory = Mock(return_value=model)
    monkeypatch.setattr(gemini_parser.genai, "GenerativeModel", factory)
    monkeypatch.setattr(gemini_parser.genai, "configure", Mock())
    model.factory = factory
    return model


@pytest.fixture
def parser(fake_model):
    return GeminiTransactionParser(
        GeminiSettings(api_key="test-key"),
        today_provider=lambda: date(2024, 1, 15),
    )


class TestPromptBuilding:
    """Tests for context and content parts."""
    
    def test_history_line_format(self):
        """Test one line per transaction with optional tags."""
        txs = [
            make_tx(40000, description="Phở", on=date(2024, 1, 14), person="Nam", location="Quán Bà Hằng"),
            make_tx(15000, description="Trà", on=date(2024, 1, 15)),
        ]
        assert build_history_context(txs) == (
            "- [2024-01-14] Phở (Ăn uống): 40000 | With: Nam | At: Quán Bà Hằng\n"
            "- [2024-01-15] Trà (Ăn uống): 15000"
        )
    
    def test_history_is_capped(self):
        """Test only the most recent lines are kept."""
        txs = [make_tx(i + 1) for i in range(150)]
        lines = build_history_context(txs, limit=100).splitlines()
        assert len(lines) == 100
        assert lines[-1].endswith(": 150")
        assert build_history_context(txs, limit=0) == ""
    
    def test_text_only_parts(self):
        """Test a text request is sent as-is."""
        assert build_parts(ParseRequest(text="phở 40k")) == ["phở 40k"]
    
    def test_image_parts_sniff_mime(self):
        """Test the image mime type is detected when absent."""
        data = png_bytes()
        parts = build_parts(ParseRequest(image_data=data))
        assert parts[0] == {"mime_type": "image/png", "data": data}
        assert parts[1] == gemini_parser.IMAGE_PROMPT
    
    def test_audio_parts_default_mime(self):
        """Test voice notes default to webm."""
        parts = build_parts(ParseRequest(audio_data=b"voice"))
        assert parts[0] == {"mime_type": "audio/webm", "data": b"voice"}
        assert parts[1] == gemini_parser.AUDIO_PROMPT
    
    def test_unknown_image_bytes_default_to_jpeg(self):
        """Test undecodable bytes fall back to JPEG."""
        assert sniff_image_mime(b"not an image") == "image/jpeg"


class TestDecode:
    """Tests for decoding the model's JSON output."""
    
    def test_plain_json(self):
        """Test a clean JSON object."""
        response = decode_response_text(
            '{"transactions": [{"amount": 30000, "type": "INCOME"}], "analysisAnswer": null}'
        )
        assert response.transactions[0].amount == Decimal(30000)
        assert response.transactions[0].type == TransactionType.INCOME
    
    def test_fenced_json(self):
        """Test JSON wrapped in a code fence."""
        response = decode_response_text('```json\n{"analysisAnswer": "Xin chào"}\n```')
        assert response.analysis_answer == "Xin chào"
    
    @pytest.mark.parametrize("text", [None, "", "no json here", "{broken", '{"transactions": "many"}'])
    def test_invalid_output(self, text):
        """Test that unusable output raises ParserResponseError."""
        with pytest.raises(ParserResponseError):
            decode_response_text(text)


class TestGeminiTransactionParser:
    """Tests for the parser with the SDK mocked out."""
    
    @pytest.mark.asyncio
    async def test_parse(self, parser, fake_model):
        """Test a round trip through the mocked model."""
        fake_model.generate_content_async.return_value = SimpleNamespace(
            text='{"transactions": [{"amount": 40000, "description": "Phở"}], "analysisAnswer": null}'
        )
        response = await parser.parse(ParseRequest(text="phở 40k"), [make_tx(1)])
        
        assert response.transactions[0].description == "Phở"
        kwargs = fake_model.factory.call_args.kwargs
        assert "2024-01-15" in kwargs["system_instruction"]
        assert "Ăn uống" in kwargs["system_instruction"]
        assert "in Vietnamese" in kwargs["system_instruction"]
        assert kwargs["generation_config"]["response_mime_type"] == "application/json"
    
    @pytest.mark.asyncio
    async def test_api_failure(self, parser, fake_model):
        """Test SDK errors become ParserUnavailableError."""
        fake_model.generate_content_async.side_effect = RuntimeError("quota")
        with pytest.raises(ParserUnavailableError):
            await parser.parse(ParseRequest(text="x"), [])
    
    @pytest.mark.asyncio
    async def test_empty_request(self, parser, fake_model):
        """Test nothing is sent for an empty request."""
        with pytest.raises(ParserResponseError):
            await parser.parse(ParseRequest(), [])
        fake_model.generate_content_async.assert_not_called()
    
    @pytest.mark.asyncio
    async def test_analyze_spending(self, parser, fake_model):
        """Test advice text and its fallbacks."""
        fake_model.generate_content_async.return_value = SimpleNamespace(text="  Tiết kiệm hơn nhé!  ")
        assert await parser.analyze_spending([make_tx(1)]) == "Tiết kiệm hơn nhé!"
        
        assert await parser.analyze_spending([]) == gemini_parser.ADVICE_UNAVAILABLE
        
        fake_model.generate_content_async.side_effect = RuntimeError("down")
        assert await parser.analyze_spending([make_tx(1)]) == gemini_parser.ADVICE_FAILED
