"""
Bot Replies

Fixed user-facing messages and the formatting of confirmation replies.
"""

from decimal import ROUND_HALF_UP, Decimal

from finbot.models.transaction import Transaction


FALLBACK_MESSAGE = (
    "Xin lỗi, tôi chưa hiểu rõ. Bạn muốn ghi chi tiêu hay hỏi về lịch sử? "
    "Thử nhắn kiểu \"cà phê 30k\"."
)
PROCESSING_ERROR_MESSAGE = "Xin lỗi, đã có lỗi khi xử lý. Vui lòng thử lại."
CONNECTION_ERROR_MESSAGE = "Lỗi kết nối AI. Vui lòng kiểm tra mạng và thử lại."
PENDING_NOT_UNDERSTOOD_MESSAGE = "Không thể phân tích giao dịch này. Vui lòng sửa thủ công."
UNSUPPORTED_UPLOAD_MESSAGE = "Định dạng tệp không được hỗ trợ. Vui lòng gửi ảnh hoặc ghi âm."

IMAGE_PLACEHOLDER = "[Hình ảnh]"
VOICE_PLACEHOLDER = "[Ghi âm]"
DEFAULT_DESCRIPTION = "Chi tiêu"

RECORDED_VERB = "Đã ghi"
PROCESSED_VERB = "Đã xử lý"


def format_currency(amount: Decimal) -> str:
    """Format a whole-unit amount as VND, e.g. Decimal(50000) -> "50.000 ₫"."""
    whole = int(Decimal(amount).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    sign = "-" if whole < 0 else ""
    return f"{sign}{abs(whole):,} ₫".replace(",", ".")


def generate_bot_response(transaction: Transaction, verb: str = RECORDED_VERB) -> str:
    """Confirmation line for a transaction that was just written."""
    text = (
        f"✅ {verb}: **{format_currency(transaction.amount)}** "
        f"- _{transaction.description}_"
    )
    if transaction.location:
        text += f" 📍 {transaction.location}"
    if transaction.person:
        text += f" 👤 {transaction.person}"
    return text + f" ({transaction.category})"
