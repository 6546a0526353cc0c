"""
Remote Record Coercion

The remote sheet is loosely typed: ids come back as numbers, dates as full
timestamps, optional columns as empty strings. Every record is validated
into the strict Transaction schema here, at the boundary. Records that
cannot satisfy the required fields are dropped and logged; one bad row
never fails the whole pull.
"""

from typing import Any, Iterable

from pydantic import ValidationError

from finbot.logger import get_logger
from finbot.models.transaction import Transaction


logger = get_logger(__name__)

REMOTE_FIELDS = (
    "id",
    "date",
    "description",
    "amount",
    "category",
    "type",
    "status",
    "person",
    "location",
)


def coerce_remote_record(item: Any) -> Transaction:
    """
    Validate one remote record.
    
    Raises:
        ValueError: If the record is not a mapping or misses required fields
    """
    if not isinstance(item, dict):
        raise ValueError(f"Remote record is not an object: {type(item).__name__}")
    data = {key: item.get(key) for key in REMOTE_FIELDS if key in item}
    return Transaction.model_validate(data)


def coerce_remote_records(items: Iterable[Any]) -> list[Transaction]:
    """Validate remote records, dropping the malformed ones."""
    transactions = []
    dropped = 0
    
    for index, item in enumerate(items):
        try:
            transactions.append(coerce_remote_record(item))
        except (ValidationError, ValueError) as e:
            dropped += 1
            logger.warning(
                "remote_record_dropped",
                index=index,
                record_id=str(item.get("id")) if isinstance(item, dict) else None,
                error=str(e),
            )
    
    if dropped:
        logger.info("remote_records_coerced", kept=len(transactions), dropped=dropped)
    return transactions
