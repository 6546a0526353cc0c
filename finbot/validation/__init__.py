"""Validation package."""

from finbot.validation.validator import EntryValidator, parse_amount_input

__all__ = ["EntryValidator", "parse_amount_input"]
