"""
FinBot - Source Package

A personal expense-tracking assistant: transactions are captured from
text, photos or voice notes, kept in a local ledger, mirrored to a
spreadsheet-backed remote store and summarised on demand.

DESIGN PRINCIPLES:
1. Local ledger first, remote mirror second
2. Derived numbers are always recomputed, never stored
3. External failures degrade, they never crash the app
4. Storage backends are swappable
"""

__version__ = "1.0.0"
__author__ = "FinBot Team"
