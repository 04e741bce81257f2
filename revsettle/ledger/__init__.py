"""
revsettle Ledger - keyed contract storage and the signed journal.

TokenLedger lives in revsettle.ledger.token; it is a contract and
depends on revsettle.core.env, which itself imports this package.
"""

from revsettle.ledger.journal import Journal, JournalEntry, JournalVerification
from revsettle.ledger.store import DataKey, KeyedStore, KeyTag

__all__ = [
    "Journal",
    "JournalEntry",
    "JournalVerification",
    "DataKey",
    "KeyedStore",
    "KeyTag",
]
