"""Mini README: Transaction ledger domain for Money Manager.

This package holds the transaction record and its validation rules, the
storage interface with its in-memory and SQLAlchemy backends, and the
``LedgerService`` that implements create, list, stats, transfer and edit.
The SQL backend is imported lazily by callers so the domain stays usable
without a database driver.
"""

from .models import (
    TRANSFER_CATEGORY,
    Division,
    Transaction,
    TransactionDraft,
    TransactionFilter,
    TransactionType,
    validate_new_transaction,
)
from .service import EDIT_WINDOW, LedgerService, LedgerStats
from .store import InMemoryTransactionStore, TransactionStore

__all__ = [
    "EDIT_WINDOW",
    "TRANSFER_CATEGORY",
    "Division",
    "InMemoryTransactionStore",
    "LedgerService",
    "LedgerStats",
    "Transaction",
    "TransactionDraft",
    "TransactionFilter",
    "TransactionType",
    "TransactionStore",
    "validate_new_transaction",
]
