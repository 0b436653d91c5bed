"""Mini README: Storage interface for transactions plus an in-memory backend.

Structure:
    * TransactionStore - abstract interface the ledger service depends on.
    * InMemoryTransactionStore - dictionary-backed store used by tests and demos.

Stores assign identifiers, persist drafts and answer filtered queries ordered
newest first. ``add_many`` must be all-or-nothing so the two legs of a
transfer are never stored on their own.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Sequence

from ..errors import NotFoundError, StoreError
from ..logging_utils import get_logger
from .models import Transaction, TransactionDraft, TransactionFilter

LOGGER = get_logger(__name__)


class TransactionStore(ABC):
    """Base interface for transaction persistence backends."""

    backend_name: str = "generic"

    @abstractmethod
    def add(self, draft: TransactionDraft) -> Transaction:
        """Persist a single draft and return it with its identifier."""

    @abstractmethod
    def add_many(self, drafts: Sequence[TransactionDraft]) -> List[Transaction]:
        """Persist every draft atomically, in order."""

    @abstractmethod
    def get(self, transaction_id: str) -> Transaction:
        """Return a stored transaction or raise ``NotFoundError``."""

    @abstractmethod
    def replace(self, transaction: Transaction) -> Transaction:
        """Overwrite a stored transaction with new field values."""

    @abstractmethod
    def find(self, criteria: Optional[TransactionFilter] = None) -> List[Transaction]:
        """Return matching transactions, most recent date first."""

    def close(self) -> None:
        """Release backend resources."""


class InMemoryTransactionStore(TransactionStore):
    """Keep transactions in a process-local dictionary."""

    backend_name = "memory"

    def __init__(self, transactions: Optional[Iterable[Transaction]] = None) -> None:
        self._transactions: Dict[str, Transaction] = {}
        self._order: Dict[str, int] = {}
        self._sequence = 0
        self._lock = threading.Lock()
        for transaction in transactions or ():
            self._register(transaction)
        LOGGER.debug("In-memory store initialised with %s transactions", len(self._transactions))

    def _next_id(self) -> str:
        """Generate a deterministic transaction identifier."""

        self._sequence += 1
        return f"txn_{self._sequence:04d}"

    def _register(self, transaction: Transaction) -> None:
        if transaction.transaction_id in self._transactions:
            raise StoreError(f"Transaction {transaction.transaction_id} already exists.")
        self._transactions[transaction.transaction_id] = transaction
        self._order[transaction.transaction_id] = len(self._order)
        suffix = transaction.transaction_id.rsplit("_", 1)[-1]
        if suffix.isdigit():
            self._sequence = max(self._sequence, int(suffix))

    def add(self, draft: TransactionDraft) -> Transaction:
        return self.add_many([draft])[0]

    def add_many(self, drafts: Sequence[TransactionDraft]) -> List[Transaction]:
        with self._lock:
            created = [draft.with_id(self._next_id()) for draft in drafts]
            for transaction in created:
                self._register(transaction)
        return created

    def get(self, transaction_id: str) -> Transaction:
        with self._lock:
            transaction = self._transactions.get(transaction_id)
        if transaction is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return transaction

    def replace(self, transaction: Transaction) -> Transaction:
        with self._lock:
            if transaction.transaction_id not in self._transactions:
                raise NotFoundError(f"Transaction {transaction.transaction_id} not found")
            self._transactions[transaction.transaction_id] = transaction
        return transaction

    def find(self, criteria: Optional[TransactionFilter] = None) -> List[Transaction]:
        criteria = criteria or TransactionFilter()
        with self._lock:
            matching = [txn for txn in self._transactions.values() if criteria.matches(txn)]
            order = dict(self._order)
        return sorted(
            matching,
            key=lambda txn: (txn.date, order[txn.transaction_id]),
            reverse=True,
        )
