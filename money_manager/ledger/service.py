"""Mini README: Ledger service implementing the transaction operations.

Structure:
    * LedgerStats - aggregate totals recomputed for every request.
    * LedgerService - health, create, list, stats, transfer and edit.

The service is stateless: everything it knows comes from the injected
``TransactionStore``. Transfers are written through ``add_many`` so the
expense and income legs land together. Edits are only accepted while the
record is younger than ``EDIT_WINDOW`` measured from its stored date.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..errors import PermissionDeniedError, ValidationError
from ..logging_utils import get_logger
from .models import (
    TRANSFER_CATEGORY,
    Division,
    Transaction,
    TransactionDraft,
    TransactionFilter,
    TransactionType,
    parse_amount,
    validate_new_transaction,
)
from .store import TransactionStore

LOGGER = get_logger(__name__)

EDIT_WINDOW = timedelta(hours=12)
HEALTH_MESSAGE = "Server is healthy and running"
TRANSFER_MESSAGE = "Transfer successful"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class LedgerStats:
    """Income and expense totals over a set of transactions."""

    total_income: float = 0.0
    total_expenses: float = 0.0
    count: int = 0

    @property
    def total_balance(self) -> float:
        return self.total_income - self.total_expenses

    def as_dict(self) -> Dict[str, object]:
        return {
            "totalBalance": self.total_balance,
            "totalIncome": self.total_income,
            "totalExpenses": self.total_expenses,
            "count": self.count,
        }


class LedgerService:
    """Coordinate validation, persistence and aggregation of transactions."""

    def __init__(
        self,
        store: TransactionStore,
        *,
        clock: Callable[[], datetime] = _utcnow,
        edit_window: timedelta = EDIT_WINDOW,
    ) -> None:
        self.store = store
        self._clock = clock
        self.edit_window = edit_window

    def health(self) -> Dict[str, str]:
        return {"status": HEALTH_MESSAGE, "store": self.store.backend_name}

    def create_transaction(self, payload: Mapping[str, Any]) -> Transaction:
        """Validate a payload and persist exactly one new transaction."""

        draft = validate_new_transaction(payload, now=self._clock())
        created = self.store.add(draft)
        LOGGER.info(
            "Created %s transaction %s (%.2f, %s/%s)",
            created.transaction_type.value,
            created.transaction_id,
            created.amount,
            created.division.value,
            created.category,
        )
        return created

    def list_transactions(
        self, criteria: Optional[TransactionFilter] = None
    ) -> List[Transaction]:
        """Return transactions matching every supplied filter, newest first."""

        transactions = self.store.find(criteria)
        LOGGER.debug("Listing returned %s transactions for %s", len(transactions), criteria)
        return transactions

    def compute_stats(self, criteria: Optional[TransactionFilter] = None) -> LedgerStats:
        """Aggregate income and expense totals from scratch."""

        stats = LedgerStats()
        for transaction in self.store.find(criteria):
            if transaction.transaction_type is TransactionType.INCOME:
                stats.total_income += transaction.amount
            else:
                stats.total_expenses += transaction.amount
            stats.count += 1
        LOGGER.debug("Computed stats over %s transactions", stats.count)
        return stats

    def transfer(self, payload: Mapping[str, Any]) -> List[Transaction]:
        """Record a transfer as an expense in one division and income in another.

        Both legs share the amount and timestamp and are tagged with the
        ``Transfer`` category. The division pair may be identical.
        """

        if not isinstance(payload, Mapping):
            raise ValidationError("Transfer payload must be a JSON object.")
        missing = [
            name
            for name in ("amount", "fromDivision", "toDivision")
            if payload.get(name) in (None, "")
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        amount = parse_amount(payload["amount"])
        source = Division.from_str(payload["fromDivision"])
        destination = Division.from_str(payload["toDivision"])
        timestamp = self._clock()

        outgoing = TransactionDraft(
            title=f"Transfer to {destination.value}",
            amount=amount,
            transaction_type=TransactionType.EXPENSE,
            category=TRANSFER_CATEGORY,
            division=source,
            date=timestamp,
        )
        incoming = TransactionDraft(
            title=f"Transfer from {source.value}",
            amount=amount,
            transaction_type=TransactionType.INCOME,
            category=TRANSFER_CATEGORY,
            division=destination,
            date=timestamp,
        )
        legs = self.store.add_many([outgoing, incoming])
        LOGGER.info(
            "Transferred %.2f from %s to %s (%s)",
            amount,
            source.value,
            destination.value,
            ", ".join(leg.transaction_id for leg in legs),
        )
        return legs

    def edit_transaction(self, transaction_id: str, updates: Mapping[str, Any]) -> Transaction:
        """Merge ``updates`` into a transaction still inside the edit window."""

        if not isinstance(updates, Mapping):
            raise ValidationError("Update payload must be a JSON object.")
        current = self.store.get(transaction_id)
        elapsed = self._clock() - current.date
        if elapsed >= self.edit_window:
            LOGGER.warning(
                "Rejected edit of %s: %s elapsed since %s",
                transaction_id,
                elapsed,
                current.date.isoformat(),
            )
            hours = int(self.edit_window.total_seconds() // 3600)
            raise PermissionDeniedError(
                f"Edit window expired: transactions can only be edited within {hours} hours."
            )

        updated = self.store.replace(current.apply_update(updates))
        LOGGER.info("Edited transaction %s fields=%s", transaction_id, sorted(updates))
        return updated
