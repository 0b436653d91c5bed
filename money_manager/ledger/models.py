"""Mini README: Transaction records and payload validation for the ledger.

Structure:
    * TransactionType - closed set of cash-flow directions (income/expense).
    * Division - closed set of ledger partitions (Personal/Office).
    * TransactionDraft - validated record that has not been stored yet.
    * Transaction - stored record carrying its store-assigned identifier.
    * TransactionFilter - conjunctive query used by listings and statistics.
    * validate_new_transaction - turns a raw JSON payload into a draft.

Amounts are always stored as positive magnitudes; the direction of the cash
flow is carried solely by ``transaction_type``. Dates are normalised to
timezone-aware UTC datetimes so comparisons against the edit window and the
listing range never mix naive and aware values.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from ..errors import ValidationError

TRANSFER_CATEGORY = "Transfer"
MATCH_ALL = "all"

REQUIRED_FIELDS = ("title", "amount", "type", "category", "division")
EDITABLE_FIELDS = REQUIRED_FIELDS + ("date",)


class TransactionType(str, Enum):
    """Enumerate the supported cash-flow directions."""

    INCOME = "income"
    EXPENSE = "expense"

    @classmethod
    def from_str(cls, value: object) -> "TransactionType":
        """Coerce arbitrary casing into a valid transaction type."""

        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as error:
            raise ValidationError(
                f"Unsupported transaction type: {value!r} (expected income or expense)"
            ) from error


class Division(str, Enum):
    """Enumerate the ledger partitions a transaction can belong to."""

    PERSONAL = "Personal"
    OFFICE = "Office"

    @classmethod
    def from_str(cls, value: object) -> "Division":
        """Match division names case-insensitively."""

        if isinstance(value, cls):
            return value
        normalised = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == normalised:
                return member
        raise ValidationError(
            f"Unsupported division: {value!r} (expected Personal or Office)"
        )


@dataclass(slots=True)
class TransactionDraft:
    """A validated transaction waiting for an identifier from the store."""

    title: str
    amount: float
    transaction_type: TransactionType
    category: str
    division: Division
    date: datetime

    def with_id(self, transaction_id: str) -> "Transaction":
        return Transaction(
            transaction_id=transaction_id,
            title=self.title,
            amount=self.amount,
            transaction_type=self.transaction_type,
            category=self.category,
            division=self.division,
            date=self.date,
        )


@dataclass(slots=True)
class Transaction:
    """Represent a stored ledger entry."""

    transaction_id: str
    title: str
    amount: float
    transaction_type: TransactionType
    category: str
    division: Division
    date: datetime

    def as_dict(self) -> Dict[str, object]:
        """Export the transaction with the field names used on the wire."""

        return {
            "id": self.transaction_id,
            "title": self.title,
            "amount": self.amount,
            "type": self.transaction_type.value,
            "category": self.category,
            "division": self.division.value,
            "date": self.date.isoformat(),
        }

    def apply_update(self, updates: Mapping[str, Any]) -> "Transaction":
        """Return a copy with ``updates`` merged over the current values.

        The merged record is validated as a whole, so an update can never
        leave a transaction outside the closed sets or with a blank title.
        """

        if not updates:
            raise ValidationError("Update payload must contain at least one field.")
        updates = dict(updates)
        if "id" in updates:
            if str(updates.pop("id")) != self.transaction_id:
                raise ValidationError("Transaction identifiers cannot be changed.")
        _reject_unknown_fields(updates)

        merged: Dict[str, Any] = {
            "title": self.title,
            "amount": self.amount,
            "type": self.transaction_type,
            "category": self.category,
            "division": self.division,
            "date": self.date,
        }
        merged.update(updates)
        if merged.get("date") is None:
            raise ValidationError("Field 'date' cannot be cleared.")
        draft = validate_new_transaction(merged, now=self.date)
        return replace(
            self,
            title=draft.title,
            amount=draft.amount,
            transaction_type=draft.transaction_type,
            category=draft.category,
            division=draft.division,
            date=draft.date,
        )


@dataclass(slots=True)
class TransactionFilter:
    """Conjunctive filter over transactions; ``None`` fields match anything."""

    division: Optional[Division] = None
    category: Optional[str] = None
    transaction_type: Optional[TransactionType] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @classmethod
    def from_params(
        cls,
        *,
        division: Optional[str] = None,
        category: Optional[str] = None,
        transaction_type: Optional[str] = None,
        start_date: object = None,
        end_date: object = None,
    ) -> "TransactionFilter":
        """Build a filter from query parameters.

        Empty values and the ``All`` token impose no constraint. The date
        range only applies when both bounds are supplied; a date-only end
        bound covers the whole day.
        """

        division_value = _filter_value(division)
        category_value = _filter_value(category)
        type_value = _filter_value(transaction_type)

        start: Optional[datetime] = None
        end: Optional[datetime] = None
        if _present(start_date) and _present(end_date):
            start = parse_datetime(start_date, field_name="startDate")
            end = parse_datetime(end_date, field_name="endDate")
            if _is_date_only(end_date):
                try:
                    end = end + timedelta(days=1) - timedelta(microseconds=1)
                except OverflowError as error:
                    raise ValidationError("Field 'endDate' is out of range.") from error
            if start > end:
                raise ValidationError("startDate must not be later than endDate.")

        return cls(
            division=Division.from_str(division_value) if division_value else None,
            category=category_value,
            transaction_type=TransactionType.from_str(type_value) if type_value else None,
            start=start,
            end=end,
        )

    def matches(self, transaction: Transaction) -> bool:
        if self.division is not None and transaction.division is not self.division:
            return False
        if self.category is not None and transaction.category != self.category:
            return False
        if (
            self.transaction_type is not None
            and transaction.transaction_type is not self.transaction_type
        ):
            return False
        if self.start is not None and transaction.date < self.start:
            return False
        if self.end is not None and transaction.date > self.end:
            return False
        return True


def validate_new_transaction(
    payload: Mapping[str, Any], *, now: Optional[datetime] = None
) -> TransactionDraft:
    """Validate and coerce a create payload into a draft record."""

    if not isinstance(payload, Mapping):
        raise ValidationError("Transaction payload must be a JSON object.")
    if "id" in payload:
        raise ValidationError("Transaction identifiers are assigned by the store.")
    _reject_unknown_fields(payload)

    missing = [name for name in REQUIRED_FIELDS if not _present(payload.get(name))]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    raw_date = payload.get("date")
    if _present(raw_date):
        occurred = parse_datetime(raw_date, field_name="date")
    else:
        occurred = now or datetime.now(timezone.utc)

    return TransactionDraft(
        title=_parse_text(payload["title"], field_name="title"),
        amount=parse_amount(payload["amount"]),
        transaction_type=TransactionType.from_str(payload["type"]),
        category=_parse_text(payload["category"], field_name="category"),
        division=Division.from_str(payload["division"]),
        date=occurred,
    )


def parse_amount(value: object) -> float:
    """Coerce numbers and numeric strings into a positive float."""

    if isinstance(value, bool):
        raise ValidationError("Amount must be a number.")
    if isinstance(value, str):
        value = value.strip()
    try:
        amount = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as error:
        raise ValidationError(f"Amount must be a number, got {value!r}.") from error
    if not math.isfinite(amount):
        raise ValidationError("Amount must be a finite number.")
    if amount <= 0:
        raise ValidationError("Amount must be greater than zero.")
    return amount


def parse_datetime(value: object, *, field_name: str = "date") -> datetime:
    """Parse ISO strings, epoch milliseconds or date objects into UTC datetimes."""

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as error:
            raise ValidationError(f"Field '{field_name}' is out of range.") from error
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as error:
            raise ValidationError(
                f"Field '{field_name}' must be an ISO-8601 date, got {value!r}."
            ) from error
    else:
        raise ValidationError(f"Field '{field_name}' must be an ISO-8601 date.")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError as error:
        raise ValidationError(f"Field '{field_name}' is out of range.") from error


def _parse_text(value: object, *, field_name: str) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValidationError(f"Field '{field_name}' must be text.")
    text = str(value).strip()
    if not text:
        raise ValidationError(f"Field '{field_name}' must not be empty.")
    return text


def _reject_unknown_fields(payload: Mapping[str, Any]) -> None:
    unknown = sorted(str(key) for key in payload if key not in EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unsupported fields: {', '.join(unknown)}")


def _present(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def _filter_value(value: Optional[str]) -> Optional[str]:
    if not _present(value):
        return None
    text = str(value).strip()
    if text.lower() == MATCH_ALL:
        return None
    return text


def _is_date_only(value: object) -> bool:
    if isinstance(value, str):
        try:
            date.fromisoformat(value.strip())
        except ValueError:
            return False
        return True
    return isinstance(value, date) and not isinstance(value, datetime)
