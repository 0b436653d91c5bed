"""Mini README: SQLAlchemy-backed transaction store.

Structure:
    * Base / TransactionRow - ORM mapping of the ``transactions`` table.
    * SqlTransactionStore - ``TransactionStore`` implementation over an engine.

Any SQLAlchemy URL works; the default deployment uses a local SQLite file.
Dates are stored as naive UTC timestamps and converted back to aware UTC
datetimes when rows are read. Every public method runs in its own session and
database transaction, so ``add_many`` commits both transfer legs or neither.
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional, Sequence

from sqlalchemy import DateTime, Float, Integer, String, create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from ..errors import NotFoundError, StoreError
from ..logging_utils import get_logger
from .models import Division, Transaction, TransactionDraft, TransactionFilter, TransactionType
from .store import TransactionStore

LOGGER = get_logger(__name__)


class Base(DeclarativeBase):
    pass


class TransactionRow(Base):
    __tablename__ = "transactions"

    # Insertion order, used to break ties between equal dates.
    row_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    public_id: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    transaction_type: Mapped[str] = mapped_column("type", String(16), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    division: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)

    @classmethod
    def from_draft(cls, draft: TransactionDraft) -> "TransactionRow":
        return cls(
            public_id=uuid.uuid4().hex,
            title=draft.title,
            amount=draft.amount,
            transaction_type=draft.transaction_type.value,
            category=draft.category,
            division=draft.division.value,
            date=_to_naive_utc(draft.date),
        )

    def update_from(self, transaction: Transaction) -> None:
        self.title = transaction.title
        self.amount = transaction.amount
        self.transaction_type = transaction.transaction_type.value
        self.category = transaction.category
        self.division = transaction.division.value
        self.date = _to_naive_utc(transaction.date)

    def to_transaction(self) -> Transaction:
        return Transaction(
            transaction_id=self.public_id,
            title=self.title,
            amount=self.amount,
            transaction_type=TransactionType(self.transaction_type),
            category=self.category,
            division=Division(self.division),
            date=self.date.replace(tzinfo=timezone.utc),
        )


def _to_naive_utc(value: datetime) -> datetime:
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def build_engine(database_url: str) -> Engine:
    """Create an engine, sharing one connection for in-memory SQLite."""

    if database_url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if database_url in {"sqlite://", "sqlite:///:memory:"}:
            options["poolclass"] = StaticPool
        return create_engine(database_url, **options)
    return create_engine(database_url, pool_pre_ping=True)


class SqlTransactionStore(TransactionStore):
    """Persist transactions in a relational database through SQLAlchemy."""

    backend_name = "sql"

    def __init__(self, database_url: Optional[str] = None, *, engine: Optional[Engine] = None) -> None:
        if engine is None:
            if not database_url:
                raise ValueError("Either database_url or engine must be provided.")
            engine = build_engine(database_url)
        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        try:
            Base.metadata.create_all(engine)
        except SQLAlchemyError as error:
            LOGGER.error("Could not initialise transaction table: %s", error)
            raise StoreError(f"Could not initialise the transaction store: {error}") from error
        LOGGER.info("SQL store ready on %s", engine.url.render_as_string(hide_password=True))

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            with session.begin():
                yield session
        except SQLAlchemyError as error:
            LOGGER.error("Store operation failed: %s", error)
            raise StoreError(f"Store operation failed: {error}") from error
        finally:
            session.close()

    def add(self, draft: TransactionDraft) -> Transaction:
        return self.add_many([draft])[0]

    def add_many(self, drafts: Sequence[TransactionDraft]) -> List[Transaction]:
        rows = [TransactionRow.from_draft(draft) for draft in drafts]
        with self._transaction() as session:
            session.add_all(rows)
        return [row.to_transaction() for row in rows]

    def get(self, transaction_id: str) -> Transaction:
        with self._transaction() as session:
            row = self._load(session, transaction_id)
            return row.to_transaction()

    def replace(self, transaction: Transaction) -> Transaction:
        with self._transaction() as session:
            row = self._load(session, transaction.transaction_id)
            row.update_from(transaction)
        return row.to_transaction()

    def find(self, criteria: Optional[TransactionFilter] = None) -> List[Transaction]:
        criteria = criteria or TransactionFilter()
        statement = select(TransactionRow)
        if criteria.division is not None:
            statement = statement.where(TransactionRow.division == criteria.division.value)
        if criteria.category is not None:
            statement = statement.where(TransactionRow.category == criteria.category)
        if criteria.transaction_type is not None:
            statement = statement.where(
                TransactionRow.transaction_type == criteria.transaction_type.value
            )
        if criteria.start is not None:
            statement = statement.where(TransactionRow.date >= _to_naive_utc(criteria.start))
        if criteria.end is not None:
            statement = statement.where(TransactionRow.date <= _to_naive_utc(criteria.end))
        statement = statement.order_by(TransactionRow.date.desc(), TransactionRow.row_id.desc())

        with self._transaction() as session:
            return [row.to_transaction() for row in session.scalars(statement)]

    def close(self) -> None:
        self._engine.dispose()

    @staticmethod
    def _load(session: Session, transaction_id: str) -> TransactionRow:
        row = session.scalars(
            select(TransactionRow).where(TransactionRow.public_id == transaction_id)
        ).first()
        if row is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return row
