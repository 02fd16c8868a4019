"""Persistence backends for transactions, spending goals and categories.

The store talks to persistence only through :class:`FinanceRepository`.
Three implementations are provided:

* :class:`InMemoryRepository` - nothing leaves the process (tests, demos)
* :class:`JsonFileRepository` - a single JSON document on disk, the local
  storage flavour of the app
* :class:`SqliteRepository` - relational tables mirroring the hosted
  database (``transactions``, ``future_installments``, ``spending_goals``,
  ``categories``), with installments deleted in cascade

Every backend failure surfaces as :class:`~household_finance.errors.PersistenceError`.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

from . import config
from .errors import PersistenceError, ValidationError
from .models import SpendingGoal, Transaction, new_id

LOGGER = logging.getLogger(__name__)


class FinanceRepository(ABC):
    """Create/read/update/delete operations used by the store."""

    @abstractmethod
    def load_transactions(self) -> List[Transaction]:
        ...

    @abstractmethod
    def add_transaction(self, transaction: Transaction) -> None:
        """Store a transaction together with its installment schedule."""

    @abstractmethod
    def update_transaction(self, transaction: Transaction) -> None:
        """Replace a stored transaction and its installment schedule."""

    @abstractmethod
    def delete_transaction(self, transaction_id: str) -> None:
        """Delete a transaction and its installments; unknown ids are ignored."""

    @abstractmethod
    def load_goals(self) -> List[SpendingGoal]:
        ...

    @abstractmethod
    def add_goal(self, goal: SpendingGoal) -> None:
        ...

    @abstractmethod
    def update_goal(self, goal: SpendingGoal) -> None:
        ...

    @abstractmethod
    def delete_goal(self, goal_id: str) -> None:
        ...

    @abstractmethod
    def load_categories(self) -> List[str]:
        ...

    @abstractmethod
    def add_category(self, name: str) -> None:
        ...


# ---------------------------------------------------------------------------
# In memory
# ---------------------------------------------------------------------------


class InMemoryRepository(FinanceRepository):
    """Keeps serialized records in dictionaries."""

    def __init__(self) -> None:
        self._transactions: Dict[str, Dict[str, Any]] = {}
        self._goals: Dict[str, Dict[str, Any]] = {}
        self._categories: List[str] = []

    def load_transactions(self) -> List[Transaction]:
        return [Transaction.from_record(r) for r in self._transactions.values()]

    def add_transaction(self, transaction: Transaction) -> None:
        self._transactions[transaction.id] = transaction.to_record()

    def update_transaction(self, transaction: Transaction) -> None:
        if transaction.id in self._transactions:
            self._transactions[transaction.id] = transaction.to_record()

    def delete_transaction(self, transaction_id: str) -> None:
        self._transactions.pop(transaction_id, None)

    def load_goals(self) -> List[SpendingGoal]:
        return [SpendingGoal.from_record(r) for r in self._goals.values()]

    def add_goal(self, goal: SpendingGoal) -> None:
        self._goals[goal.id] = goal.to_record()

    def update_goal(self, goal: SpendingGoal) -> None:
        if goal.id in self._goals:
            self._goals[goal.id] = goal.to_record()

    def delete_goal(self, goal_id: str) -> None:
        self._goals.pop(goal_id, None)

    def load_categories(self) -> List[str]:
        return list(self._categories)

    def add_category(self, name: str) -> None:
        if name not in self._categories:
            self._categories.append(name)


# ---------------------------------------------------------------------------
# JSON document
# ---------------------------------------------------------------------------


def _empty_document() -> Dict[str, Any]:
    return {'transactions': [], 'spending_goals': [], 'categories': []}


class JsonFileRepository(FinanceRepository):
    """Stores everything in one JSON document, rewritten on each change."""

    def __init__(self, path: Optional[Path] = None):
        """Initialize JSON storage.

        Args:
            path: Optional custom document path.
                  Defaults to STORE_PATH from config.
        """
        self.path = Path(path) if path is not None else config.STORE_PATH

    # Document I/O -----------------------------------------------------------

    def _read(self, strict: bool = False) -> Dict[str, Any]:
        """Load the document.

        Unreadable documents load as empty so the app can still start; with
        ``strict`` they raise instead, so a write never overwrites data that
        could not be parsed.
        """
        if not self.path.exists():
            return _empty_document()
        try:
            with self.path.open('r', encoding='utf-8') as handle:
                data = json.load(handle)
        except (json.JSONDecodeError, OSError) as e:
            if strict:
                raise PersistenceError(f"Could not read {self.path}: {e}") from e
            LOGGER.warning("Could not load finance data from %s: %s", self.path, e)
            return _empty_document()
        if not isinstance(data, dict):
            if strict:
                raise PersistenceError(f"Unexpected content in {self.path}")
            LOGGER.warning("Ignoring malformed finance data in %s", self.path)
            return _empty_document()
        document = _empty_document()
        for key in document:
            value = data.get(key)
            if isinstance(value, list):
                document[key] = value
        return document

    def _write(self, document: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open('w', encoding='utf-8') as handle:
                json.dump(document, handle, indent=2, sort_keys=True, ensure_ascii=False)
        except OSError as e:
            raise PersistenceError(f"Failed to save finance data to {self.path}: {e}") from e
        LOGGER.debug("Saved finance data to %s", self.path)

    def _upsert(self, key: str, record: Dict[str, Any], insert: bool) -> None:
        document = self._read(strict=True)
        records = document[key]
        for index, existing in enumerate(records):
            if isinstance(existing, dict) and existing.get('id') == record['id']:
                records[index] = record
                break
        else:
            if not insert:
                return
            records.append(record)
        self._write(document)

    def _remove(self, key: str, record_id: str) -> None:
        document = self._read(strict=True)
        remaining = [
            r for r in document[key] if not (isinstance(r, dict) and r.get('id') == record_id)
        ]
        if len(remaining) == len(document[key]):
            return
        document[key] = remaining
        self._write(document)

    def _load_records(self, key: str, factory: Callable[[Dict[str, Any]], Any]) -> List[Any]:
        loaded = []
        for record in self._read()[key]:
            try:
                loaded.append(factory(record))
            except ValidationError as e:
                # Left in the file untouched; later writes keep it as is
                LOGGER.warning("Skipping invalid %s entry in %s: %s", key, self.path, e)
        return loaded

    # Repository API ---------------------------------------------------------

    def load_transactions(self) -> List[Transaction]:
        return self._load_records('transactions', Transaction.from_record)

    def add_transaction(self, transaction: Transaction) -> None:
        self._upsert('transactions', transaction.to_record(), insert=True)

    def update_transaction(self, transaction: Transaction) -> None:
        self._upsert('transactions', transaction.to_record(), insert=False)

    def delete_transaction(self, transaction_id: str) -> None:
        self._remove('transactions', transaction_id)

    def load_goals(self) -> List[SpendingGoal]:
        return self._load_records('spending_goals', SpendingGoal.from_record)

    def add_goal(self, goal: SpendingGoal) -> None:
        self._upsert('spending_goals', goal.to_record(), insert=True)

    def update_goal(self, goal: SpendingGoal) -> None:
        self._upsert('spending_goals', goal.to_record(), insert=False)

    def delete_goal(self, goal_id: str) -> None:
        self._remove('spending_goals', goal_id)

    def load_categories(self) -> List[str]:
        return [str(c) for c in self._read()['categories']]

    def add_category(self, name: str) -> None:
        document = self._read(strict=True)
        if name in document['categories']:
            return
        document['categories'].append(name)
        self._write(document)


# ---------------------------------------------------------------------------
# SQLite
# ---------------------------------------------------------------------------

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA foreign_keys=ON;

CREATE TABLE IF NOT EXISTS transactions (
    id TEXT PRIMARY KEY,
    description TEXT NOT NULL,
    amount TEXT NOT NULL,
    date TEXT NOT NULL,
    type TEXT NOT NULL,
    category TEXT NOT NULL,
    payment_method TEXT NOT NULL,
    installments INTEGER,
    current_installment INTEGER
);

CREATE TABLE IF NOT EXISTS future_installments (
    id TEXT PRIMARY KEY,
    transaction_id TEXT NOT NULL REFERENCES transactions (id) ON DELETE CASCADE,
    month TEXT NOT NULL,
    amount TEXT NOT NULL,
    installment_number INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS spending_goals (
    id TEXT PRIMARY KEY,
    category TEXT NOT NULL,
    amount TEXT NOT NULL,
    period TEXT NOT NULL,
    start_date TEXT NOT NULL,
    end_date TEXT
);

CREATE TABLE IF NOT EXISTS categories (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE
);

CREATE INDEX IF NOT EXISTS ix_txn_date ON transactions (date);
CREATE INDEX IF NOT EXISTS ix_installment_month ON future_installments (month);
CREATE INDEX IF NOT EXISTS ix_installment_txn ON future_installments (transaction_id);
"""


class SqliteRepository(FinanceRepository):
    """Relational storage with one row per transaction and per installment."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path) if db_path is not None else config.DB_PATH
        self.init_db()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path))
        except (OSError, sqlite3.Error) as e:
            raise PersistenceError(f"Could not open database {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys=ON")
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError(f"Database error on {self.db_path}: {e}") from e
        finally:
            conn.close()

    def init_db(self) -> None:
        with self.connect() as conn:
            conn.executescript(SCHEMA_SQL)

    # Transactions -----------------------------------------------------------

    def _insert_installments(self, conn: sqlite3.Connection, transaction: Transaction) -> None:
        conn.executemany(
            """
            INSERT INTO future_installments (id, transaction_id, month, amount, installment_number)
            VALUES (?, ?, ?, ?, ?)
            """,
            [
                (i.id, transaction.id, i.month, str(i.amount), i.installment_number)
                for i in transaction.future_installments or ()
            ],
        )

    @staticmethod
    def _transaction_row(transaction: Transaction) -> tuple:
        return (
            transaction.description,
            str(transaction.amount),
            transaction.date.isoformat(),
            transaction.type,
            transaction.category,
            transaction.payment_method,
            transaction.installment_count,
            transaction.current_installment,
            transaction.id,
        )

    def load_transactions(self) -> List[Transaction]:
        with self.connect() as conn:
            rows = conn.execute("SELECT * FROM transactions ORDER BY rowid").fetchall()
            installment_rows = conn.execute(
                "SELECT * FROM future_installments ORDER BY transaction_id, installment_number"
            ).fetchall()

        by_transaction: Dict[str, List[Dict[str, Any]]] = {}
        for row in installment_rows:
            by_transaction.setdefault(row['transaction_id'], []).append(dict(row))

        transactions = []
        for row in rows:
            record = dict(row)
            record['installment_count'] = record.pop('installments')
            record['future_installments'] = by_transaction.get(record['id'])
            transactions.append(Transaction.from_record(record))
        return transactions

    def add_transaction(self, transaction: Transaction) -> None:
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO transactions (
                    description, amount, date, type, category, payment_method,
                    installments, current_installment, id
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                self._transaction_row(transaction),
            )
            self._insert_installments(conn, transaction)
        LOGGER.debug("Inserted transaction %s", transaction.id)

    def update_transaction(self, transaction: Transaction) -> None:
        with self.connect() as conn:
            cursor = conn.execute(
                """
                UPDATE transactions SET
                    description = ?, amount = ?, date = ?, type = ?, category = ?,
                    payment_method = ?, installments = ?, current_installment = ?
                WHERE id = ?
                """,
                self._transaction_row(transaction),
            )
            if cursor.rowcount == 0:
                return
            conn.execute(
                "DELETE FROM future_installments WHERE transaction_id = ?", (transaction.id,)
            )
            self._insert_installments(conn, transaction)

    def delete_transaction(self, transaction_id: str) -> None:
        with self.connect() as conn:
            conn.execute("DELETE FROM transactions WHERE id = ?", (transaction_id,))

    # Goals ------------------------------------------------------------------

    def load_goals(self) -> List[SpendingGoal]:
        with self.connect() as conn:
            rows = conn.execute("SELECT * FROM spending_goals ORDER BY rowid").fetchall()
        return [SpendingGoal.from_record(dict(row)) for row in rows]

    def add_goal(self, goal: SpendingGoal) -> None:
        record = goal.to_record()
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO spending_goals (id, category, amount, period, start_date, end_date)
                VALUES (:id, :category, :amount, :period, :start_date, :end_date)
                """,
                record,
            )

    def update_goal(self, goal: SpendingGoal) -> None:
        record = goal.to_record()
        with self.connect() as conn:
            conn.execute(
                """
                UPDATE spending_goals SET
                    category = :category, amount = :amount, period = :period,
                    start_date = :start_date, end_date = :end_date
                WHERE id = :id
                """,
                record,
            )

    def delete_goal(self, goal_id: str) -> None:
        with self.connect() as conn:
            conn.execute("DELETE FROM spending_goals WHERE id = ?", (goal_id,))

    # Categories -------------------------------------------------------------

    def load_categories(self) -> List[str]:
        with self.connect() as conn:
            rows = conn.execute("SELECT name FROM categories ORDER BY rowid").fetchall()
        return [row['name'] for row in rows]

    def add_category(self, name: str) -> None:
        with self.connect() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO categories (id, name) VALUES (?, ?)", (new_id(), name)
            )
