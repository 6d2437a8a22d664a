"""
SQLite-backed data store for profiles, the core-task catalog and time entries.

Every read and write in the tracker goes through ``Store``. Rows come back as
plain dicts from the generic CRUD methods and as schema dataclasses from the
typed helpers.
"""

from __future__ import annotations

import logging
import re
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import asdict
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional
from uuid import uuid4

from productivity_tracker.schema import CoreTask, DailySummary, DivertedTask, Profile, TaskLog, TimeLog

logger = logging.getLogger(__name__)

_SAFE_IDENTIFIER_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

_TABLES: dict[str, tuple[str, ...]] = {
    "profiles": ("id", "email", "full_name", "role", "is_active"),
    "core_tasks": ("id", "name", "allocated_time", "category"),
    "task_logs": ("id", "user_id", "core_task_id", "time_spent", "notes", "completed_at"),
    "diverted_tasks": ("id", "user_id", "task_type", "time_spent", "description", "completed_at"),
    "time_logs": ("id", "user_id", "log_type", "timestamp"),
    "daily_summaries": (
        "id",
        "date",
        "user_id",
        "core_minutes",
        "diverted_minutes",
        "total_minutes",
        "productivity_percentage",
        "utilization_percentage",
    ),
    "credentials": ("id", "email", "password_hash", "confirmed", "confirmation_token", "created_at"),
    "sessions": ("id", "user_id", "created_at"),
}

# Column used for date-range filters and default ordering.
_DATE_COLUMNS = {
    "task_logs": "completed_at",
    "diverted_tasks": "completed_at",
    "time_logs": "timestamp",
    "daily_summaries": "date",
    "credentials": "created_at",
    "sessions": "created_at",
}
_ORDER_COLUMNS = {"profiles": "full_name", "core_tasks": "name"}

_SCHEMA = """
CREATE TABLE IF NOT EXISTS profiles (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    full_name TEXT NOT NULL,
    role TEXT NOT NULL DEFAULT 'agent' CHECK (role IN ('agent', 'admin')),
    is_active INTEGER NOT NULL DEFAULT 1
);
CREATE TABLE IF NOT EXISTS core_tasks (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    allocated_time INTEGER NOT NULL,
    category TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS task_logs (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL REFERENCES profiles(id),
    core_task_id TEXT NOT NULL REFERENCES core_tasks(id),
    time_spent INTEGER NOT NULL,
    notes TEXT,
    completed_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS diverted_tasks (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL REFERENCES profiles(id),
    task_type TEXT NOT NULL,
    time_spent INTEGER NOT NULL,
    description TEXT,
    completed_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS time_logs (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL REFERENCES profiles(id),
    log_type TEXT NOT NULL CHECK (log_type IN ('work_start', 'work_end', 'break_start', 'break_end')),
    timestamp TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS daily_summaries (
    id TEXT PRIMARY KEY,
    date TEXT NOT NULL,
    user_id TEXT NOT NULL REFERENCES profiles(id),
    core_minutes INTEGER NOT NULL DEFAULT 0,
    diverted_minutes INTEGER NOT NULL DEFAULT 0,
    total_minutes INTEGER NOT NULL DEFAULT 0,
    productivity_percentage INTEGER NOT NULL DEFAULT 0,
    utilization_percentage INTEGER NOT NULL DEFAULT 0,
    UNIQUE (user_id, date)
);
CREATE TABLE IF NOT EXISTS credentials (
    id TEXT PRIMARY KEY REFERENCES profiles(id),
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    confirmed INTEGER NOT NULL DEFAULT 0,
    confirmation_token TEXT,
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS sessions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL REFERENCES profiles(id),
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_task_logs_user ON task_logs (user_id, completed_at);
CREATE INDEX IF NOT EXISTS idx_diverted_tasks_user ON diverted_tasks (user_id, completed_at);
CREATE INDEX IF NOT EXISTS idx_time_logs_user ON time_logs (user_id, timestamp);
CREATE INDEX IF NOT EXISTS idx_daily_summaries_date ON daily_summaries (date);
"""


class StoreError(Exception):
    """Raised when the underlying database rejects a read or write."""


def validate_identifier(name: str) -> str:
    """Return ``name`` if it is a safe SQL identifier, else raise ``ValueError``."""
    if not _SAFE_IDENTIFIER_RE.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_db_value(value: Any) -> Any:
    """Convert python values into their stored representation."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat(timespec="microseconds")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return int(value)
    return value


def parse_timestamp(raw: str) -> datetime:
    value = datetime.fromisoformat(raw)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


class Store:
    """One SQLite connection plus schema; use ``Store.open`` for a file database."""

    def __init__(self, path: str = ":memory:"):
        self.path = path
        if path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        # Streamlit sessions share one cached store across worker threads;
        # _lock serializes them and each transaction runs in its own savepoint.
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.executescript(_SCHEMA)
        logger.info("Store ready, DB path: %s", path)

    @classmethod
    def open(cls, path: str) -> "Store":
        return cls(path)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a unit of work in a savepoint; a failure undoes only that unit."""
        with self._lock:
            savepoint = f"sp_{uuid4().hex}"
            self._conn.execute(f"SAVEPOINT {savepoint}")
            try:
                yield self._conn
            except BaseException as exc:
                self._conn.execute(f"ROLLBACK TO {savepoint}")
                self._conn.execute(f"RELEASE {savepoint}")
                if isinstance(exc, sqlite3.Error):
                    raise StoreError(str(exc)) from exc
                raise
            else:
                self._conn.execute(f"RELEASE {savepoint}")

    # ==================== CRUD Operations ====================

    def _check(self, table: str, columns) -> None:
        validate_identifier(table)
        if table not in _TABLES:
            raise ValueError(f"Unknown table '{table}'")
        unknown = [column for column in columns if column not in _TABLES[table]]
        if unknown:
            raise ValueError(f"Unknown columns for {table}: {unknown}")

    def _prepare_insert(self, table: str, row: dict) -> tuple[dict, str]:
        row = dict(row)
        row.setdefault("id", uuid4().hex)
        date_column = _DATE_COLUMNS.get(table)
        if date_column and date_column != "date" and row.get(date_column) is None:
            row[date_column] = utcnow()
        self._check(table, row.keys())

        columns = list(row.keys())
        placeholders = ", ".join("?" for _ in columns)
        return row, f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"

    def insert(self, table: str, row: dict) -> dict:
        """Insert a row, filling ``id`` and the entry timestamp when absent."""
        row, sql = self._prepare_insert(table, row)
        with self._transaction() as conn:
            conn.execute(sql, [to_db_value(v) for v in row.values()])
        logger.debug("Inserted %s row %s", table, row["id"])
        return row

    def insert_many(self, rows: list[tuple[str, dict]]) -> list[dict]:
        """Insert ``(table, row)`` pairs atomically: all rows land or none do."""
        prepared = [(table, *self._prepare_insert(table, row)) for table, row in rows]
        with self._transaction() as conn:
            for _, row, sql in prepared:
                conn.execute(sql, [to_db_value(v) for v in row.values()])
        logger.debug("Inserted %d rows into %s", len(prepared), sorted({table for table, _, _ in prepared}))
        return [row for _, row, _ in prepared]

    def get(self, table: str, row_id: str) -> Optional[dict]:
        self._check(table, ())
        with self._transaction() as conn:
            found = conn.execute(f"SELECT * FROM {table} WHERE id = ?", [row_id]).fetchone()
        return dict(found) if found else None

    def update(self, table: str, row_id: str, changes: dict) -> bool:
        """Update a row by id. Returns whether a row matched."""
        if not changes:
            return False
        self._check(table, changes.keys())
        assignments = ", ".join(f"{column} = ?" for column in changes)
        values = [to_db_value(v) for v in changes.values()]
        values.append(row_id)
        with self._transaction() as conn:
            result = conn.execute(f"UPDATE {table} SET {assignments} WHERE id = ?", values)
        return result.rowcount > 0

    def delete(self, table: str, row_id: str) -> bool:
        self._check(table, ())
        with self._transaction() as conn:
            result = conn.execute(f"DELETE FROM {table} WHERE id = ?", [row_id])
        return result.rowcount > 0

    def select(
        self,
        table: str,
        user_id: Optional[str] = None,
        since: Any = None,
        until: Any = None,
        descending: bool = False,
        limit: Optional[int] = None,
        **equals: Any,
    ) -> list[dict]:
        """Select rows filtered by user, an inclusive date range and column equality."""
        self._check(table, equals.keys())
        clauses = []
        params: list[Any] = []

        if user_id is not None:
            self._check(table, ("user_id",))
            clauses.append("user_id = ?")
            params.append(user_id)

        date_column = _DATE_COLUMNS.get(table)
        if (since is not None or until is not None) and date_column is None:
            raise ValueError(f"Table {table} has no date column to filter on")
        if since is not None:
            clauses.append(f"{date_column} >= ?")
            params.append(to_db_value(since))
        if until is not None:
            clauses.append(f"{date_column} <= ?")
            params.append(to_db_value(until))

        for column, value in equals.items():
            clauses.append(f"{column} = ?")
            params.append(to_db_value(value))

        sql = f"SELECT * FROM {table}"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        order_column = date_column or _ORDER_COLUMNS.get(table, "id")
        sql += f" ORDER BY {order_column} {'DESC' if descending else 'ASC'}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))

        with self._transaction() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [dict(row) for row in rows]

    # ==================== Typed helpers ====================

    def profiles(self) -> list[Profile]:
        return [_profile(row) for row in self.select("profiles")]

    def profile(self, user_id: str) -> Optional[Profile]:
        row = self.get("profiles", user_id)
        return _profile(row) if row else None

    def core_tasks(self) -> list[CoreTask]:
        return [CoreTask(**row) for row in self.select("core_tasks")]

    def task_logs(self, user_id: Optional[str] = None, since=None, until=None, descending=False, limit=None) -> list[TaskLog]:
        rows = self.select("task_logs", user_id, since, until, descending, limit)
        return [TaskLog(**{**row, "completed_at": parse_timestamp(row["completed_at"])}) for row in rows]

    def diverted_tasks(
        self, user_id: Optional[str] = None, since=None, until=None, descending=False, limit=None
    ) -> list[DivertedTask]:
        rows = self.select("diverted_tasks", user_id, since, until, descending, limit)
        return [DivertedTask(**{**row, "completed_at": parse_timestamp(row["completed_at"])}) for row in rows]

    def time_logs(self, user_id: Optional[str] = None, since=None, until=None, descending=False, limit=None) -> list[TimeLog]:
        rows = self.select("time_logs", user_id, since, until, descending, limit)
        return [TimeLog(**{**row, "timestamp": parse_timestamp(row["timestamp"])}) for row in rows]

    def latest_time_log(self, user_id: str) -> Optional[TimeLog]:
        logs = self.time_logs(user_id, descending=True, limit=1)
        return logs[0] if logs else None

    def daily_summaries(
        self, user_id: Optional[str] = None, since=None, until=None, descending=False, limit=None
    ) -> list[DailySummary]:
        rows = self.select("daily_summaries", user_id, since, until, descending, limit)
        summaries = []
        for row in rows:
            row.pop("id")
            row["date"] = date.fromisoformat(row["date"])
            summaries.append(DailySummary(**row))
        return summaries

    def upsert_daily_summary(self, summary: DailySummary) -> None:
        """Insert or replace the summary row for ``(user_id, date)``."""
        values = {column: to_db_value(getattr(summary, column)) for column in _TABLES["daily_summaries"][1:]}
        columns = ["id", *values.keys()]
        sql = (
            f"INSERT INTO daily_summaries ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)}) "
            "ON CONFLICT (user_id, date) DO UPDATE SET "
            + ", ".join(f"{column} = excluded.{column}" for column in values if column not in ("user_id", "date"))
        )
        with self._transaction() as conn:
            conn.execute(sql, [uuid4().hex, *values.values()])

    def add_records(self, table: str, records: list) -> int:
        """Bulk-load parsed records into ``table``. Returns the count."""
        for record in records:
            if table == "daily_summaries":
                self.upsert_daily_summary(record)
            else:
                self.insert(table, asdict(record))
        logger.info("Loaded %d %s rows", len(records), table)
        return len(records)


def _profile(row: dict) -> Profile:
    return Profile(
        id=row["id"],
        email=row["email"],
        full_name=row["full_name"],
        role=row["role"],
        is_active=bool(row["is_active"]),
    )
