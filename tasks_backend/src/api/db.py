from __future__ import annotations

import os
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Generator, List, Optional, Tuple
from uuid import UUID

from .models import DESCRIPTION_MAX_LENGTH, TITLE_MAX_LENGTH, TaskEntity
from .queries import ListMode, ListQuery, contains_ignore_case
from .repositories import Repository


@dataclass(frozen=True)
class _Cols:
    table: str = "tasks"
    id: str = "id"
    title: str = "title"
    description: str = "description"
    completed: str = "completed"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


_COLS = _Cols()

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%f+00:00"

_SQLITE_MAX_INTEGER = 2**63 - 1


def _format_dt(value: datetime) -> str:
    # Fixed-width UTC text so ORDER BY on the column matches chronological order
    return value.astimezone(timezone.utc).strftime(_TIMESTAMP_FORMAT)


def _parse_dt(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _contains_ci(text: Optional[str], term: str) -> int:
    return 1 if contains_ignore_case(text, term) else 0


class SQLiteRepository(Repository):
    """
    SQLite repository implementing the Repository interface.

    Each transaction() opens its own connection and takes the database write
    lock up front (BEGIN IMMEDIATE), so a read-modify-write inside it cannot
    interleave with another writer. Calls made outside a transaction run in
    a short-lived deferred transaction of their own.
    """

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._local = threading.local()
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, isolation_level=None, timeout=30)
        conn.row_factory = sqlite3.Row
        conn.create_function("contains_ci", 2, _contains_ci, deterministic=True)
        return conn

    @contextmanager
    def _scope(self, begin: str) -> Generator[sqlite3.Connection, None, None]:
        conn = self._connect()
        self._local.conn = conn
        try:
            conn.execute(begin)
            try:
                yield conn
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            self._local.conn = None
            conn.close()

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        if getattr(self._local, "conn", None) is not None:
            # Nested scopes join the outer transaction
            yield
            return
        with self._scope("BEGIN IMMEDIATE"):
            yield

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        active = getattr(self._local, "conn", None)
        if active is not None:
            yield active
            return
        with self._scope("BEGIN") as conn:
            yield conn

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_COLS.table} (
                    {_COLS.id} TEXT PRIMARY KEY,
                    {_COLS.title} VARCHAR({TITLE_MAX_LENGTH}) NOT NULL,
                    {_COLS.description} VARCHAR({DESCRIPTION_MAX_LENGTH}) NULL,
                    {_COLS.completed} INTEGER NOT NULL DEFAULT 0,
                    {_COLS.created_at} TEXT NOT NULL,
                    {_COLS.updated_at} TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_completed ON {_COLS.table}({_COLS.completed})"
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_created_at ON {_COLS.table}({_COLS.created_at} DESC)"
            )

    def _row_to_entity(self, row: sqlite3.Row) -> TaskEntity:
        return {
            "id": UUID(row[_COLS.id]),
            "title": str(row[_COLS.title]),
            "description": row[_COLS.description],
            "completed": bool(row[_COLS.completed]),
            "created_at": _parse_dt(row[_COLS.created_at]),
            "updated_at": _parse_dt(row[_COLS.updated_at]),
        }

    def get(self, task_id: UUID) -> Optional[TaskEntity]:
        with self._conn() as conn:
            row = conn.execute(
                f"SELECT * FROM {_COLS.table} WHERE {_COLS.id} = ?", (str(task_id),)
            ).fetchone()
            return self._row_to_entity(row) if row else None

    def exists(self, task_id: UUID) -> bool:
        with self._conn() as conn:
            row = conn.execute(
                f"SELECT 1 FROM {_COLS.table} WHERE {_COLS.id} = ?", (str(task_id),)
            ).fetchone()
            return row is not None

    def add(self, entity: TaskEntity) -> TaskEntity:
        with self._conn() as conn:
            conn.execute(
                f"""
                INSERT INTO {_COLS.table} ({_COLS.id}, {_COLS.title}, {_COLS.description},
                    {_COLS.completed}, {_COLS.created_at}, {_COLS.updated_at})
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    str(entity["id"]),
                    entity["title"],
                    entity["description"],
                    1 if entity["completed"] else 0,
                    _format_dt(entity["created_at"]),
                    _format_dt(entity["updated_at"]),
                ),
            )
            return entity.copy()

    def save(self, entity: TaskEntity) -> TaskEntity:
        with self._conn() as conn:
            cur = conn.execute(
                f"""
                UPDATE {_COLS.table}
                SET {_COLS.title} = ?, {_COLS.description} = ?, {_COLS.completed} = ?,
                    {_COLS.updated_at} = ?
                WHERE {_COLS.id} = ?
                """,
                (
                    entity["title"],
                    entity["description"],
                    1 if entity["completed"] else 0,
                    _format_dt(entity["updated_at"]),
                    str(entity["id"]),
                ),
            )
            if cur.rowcount == 0:
                raise KeyError(f"Unknown task id: {entity['id']}")
            return entity.copy()

    def delete(self, task_id: UUID) -> bool:
        with self._conn() as conn:
            cur = conn.execute(f"DELETE FROM {_COLS.table} WHERE {_COLS.id} = ?", (str(task_id),))
            return cur.rowcount > 0

    def list(self, query: ListQuery) -> Tuple[List[TaskEntity], int]:
        q = query
        clauses = []
        params: list = []

        if q.mode in (ListMode.SEARCH, ListMode.SEARCH_COMPLETED) and q.search:
            clauses.append(f"(contains_ci({_COLS.title}, ?) OR contains_ci({_COLS.description}, ?))")
            params.extend([q.search, q.search])

        if q.mode in (ListMode.COMPLETED, ListMode.SEARCH_COMPLETED):
            clauses.append(f"{_COLS.completed} = ?")
            params.append(1 if q.completed else 0)

        where_sql = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        order_sql = f"ORDER BY {_COLS.created_at} DESC, rowid DESC"

        with self._conn() as conn:
            count_row = conn.execute(
                f"SELECT COUNT(*) as cnt FROM {_COLS.table} {where_sql}", params
            ).fetchone()
            total = int(count_row["cnt"]) if count_row else 0

            if q.offset > _SQLITE_MAX_INTEGER:
                # Past any row sqlite can address; binding the offset would overflow
                return [], total

            rows = conn.execute(
                f"""
                SELECT * FROM {_COLS.table}
                {where_sql}
                {order_sql}
                LIMIT ? OFFSET ?
                """,
                [*params, q.limit, q.offset],
            ).fetchall()
            return [self._row_to_entity(r) for r in rows], total

    def count(self, completed: Optional[bool] = None) -> int:
        with self._conn() as conn:
            if completed is None:
                row = conn.execute(f"SELECT COUNT(*) as cnt FROM {_COLS.table}").fetchone()
            else:
                row = conn.execute(
                    f"SELECT COUNT(*) as cnt FROM {_COLS.table} WHERE {_COLS.completed} = ?",
                    (1 if completed else 0,),
                ).fetchone()
            return int(row["cnt"]) if row else 0
