"""
SQLite-backed storage for boards, buckets, tasks and members.

The store exposes plain create/find/delete primitives and knows nothing
about cascades: callers delete children before parents.
"""

import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator, Optional

from planner.errors import StoreError
from planner.store.entities import KIND_SPECS, EntityKind, Record


class BoardStore:
    """
    Four independent collections in one SQLite database.

    Every call opens its own connection, so the store can be shared by
    concurrent requests.
    """

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize the store.

        Args:
            db_path: Path to SQLite database. Defaults to config.DB_PATH
        """
        if db_path is None:
            from planner.config import DB_PATH

            db_path = DB_PATH
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self.db_path = db_path
        self._init_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(str(e)) from e
        finally:
            conn.close()

    def _init_db(self):
        """Initialize database schema."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS boards (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS buckets (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    board_id TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    bucket_id TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS members (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    initials TEXT NOT NULL,
                    avatar_color TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_buckets_board ON buckets(board_id)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_bucket ON tasks(bucket_id)")

    # --- Create ---

    def create(self, kind: EntityKind, **values) -> Record:
        """
        Insert a new record and return it.

        A fresh id is always assigned. created_at defaults to now but may be
        passed explicitly (undo restores the original timestamp).
        """
        spec = KIND_SPECS[kind]
        values.pop("id", None)
        values.setdefault("created_at", datetime.now().isoformat())
        row = {"id": uuid.uuid4().hex, **values}

        missing = set(spec.columns) - set(row)
        if missing:
            raise ValueError(f"Missing fields for {kind.value}: {sorted(missing)}")

        columns = spec.columns
        with self._connect() as conn:
            conn.execute(
                f"INSERT INTO {spec.table} ({', '.join(columns)}) "
                f"VALUES ({', '.join('?' for _ in columns)})",
                [row[c] for c in columns],
            )
        return spec.record_type(**{c: row[c] for c in columns})

    # --- Queries ---

    def get(self, kind: EntityKind, entity_id: str) -> Optional[Record]:
        """Get a record by id."""
        spec = KIND_SPECS[kind]
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT * FROM {spec.table} WHERE id = ?", (entity_id,)
            ).fetchone()
        return spec.from_row(row) if row else None

    def find(
        self,
        kind: EntityKind,
        *,
        name_contains: Optional[str] = None,
        name_equals: Optional[str] = None,
        parent_id: Optional[str] = None,
        parent_ids: Optional[Iterable[str]] = None,
        limit: Optional[int] = None,
    ) -> list[Record]:
        """
        Find records, newest first.

        Args:
            name_contains: Case-insensitive substring of the name field
            name_equals: Case-insensitive exact name
            parent_id: Owning board (buckets) or bucket (tasks)
            parent_ids: Any of several owners
            limit: Maximum number of records
        """
        spec = KIND_SPECS[kind]
        clauses: list[str] = []
        params: list = []

        if name_contains is not None:
            clauses.append(f"instr(lower({spec.name_field}), ?) > 0")
            params.append(name_contains.lower())
        if name_equals is not None:
            clauses.append(f"lower({spec.name_field}) = ?")
            params.append(name_equals.lower())
        if parent_id is not None or parent_ids is not None:
            if spec.parent_field is None:
                raise ValueError(f"{kind.value} has no parent")
            owners = [parent_id] if parent_id is not None else list(parent_ids)
            if not owners:
                return []
            clauses.append(
                f"{spec.parent_field} IN ({', '.join('?' for _ in owners)})"
            )
            params.extend(owners)

        sql = f"SELECT * FROM {spec.table}"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY created_at DESC, rowid DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        with self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [spec.from_row(row) for row in rows]

    def find_one(self, kind: EntityKind, **filters) -> Optional[Record]:
        """Newest record matching the filters, if any."""
        found = self.find(kind, limit=1, **filters)
        return found[0] if found else None

    def latest(self, kind: EntityKind) -> Optional[Record]:
        """Most recently created record of a kind."""
        return self.find_one(kind)

    def count(self, kind: EntityKind) -> int:
        spec = KIND_SPECS[kind]
        with self._connect() as conn:
            return conn.execute(f"SELECT COUNT(*) FROM {spec.table}").fetchone()[0]

    # --- Delete ---

    def delete_one(self, kind: EntityKind, entity_id: str) -> bool:
        """Delete a record by id. Returns False if it was already gone."""
        spec = KIND_SPECS[kind]
        with self._connect() as conn:
            cursor = conn.execute(f"DELETE FROM {spec.table} WHERE id = ?", (entity_id,))
            return cursor.rowcount > 0

    def delete_many(self, kind: EntityKind, entity_ids: Iterable[str]) -> int:
        """Delete several records by id. Returns the number removed."""
        spec = KIND_SPECS[kind]
        ids = list(entity_ids)
        if not ids:
            return 0
        with self._connect() as conn:
            cursor = conn.execute(
                f"DELETE FROM {spec.table} WHERE id IN ({', '.join('?' for _ in ids)})",
                ids,
            )
            return cursor.rowcount
