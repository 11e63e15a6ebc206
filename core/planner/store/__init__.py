"""
Persistent entity store.

- EntityKind, Board, Bucket, Task, Member: stored records
- KIND_SPECS: per-kind table, name field and parent field
- BoardStore: SQLite-backed create/find/delete primitives
"""

from planner.store.entities import (
    KIND_SPECS,
    Board,
    Bucket,
    EntityKind,
    KindSpec,
    Member,
    Record,
    Task,
)
from planner.store.board_store import BoardStore

__all__ = [
    "KIND_SPECS",
    "Board",
    "Bucket",
    "EntityKind",
    "KindSpec",
    "Member",
    "Record",
    "Task",
    "BoardStore",
]
