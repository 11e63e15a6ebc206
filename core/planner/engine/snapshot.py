"""
Cascading delete with a single-level undo.

Deleting a board or bucket removes its whole subtree. Before anything is
removed, the subtree is captured in a Snapshot so it can be rebuilt later.

The store has no transactions spanning several entities: a failure between
deleting children and deleting the parent leaves a partially deleted tree.
"""

from dataclasses import dataclass, field
from typing import Optional

from planner.context.session import Candidate
from planner.errors import UserInputError
from planner.store.board_store import BoardStore
from planner.store.entities import (
    Board,
    Bucket,
    EntityKind,
    Record,
    Task,
    display_name,
    field_values,
)
from planner.utils.logging import logger


@dataclass(frozen=True)
class Snapshot:
    """
    Captured field values of a deleted subtree.

    Record ids are the originals. They are only used to relink tasks to
    buckets during restore and are never written back to the store.
    """
    kind: EntityKind
    root: Record
    buckets: tuple[Bucket, ...] = field(default_factory=tuple)
    tasks: tuple[Task, ...] = field(default_factory=tuple)

    @property
    def name(self) -> str:
        return display_name(self.root)

    def describe(self) -> str:
        """Short summary, e.g. "board 'Alpha' (2 buckets, 5 tasks)"."""
        text = f"{self.kind.value} '{self.name}'"
        parts = []
        if self.kind == EntityKind.BOARD:
            parts.append(_plural(len(self.buckets), "bucket"))
        if self.kind in (EntityKind.BOARD, EntityKind.BUCKET):
            parts.append(_plural(len(self.tasks), "task"))
        if parts:
            text += f" ({', '.join(parts)})"
        return text


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


class SnapshotExecutor:
    """Deletes subtrees children-first and rebuilds them top-down."""

    def __init__(self, store: BoardStore):
        self.store = store

    # ─────────────────────────────────────────────────────────
    # DELETE
    # ─────────────────────────────────────────────────────────

    def delete(self, candidate: Candidate) -> Optional[Snapshot]:
        """
        Capture and delete a candidate's subtree.

        Returns:
            The Snapshot, or None if the record no longer exists
        """
        snapshot = self.capture(candidate)
        if snapshot is None:
            return None

        # Tasks -> buckets -> root
        self.store.delete_many(EntityKind.TASK, [t.id for t in snapshot.tasks])
        self.store.delete_many(EntityKind.BUCKET, [b.id for b in snapshot.buckets])
        self.store.delete_one(snapshot.kind, snapshot.root.id)

        logger.info(f"Deleted {snapshot.describe()}")
        return snapshot

    def capture(self, candidate: Candidate) -> Optional[Snapshot]:
        """Read the current field values of a candidate and its descendants."""
        root = self.store.get(candidate.kind, candidate.record.id)
        if root is None:
            return None

        if candidate.kind == EntityKind.BOARD:
            buckets = self.store.find(EntityKind.BUCKET, parent_id=root.id)
            tasks = self.store.find(
                EntityKind.TASK, parent_ids=[b.id for b in buckets]
            )
            return Snapshot(candidate.kind, root, tuple(buckets), tuple(tasks))

        if candidate.kind == EntityKind.BUCKET:
            tasks = self.store.find(EntityKind.TASK, parent_id=root.id)
            return Snapshot(candidate.kind, root, tasks=tuple(tasks))

        return Snapshot(candidate.kind, root)

    # ─────────────────────────────────────────────────────────
    # RESTORE
    # ─────────────────────────────────────────────────────────

    def restore(self, snapshot: Snapshot) -> Record:
        """
        Recreate a snapshot's subtree with fresh ids.

        Returns:
            The recreated root record

        Raises:
            UserInputError: The parent the root belonged to is gone
        """
        if snapshot.kind == EntityKind.BOARD:
            root = self._restore_board(snapshot)
        elif snapshot.kind == EntityKind.BUCKET:
            root = self._restore_bucket(snapshot)
        else:
            root = self._restore_leaf(snapshot)

        logger.info(f"Restored {snapshot.describe()}")
        return root

    def _restore_board(self, snapshot: Snapshot) -> Board:
        board = self.store.create(EntityKind.BOARD, **field_values(snapshot.root))

        bucket_ids: dict[str, str] = {}
        for bucket in _oldest_first(snapshot.buckets):
            values = field_values(bucket)
            values["board_id"] = board.id
            bucket_ids[bucket.id] = self.store.create(EntityKind.BUCKET, **values).id

        self._restore_tasks(snapshot.tasks, bucket_ids)
        return board

    def _restore_bucket(self, snapshot: Snapshot) -> Bucket:
        bucket: Bucket = snapshot.root
        if self.store.get(EntityKind.BOARD, bucket.board_id) is None:
            raise UserInputError(
                f"Cannot restore bucket '{bucket.title}': its board no longer exists."
            )

        restored = self.store.create(EntityKind.BUCKET, **field_values(bucket))
        self._restore_tasks(snapshot.tasks, {bucket.id: restored.id})
        return restored

    def _restore_leaf(self, snapshot: Snapshot) -> Record:
        if snapshot.kind == EntityKind.TASK:
            task: Task = snapshot.root
            if self.store.get(EntityKind.BUCKET, task.bucket_id) is None:
                raise UserInputError(
                    f"Cannot restore task '{task.title}': its bucket no longer exists."
                )
        return self.store.create(snapshot.kind, **field_values(snapshot.root))

    def _restore_tasks(self, tasks: tuple[Task, ...], bucket_ids: dict[str, str]) -> None:
        for task in _oldest_first(tasks):
            new_bucket_id = bucket_ids.get(task.bucket_id)
            if new_bucket_id is None:
                logger.warning(f"Task '{task.title}' lost its bucket during restore")
                continue
            values = field_values(task)
            values["bucket_id"] = new_bucket_id
            self.store.create(EntityKind.TASK, **values)


def _oldest_first(records):
    # Snapshots hold newest-first query results.
    return list(reversed(records))
