"""
Entity definitions for the planner store.

Boards own Buckets, Buckets own Tasks. Members stand alone. Each kind is
described once in KIND_SPECS so callers never dispatch on strings.
"""

from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Optional, Union


class EntityKind(str, Enum):
    """Kind of stored entity."""
    BOARD = "board"
    BUCKET = "bucket"
    TASK = "task"
    MEMBER = "member"


@dataclass(frozen=True)
class Board:
    id: str
    title: str
    created_at: str


@dataclass(frozen=True)
class Bucket:
    id: str
    title: str
    board_id: str
    created_at: str


@dataclass(frozen=True)
class Task:
    id: str
    title: str
    bucket_id: str
    created_at: str


@dataclass(frozen=True)
class Member:
    id: str
    name: str
    initials: str
    avatar_color: str
    created_at: str


Record = Union[Board, Bucket, Task, Member]


@dataclass(frozen=True)
class KindSpec:
    """Storage details for one entity kind."""
    kind: EntityKind
    table: str
    record_type: type
    name_field: str
    parent_field: Optional[str] = None

    @property
    def columns(self) -> list[str]:
        return [f.name for f in fields(self.record_type)]

    def from_row(self, row) -> Record:
        return self.record_type(**{col: row[col] for col in self.columns})


KIND_SPECS: dict[EntityKind, KindSpec] = {
    EntityKind.BOARD: KindSpec(EntityKind.BOARD, "boards", Board, "title"),
    EntityKind.BUCKET: KindSpec(EntityKind.BUCKET, "buckets", Bucket, "title", "board_id"),
    EntityKind.TASK: KindSpec(EntityKind.TASK, "tasks", Task, "title", "bucket_id"),
    EntityKind.MEMBER: KindSpec(EntityKind.MEMBER, "members", Member, "name"),
}


def kind_of(record: Record) -> EntityKind:
    """Return the EntityKind of a record."""
    for spec in KIND_SPECS.values():
        if isinstance(record, spec.record_type):
            return spec.kind
    raise TypeError(f"Not a planner record: {record!r}")


def display_name(record: Record) -> str:
    """Human-readable name of a record (title or member name)."""
    return getattr(record, KIND_SPECS[kind_of(record)].name_field)


def field_values(record: Record) -> dict:
    """Field values of a record without its storage id."""
    values = asdict(record)
    values.pop("id")
    return values


def make_initials(name: str) -> str:
    """'Ada Lovelace' -> 'AL'."""
    return "".join(word[0] for word in name.split() if word).upper()
