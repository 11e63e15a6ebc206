"""
Per-session conversational state.

A SessionContext holds everything the assistant remembers about one caller:
the active board, the pending disambiguation or confirmation, and the one
undoable delete. SessionStore keeps those contexts in a bounded LRU map and
hands out one lock per key so a session only ever runs one request at a time.
"""

import asyncio
import time
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, AsyncIterator, Callable, Optional

from planner.store.entities import EntityKind, Record, display_name, kind_of
from planner.utils.logging import logger

if TYPE_CHECKING:
    from planner.engine.snapshot import Snapshot


class GateState(str, Enum):
    """Where a session stands in the delete conversation."""
    IDLE = "idle"
    AWAITING_TYPE_CHOICE = "awaiting_type_choice"
    AWAITING_CONFIRMATION = "awaiting_confirmation"


@dataclass(frozen=True)
class Candidate:
    """An entity matched by a delete query, tagged with its kind."""
    kind: EntityKind
    record: Record

    @classmethod
    def of(cls, record: Record) -> "Candidate":
        return cls(kind=kind_of(record), record=record)

    @property
    def name(self) -> str:
        return display_name(self.record)

    def describe(self) -> str:
        return f"{self.kind.value} '{self.name}'"


@dataclass
class SessionContext:
    """
    State for a single session key.

    pending_choices and pending_delete are mutually exclusive: setting one
    clears the other, so the session is always in exactly one GateState.
    """
    key: str
    active_board_id: Optional[str] = None
    last_deleted: Optional["Snapshot"] = None
    _pending_choices: Optional[list[Candidate]] = field(default=None, repr=False)
    _pending_delete: Optional[Candidate] = field(default=None, repr=False)

    @property
    def state(self) -> GateState:
        if self._pending_delete is not None:
            return GateState.AWAITING_CONFIRMATION
        if self._pending_choices:
            return GateState.AWAITING_TYPE_CHOICE
        return GateState.IDLE

    @property
    def pending_choices(self) -> Optional[list[Candidate]]:
        return self._pending_choices

    @property
    def pending_delete(self) -> Optional[Candidate]:
        return self._pending_delete

    def await_choice(self, candidates: list[Candidate]) -> None:
        """Enter AWAITING_TYPE_CHOICE with the given candidates."""
        self._pending_choices = list(candidates)
        self._pending_delete = None

    def await_confirmation(self, candidate: Candidate) -> None:
        """Enter AWAITING_CONFIRMATION for one candidate."""
        self._pending_delete = candidate
        self._pending_choices = None

    def take_pending_delete(self) -> Optional[Candidate]:
        """Clear and return the pending delete, back to IDLE."""
        candidate = self._pending_delete
        self.reset_pending()
        return candidate

    def reset_pending(self) -> None:
        self._pending_choices = None
        self._pending_delete = None

    def clear(self) -> None:
        """Forget the active board, the pending delete and the undo snapshot."""
        self.reset_pending()
        self.active_board_id = None
        self.last_deleted = None


@dataclass
class _Entry:
    context: SessionContext
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    last_used: float = 0.0


class SessionStore:
    """
    Keyed, size-bounded map of SessionContexts.

    - Contexts are created lazily on first use.
    - Least recently used contexts are evicted beyond max_sessions.
    - Contexts idle longer than ttl_seconds are dropped.
    - A context whose lock is held is never evicted.
    """

    def __init__(
        self,
        max_sessions: Optional[int] = None,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_sessions is None or ttl_seconds is None:
            from planner.config import MAX_SESSIONS, SESSION_TTL

            max_sessions = MAX_SESSIONS if max_sessions is None else max_sessions
            ttl_seconds = SESSION_TTL if ttl_seconds is None else ttl_seconds

        self.max_sessions = max_sessions
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, _Entry] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> SessionContext:
        """Get or create the context for a session key."""
        return self._entry(key).context

    def peek(self, key: str) -> Optional[SessionContext]:
        """Context for a key if it exists, without creating or touching it."""
        entry = self._entries.get(key)
        return entry.context if entry else None

    async def reset(self, key: str) -> bool:
        """
        Clear a session's state. Returns False if it did not exist.

        The context is cleared in place under its lock; the entry and its
        lock are kept so requests already queued on the key stay serialized.
        """
        if key not in self._entries:
            return False
        async with self.session(key) as context:
            context.clear()
        logger.info(f"Reset session: {key}")
        return True

    @asynccontextmanager
    async def session(self, key: str) -> AsyncIterator[SessionContext]:
        """
        Hold the session's lock for the duration of the block.

        Requests for the same key are serialized; other keys run freely.
        """
        entry = self._entry(key)
        async with entry.lock:
            yield entry.context
            entry.last_used = self._clock()

    def _entry(self, key: str) -> _Entry:
        now = self._clock()
        self._expire(now)

        entry = self._entries.get(key)
        if entry is None:
            entry = _Entry(context=SessionContext(key=key))
            self._entries[key] = entry
            logger.info(f"New session: {key}")
        entry.last_used = now
        self._entries.move_to_end(key)

        self._evict_overflow(keep=key)
        return entry

    def _expire(self, now: float) -> None:
        stale = [
            key for key, entry in self._entries.items()
            if now - entry.last_used > self.ttl_seconds and not entry.lock.locked()
        ]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.info(f"Expired {len(stale)} idle session(s)")

    def _evict_overflow(self, keep: str) -> None:
        if len(self._entries) <= self.max_sessions:
            return
        for key in list(self._entries):
            if len(self._entries) <= self.max_sessions:
                break
            if key == keep or self._entries[key].lock.locked():
                continue
            del self._entries[key]
            logger.info(f"Evicted session: {key}")
