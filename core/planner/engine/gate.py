"""
Confirmation gate for destructive operations.

A delete request walks through up to three states:

    IDLE --delete--> AWAITING_TYPE_CHOICE --kind--> AWAITING_CONFIRMATION --yes/no--> IDLE
    IDLE --delete (single match)--------------> AWAITING_CONFIRMATION

While a delete is pending only the exact tokens for that state are consumed.
Any other message falls through to normal handling and leaves the pending
delete untouched; a new delete request replaces it.
"""

from typing import Optional

from planner.context.session import Candidate, GateState, SessionContext
from planner.engine.intents import Intent, ResolvedIntent
from planner.engine.snapshot import SnapshotExecutor
from planner.errors import UserInputError
from planner.store.board_store import BoardStore
from planner.store.entities import EntityKind
from planner.utils.logging import logger

KIND_ORDER = [EntityKind.BOARD, EntityKind.BUCKET, EntityKind.TASK, EntityKind.MEMBER]


class ConfirmationGate:
    """Sequences disambiguation, confirmation and execution of deletes."""

    def __init__(self, store: BoardStore, executor: SnapshotExecutor):
        self.store = store
        self.executor = executor

    # ─────────────────────────────────────────────────────────
    # CONTINUATIONS
    # ─────────────────────────────────────────────────────────

    def intercept(self, session: SessionContext, resolved: ResolvedIntent) -> Optional[str]:
        """
        Handle a message that continues a pending delete.

        Returns:
            The reply, or None if the message is not a continuation and
            should go through normal intent handling
        """
        state = session.state

        if state == GateState.AWAITING_CONFIRMATION:
            if resolved.intent == Intent.CONFIRM_YES:
                return self.confirm(session)
            if resolved.intent == Intent.CONFIRM_NO:
                return self.cancel(session)

        elif state == GateState.AWAITING_TYPE_CHOICE:
            if resolved.intent == Intent.CHOOSE_KIND:
                return self.choose(session, resolved.kind)

        return None

    def choose(self, session: SessionContext, kind: Optional[EntityKind]) -> str:
        """AWAITING_TYPE_CHOICE + kind: pick the candidate of that kind."""
        choices = session.pending_choices or []
        candidate = next((c for c in choices if c.kind == kind), None)
        if candidate is None:
            return self.invalid_choice_reply(session)

        session.await_confirmation(candidate)
        logger.info(f"Session {session.key}: chose {candidate.describe()}")
        return self._confirmation_prompt(candidate)

    def confirm(self, session: SessionContext) -> str:
        """AWAITING_CONFIRMATION + yes: delete the subtree and keep its snapshot."""
        candidate = session.take_pending_delete()
        snapshot = self.executor.delete(candidate)
        if snapshot is None:
            return f"The {candidate.describe()} no longer exists. Nothing was deleted."

        session.last_deleted = snapshot
        if candidate.kind == EntityKind.BOARD and session.active_board_id == candidate.record.id:
            session.active_board_id = None
        return f"Deleted {snapshot.describe()}. Say 'undo' to restore it."

    def cancel(self, session: SessionContext) -> str:
        """AWAITING_CONFIRMATION + no: drop the pending delete."""
        candidate = session.take_pending_delete()
        logger.info(f"Session {session.key}: cancelled delete of {candidate.describe()}")
        return f"Okay, I won't delete the {candidate.describe()}."

    # ─────────────────────────────────────────────────────────
    # NEW DELETE REQUESTS
    # ─────────────────────────────────────────────────────────

    def begin_delete(
        self,
        session: SessionContext,
        query: Optional[str],
        kind: Optional[EntityKind] = None,
    ) -> str:
        """
        Search for what a delete request refers to.

        Zero matches leave the session untouched; one match asks for
        confirmation; several ask which kind was meant.

        Args:
            session: The caller's session
            query: Name fragment to search for
            kind: Restrict the search to one kind, if the request named one
        """
        if not query:
            raise UserInputError("What should I delete? Try 'delete <name>'.")

        candidates = self.find_candidates(query, kind)
        if not candidates:
            return f"Nothing found matching '{query}'."

        if session.state != GateState.IDLE:
            logger.info(
                f"Session {session.key}: new delete replaces unresolved {session.state.value}"
            )

        if len(candidates) == 1:
            session.await_confirmation(candidates[0])
            return self._confirmation_prompt(candidates[0])

        session.await_choice(candidates)
        lines = [f"I found several matches for '{query}':"]
        lines.extend(f"  - {c.describe()}" for c in candidates)
        lines.append(f"Which kind do you mean? ({self._kind_list(candidates)})")
        return "\n".join(lines)

    def find_candidates(self, query: str, kind: Optional[EntityKind] = None) -> list[Candidate]:
        """Case-insensitive substring search across kinds."""
        kinds = [kind] if kind else KIND_ORDER
        candidates = []
        for k in kinds:
            for record in self.store.find(k, name_contains=query):
                candidates.append(Candidate(kind=k, record=record))
        return candidates

    # ─────────────────────────────────────────────────────────
    # REPLIES
    # ─────────────────────────────────────────────────────────

    def invalid_choice_reply(self, session: SessionContext) -> str:
        return f"Invalid choice. Please reply with one of: {self._kind_list(session.pending_choices or [])}."

    def pending_reminder(self, session: SessionContext) -> Optional[str]:
        """Reply for an unrecognised message while a delete is pending."""
        if session.state == GateState.AWAITING_TYPE_CHOICE:
            return self.invalid_choice_reply(session)
        if session.state == GateState.AWAITING_CONFIRMATION:
            return (
                f"Please answer yes or no: delete the {session.pending_delete.describe()}?"
            )
        return None

    def _confirmation_prompt(self, candidate: Candidate) -> str:
        return f"Are you sure you want to delete the {candidate.describe()}? (yes/no)"

    @staticmethod
    def _kind_list(candidates: list[Candidate]) -> str:
        kinds = [k.value for k in KIND_ORDER if any(c.kind == k for c in candidates)]
        return ", ".join(kinds)
