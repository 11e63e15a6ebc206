"""
The PlannerAssistant turns chat messages into store operations.

Each message is handled under its session's lock:
1. A pending delete gets first look (yes/no, or a kind choice)
2. Otherwise the message is resolved to an intent
3. The intent's handler runs against the store, with deletes routed
   through the confirmation gate

Every outcome, including failures, is a reply string.
"""

from typing import Optional

from planner import config
from planner.context.scope import ActiveScopeResolver
from planner.context.session import GateState, SessionContext, SessionStore
from planner.engine.classifier import IntentClassifier
from planner.engine.gate import ConfirmationGate
from planner.engine.intents import Intent, IntentResolver, ResolvedIntent
from planner.engine.snapshot import SnapshotExecutor
from planner.errors import StoreError, UserInputError
from planner.store.board_store import BoardStore
from planner.store.entities import Board, Bucket, EntityKind, make_initials
from planner.utils.logging import logger


class PlannerAssistant:
    """
    Conversational front-end for the board store.

    Owns the resolver, gate, scope resolver and snapshot executor; the
    store, classifier and session store are injected.
    """

    EMPTY_REPLY = "Empty message"
    BACKEND_ERROR_REPLY = "Backend error. Please try again."
    HELP_REPLY = (
        "I can help you manage your boards. Try:\n"
        "  - create board Website\n"
        "  - add bucket Backlog\n"
        "  - add task Fix login in Backlog\n"
        "  - add member Ada Lovelace\n"
        "  - delete Backlog\n"
        "  - undo"
    )
    GREETING_REPLY = (
        "Hi! I can create boards, add buckets, tasks and members, "
        "delete things and undo the last delete."
    )

    def __init__(
        self,
        store: BoardStore,
        classifier: Optional[IntentClassifier] = None,
        sessions: Optional[SessionStore] = None,
    ):
        self.store = store
        self.sessions = sessions or SessionStore()
        self.resolver = IntentResolver(classifier)
        self.scope = ActiveScopeResolver(store)
        self.executor = SnapshotExecutor(store)
        self.gate = ConfirmationGate(store, self.executor)

    async def chat(
        self,
        session_key: str,
        message: Optional[str],
        active_project_id: Optional[str] = None,
    ) -> str:
        """
        Handle one chat message.

        Args:
            session_key: Coarse per-caller key
            message: Raw message text
            active_project_id: Board id the client currently shows, if any

        Returns:
            The reply text
        """
        if not message or not message.strip():
            return self.EMPTY_REPLY

        async with self.sessions.session(session_key) as session:
            try:
                return await self._handle(session, message, active_project_id)
            except UserInputError as e:
                return str(e)
            except StoreError as e:
                logger.error(f"Store error in session {session_key}: {e}", exc_info=True)
                return self.BACKEND_ERROR_REPLY

    async def _handle(
        self,
        session: SessionContext,
        message: str,
        active_project_id: Optional[str],
    ) -> str:
        token = self.resolver.match_token(message)
        if token is not None:
            reply = self.gate.intercept(session, token)
            if reply is not None:
                return reply

        resolved = token or await self.resolver.resolve(message)
        logger.info(
            f"Session {session.key}: {resolved.intent.value} via {resolved.source} {resolved.slots}"
        )
        return self._dispatch(session, resolved, active_project_id)

    def _dispatch(
        self,
        session: SessionContext,
        resolved: ResolvedIntent,
        active_project_id: Optional[str],
    ) -> str:
        intent = resolved.intent

        if intent == Intent.CREATE_BOARD:
            return self.create_board(session, resolved.slot("title"))
        if intent == Intent.ADD_BUCKET:
            return self.add_bucket(
                session, resolved.slot("title"), resolved.slot("board"), active_project_id
            )
        if intent == Intent.ADD_TASK:
            return self.add_task(
                session,
                resolved.slot("title"),
                resolved.slot("bucket"),
                resolved.slot("board"),
                active_project_id,
            )
        if intent == Intent.ADD_MEMBER:
            return self.add_member(resolved.slot("name"))
        if intent == Intent.DELETE:
            return self.gate.begin_delete(session, resolved.slot("query"), resolved.kind)
        if intent == Intent.UNDO:
            return self.undo(session)
        if intent in (Intent.CONFIRM_YES, Intent.CONFIRM_NO):
            return "There is nothing to confirm right now."
        if intent == Intent.CHOOSE_KIND:
            if session.state == GateState.AWAITING_CONFIRMATION:
                return self.gate.pending_reminder(session)
            return "There is nothing to choose between right now."
        if intent == Intent.GREETING:
            return self.GREETING_REPLY

        return self.gate.pending_reminder(session) or resolved.reply or self.HELP_REPLY

    # ─────────────────────────────────────────────────────────
    # ACTIONS
    # ─────────────────────────────────────────────────────────

    def create_board(self, session: SessionContext, title: Optional[str]) -> str:
        if not title:
            raise UserInputError("What should the board be called?")

        board: Board = self.store.create(EntityKind.BOARD, title=title)
        self.scope.adopt(session, board)
        return f"Board '{board.title}' has been created."

    def add_bucket(
        self,
        session: SessionContext,
        title: Optional[str],
        board_name: Optional[str] = None,
        board_id: Optional[str] = None,
    ) -> str:
        if not title:
            raise UserInputError("What should the bucket be called?")

        board = self.scope.resolve(session, board_name=board_name, board_id=board_id)
        self.store.create(EntityKind.BUCKET, title=title, board_id=board.id)
        return f"Bucket '{title}' added to board '{board.title}'."

    def add_task(
        self,
        session: SessionContext,
        title: Optional[str],
        bucket_name: Optional[str] = None,
        board_name: Optional[str] = None,
        board_id: Optional[str] = None,
    ) -> str:
        if not title:
            raise UserInputError("What should the task be called?")

        board = self.scope.resolve(session, board_name=board_name, board_id=board_id)
        bucket = self._find_bucket(board, bucket_name)
        self.store.create(EntityKind.TASK, title=title, bucket_id=bucket.id)
        return f"Task '{title}' added to bucket '{bucket.title}'."

    def add_member(self, name: Optional[str]) -> str:
        if not name:
            raise UserInputError("What is the member's name?")

        self.store.create(
            EntityKind.MEMBER,
            name=name,
            initials=make_initials(name),
            avatar_color=config.DEFAULT_AVATAR_COLOR,
        )
        return f"Member '{name}' has been added."

    def undo(self, session: SessionContext) -> str:
        """Restore the last deleted subtree, consuming the snapshot."""
        snapshot = session.last_deleted
        if snapshot is None:
            return "Nothing to undo."

        session.last_deleted = None
        try:
            root = self.executor.restore(snapshot)
        except UserInputError:
            session.last_deleted = snapshot
            raise

        if snapshot.kind == EntityKind.BOARD:
            self.scope.adopt(session, root)
        return f"Undo successful. Restored {snapshot.describe()}."

    def _find_bucket(self, board: Board, bucket_name: Optional[str]) -> Bucket:
        """Named bucket on the board (or anywhere), else the board's newest bucket."""
        if bucket_name:
            bucket = self.store.find_one(
                EntityKind.BUCKET, name_equals=bucket_name, parent_id=board.id
            ) or self.store.find_one(EntityKind.BUCKET, name_equals=bucket_name)
            if bucket is None:
                raise UserInputError(f"Bucket '{bucket_name}' not found.")
            return bucket

        bucket = self.store.find_one(EntityKind.BUCKET, parent_id=board.id)
        if bucket is None:
            raise UserInputError(
                f"Board '{board.title}' has no buckets. Please add a bucket first."
            )
        return bucket
