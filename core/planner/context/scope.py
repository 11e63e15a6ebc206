"""
Active board resolution.

Scope-less commands ("add bucket Backlog") need a target board. The order is:
explicitly named board, client-supplied board id, the session's remembered
board, then the newest board overall.
"""

from typing import Optional

from planner.context.session import SessionContext
from planner.errors import UserInputError
from planner.store.board_store import BoardStore
from planner.store.entities import Board, EntityKind
from planner.utils.logging import logger


class ActiveScopeResolver:
    """Finds the board a creation command applies to."""

    NO_BOARD_REPLY = "Please create a board first."

    def __init__(self, store: BoardStore):
        self.store = store

    def resolve(
        self,
        session: SessionContext,
        board_name: Optional[str] = None,
        board_id: Optional[str] = None,
    ) -> Board:
        """
        Resolve the target board for a session.

        Args:
            session: The caller's session
            board_name: Board title named in the request, if any
            board_id: Board id supplied by the client, if any

        Returns:
            The target Board

        Raises:
            UserInputError: The named board does not exist, or no board exists
        """
        if board_name:
            board = self.store.find_one(EntityKind.BOARD, name_equals=board_name.strip())
            if board is None:
                raise UserInputError(f"Board '{board_name}' not found.")
            self.adopt(session, board)
            return board

        if board_id:
            board = self.store.get(EntityKind.BOARD, board_id)
            if board is not None:
                self.adopt(session, board)
                return board
            logger.info(f"Session {session.key}: client board {board_id} is gone")

        if session.active_board_id:
            board = self.store.get(EntityKind.BOARD, session.active_board_id)
            if board is not None:
                return board
            # Stale reference, the board was deleted.
            session.active_board_id = None

        board = self.store.latest(EntityKind.BOARD)
        if board is None:
            raise UserInputError(self.NO_BOARD_REPLY)
        return board

    def adopt(self, session: SessionContext, board: Board) -> None:
        """Make a board the session's active board."""
        if session.active_board_id != board.id:
            logger.info(f"Session {session.key}: active board -> '{board.title}'")
        session.active_board_id = board.id
