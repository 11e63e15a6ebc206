"""
Session-scoped conversation state.

This module provides:
- SessionContext: Per-session active board, pending delete and undo snapshot
- SessionStore: Bounded, per-key locked map of sessions
- ActiveScopeResolver: Picks the board scope-less commands apply to
"""

from planner.context.session import (
    Candidate,
    GateState,
    SessionContext,
    SessionStore,
)
from planner.context.scope import ActiveScopeResolver

__all__ = [
    "Candidate",
    "GateState",
    "SessionContext",
    "SessionStore",
    "ActiveScopeResolver",
]
