"""Shared fixtures: a fresh SQLite store per test and an assistant over it."""

import pytest

from planner.context.session import SessionStore
from planner.engine.assistant import PlannerAssistant
from planner.store.board_store import BoardStore


@pytest.fixture
def store(tmp_path):
    """Create a fresh board store with a temp database."""
    return BoardStore(db_path=str(tmp_path / "planner.db"))


@pytest.fixture
def sessions():
    return SessionStore(max_sessions=16, ttl_seconds=3600)


@pytest.fixture
def assistant(store, sessions):
    """Assistant without a classifier: pattern matching only."""
    return PlannerAssistant(store=store, classifier=None, sessions=sessions)
