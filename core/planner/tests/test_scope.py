"""Tests for the active board resolution order."""

import pytest

from planner.context.scope import ActiveScopeResolver
from planner.context.session import SessionContext
from planner.errors import UserInputError
from planner.store.entities import EntityKind


@pytest.fixture
def scope(store):
    return ActiveScopeResolver(store)


@pytest.fixture
def session():
    return SessionContext(key="scope-test")


def test_no_board_at_all(scope, session):
    with pytest.raises(UserInputError, match="create a board first"):
        scope.resolve(session)


def test_falls_back_to_newest_board(store, scope, session):
    store.create(EntityKind.BOARD, title="Alpha")
    beta = store.create(EntityKind.BOARD, title="Beta")

    assert scope.resolve(session) == beta


def test_remembered_board_beats_newest(store, scope, session):
    alpha = store.create(EntityKind.BOARD, title="Alpha")
    store.create(EntityKind.BOARD, title="Beta")
    session.active_board_id = alpha.id

    assert scope.resolve(session) == alpha


def test_stale_remembered_board_is_forgotten(store, scope, session):
    alpha = store.create(EntityKind.BOARD, title="Alpha")
    beta = store.create(EntityKind.BOARD, title="Beta")
    session.active_board_id = beta.id
    store.delete_one(EntityKind.BOARD, beta.id)

    assert scope.resolve(session) == alpha
    assert session.active_board_id is None


def test_named_board_is_adopted(store, scope, session):
    alpha = store.create(EntityKind.BOARD, title="Alpha")
    beta = store.create(EntityKind.BOARD, title="Beta")
    session.active_board_id = beta.id

    assert scope.resolve(session, board_name="alpha") == alpha
    assert session.active_board_id == alpha.id
    # Sticks for later scope-less commands
    assert scope.resolve(session) == alpha


def test_named_board_must_exist(store, scope, session):
    store.create(EntityKind.BOARD, title="Alpha")

    with pytest.raises(UserInputError, match="Board 'Gamma' not found"):
        scope.resolve(session, board_name="Gamma")


def test_named_board_is_exact_not_substring(store, scope, session):
    store.create(EntityKind.BOARD, title="Alpha Two")

    with pytest.raises(UserInputError):
        scope.resolve(session, board_name="Alpha")


def test_client_board_id(store, scope, session):
    alpha = store.create(EntityKind.BOARD, title="Alpha")
    store.create(EntityKind.BOARD, title="Beta")

    assert scope.resolve(session, board_id=alpha.id) == alpha
    assert session.active_board_id == alpha.id


def test_unknown_client_board_id_is_ignored(store, scope, session):
    store.create(EntityKind.BOARD, title="Alpha")
    beta = store.create(EntityKind.BOARD, title="Beta")

    assert scope.resolve(session, board_id="missing") == beta
