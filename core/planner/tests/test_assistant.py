"""
End-to-end conversation tests for PlannerAssistant.

Uses a temp SQLite store and no classifier unless a test mocks one in.
"""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from planner.engine.assistant import PlannerAssistant
from planner.engine.classifier import ClassifierHint, IntentClassifier
from planner.errors import StoreError
from planner.store.entities import EntityKind

KEY = "assistant-test"


@pytest.fixture
def say(assistant):
    async def _say(message, **kwargs):
        return await assistant.chat(KEY, message, **kwargs)
    return _say


class TestCreation:

    @pytest.mark.asyncio
    async def test_create_board_sets_active(self, say, assistant, store):
        reply = await say("create board Alpha")

        board = store.find_one(EntityKind.BOARD, name_equals="Alpha")
        assert "Alpha" in reply
        assert assistant.sessions.get(KEY).active_board_id == board.id

    @pytest.mark.asyncio
    async def test_last_created_board_is_active(self, say, store):
        await say("create board Alpha")
        await say("create board Beta")

        reply = await say("add bucket Backlog")

        beta = store.find_one(EntityKind.BOARD, name_equals="Beta")
        bucket = store.find_one(EntityKind.BUCKET, name_equals="Backlog")
        assert bucket.board_id == beta.id
        assert "Beta" in reply

    @pytest.mark.asyncio
    async def test_named_board_overrides_and_sticks(self, say, store):
        await say("create board Alpha")
        await say("create board Beta")

        await say("add bucket Todo to board Alpha")
        await say("add bucket Doing")

        alpha = store.find_one(EntityKind.BOARD, name_equals="Alpha")
        buckets = store.find(EntityKind.BUCKET, parent_id=alpha.id)
        assert sorted(b.title for b in buckets) == ["Doing", "Todo"]

    @pytest.mark.asyncio
    async def test_active_project_id_from_client(self, say, store):
        await say("create board Alpha")
        await say("create board Beta")
        alpha = store.find_one(EntityKind.BOARD, name_equals="Alpha")

        await say("add bucket Todo", active_project_id=alpha.id)

        assert store.find_one(EntityKind.BUCKET, name_equals="Todo").board_id == alpha.id

    @pytest.mark.asyncio
    async def test_add_bucket_without_board(self, say, store):
        reply = await say("add bucket Backlog")

        assert "create a board first" in reply
        assert store.count(EntityKind.BUCKET) == 0

    @pytest.mark.asyncio
    async def test_add_task_without_any_bucket(self, say, store):
        await say("create board Alpha")

        reply = await say("add task Fix login")

        assert "add a bucket first" in reply
        assert store.count(EntityKind.TASK) == 0

    @pytest.mark.asyncio
    async def test_add_task_without_any_board(self, say, store):
        reply = await say("add task Fix login in Backend")

        assert "create a board first" in reply
        assert store.count(EntityKind.TASK) == 0

    @pytest.mark.asyncio
    async def test_add_task_to_named_bucket(self, say, store):
        await say("create board Alpha")
        await say("add bucket Backend")
        await say("add bucket Frontend")

        reply = await say("add task Fix login in backend")

        task = store.find_one(EntityKind.TASK, name_equals="Fix login")
        backend = store.find_one(EntityKind.BUCKET, name_equals="Backend")
        assert task.bucket_id == backend.id
        assert "Backend" in reply

    @pytest.mark.asyncio
    async def test_add_task_to_unknown_bucket(self, say, store):
        await say("create board Alpha")
        await say("add bucket Backend")

        reply = await say("add task Fix login in Mobile")

        assert "Bucket 'Mobile' not found" in reply
        assert store.count(EntityKind.TASK) == 0

    @pytest.mark.asyncio
    async def test_add_task_defaults_to_newest_bucket(self, say, store):
        await say("create board Alpha")
        await say("add bucket Backend")
        await say("add bucket Frontend")

        await say("add task Polish buttons")

        frontend = store.find_one(EntityKind.BUCKET, name_equals="Frontend")
        assert store.find_one(EntityKind.TASK, name_equals="Polish buttons").bucket_id == frontend.id

    @pytest.mark.asyncio
    async def test_add_member(self, say, store):
        reply = await say("add member Ada Lovelace")

        member = store.find_one(EntityKind.MEMBER, name_equals="Ada Lovelace")
        assert member.initials == "AL"
        assert member.avatar_color == "bg-blue-500"
        assert "Ada Lovelace" in reply

    @pytest.mark.asyncio
    async def test_missing_title_asks(self, say, store):
        reply = await say("create board")

        assert "called" in reply
        assert store.count(EntityKind.BOARD) == 0


class TestUndo:

    @pytest.mark.asyncio
    async def test_undo_with_nothing_deleted(self, say, store):
        await say("create board Alpha")
        with patch.object(store, "create", wraps=store.create) as create:
            reply = await say("undo")

        assert reply == "Nothing to undo."
        create.assert_not_called()

    @pytest.mark.asyncio
    async def test_board_delete_and_undo(self, say, assistant, store):
        await say("create board Alpha")
        await say("add bucket Todo")
        await say("add bucket Doing")
        await say("add task Write spec in Todo")
        await say("add task Review in Todo")
        await say("add task Build in Doing")

        await say("delete board Alpha")
        await say("yes")
        assert store.count(EntityKind.BOARD) == 0
        assert store.count(EntityKind.TASK) == 0

        reply = await say("undo")

        assert "Undo successful" in reply
        board = store.find_one(EntityKind.BOARD, name_equals="Alpha")
        membership = {
            bucket.title: sorted(t.title for t in store.find(EntityKind.TASK, parent_id=bucket.id))
            for bucket in store.find(EntityKind.BUCKET, parent_id=board.id)
        }
        assert membership == {"Todo": ["Review", "Write spec"], "Doing": ["Build"]}
        assert assistant.sessions.get(KEY).active_board_id == board.id

    @pytest.mark.asyncio
    async def test_undo_is_single_level(self, say, store):
        await say("create board Alpha")
        await say("add member Ada")

        await say("undo")  # nothing yet
        await say("delete member Ada")
        await say("yes")
        assert (await say("undo")).startswith("Undo successful")

        assert await say("undo") == "Nothing to undo."
        assert store.count(EntityKind.MEMBER) == 1

    @pytest.mark.asyncio
    async def test_second_delete_discards_first_snapshot(self, say, store):
        await say("create board Alpha")
        await say("add member Ada")
        await say("add member Grace")

        await say("delete member Ada")
        await say("yes")
        await say("delete member Grace")
        await say("yes")

        await say("undo")
        assert await say("undo") == "Nothing to undo."

        names = [m.name for m in store.find(EntityKind.MEMBER)]
        assert names == ["Grace"]

    @pytest.mark.asyncio
    async def test_failed_undo_keeps_snapshot(self, say, assistant, store):
        await say("create board Alpha")
        await say("add bucket Todo")
        await say("delete bucket Todo")
        await say("yes")
        alpha = store.find_one(EntityKind.BOARD, name_equals="Alpha")
        store.delete_one(EntityKind.BOARD, alpha.id)

        reply = await say("undo")

        assert "board no longer exists" in reply
        assert assistant.sessions.get(KEY).last_deleted is not None

    @pytest.mark.asyncio
    async def test_sessions_do_not_share_undo(self, assistant, store):
        await assistant.chat("a", "add member Ada")
        await assistant.chat("a", "delete Ada")
        await assistant.chat("a", "yes")

        assert await assistant.chat("b", "undo") == "Nothing to undo."
        assert (await assistant.chat("a", "undo")).startswith("Undo successful")


class TestBoundary:

    @pytest.mark.asyncio
    async def test_empty_message(self, say, assistant):
        assert await say("   ") == "Empty message"
        assert await say(None) == "Empty message"

    @pytest.mark.asyncio
    async def test_greeting(self, say):
        assert "create boards" in await say("hello")

    @pytest.mark.asyncio
    async def test_unknown_gets_help(self, say):
        assert "Try:" in await say("what is the meaning of life")

    @pytest.mark.asyncio
    async def test_store_failure_becomes_generic_reply(self, say, store):
        with patch.object(store, "create", side_effect=StoreError("disk I/O error")):
            reply = await say("create board Alpha")

        assert reply == PlannerAssistant.BACKEND_ERROR_REPLY
        assert "disk" not in reply

    @pytest.mark.asyncio
    async def test_classifier_reply_used_for_unknown(self, store, sessions):
        classifier = AsyncMock()
        classifier.classify.return_value = ClassifierHint(
            action="none", reply="I can only manage boards."
        )
        assistant = PlannerAssistant(store=store, classifier=classifier, sessions=sessions)

        reply = await assistant.chat(KEY, "tell me a joke")

        assert reply == "I can only manage boards."

    @pytest.mark.asyncio
    async def test_classifier_fills_in_what_patterns_miss(self, store, sessions):
        classifier = AsyncMock()
        classifier.classify.return_value = ClassifierHint(
            action="create_board", data={"title": "Launch"}
        )
        assistant = PlannerAssistant(store=store, classifier=classifier, sessions=sessions)

        await assistant.chat(KEY, "we need somewhere to plan the launch")

        assert store.find_one(EntityKind.BOARD, name_equals="Launch") is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [
        [{"type": "text", "text": "create board Alpha"}],
        42,
        {"action": "create_board"},
    ])
    async def test_malformed_classifier_answer_falls_back_to_patterns(
        self, store, sessions, content
    ):
        def handler(request):
            return httpx.Response(
                200, json={"choices": [{"message": {"role": "assistant", "content": content}}]}
            )

        classifier = IntentClassifier(
            api_key="test-key",
            url="https://classifier.test/v1/chat/completions",
            transport=httpx.MockTransport(handler),
        )
        assistant = PlannerAssistant(store=store, classifier=classifier, sessions=sessions)

        reply = await assistant.chat(KEY, "create board Alpha")

        assert reply == "Board 'Alpha' has been created."
        assert store.count(EntityKind.BOARD) == 1
