"""Integration tests for the SQL store against a SQLite file database."""

import pytest
import sqlalchemy as sa
from tenacity import wait_none

from glove.core.messages import (
    ContentPart,
    ContentSource,
    ContentType,
    Message,
    PermissionStatus,
    Sender,
    SourceType,
    Task,
    TaskStatus,
    ToolCall,
    ToolResult,
    ToolResultData,
)
from glove.core.protocol import PermissionStore, StoreAdapter, TaskStore
from glove.stores.engine import DbEngine
from glove.stores.sql import SqlStore, deserialize_message, messages_table, serialize_message


@pytest.fixture(autouse=True)
def disable_tenacity_wait():
    """Disable the connect retry wait so failing connects return quickly."""
    original_wait = DbEngine.connect.retry.wait  # type: ignore[attr-defined]
    DbEngine.connect.retry.wait = wait_none()  # type: ignore[attr-defined]
    yield
    DbEngine.connect.retry.wait = original_wait  # type: ignore[attr-defined]


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'glove.db'}"


@pytest.fixture
async def sql_store(db_url):
    store = await SqlStore.connect(db_url, "session-1")
    yield store
    await store.close()


class TestDbEngine:
    """Tests for DbEngine lifecycle."""

    async def test_connect_and_disconnect(self, db_url):
        """connect creates the engine and disconnect disposes it."""
        db = DbEngine(url=db_url, instance_name="test")
        assert db.is_connected() is False

        engine = await db.connect()
        assert db.is_connected() is True
        assert await db.connect() is engine

        await db.disconnect()
        assert db.is_connected() is False

    def test_get_engine_requires_connect(self, db_url):
        """Using the engine before connect fails loudly."""
        db = DbEngine(url=db_url, instance_name="test")
        with pytest.raises(RuntimeError, match="test database is not connected"):
            db.get_engine()

    async def test_session_rolls_back_on_error(self, sql_store):
        """A failing session block leaves no partial writes."""
        with pytest.raises(ValueError):
            async with sql_store.db.get_session() as session:
                await session.execute(
                    messages_table.insert().values(
                        session_id="session-1", sender="user", is_compaction=False, payload="{}"
                    )
                )
                raise ValueError("abort")

        assert await sql_store.get_messages() == []

    async def test_transaction(self, sql_store):
        """transaction() runs core statements on a committed connection."""
        await sql_store.append_messages([Message(sender=Sender.USER, text="hi")])

        async with sql_store.db.transaction() as conn:
            result = await conn.execute(sa.select(sa.func.count()).select_from(messages_table))
            count = result.scalar_one()

        assert count == 1


class TestSqlStore:
    """Tests for SqlStore against SQLite."""

    async def test_implements_all_protocols(self, sql_store):
        """SqlStore supports messages, tasks and permissions."""
        assert isinstance(sql_store, StoreAdapter)
        assert isinstance(sql_store, TaskStore)
        assert isinstance(sql_store, PermissionStore)
        assert sql_store.identifier == "session-1"

    async def test_messages_persist_in_order(self, sql_store):
        """Appended messages come back in order with their structure intact."""
        call = ToolCall(tool_name="list_dir", input_args={"path": "."}, id="c1")
        messages = [
            Message(sender=Sender.USER, text="list files"),
            Message(sender=Sender.AGENT, text="", tool_calls=[call]),
            Message(
                sender=Sender.USER,
                text="tool results",
                tool_results=[
                    ToolResult(
                        tool_name="list_dir",
                        call_id="c1",
                        result=ToolResultData.success(data=["a.txt", "b.txt"]),
                    )
                ],
            ),
        ]
        await sql_store.append_messages(messages[:1])
        await sql_store.append_messages(messages[1:])

        assert await sql_store.get_messages() == messages

    async def test_empty_append_is_noop(self, sql_store):
        """Appending nothing writes nothing."""
        await sql_store.append_messages([])
        assert await sql_store.get_messages() == []

    async def test_counters(self, sql_store):
        """Counters start at zero and accumulate."""
        assert await sql_store.get_token_count() == 0
        await sql_store.add_tokens(100)
        await sql_store.add_tokens(25)
        await sql_store.increment_turn()
        assert await sql_store.get_token_count() == 125
        assert await sql_store.get_turn_count() == 1

    async def test_reset_history(self, sql_store):
        """reset_history swaps messages and zeroes both counters together."""
        await sql_store.append_messages([Message(sender=Sender.USER, text="old")])
        await sql_store.add_tokens(900)
        await sql_store.increment_turn()
        summary = Message(sender=Sender.USER, text="summary", is_compaction=True)

        await sql_store.reset_history([summary])

        assert await sql_store.get_messages() == [summary]
        assert await sql_store.get_token_count() == 0
        assert await sql_store.get_turn_count() == 0

    async def test_sessions_isolated(self, sql_store, db_url):
        """Two sessions in one database do not see each other's data."""
        other = await SqlStore.connect(db_url, "session-2")
        try:
            await sql_store.append_messages([Message(sender=Sender.USER, text="mine")])
            await sql_store.add_tokens(10)
            assert await other.get_messages() == []
            assert await other.get_token_count() == 0
        finally:
            await other.close()

    async def test_reopen_keeps_data(self, db_url):
        """Data survives closing and reopening the store."""
        store = await SqlStore.connect(db_url, "persisted")
        await store.append_messages([Message(sender=Sender.USER, text="hello")])
        await store.increment_turn()
        await store.close()

        reopened = await SqlStore.connect(db_url, "persisted")
        try:
            assert [m.text for m in await reopened.get_messages()] == ["hello"]
            assert await reopened.get_turn_count() == 1
        finally:
            await reopened.close()

    async def test_tasks(self, sql_store):
        """Tasks are replaced wholesale, ordered and updatable."""
        await sql_store.add_tasks([Task(id="old", content="Old", active_form="Doing old")])
        await sql_store.add_tasks(
            [
                Task(id="b", content="B", active_form="Doing B", status=TaskStatus.IN_PROGRESS),
                Task(id="a", content="A", active_form="Doing A"),
            ]
        )
        await sql_store.update_task("a", status=TaskStatus.COMPLETED)

        tasks = await sql_store.get_tasks()
        assert [(t.id, t.status) for t in tasks] == [
            ("b", TaskStatus.IN_PROGRESS),
            ("a", TaskStatus.COMPLETED),
        ]

    async def test_update_task_rejects_unknown_fields(self, sql_store):
        """Only content, active_form and status can be updated."""
        with pytest.raises(ValueError, match="id"):
            await sql_store.update_task("a", id="b")

    async def test_permissions(self, sql_store):
        """Permission decisions default to unset and can be overwritten."""
        assert await sql_store.get_permission("deploy") == PermissionStatus.UNSET
        await sql_store.set_permission("deploy", PermissionStatus.DENIED)
        await sql_store.set_permission("deploy", PermissionStatus.GRANTED)
        assert await sql_store.get_permission("deploy") == PermissionStatus.GRANTED


class TestMessageSerialization:
    """Tests for the JSON message codec."""

    def test_multimodal_message(self):
        """Content parts and their sources survive serialization."""
        message = Message(
            sender=Sender.USER,
            text="what is this?",
            content=[
                ContentPart.from_text("what is this?"),
                ContentPart(
                    type=ContentType.IMAGE,
                    source=ContentSource(type=SourceType.URL, media_type="image/png", url="https://x/y.png"),
                ),
            ],
        )
        assert deserialize_message(serialize_message(message)) == message

    def test_error_result_keeps_message(self):
        """Error results keep their failure description."""
        message = Message(
            sender=Sender.USER,
            text="tool results",
            tool_results=[
                ToolResult(tool_name="t", call_id=None, result=ToolResultData.error("boom"))
            ],
        )
        restored = deserialize_message(serialize_message(message))
        assert restored.tool_results[0].result.message == "boom"
