"""SQLAlchemy-backed persistent store.

One database holds any number of sessions; each SqlStore instance is bound to
one session id. Messages are stored as JSON documents so multimodal content,
tool calls and tool results survive a round trip unchanged.
"""

import logging
from typing import Any

import sqlalchemy as sa
from pydantic import TypeAdapter

from glove.core.messages import Message, PermissionStatus, Task, TaskStatus
from glove.stores.engine import DbEngine

logger = logging.getLogger(__name__)

metadata = sa.MetaData()

sessions_table = sa.Table(
    "glove_sessions",
    metadata,
    sa.Column("session_id", sa.String(255), primary_key=True),
    sa.Column("token_count", sa.Integer, nullable=False, server_default="0"),
    sa.Column("turn_count", sa.Integer, nullable=False, server_default="0"),
    sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
)

messages_table = sa.Table(
    "glove_messages",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column(
        "session_id",
        sa.String(255),
        sa.ForeignKey("glove_sessions.session_id"),
        nullable=False,
        index=True,
    ),
    sa.Column("sender", sa.String(16), nullable=False),
    sa.Column("is_compaction", sa.Boolean, nullable=False, server_default=sa.false()),
    sa.Column("payload", sa.Text, nullable=False),
)

tasks_table = sa.Table(
    "glove_tasks",
    metadata,
    sa.Column("session_id", sa.String(255), sa.ForeignKey("glove_sessions.session_id"), primary_key=True),
    sa.Column("id", sa.String(255), primary_key=True),
    sa.Column("position", sa.Integer, nullable=False),
    sa.Column("content", sa.Text, nullable=False),
    sa.Column("active_form", sa.Text, nullable=False),
    sa.Column("status", sa.String(32), nullable=False),
)

permissions_table = sa.Table(
    "glove_permissions",
    metadata,
    sa.Column("session_id", sa.String(255), sa.ForeignKey("glove_sessions.session_id"), primary_key=True),
    sa.Column("tool_name", sa.String(255), primary_key=True),
    sa.Column("status", sa.String(32), nullable=False),
)

_message_adapter = TypeAdapter(Message)

_TASK_COLUMNS = frozenset({"content", "active_form", "status"})


def serialize_message(message: Message) -> str:
    return _message_adapter.dump_json(message).decode()


def deserialize_message(payload: str) -> Message:
    return _message_adapter.validate_json(payload)


class SqlStore:
    """Store persisting one session in a SQL database.

    Implements the store, task and permission protocols. Call ``setup()``
    (or use ``SqlStore.connect``) before the first request so the tables and
    the session row exist.
    """

    def __init__(self, db: DbEngine, session_id: str) -> None:
        """Initialize the store.

        Args:
            db: Engine shared by every store of the process
            session_id: Session this store reads and writes
        """
        self._db = db
        self._session_id = session_id

    def __repr__(self) -> str:
        return f"SqlStore({self._session_id!r}, db={self._db.instance_name!r})"

    @classmethod
    async def connect(cls, url: str, session_id: str, echo: bool = False) -> "SqlStore":
        """Create a store with its own engine, ready to use.

        Args:
            url: SQLAlchemy async database URL
            session_id: Session this store reads and writes
            echo: Log every SQL statement

        Returns:
            The set-up store
        """
        store = cls(DbEngine(url=url, echo=echo), session_id)
        await store.setup()
        return store

    @property
    def identifier(self) -> str:
        return self._session_id

    @property
    def db(self) -> DbEngine:
        return self._db

    async def setup(self) -> None:
        """Create missing tables and the session row."""
        await self._db.connect(metadata)
        async with self._db.get_session() as session:
            existing = await session.execute(
                sa.select(sessions_table.c.session_id).where(
                    sessions_table.c.session_id == self._session_id
                )
            )
            if existing.scalar_one_or_none() is None:
                await session.execute(sa.insert(sessions_table).values(session_id=self._session_id))
                logger.info("Created session '%s'", self._session_id)

    async def close(self) -> None:
        await self._db.disconnect()

    async def get_messages(self) -> list[Message]:
        async with self._db.get_session() as session:
            result = await session.execute(
                sa.select(messages_table.c.payload)
                .where(messages_table.c.session_id == self._session_id)
                .order_by(messages_table.c.id)
            )
            return [deserialize_message(payload) for payload in result.scalars()]

    async def append_messages(self, messages: list[Message]) -> None:
        if not messages:
            return
        async with self._db.get_session() as session:
            await session.execute(sa.insert(messages_table), self._message_rows(messages))

    async def get_token_count(self) -> int:
        return await self._get_counter(sessions_table.c.token_count)

    async def add_tokens(self, count: int) -> None:
        await self._bump_counter(sessions_table.c.token_count, count)

    async def get_turn_count(self) -> int:
        return await self._get_counter(sessions_table.c.turn_count)

    async def increment_turn(self) -> None:
        await self._bump_counter(sessions_table.c.turn_count, 1)

    async def reset_history(self, replacement: list[Message]) -> None:
        async with self._db.get_session() as session:
            await session.execute(
                sa.delete(messages_table).where(messages_table.c.session_id == self._session_id)
            )
            if replacement:
                await session.execute(sa.insert(messages_table), self._message_rows(replacement))
            await session.execute(
                sa.update(sessions_table)
                .where(sessions_table.c.session_id == self._session_id)
                .values(token_count=0, turn_count=0)
            )
        logger.debug("Reset history of session '%s' to %d messages", self._session_id, len(replacement))

    async def get_tasks(self) -> list[Task]:
        async with self._db.get_session() as session:
            result = await session.execute(
                sa.select(
                    tasks_table.c.id,
                    tasks_table.c.content,
                    tasks_table.c.active_form,
                    tasks_table.c.status,
                )
                .where(tasks_table.c.session_id == self._session_id)
                .order_by(tasks_table.c.position)
            )
            return [
                Task(
                    id=row.id,
                    content=row.content,
                    active_form=row.active_form,
                    status=TaskStatus(row.status),
                )
                for row in result
            ]

    async def add_tasks(self, tasks: list[Task]) -> None:
        async with self._db.get_session() as session:
            await session.execute(
                sa.delete(tasks_table).where(tasks_table.c.session_id == self._session_id)
            )
            if tasks:
                await session.execute(
                    sa.insert(tasks_table),
                    [
                        {
                            "session_id": self._session_id,
                            "id": task.id,
                            "position": position,
                            "content": task.content,
                            "active_form": task.active_form,
                            "status": str(task.status),
                        }
                        for position, task in enumerate(tasks)
                    ],
                )

    async def update_task(self, task_id: str, **updates: Any) -> None:
        unknown = set(updates) - _TASK_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update task fields: {sorted(unknown)}")
        if not updates:
            return
        values = {key: str(value) for key, value in updates.items()}
        async with self._db.get_session() as session:
            await session.execute(
                sa.update(tasks_table)
                .where(
                    tasks_table.c.session_id == self._session_id,
                    tasks_table.c.id == task_id,
                )
                .values(**values)
            )

    async def get_permission(self, tool_name: str) -> PermissionStatus:
        async with self._db.get_session() as session:
            result = await session.execute(
                sa.select(permissions_table.c.status).where(
                    permissions_table.c.session_id == self._session_id,
                    permissions_table.c.tool_name == tool_name,
                )
            )
            status = result.scalar_one_or_none()
        return PermissionStatus(status) if status else PermissionStatus.UNSET

    async def set_permission(self, tool_name: str, status: PermissionStatus) -> None:
        async with self._db.get_session() as session:
            await session.execute(
                sa.delete(permissions_table).where(
                    permissions_table.c.session_id == self._session_id,
                    permissions_table.c.tool_name == tool_name,
                )
            )
            await session.execute(
                sa.insert(permissions_table).values(
                    session_id=self._session_id, tool_name=tool_name, status=str(status)
                )
            )

    def _message_rows(self, messages: list[Message]) -> list[dict[str, Any]]:
        return [
            {
                "session_id": self._session_id,
                "sender": str(message.sender),
                "is_compaction": message.is_compaction,
                "payload": serialize_message(message),
            }
            for message in messages
        ]

    async def _get_counter(self, column: sa.Column) -> int:
        async with self._db.get_session() as session:
            result = await session.execute(
                sa.select(column).where(sessions_table.c.session_id == self._session_id)
            )
            return result.scalar_one_or_none() or 0

    async def _bump_counter(self, column: sa.Column, amount: int) -> None:
        async with self._db.get_session() as session:
            await session.execute(
                sa.update(sessions_table)
                .where(sessions_table.c.session_id == self._session_id)
                .values({column: column + amount})
            )
