"""SQLite document store for the agent memory engine."""

import asyncio
import json
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiosqlite

from agent_memory.core.config import get_settings
from agent_memory.core.logging import get_logger
from agent_memory.memory.base import DocumentStore
from agent_memory.memory.models import (
    ConversationData,
    Embedding,
    Memory,
    MemoryAccess,
    MemoryType,
    Message,
    format_timestamp,
    generate_identifier,
    memory_data_adapter,
    parse_timestamp,
    utc_now,
)

logger = get_logger(__name__)

# kind -> identifier prefix
TABLES = {
    "embeddings": "embedding",
    "memories": "memory",
    "memory_accesses": "access",
    "messages": "message",
}


class SQLiteManager(DocumentStore):
    """Manage memory engine records in SQLite."""

    def __init__(self, db_path: str = "./data/agent_memory.db"):
        """Initialize database manager.

        Args:
            db_path: Path to SQLite database file, or ':memory:'
        """
        self.db_path = db_path
        # For in-memory databases, maintain a persistent connection
        self._is_memory = (db_path == ":memory:")
        self._conn = None
        self._initialized = False
        self._write_lock = asyncio.Lock()
        self._ensure_db_directory()

    def _ensure_db_directory(self):
        """Ensure database directory exists."""
        if not self._is_memory:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    async def initialize(self):
        """Initialize database with schema."""
        if self._initialized:
            return

        schema_path = Path(__file__).parent / "schema.sql"

        if self._is_memory:
            self._conn = await aiosqlite.connect(self.db_path)
            await self._conn.execute("PRAGMA foreign_keys = ON")
            db = self._conn
        else:
            db = await aiosqlite.connect(self.db_path)

        try:
            with open(schema_path, 'r') as f:
                schema_sql = f.read()

            await db.executescript(schema_sql)
            await db.commit()
        finally:
            if not self._is_memory:
                await db.close()

        self._initialized = True
        logger.info("database_initialized", path=self.db_path)

    async def close(self):
        """Close database connection (mainly for in-memory databases)."""
        if self._conn:
            await self._conn.close()
            self._conn = None
            self._initialized = False

    @asynccontextmanager
    async def _get_connection(self):
        """Get database connection as async context manager.

        For in-memory databases, yields the persistent connection.
        For file-based databases, creates a new connection and closes it when done.
        """
        if self._is_memory:
            if not self._conn:
                raise RuntimeError("Database not initialized. Call initialize() first.")
            yield self._conn
        else:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute("PRAGMA foreign_keys = ON")
                yield db

    @asynccontextmanager
    async def transaction(self):
        """Run writes as one unit: commit on success, roll back on any error.

        Writers are serialized so that a transaction on the shared in-memory
        connection never interleaves with another coroutine's statements.
        """
        async with self._write_lock:
            async with self._get_connection() as db:
                try:
                    yield db
                except BaseException:
                    await db.rollback()
                    raise
                else:
                    await db.commit()

    # =========================================================================
    # Writes
    # =========================================================================

    @staticmethod
    async def _insert_row(db: aiosqlite.Connection, table: str, row: Dict[str, Any]) -> None:
        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)
        await db.execute(
            f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
            tuple(row.values()),
        )

    @staticmethod
    def _serialize(record: Dict[str, Any]) -> Dict[str, Any]:
        row = {}
        for key, value in record.items():
            if isinstance(value, datetime):
                row[key] = format_timestamp(value)
            elif isinstance(value, (list, dict)):
                row[key] = json.dumps(value)
            else:
                row[key] = value
        return row

    async def insert(self, kind: str, record: Dict[str, Any]) -> str:
        """Insert a single record and return its id.

        Args:
            kind: Table name (embeddings, memories, memory_accesses, messages)
            record: Column values; an id is generated when absent

        Returns:
            Record id
        """
        if kind not in TABLES:
            raise ValueError(f"Unknown record kind: {kind}")

        row = self._serialize(record)
        row.setdefault("id", generate_identifier(TABLES[kind]))
        row.setdefault("created_at", format_timestamp(utc_now()))

        async with self.transaction() as db:
            await self._insert_row(db, kind, row)

        return row["id"]

    async def insert_memory_with_embedding(self, embedding: Embedding, memory: Memory) -> None:
        """Persist an embedding and the memory referencing it in one transaction.

        Args:
            embedding: Embedding row to create
            memory: Memory row pointing at ``embedding.id``
        """
        async with self.transaction() as db:
            await self._insert_row(db, "embeddings", self._embedding_row(embedding))
            await self._insert_row(db, "memories", self._memory_row(memory))

        logger.debug("memory_committed",
                     memory_id=memory.id,
                     embedding_id=embedding.id,
                     agent_id=memory.agent_id)

    async def add_memory_access(self, memory_id: str, created_at: datetime) -> MemoryAccess:
        """Append an access event for a memory."""
        access_id = await self.insert(
            "memory_accesses", {"memory_id": memory_id, "created_at": created_at}
        )
        return MemoryAccess(id=access_id, memory_id=memory_id, created_at=created_at)

    async def add_message(self, message: Message) -> str:
        """Append a dialogue message."""
        return await self.insert("messages", message.model_dump())

    def _embedding_row(self, embedding: Embedding) -> Dict[str, Any]:
        return self._serialize(embedding.model_dump())

    def _memory_row(self, memory: Memory) -> Dict[str, Any]:
        conversation_id = None
        if isinstance(memory.data, ConversationData):
            conversation_id = memory.data.conversation_id
        return self._serialize({
            "id": memory.id,
            "agent_id": memory.agent_id,
            "description": memory.description,
            "embedding_id": memory.embedding_id,
            "importance": memory.importance,
            "type": memory.data.type,
            "conversation_id": conversation_id,
            "data": memory.data.model_dump(),
            "created_at": memory.created_at,
        })

    # =========================================================================
    # Reads
    # =========================================================================

    async def _fetch_one(self, sql: str, params: tuple) -> Optional[aiosqlite.Row]:
        async with self._get_connection() as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(sql, params) as cursor:
                return await cursor.fetchone()

    async def _fetch_all(self, sql: str, params: tuple) -> List[aiosqlite.Row]:
        async with self._get_connection() as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(sql, params) as cursor:
                return list(await cursor.fetchall())

    async def get_embedding_by_text(self, text: str) -> Optional[Embedding]:
        """Get the first embedding computed for exactly this text."""
        row = await self._fetch_one(
            "SELECT * FROM embeddings WHERE text = ? ORDER BY seq LIMIT 1", (text,)
        )
        return self._row_to_embedding(row) if row else None

    async def get_memory_by_embedding_id(self, agent_id: str, embedding_id: str) -> Optional[Memory]:
        """Get the newest memory of an agent that references an embedding."""
        row = await self._fetch_one(
            """SELECT * FROM memories
               WHERE agent_id = ? AND embedding_id = ?
               ORDER BY created_at DESC, seq DESC LIMIT 1""",
            (agent_id, embedding_id),
        )
        return self._row_to_memory(row) if row else None

    async def get_latest_access(self, memory_id: str) -> Optional[MemoryAccess]:
        """Get the most recent access event for a memory."""
        row = await self._fetch_one(
            """SELECT * FROM memory_accesses WHERE memory_id = ?
               ORDER BY created_at DESC, seq DESC LIMIT 1""",
            (memory_id,),
        )
        return self._row_to_access(row) if row else None

    async def list_memory_accesses(self, memory_id: str) -> List[MemoryAccess]:
        """List access events for a memory, oldest first."""
        rows = await self._fetch_all(
            "SELECT * FROM memory_accesses WHERE memory_id = ? ORDER BY created_at, seq",
            (memory_id,),
        )
        return [self._row_to_access(row) for row in rows]

    async def get_latest_memory_of_type(
        self,
        agent_id: str,
        memory_type: MemoryType,
        created_after: Optional[datetime] = None,
        conversation_id: Optional[str] = None,
    ) -> Optional[Memory]:
        """Get the agent's newest memory with a payload tag.

        Args:
            agent_id: Owning agent
            memory_type: Payload tag to match
            created_after: Only consider memories created strictly after this
            conversation_id: Only consider memories of this conversation

        Returns:
            Memory or None
        """
        sql = "SELECT * FROM memories WHERE agent_id = ? AND type = ?"
        params: List[Any] = [agent_id, MemoryType(memory_type).value]
        if created_after is not None:
            sql += " AND created_at > ?"
            params.append(format_timestamp(created_after))
        if conversation_id is not None:
            sql += " AND conversation_id = ?"
            params.append(conversation_id)
        sql += " ORDER BY created_at DESC, seq DESC LIMIT 1"

        row = await self._fetch_one(sql, tuple(params))
        return self._row_to_memory(row) if row else None

    async def get_conversation_messages(
        self,
        conversation_id: str,
        created_after: Optional[datetime] = None,
    ) -> List[Message]:
        """Get a conversation's messages, oldest first."""
        sql = "SELECT * FROM messages WHERE conversation_id = ?"
        params: List[Any] = [conversation_id]
        if created_after is not None:
            sql += " AND created_at > ?"
            params.append(format_timestamp(created_after))
        sql += " ORDER BY created_at, seq"

        rows = await self._fetch_all(sql, tuple(params))
        return [self._row_to_message(row) for row in rows]

    # =========================================================================
    # Row mapping
    # =========================================================================

    @staticmethod
    def _row_to_embedding(row: aiosqlite.Row) -> Embedding:
        return Embedding(
            id=row["id"],
            agent_id=row["agent_id"],
            text=row["text"],
            embedding=json.loads(row["embedding"]),
            created_at=parse_timestamp(row["created_at"]),
        )

    @staticmethod
    def _row_to_memory(row: aiosqlite.Row) -> Memory:
        return Memory(
            id=row["id"],
            agent_id=row["agent_id"],
            description=row["description"],
            embedding_id=row["embedding_id"],
            importance=row["importance"],
            data=memory_data_adapter.validate_python(json.loads(row["data"])),
            created_at=parse_timestamp(row["created_at"]),
        )

    @staticmethod
    def _row_to_access(row: aiosqlite.Row) -> MemoryAccess:
        return MemoryAccess(
            id=row["id"],
            memory_id=row["memory_id"],
            created_at=parse_timestamp(row["created_at"]),
        )

    @staticmethod
    def _row_to_message(row: aiosqlite.Row) -> Message:
        return Message(
            id=row["id"],
            conversation_id=row["conversation_id"],
            author_id=row["author_id"],
            author_name=row["author_name"],
            recipient_ids=json.loads(row["recipient_ids"]),
            recipient_names=json.loads(row["recipient_names"]),
            text=row["text"],
            created_at=parse_timestamp(row["created_at"]),
        )


# Singleton instance
_db_manager: Optional[SQLiteManager] = None


def get_db_manager() -> SQLiteManager:
    """Get or create database manager instance.

    Reads the database path from ``StorageConfig`` (``STORAGE_SQLITE_DB_PATH``).

    Returns:
        SQLiteManager instance
    """
    global _db_manager
    if _db_manager is None:
        db_path = get_settings().storage.sqlite_db_path
        _db_manager = SQLiteManager(db_path=db_path)
        logger.info("db_manager_initialized", db_path=db_path)
    return _db_manager
