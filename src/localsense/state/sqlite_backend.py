"""SQLite backend for index storage."""

import asyncio
import json
import logging
import sqlite3
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional

from localsense.exceptions import StorageError
from localsense.index.document import Chunk, DocumentRecord, VectorEntry
from localsense.search.models import SearchAnalytics, SearchSession

from .backend import StorageBackend

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    source TEXT NOT NULL,
    metadata TEXT NOT NULL,
    chunk_ids TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS document_chunks (
    chunk_id TEXT PRIMARY KEY,
    document_id TEXT NOT NULL,
    content TEXT NOT NULL,
    start_position INTEGER NOT NULL,
    end_position INTEGER NOT NULL,
    metadata TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_chunks_document
    ON document_chunks(document_id, start_position);
CREATE TABLE IF NOT EXISTS vector_embeddings (
    vector_id TEXT PRIMARY KEY,
    document_id TEXT NOT NULL,
    embedding TEXT NOT NULL,
    dimension INTEGER NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_vectors_document
    ON vector_embeddings(document_id);
CREATE TABLE IF NOT EXISTS search_sessions (
    id TEXT PRIMARY KEY,
    query TEXT NOT NULL,
    scope TEXT NOT NULL,
    results_count INTEGER NOT NULL,
    execution_time REAL NOT NULL,
    timestamp TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_sessions_timestamp
    ON search_sessions(timestamp DESC);
CREATE TABLE IF NOT EXISTS search_analytics (
    id TEXT PRIMARY KEY,
    total_searches INTEGER NOT NULL,
    avg_results_per_search REAL NOT NULL,
    avg_execution_time REAL NOT NULL,
    top_queries TEXT NOT NULL,
    period TEXT NOT NULL,
    timestamp TEXT NOT NULL
);
"""


def _ts(value: datetime) -> str:
    return value.isoformat(timespec="microseconds")


class SQLiteStorageBackend(StorageBackend):
    """SQLite-based index storage.

    Provides persistent storage for documents, chunks, vectors and search
    sessions using SQLite. All blocking database work runs on a dedicated
    single-thread executor so the event loop is never blocked and writes are
    applied in order.
    """

    def __init__(self, db_path: str = "localsense.db"):
        """Initialize SQLite backend.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._initialized = False
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="localsense-sqlite")

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        if not self._initialized:
            conn.executescript(SCHEMA)
            conn.commit()
            self._initialized = True
        return conn

    async def _run(self, operation: str, func: Callable[..., Any], *args: Any) -> Any:
        """Run a synchronous database call on the storage thread."""
        loop = asyncio.get_event_loop()
        try:
            return await loop.run_in_executor(self._executor, func, *args)
        except (sqlite3.Error, OSError) as e:
            raise StorageError(operation, str(e)) from e

    # Documents

    async def save_document(
        self,
        document: DocumentRecord,
        chunks: list[Chunk],
        vectors: list[VectorEntry],
    ) -> None:
        """Save a document, its chunks and vectors atomically."""
        await self._run("save_document", self._save_document_sync, document, chunks, vectors)

    def _save_document_sync(
        self,
        document: DocumentRecord,
        chunks: list[Chunk],
        vectors: list[VectorEntry],
    ) -> None:
        """Synchronous save implementation."""
        conn = self._get_connection()
        try:
            self._delete_document_rows(conn, document.id)
            conn.execute(
                """
                INSERT INTO documents
                (id, title, content, source, metadata, chunk_ids, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    document.id,
                    document.title,
                    document.content,
                    document.source,
                    json.dumps(document.metadata),
                    json.dumps(document.chunk_ids),
                    _ts(document.created_at),
                ),
            )
            conn.executemany(
                """
                INSERT OR REPLACE INTO document_chunks
                (chunk_id, document_id, content, start_position, end_position, metadata, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        chunk.id,
                        chunk.document_id,
                        chunk.content,
                        chunk.start_index,
                        chunk.end_index,
                        json.dumps(chunk.metadata),
                        _ts(chunk.created_at),
                    )
                    for chunk in chunks
                ],
            )
            conn.executemany(
                """
                INSERT OR REPLACE INTO vector_embeddings
                (vector_id, document_id, embedding, dimension, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (
                        vector.vector_id,
                        vector.document_id,
                        json.dumps(vector.embedding),
                        vector.dimension,
                        _ts(vector.created_at),
                    )
                    for vector in vectors
                ],
            )
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        finally:
            conn.close()

    @staticmethod
    def _delete_document_rows(conn: sqlite3.Connection, document_id: str) -> int:
        cursor = conn.execute(
            "DELETE FROM document_chunks WHERE document_id = ?",
            (document_id,),
        )
        removed = cursor.rowcount
        conn.execute("DELETE FROM vector_embeddings WHERE document_id = ?", (document_id,))
        conn.execute("DELETE FROM documents WHERE id = ?", (document_id,))
        return removed

    async def delete_document(self, document_id: str) -> int:
        """Delete a document and cascade to its chunks and vectors."""
        return await self._run("delete_document", self._delete_document_sync, document_id)

    def _delete_document_sync(self, document_id: str) -> int:
        """Synchronous delete implementation."""
        conn = self._get_connection()
        try:
            removed = self._delete_document_rows(conn, document_id)
            conn.commit()
            return removed
        except sqlite3.Error:
            conn.rollback()
            raise
        finally:
            conn.close()

    async def load_documents(self) -> list[DocumentRecord]:
        """Load every document."""
        return await self._run("load_documents", self._load_documents_sync)

    def _load_documents_sync(self) -> list[DocumentRecord]:
        conn = self._get_connection()
        try:
            rows = conn.execute("SELECT * FROM documents ORDER BY created_at").fetchall()
            documents = []
            for row in rows:
                try:
                    documents.append(DocumentRecord(
                        id=row["id"],
                        title=row["title"],
                        content=row["content"],
                        source=row["source"],
                        metadata=json.loads(row["metadata"]),
                        chunk_ids=json.loads(row["chunk_ids"]),
                        created_at=datetime.fromisoformat(row["created_at"]),
                    ))
                except ValueError as e:
                    logger.warning(f"Skipping unreadable document row {row['id']!r}: {e}")
            return documents
        finally:
            conn.close()

    async def load_chunks(self) -> list[Chunk]:
        """Load every chunk."""
        return await self._run("load_chunks", self._load_chunks_sync)

    def _load_chunks_sync(self) -> list[Chunk]:
        conn = self._get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM document_chunks ORDER BY document_id, start_position"
            ).fetchall()
            return [chunk for chunk in map(self._row_to_chunk, rows) if chunk is not None]
        finally:
            conn.close()

    @staticmethod
    def _row_to_chunk(row: sqlite3.Row) -> Optional[Chunk]:
        try:
            return Chunk(
                id=row["chunk_id"],
                document_id=row["document_id"],
                content=row["content"],
                metadata=json.loads(row["metadata"]),
                start_index=row["start_position"],
                end_index=row["end_position"],
                created_at=datetime.fromisoformat(row["created_at"]),
            )
        except ValueError as e:
            logger.warning(f"Skipping unreadable chunk row {row['chunk_id']!r}: {e}")
            return None

    async def load_vectors(self) -> list[VectorEntry]:
        """Load every vector."""
        return await self._run("load_vectors", self._load_vectors_sync)

    def _load_vectors_sync(self) -> list[VectorEntry]:
        conn = self._get_connection()
        try:
            rows = conn.execute("SELECT * FROM vector_embeddings").fetchall()
            vectors = []
            for row in rows:
                try:
                    vectors.append(VectorEntry(
                        vector_id=row["vector_id"],
                        document_id=row["document_id"],
                        embedding=json.loads(row["embedding"]),
                        created_at=datetime.fromisoformat(row["created_at"]),
                    ))
                except ValueError as e:
                    logger.warning(f"Skipping unreadable vector row {row['vector_id']!r}: {e}")
            return vectors
        finally:
            conn.close()

    async def get_chunk(self, chunk_id: str) -> Optional[Chunk]:
        """Get a chunk by ID."""
        return await self._run("get_chunk", self._get_chunk_sync, chunk_id)

    def _get_chunk_sync(self, chunk_id: str) -> Optional[Chunk]:
        conn = self._get_connection()
        try:
            row = conn.execute(
                "SELECT * FROM document_chunks WHERE chunk_id = ?",
                (chunk_id,),
            ).fetchone()
            return self._row_to_chunk(row) if row else None
        finally:
            conn.close()

    async def get_chunks_by_document(self, document_id: str) -> list[Chunk]:
        """List chunks of a document."""
        return await self._run("get_chunks_by_document", self._get_chunks_by_document_sync, document_id)

    def _get_chunks_by_document_sync(self, document_id: str) -> list[Chunk]:
        conn = self._get_connection()
        try:
            rows = conn.execute(
                """
                SELECT * FROM document_chunks
                WHERE document_id = ?
                ORDER BY start_position ASC
                """,
                (document_id,),
            ).fetchall()
            return [chunk for chunk in map(self._row_to_chunk, rows) if chunk is not None]
        finally:
            conn.close()

    # Search sessions

    async def save_session(self, session: SearchSession) -> str:
        """Append a search session."""
        await self._run("save_session", self._save_session_sync, session)
        return session.id

    def _save_session_sync(self, session: SearchSession) -> None:
        conn = self._get_connection()
        try:
            conn.execute(
                """
                INSERT INTO search_sessions
                (id, query, scope, results_count, execution_time, timestamp)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    session.id,
                    session.query,
                    session.scope,
                    session.results_count,
                    session.execution_time,
                    _ts(session.timestamp),
                ),
            )
            conn.commit()
        finally:
            conn.close()

    async def list_sessions(self, since: Optional[datetime] = None) -> list[SearchSession]:
        """List sessions, newest first."""
        return await self._run("list_sessions", self._list_sessions_sync, since)

    def _list_sessions_sync(self, since: Optional[datetime]) -> list[SearchSession]:
        conn = self._get_connection()
        try:
            if since is None:
                rows = conn.execute(
                    "SELECT * FROM search_sessions ORDER BY timestamp DESC"
                ).fetchall()
            else:
                rows = conn.execute(
                    """
                    SELECT * FROM search_sessions
                    WHERE timestamp >= ?
                    ORDER BY timestamp DESC
                    """,
                    (_ts(since),),
                ).fetchall()

            return [
                SearchSession(
                    id=row["id"],
                    query=row["query"],
                    scope=row["scope"],
                    results_count=row["results_count"],
                    execution_time=row["execution_time"],
                    timestamp=datetime.fromisoformat(row["timestamp"]),
                )
                for row in rows
            ]
        finally:
            conn.close()

    async def delete_sessions_before(self, cutoff: datetime) -> int:
        """Delete sessions older than the cutoff."""
        return await self._run("delete_sessions_before", self._delete_before_sync, "search_sessions", cutoff)

    def _delete_before_sync(self, table: str, cutoff: datetime) -> int:
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                f"DELETE FROM {table} WHERE timestamp < ?",
                (_ts(cutoff),),
            )
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()

    # Search analytics

    async def save_analytics(self, analytics: SearchAnalytics) -> str:
        """Persist an analytics snapshot."""
        await self._run("save_analytics", self._save_analytics_sync, analytics)
        return analytics.id

    def _save_analytics_sync(self, analytics: SearchAnalytics) -> None:
        conn = self._get_connection()
        try:
            conn.execute(
                """
                INSERT OR REPLACE INTO search_analytics
                (id, total_searches, avg_results_per_search, avg_execution_time,
                 top_queries, period, timestamp)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    analytics.id,
                    analytics.total_searches,
                    analytics.avg_results_per_search,
                    analytics.avg_execution_time,
                    json.dumps(analytics.top_queries),
                    analytics.period,
                    _ts(analytics.timestamp),
                ),
            )
            conn.commit()
        finally:
            conn.close()

    async def latest_analytics(self, period: Optional[str] = None) -> Optional[SearchAnalytics]:
        """Return the newest analytics snapshot."""
        return await self._run("latest_analytics", self._latest_analytics_sync, period)

    def _latest_analytics_sync(self, period: Optional[str]) -> Optional[SearchAnalytics]:
        conn = self._get_connection()
        try:
            if period is None:
                row = conn.execute(
                    "SELECT * FROM search_analytics ORDER BY timestamp DESC LIMIT 1"
                ).fetchone()
            else:
                row = conn.execute(
                    """
                    SELECT * FROM search_analytics
                    WHERE period = ?
                    ORDER BY timestamp DESC LIMIT 1
                    """,
                    (period,),
                ).fetchone()

            if row:
                return SearchAnalytics(
                    id=row["id"],
                    total_searches=row["total_searches"],
                    avg_results_per_search=row["avg_results_per_search"],
                    avg_execution_time=row["avg_execution_time"],
                    top_queries=json.loads(row["top_queries"]),
                    period=row["period"],
                    timestamp=datetime.fromisoformat(row["timestamp"]),
                )
            return None
        finally:
            conn.close()

    async def delete_analytics_before(self, cutoff: datetime) -> int:
        """Delete analytics snapshots older than the cutoff."""
        return await self._run("delete_analytics_before", self._delete_before_sync, "search_analytics", cutoff)

    async def close(self) -> None:
        """Shut down the storage thread."""
        self._executor.shutdown(wait=True)
