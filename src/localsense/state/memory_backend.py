"""In-memory storage backend."""

from datetime import datetime
from typing import Optional

from localsense.index.document import Chunk, DocumentRecord, VectorEntry
from localsense.search.models import SearchAnalytics, SearchSession

from .backend import StorageBackend


class MemoryStorageBackend(StorageBackend):
    """In-memory index storage for testing and ephemeral sessions."""

    def __init__(self):
        """Initialize memory backend."""
        self._documents: dict[str, DocumentRecord] = {}
        self._chunks: dict[str, Chunk] = {}
        self._vectors: dict[str, VectorEntry] = {}
        self._sessions: list[SearchSession] = []
        self._analytics: list[SearchAnalytics] = []

    async def save_document(
        self,
        document: DocumentRecord,
        chunks: list[Chunk],
        vectors: list[VectorEntry],
    ) -> None:
        """Save a document with its chunks and vectors."""
        self._drop_document(document.id)

        self._documents[document.id] = document
        for chunk in chunks:
            self._chunks[chunk.id] = chunk
        for vector in vectors:
            self._vectors[vector.vector_id] = vector

    async def delete_document(self, document_id: str) -> int:
        """Delete a document and its chunks and vectors."""
        return self._drop_document(document_id)

    def _drop_document(self, document_id: str) -> int:
        self._documents.pop(document_id, None)

        chunk_ids = [cid for cid, chunk in self._chunks.items() if chunk.document_id == document_id]
        for chunk_id in chunk_ids:
            del self._chunks[chunk_id]

        vector_ids = [vid for vid, vector in self._vectors.items() if vector.document_id == document_id]
        for vector_id in vector_ids:
            del self._vectors[vector_id]

        return len(chunk_ids)

    async def load_documents(self) -> list[DocumentRecord]:
        return list(self._documents.values())

    async def load_chunks(self) -> list[Chunk]:
        return list(self._chunks.values())

    async def load_vectors(self) -> list[VectorEntry]:
        return list(self._vectors.values())

    async def get_chunk(self, chunk_id: str) -> Optional[Chunk]:
        return self._chunks.get(chunk_id)

    async def get_chunks_by_document(self, document_id: str) -> list[Chunk]:
        chunks = [chunk for chunk in self._chunks.values() if chunk.document_id == document_id]
        return sorted(chunks, key=lambda c: c.start_index)

    async def save_session(self, session: SearchSession) -> str:
        self._sessions.append(session)
        return session.id

    async def list_sessions(self, since: Optional[datetime] = None) -> list[SearchSession]:
        sessions = [s for s in self._sessions if since is None or s.timestamp >= since]
        return sorted(sessions, key=lambda s: s.timestamp, reverse=True)

    async def delete_sessions_before(self, cutoff: datetime) -> int:
        count = len(self._sessions)
        self._sessions = [s for s in self._sessions if s.timestamp >= cutoff]
        return count - len(self._sessions)

    async def save_analytics(self, analytics: SearchAnalytics) -> str:
        self._analytics.append(analytics)
        return analytics.id

    async def latest_analytics(self, period: Optional[str] = None) -> Optional[SearchAnalytics]:
        snapshots = [a for a in self._analytics if period is None or a.period == period]
        if not snapshots:
            return None
        return max(snapshots, key=lambda a: a.timestamp)

    async def delete_analytics_before(self, cutoff: datetime) -> int:
        count = len(self._analytics)
        self._analytics = [a for a in self._analytics if a.timestamp >= cutoff]
        return count - len(self._analytics)
