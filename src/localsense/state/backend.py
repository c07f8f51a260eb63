"""Durable storage interface for the semantic index."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from localsense.index.document import Chunk, DocumentRecord, VectorEntry
from localsense.search.models import SearchAnalytics, SearchSession


class StorageBackend(ABC):
    """Abstract base class for index storage backends.

    A document, its chunks and its vectors are always written and deleted
    together: ``save_document`` and ``delete_document`` either apply fully or
    leave the store untouched.
    """

    @abstractmethod
    async def save_document(
        self,
        document: DocumentRecord,
        chunks: list[Chunk],
        vectors: list[VectorEntry],
    ) -> None:
        """Persist a document with its chunks and vectors in one transaction.

        An existing document with the same id is replaced, including all of
        its previous chunks and vectors.

        Raises:
            StorageError: If the write fails (nothing is persisted)
        """
        pass

    @abstractmethod
    async def delete_document(self, document_id: str) -> int:
        """Delete a document and cascade to its chunks and vectors.

        Args:
            document_id: Document ID

        Returns:
            Number of chunks deleted
        """
        pass

    @abstractmethod
    async def load_documents(self) -> list[DocumentRecord]:
        """Load every persisted document."""
        pass

    @abstractmethod
    async def load_chunks(self) -> list[Chunk]:
        """Load every persisted chunk."""
        pass

    @abstractmethod
    async def load_vectors(self) -> list[VectorEntry]:
        """Load every persisted vector."""
        pass

    @abstractmethod
    async def get_chunk(self, chunk_id: str) -> Optional[Chunk]:
        """Get a chunk by its ID."""
        pass

    @abstractmethod
    async def get_chunks_by_document(self, document_id: str) -> list[Chunk]:
        """List the chunks of a document ordered by start offset."""
        pass

    @abstractmethod
    async def save_session(self, session: SearchSession) -> str:
        """Append a search session.

        Returns:
            Session ID
        """
        pass

    @abstractmethod
    async def list_sessions(self, since: Optional[datetime] = None) -> list[SearchSession]:
        """List sessions, newest first.

        Args:
            since: Only return sessions at or after this time

        Returns:
            List of sessions
        """
        pass

    @abstractmethod
    async def delete_sessions_before(self, cutoff: datetime) -> int:
        """Delete sessions older than ``cutoff``.

        Returns:
            Number of sessions deleted
        """
        pass

    @abstractmethod
    async def save_analytics(self, analytics: SearchAnalytics) -> str:
        """Persist an analytics snapshot.

        Returns:
            Snapshot ID
        """
        pass

    @abstractmethod
    async def latest_analytics(self, period: Optional[str] = None) -> Optional[SearchAnalytics]:
        """Return the newest analytics snapshot, optionally for one period."""
        pass

    @abstractmethod
    async def delete_analytics_before(self, cutoff: datetime) -> int:
        """Delete analytics snapshots older than ``cutoff``."""
        pass

    async def close(self) -> None:
        """Release any resources held by the backend."""
        return None
