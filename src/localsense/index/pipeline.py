"""Indexing pipeline: chunk, embed, persist and publish documents."""

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from localsense.exceptions import DocumentNotFoundError, LocalSenseError, StorageError

from .base import BaseChunker, BaseEmbedding
from .chunking import TokenWindowChunker
from .document import Chunk, DocumentRecord, IndexState, IndexStats, SearchResult, VectorEntry
from .similarity import SimilarityEngine
from .vectorstore import IndexSnapshot, IndexTransaction, VectorIndex

if TYPE_CHECKING:
    from localsense.state.backend import StorageBackend

logger = logging.getLogger(__name__)

# Source tag given to documents rebuilt from their stored chunks
RECONSTRUCTED_SOURCE = "database"


def estimate_index_size(snapshot: IndexSnapshot, dimension: int) -> int:
    """Estimate the in-memory footprint of a snapshot in bytes.

    Counts two bytes per id character and four bytes per vector component,
    plus two bytes per character of each document's id, title, content,
    source and chunk ids.
    """
    size = 0
    for vector_id in snapshot.vectors:
        size += len(vector_id) * 2 + dimension * 4

    for document in snapshot.documents.values():
        chars = (
            len(document.id)
            + len(document.title)
            + len(document.content)
            + len(document.source)
            + sum(len(chunk_id) for chunk_id in document.chunk_ids)
        )
        size += chars * 2

    return size


class SemanticIndex:
    """Semantic index over a user's local records.

    Owns the in-memory vector index and keeps it in step with durable
    storage. Every document is indexed all-or-nothing: its chunks, vectors
    and row are written to storage in one transaction, and only then is a
    new snapshot published to readers.

    Example:
        ```python
        index = SemanticIndex(HashingEmbedding(), MemoryStorageBackend())
        await index.initialize()

        await index.add_document(
            "doc1", "Animals", "The quick brown fox jumps over the lazy dog", "manual",
        )
        results = await index.search("quick fox", top_k=3, threshold=0.1)
        ```
    """

    def __init__(
        self,
        embedding: BaseEmbedding,
        storage: "StorageBackend",
        chunker: Optional[BaseChunker] = None,
        yield_every: int = 256,
        recommendation_threshold: float = 0.3,
        default_top_k: int = 10,
    ):
        """Initialize the semantic index.

        Args:
            embedding: Embedding model for chunks and queries
            storage: Durable storage backend
            chunker: Document chunker (default: TokenWindowChunker)
            yield_every: Vectors scanned between event loop yields
            recommendation_threshold: Minimum score used by get_recommendations
            default_top_k: Result count used when search is called without top_k
        """
        self.embedding = embedding
        self.storage = storage
        self.chunker = chunker or TokenWindowChunker()
        self.recommendation_threshold = recommendation_threshold
        self.default_top_k = default_top_k

        self.index = VectorIndex(embedding.dimension)
        self.engine = SimilarityEngine(self.index, yield_every=yield_every)

        self._state = IndexState.IDLE
        self._stats = IndexStats()

    @property
    def dimension(self) -> int:
        return self.index.dimension

    @property
    def state(self) -> IndexState:
        """Current lifecycle state."""
        return self._state

    @property
    def stats(self) -> IndexStats:
        """Statistics computed after the last change."""
        return self._stats

    async def initialize(self) -> bool:
        """Load every persisted document, chunk and vector into memory.

        Documents whose row is missing are rebuilt from their chunks.

        Returns:
            True if the index was loaded, False if storage could not be read
        """
        self._state = IndexState.BUILDING

        try:
            documents = await self.storage.load_documents()
            chunks = await self.storage.load_chunks()
            vectors = await self.storage.load_vectors()
        except StorageError as e:
            logger.error(f"Failed to load index from storage: {e.message}")
            self._state = IndexState.ERROR
            return False

        async with self.index.transaction() as txn:
            txn.clear()

            for document in documents:
                txn.put_document(document)
            for chunk in chunks:
                txn.put_chunk(chunk)

            for vector in vectors:
                if vector.dimension != self.dimension:
                    logger.warning(
                        f"Skipping vector {vector.vector_id}: dimension {vector.dimension}, expected {self.dimension}"
                    )
                    continue
                txn.upsert(vector.vector_id, vector.embedding)

            orphans: dict[str, list[Chunk]] = {}
            for chunk in chunks:
                if chunk.document_id not in txn.documents:
                    orphans.setdefault(chunk.document_id, []).append(chunk)

            for document_id, doc_chunks in orphans.items():
                doc_chunks.sort(key=lambda c: c.start_index)
                txn.put_document(DocumentRecord(
                    id=document_id,
                    title=document_id,
                    content=" ".join(c.content for c in doc_chunks),
                    source=RECONSTRUCTED_SOURCE,
                    chunk_ids=[c.id for c in doc_chunks],
                    created_at=doc_chunks[0].created_at,
                ))

        if orphans:
            logger.warning(f"Rebuilt {len(orphans)} documents from their stored chunks")

        self._update_stats()
        self._state = IndexState.COMPLETE
        logger.info(
            f"Loaded index: {self._stats.total_documents} documents, {self._stats.total_vectors} vectors"
        )
        return True

    async def add_document(
        self,
        id: str,
        title: str,
        content: str,
        source: str,
        metadata: Optional[dict[str, str]] = None,
    ) -> bool:
        """Chunk, embed and index a document.

        An existing document with the same id is replaced. Chunks that
        cannot be embedded are skipped.

        Args:
            id: Document ID
            title: Document title
            content: Full text
            source: Domain tag
            metadata: Filterable key/value pairs

        Returns:
            True if the document was indexed, False otherwise
        """
        self._state = IndexState.UPDATING
        metadata = dict(metadata or {})

        try:
            spans = self.chunker.chunk(content)

            chunks: list[Chunk] = []
            vectors: list[VectorEntry] = []

            for ordinal, span in enumerate(spans):
                chunk_id = f"{id}_chunk_{ordinal}"

                embedding = await self.embedding.embed_safe(span.text)
                if embedding is None:
                    logger.warning(f"Skipping chunk {chunk_id}: embedding failed")
                    continue

                chunks.append(Chunk(
                    id=chunk_id,
                    document_id=id,
                    content=span.text,
                    metadata={
                        "title": title,
                        "source": source,
                        **metadata,
                        "chunk_index": str(ordinal),
                    },
                    start_index=span.start_index,
                    end_index=span.end_index,
                ))
                vectors.append(VectorEntry(
                    vector_id=chunk_id,
                    document_id=id,
                    embedding=embedding,
                ))

            document = DocumentRecord(
                id=id,
                title=title,
                content=content,
                source=source,
                metadata=metadata,
                chunk_ids=[chunk.id for chunk in chunks],
            )

            async with self.index.transaction() as txn:
                self._drop_from(txn, id)
                for chunk, vector in zip(chunks, vectors):
                    txn.upsert(vector.vector_id, vector.embedding)
                    txn.put_chunk(chunk)
                txn.put_document(document)

                # Published only if the storage write succeeds
                await self.storage.save_document(document, chunks, vectors)

        except LocalSenseError as e:
            logger.error(f"Failed to add document {id}: {e.message}")
            self._state = IndexState.ERROR
            return False

        self._update_stats()
        self._state = IndexState.COMPLETE
        logger.debug(f"Added document {id}: {len(chunks)} chunks")
        return True

    async def update_document(
        self,
        id: str,
        title: str,
        content: str,
        source: str,
        metadata: Optional[dict[str, str]] = None,
    ) -> bool:
        """Replace a document. Equivalent to remove followed by add."""
        await self.remove_document(id)
        return await self.add_document(id, title, content, source, metadata)

    async def remove_document(self, id: str) -> bool:
        """Remove a document with its chunks and vectors.

        Args:
            id: Document ID

        Returns:
            True if the document was removed, False if it is unknown or the
            storage delete failed
        """
        if self.index.get_document(id) is None:
            return False

        try:
            async with self.index.transaction() as txn:
                self._drop_from(txn, id)
                await self.storage.delete_document(id)
        except StorageError as e:
            logger.error(f"Failed to remove document {id}: {e.message}")
            return False

        self._update_stats()
        logger.debug(f"Removed document {id}")
        return True

    @staticmethod
    def _drop_from(txn: IndexTransaction, document_id: str) -> None:
        document = txn.remove_document(document_id)
        chunk_ids = set(document.chunk_ids) if document else set()
        chunk_ids.update(
            chunk_id for chunk_id, chunk in txn.chunks.items() if chunk.document_id == document_id
        )
        for chunk_id in chunk_ids:
            txn.remove(chunk_id)
            txn.remove_chunk(chunk_id)

    def get_document(self, id: str) -> DocumentRecord:
        """Get an indexed document.

        Raises:
            DocumentNotFoundError: If the id is not indexed
        """
        document = self.index.get_document(id)
        if document is None:
            raise DocumentNotFoundError(id)
        return document

    async def search(
        self,
        query: str,
        top_k: Optional[int] = None,
        threshold: float = 0.5,
        filters: Optional[dict[str, str]] = None,
    ) -> list[SearchResult]:
        """Search the whole index for chunks similar to a query.

        Args:
            query: Query text
            top_k: Maximum number of results (default: default_top_k)
            threshold: Minimum cosine similarity
            filters: Exact, case-insensitive metadata matches

        Returns:
            Results sorted by descending score
        """
        if top_k is None:
            top_k = self.default_top_k

        query_embedding = await self.embedding.embed_safe(query)
        if query_embedding is None:
            return []
        return await self.engine.search(query_embedding, top_k, threshold, filters)

    async def find_similar_documents(self, document_id: str, top_k: int = 5) -> list[SearchResult]:
        """Find chunks of other documents similar to a document's content."""
        document = self.index.get_document(document_id)
        if document is None:
            return []

        results = await self.search(document.content, top_k)
        return [result for result in results if result.document_id != document_id]

    async def get_recommendations(self, user_context: str, top_k: int = 5) -> list[SearchResult]:
        """Search with the relaxed recommendation threshold."""
        return await self.search(user_context, top_k, threshold=self.recommendation_threshold)

    def get_index_statistics(self) -> IndexStats:
        """Compute statistics for the current snapshot."""
        snapshot = self.index.snapshot()
        return IndexStats(
            total_vectors=len(snapshot.vectors),
            total_documents=len(snapshot.documents),
            index_size=estimate_index_size(snapshot, self.dimension),
        )

    def _update_stats(self) -> None:
        self._stats = self.get_index_statistics()

    async def optimize_index(self) -> int:
        """Drop in-memory vectors that duplicate an earlier vector exactly.

        Storage is not modified, so the duplicates come back on the next
        ``initialize()``.

        Returns:
            Number of vectors removed
        """
        self._state = IndexState.UPDATING

        async with self.index.transaction() as txn:
            seen: set[tuple[float, ...]] = set()
            duplicates = []
            for vector_id, embedding in txn.vectors.items():
                if embedding in seen:
                    duplicates.append(vector_id)
                else:
                    seen.add(embedding)

            for vector_id in duplicates:
                txn.remove(vector_id)

        self._update_stats()
        self._state = IndexState.COMPLETE
        logger.info(f"Optimized index: removed {len(duplicates)} duplicate vectors")
        return len(duplicates)

    async def export_index(self, path: str | Path) -> bool:
        """Write every vector as ``<vector_id>:<comma separated floats>`` lines.

        Args:
            path: Destination file

        Returns:
            True if the file was written
        """
        snapshot = self.index.snapshot()
        lines = [
            f"{vector_id}:{','.join(str(v) for v in embedding)}\n"
            for vector_id, embedding in snapshot.vectors.items()
        ]

        loop = asyncio.get_event_loop()
        try:
            await loop.run_in_executor(None, Path(path).write_text, "".join(lines))
        except OSError as e:
            logger.error(f"Failed to export index to {path}: {e}")
            return False

        logger.info(f"Exported {len(lines)} vectors to {path}")
        return True

    async def import_index(self, path: str | Path) -> bool:
        """Load vectors from an exported file into memory.

        Malformed lines and vectors of the wrong dimension are skipped.
        Imported vectors are not written to storage.

        Args:
            path: Source file

        Returns:
            True if the file was read, False if it is missing or unreadable
        """
        path = Path(path)
        loop = asyncio.get_event_loop()
        try:
            text = await loop.run_in_executor(None, path.read_text)
        except OSError as e:
            logger.error(f"Failed to import index from {path}: {e}")
            return False

        imported = 0
        async with self.index.transaction() as txn:
            for line in text.splitlines():
                vector_id, sep, values = line.rpartition(":")
                if not sep or not vector_id:
                    continue
                try:
                    embedding = [float(v) for v in values.split(",")]
                except ValueError:
                    continue
                if len(embedding) != self.dimension:
                    continue
                txn.upsert(vector_id, embedding)
                imported += 1

        self._update_stats()
        logger.info(f"Imported {imported} vectors from {path}")
        return True
