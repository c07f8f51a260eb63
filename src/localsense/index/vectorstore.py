"""In-memory vector index with copy-on-write snapshots."""

import asyncio
import logging
import math
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import AsyncIterator, Iterator, Mapping, Optional, Sequence

from localsense.exceptions import DimensionMismatchError

from .document import Chunk, DocumentRecord

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Calculate cosine similarity between two vectors.

    Returns 0.0 when the dimensions differ or either vector has zero norm.
    """
    if len(a) != len(b):
        return 0.0

    dot_product = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))

    if norm_a == 0 or norm_b == 0:
        return 0.0

    return dot_product / (norm_a * norm_b)


def _frozen(data: dict) -> Mapping:
    return MappingProxyType(data)


@dataclass(frozen=True)
class IndexSnapshot:
    """Immutable view of the index at one point in time.

    Readers hold on to a snapshot for the duration of a scan; writers never
    modify a published snapshot, they publish a new one.
    """

    vectors: Mapping[str, tuple[float, ...]] = field(default_factory=lambda: _frozen({}))
    chunks: Mapping[str, Chunk] = field(default_factory=lambda: _frozen({}))
    documents: Mapping[str, DocumentRecord] = field(default_factory=lambda: _frozen({}))
    version: int = 0

    def __len__(self) -> int:
        return len(self.vectors)


class IndexTransaction:
    """Mutable working copy of a snapshot.

    Changes become visible only when the enclosing ``VectorIndex.transaction``
    block exits without an exception.
    """

    def __init__(self, snapshot: IndexSnapshot, dimension: int):
        self.dimension = dimension
        self.vectors: dict[str, tuple[float, ...]] = dict(snapshot.vectors)
        self.chunks: dict[str, Chunk] = dict(snapshot.chunks)
        self.documents: dict[str, DocumentRecord] = dict(snapshot.documents)
        self._base_version = snapshot.version

    def upsert(self, vector_id: str, embedding: Sequence[float]) -> None:
        """Insert or replace a vector."""
        if len(embedding) != self.dimension:
            raise DimensionMismatchError(self.dimension, len(embedding))
        self.vectors[vector_id] = tuple(embedding)

    def remove(self, vector_id: str) -> bool:
        """Remove a vector. Returns False if it was not present."""
        return self.vectors.pop(vector_id, None) is not None

    def put_chunk(self, chunk: Chunk) -> None:
        self.chunks[chunk.id] = chunk

    def remove_chunk(self, chunk_id: str) -> None:
        self.chunks.pop(chunk_id, None)

    def put_document(self, document: DocumentRecord) -> None:
        self.documents[document.id] = document

    def remove_document(self, document_id: str) -> Optional[DocumentRecord]:
        return self.documents.pop(document_id, None)

    def clear(self) -> None:
        self.vectors.clear()
        self.chunks.clear()
        self.documents.clear()

    def freeze(self) -> IndexSnapshot:
        return IndexSnapshot(
            vectors=_frozen(self.vectors),
            chunks=_frozen(self.chunks),
            documents=_frozen(self.documents),
            version=self._base_version + 1,
        )


class VectorIndex:
    """Vector index mapping chunk ids to embeddings, plus chunk and document metadata.

    Reads are lock-free: ``snapshot()`` returns the currently published
    immutable snapshot. Writes are serialized with an ``asyncio.Lock`` and
    publish a fresh snapshot atomically, so a concurrent scan keeps seeing
    the state it started with. Each write copies the maps, which is fine for
    a single user's local corpus.
    """

    def __init__(self, dimension: int):
        """Initialize the vector index.

        Args:
            dimension: Dimension every stored embedding must have
        """
        self.dimension = dimension
        self._snapshot = IndexSnapshot()
        self._write_lock = asyncio.Lock()

    def snapshot(self) -> IndexSnapshot:
        """Return the current immutable snapshot."""
        return self._snapshot

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[IndexTransaction]:
        """Open a write transaction.

        The new snapshot is published only if the block completes; raising
        inside the block discards every change.
        """
        async with self._write_lock:
            txn = IndexTransaction(self._snapshot, self.dimension)
            yield txn
            self._snapshot = txn.freeze()

    async def upsert(self, vector_id: str, embedding: Sequence[float]) -> None:
        """Insert or replace a single vector."""
        async with self.transaction() as txn:
            txn.upsert(vector_id, embedding)

    async def remove(self, vector_id: str) -> bool:
        """Remove a single vector."""
        async with self.transaction() as txn:
            return txn.remove(vector_id)

    async def clear(self) -> None:
        """Drop every vector, chunk and document."""
        async with self.transaction() as txn:
            txn.clear()

    def get(self, vector_id: str) -> Optional[list[float]]:
        """Get a vector by id."""
        vector = self._snapshot.vectors.get(vector_id)
        return list(vector) if vector is not None else None

    def all(self) -> Iterator[tuple[str, tuple[float, ...]]]:
        """Iterate over (id, embedding) pairs of the current snapshot."""
        return iter(self._snapshot.vectors.items())

    def get_chunk(self, chunk_id: str) -> Optional[Chunk]:
        return self._snapshot.chunks.get(chunk_id)

    def get_document(self, document_id: str) -> Optional[DocumentRecord]:
        return self._snapshot.documents.get(document_id)

    def count(self) -> int:
        """Return the number of vectors."""
        return len(self._snapshot.vectors)

    def document_count(self) -> int:
        """Return the number of documents."""
        return len(self._snapshot.documents)
