"""Document, chunk and vector data structures for the semantic index."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class DocumentRecord(BaseModel):
    """A document indexed for semantic search.

    Attributes:
        id: Unique identifier for the document
        title: Human readable title
        content: The full text content of the document
        source: Domain tag (conversation, notification, usage_insight, ...)
        metadata: Filterable key/value pairs supplied by the producer
        chunk_ids: IDs of the chunks created from the content
        created_at: When the document was indexed
    """

    id: str
    title: str
    content: str
    source: str
    metadata: dict[str, str] = Field(default_factory=dict)
    chunk_ids: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)

    def __repr__(self) -> str:
        content_preview = self.content[:50] + "..." if len(self.content) > 50 else self.content
        return f"DocumentRecord(id={self.id!r}, source={self.source!r}, content={content_preview!r})"


class Chunk(BaseModel):
    """A bounded, possibly overlapping piece of a document.

    Offsets are computed from the re-joined tokens, not from the original
    string, so they are approximate whenever the source contained runs of
    whitespace other than a single space.

    Attributes:
        id: Unique identifier for the chunk (``<document_id>_chunk_<n>``)
        document_id: ID of the parent document
        content: The text content of the chunk
        metadata: Document metadata plus title, source and chunk_index
        start_index: Approximate start offset in the parent content
        end_index: Approximate end offset in the parent content
        created_at: When the chunk was indexed
    """

    id: str
    document_id: str
    content: str
    metadata: dict[str, str] = Field(default_factory=dict)
    start_index: int = 0
    end_index: int = 0
    created_at: datetime = Field(default_factory=datetime.now)

    def __repr__(self) -> str:
        content_preview = self.content[:30] + "..." if len(self.content) > 30 else self.content
        return f"Chunk(id={self.id!r}, doc_id={self.document_id!r}, content={content_preview!r})"


class TextSpan(BaseModel):
    """Raw chunker output before it is bound to a document."""

    text: str
    start_index: int
    end_index: int


class VectorEntry(BaseModel):
    """A persisted embedding for one chunk."""

    vector_id: str
    document_id: str
    embedding: list[float]
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def dimension(self) -> int:
        return len(self.embedding)


class SearchResult(BaseModel):
    """A ranked match returned by the similarity engine.

    Attributes:
        document_id: ID of the document the chunk belongs to
        chunk_id: ID of the matching chunk
        content: Text of the matching chunk
        score: Cosine similarity with the query (higher is better)
        metadata: Chunk metadata
    """

    document_id: str
    chunk_id: str
    content: str
    score: float
    metadata: dict[str, str] = Field(default_factory=dict)

    def __repr__(self) -> str:
        return f"SearchResult(chunk_id={self.chunk_id!r}, score={self.score:.4f})"


class IndexState(str, Enum):
    """Lifecycle state of the semantic index."""
    IDLE = "idle"
    BUILDING = "building"
    UPDATING = "updating"
    SEARCHING = "searching"
    COMPLETE = "complete"
    ERROR = "error"


class IndexStats(BaseModel):
    """Diagnostic counters for the index.

    ``index_size`` is an estimate in bytes, not a memory measurement.
    """

    total_vectors: int = 0
    total_documents: int = 0
    index_size: int = 0
