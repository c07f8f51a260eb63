"""Semantic index for localsense.

This module provides the indexing half of the search engine:
- Document, chunk and vector data structures
- Token window chunker
- Deterministic hashing embedding
- Copy-on-write vector index
- Brute-force cosine similarity engine
- SemanticIndex pipeline tying them to durable storage

Example:
    ```python
    from localsense.index import HashingEmbedding, SemanticIndex
    from localsense.state import MemoryStorageBackend

    index = SemanticIndex(HashingEmbedding(), MemoryStorageBackend())
    await index.initialize()
    await index.add_document("doc1", "Note", "Pick up the groceries", "manual")

    results = await index.search("groceries", threshold=0.1)
    ```
"""

# Data structures
from .document import (
    Chunk,
    DocumentRecord,
    IndexState,
    IndexStats,
    SearchResult,
    TextSpan,
    VectorEntry,
)

# Base classes
from .base import BaseChunker, BaseEmbedding

# Chunking
from .chunking import TokenWindowChunker

# Embeddings
from .embeddings import DummyEmbedding, HashingEmbedding, stable_string_hash

# Vector index
from .vectorstore import IndexSnapshot, IndexTransaction, VectorIndex, cosine_similarity

# Similarity
from .similarity import SimilarityEngine, matches_filters

# Pipeline
from .pipeline import SemanticIndex

__all__ = [
    # Data structures
    "Chunk",
    "DocumentRecord",
    "IndexState",
    "IndexStats",
    "SearchResult",
    "TextSpan",
    "VectorEntry",
    # Base classes
    "BaseChunker",
    "BaseEmbedding",
    # Chunking
    "TokenWindowChunker",
    # Embeddings
    "DummyEmbedding",
    "HashingEmbedding",
    "stable_string_hash",
    # Vector index
    "IndexSnapshot",
    "IndexTransaction",
    "VectorIndex",
    "cosine_similarity",
    # Similarity
    "SimilarityEngine",
    "matches_filters",
    # Pipeline
    "SemanticIndex",
]
