"""
localsense - On-device semantic search over a user's personal records.
"""

from localsense.exceptions import (
    DimensionMismatchError,
    DocumentNotFoundError,
    EmbeddingError,
    LocalSenseError,
    SearchError,
    StorageError,
)
from localsense.index import (
    Chunk,
    DocumentRecord,
    HashingEmbedding,
    IndexState,
    IndexStats,
    SearchResult,
    SemanticIndex,
    TokenWindowChunker,
)
from localsense.search import (
    AnalyticsRecorder,
    DataIndexer,
    SearchAnalytics,
    SearchOrchestrator,
    SearchResults,
    SearchScope,
    SearchSession,
    SearchState,
)
from localsense.state import MemoryStorageBackend, SQLiteStorageBackend, StorageBackend
from localsense.service import SearchService, create_search_service
from localsense.utils import SearchConfig, load_config

__version__ = "0.1.0"

__all__ = [
    # Exceptions
    "LocalSenseError",
    "EmbeddingError",
    "StorageError",
    "DocumentNotFoundError",
    "DimensionMismatchError",
    "SearchError",
    # Index
    "Chunk",
    "DocumentRecord",
    "HashingEmbedding",
    "IndexState",
    "IndexStats",
    "SearchResult",
    "SemanticIndex",
    "TokenWindowChunker",
    # Search
    "AnalyticsRecorder",
    "DataIndexer",
    "SearchAnalytics",
    "SearchOrchestrator",
    "SearchResults",
    "SearchScope",
    "SearchSession",
    "SearchState",
    # Storage
    "StorageBackend",
    "MemoryStorageBackend",
    "SQLiteStorageBackend",
    # Service
    "SearchService",
    "create_search_service",
    # Config
    "SearchConfig",
    "load_config",
]
