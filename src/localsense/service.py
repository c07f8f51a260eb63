"""Composition root for the search engine."""

from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from localsense.index.document import IndexStats
from localsense.index.chunking import TokenWindowChunker
from localsense.index.embeddings import HashingEmbedding
from localsense.index.pipeline import SemanticIndex
from localsense.search.analytics import AnalyticsRecorder
from localsense.search.ingestion import DataIndexer
from localsense.search.models import SearchAnalytics, SearchResults, SearchScope
from localsense.search.orchestrator import SearchListener, SearchOrchestrator
from localsense.state.backend import StorageBackend
from localsense.state.memory_backend import MemoryStorageBackend
from localsense.state.sqlite_backend import SQLiteStorageBackend
from localsense.utils.config import SearchConfig
from localsense.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


class SearchService:
    """The search engine as one object owned by the caller.

    Bundles the semantic index, the orchestrator, the analytics recorder and
    the bulk indexer over a single storage backend.
    """

    def __init__(
        self,
        config: SearchConfig,
        storage: StorageBackend,
        index: SemanticIndex,
        orchestrator: SearchOrchestrator,
        analytics: AnalyticsRecorder,
    ):
        self.config = config
        self.storage = storage
        self.index = index
        self.orchestrator = orchestrator
        self.analytics = analytics
        self.indexer = DataIndexer(index)

    async def initialize(self, now: Optional[datetime] = None) -> bool:
        """Load the persisted index and seed suggestions.

        Returns:
            False if the index could not be loaded
        """
        if not await self.index.initialize():
            return False
        await self.orchestrator.initialize(now)
        return True

    async def add_document(
        self,
        id: str,
        title: str,
        content: str,
        source: str,
        metadata: Optional[dict[str, str]] = None,
    ) -> bool:
        return await self.index.add_document(id, title, content, source, metadata)

    async def update_document(
        self,
        id: str,
        title: str,
        content: str,
        source: str,
        metadata: Optional[dict[str, str]] = None,
    ) -> bool:
        return await self.index.update_document(id, title, content, source, metadata)

    async def remove_document(self, id: str) -> bool:
        return await self.index.remove_document(id)

    async def add_conversation_message(
        self,
        message_id: str,
        content: str,
        context: str = "chat",
        timestamp: Optional[datetime] = None,
    ) -> bool:
        return await self.indexer.add_conversation_message(message_id, content, context, timestamp)

    async def search(
        self,
        query: str,
        scope: SearchScope = SearchScope.ALL,
        max_results: Optional[int] = None,
        threshold: Optional[float] = None,
        filters: Optional[dict[str, str]] = None,
    ) -> SearchResults:
        return await self.orchestrator.search(query, scope, max_results, threshold, filters)

    async def get_search_suggestions(self) -> list[str]:
        return await self.orchestrator.get_search_suggestions()

    async def get_personalized_suggestions(self, now: Optional[datetime] = None) -> list[str]:
        return await self.orchestrator.get_personalized_suggestions(now)

    async def get_search_analytics(self, days: Optional[int] = None) -> SearchAnalytics:
        return await self.analytics.get_search_analytics(days)

    def get_index_statistics(self) -> IndexStats:
        return self.index.get_index_statistics()

    def subscribe(self, listener: SearchListener) -> Callable[[], None]:
        return self.orchestrator.subscribe(listener)

    async def close(self) -> None:
        """Release the storage backend."""
        await self.storage.close()


def create_storage(config: SearchConfig) -> StorageBackend:
    """Create the storage backend named by the configuration."""
    if config.database_path is None:
        return MemoryStorageBackend()
    return SQLiteStorageBackend(str(Path(config.database_path).expanduser()))


def create_search_service(
    config: Optional[SearchConfig] = None,
    storage: Optional[StorageBackend] = None,
) -> SearchService:
    """
    Build a search service from configuration.

    Args:
        config: Search configuration (default: SearchConfig())
        storage: Storage backend overriding the configured one

    Returns:
        A new, uninitialized SearchService
    """
    config = config or SearchConfig()
    configure_logging(config.log_level)

    storage = storage or create_storage(config)
    embedding = HashingEmbedding(config.embedding_dimension)
    chunker = TokenWindowChunker(config.max_chunk_size, config.overlap_size)

    index = SemanticIndex(
        embedding,
        storage,
        chunker=chunker,
        yield_every=config.scan_yield_every,
        recommendation_threshold=config.recommendation_threshold,
        default_top_k=config.default_top_k,
    )
    analytics = AnalyticsRecorder(storage, window_days=config.analytics_window_days)
    orchestrator = SearchOrchestrator(index, analytics, config)

    logger.debug(f"Created search service with {type(storage).__name__}")
    return SearchService(config, storage, index, orchestrator, analytics)
