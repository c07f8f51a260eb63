"""Search orchestration across data domains."""

import asyncio
import logging
import time
from datetime import datetime
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, Union

from localsense.exceptions import SearchError
from localsense.index.document import Chunk, SearchResult
from localsense.utils.config import SearchConfig

from .analytics import AnalyticsRecorder
from .models import SearchResults, SearchScope, SearchState
from .suggestions import DEFAULT_SUGGESTIONS, distinct, personalized_suggestions, query_suggestions

if TYPE_CHECKING:
    from localsense.index.pipeline import SemanticIndex

logger = logging.getLogger(__name__)

SearchListener = Callable[[SearchResults], Union[None, Awaitable[None]]]

# Chunk ``source`` values owned by each domain; anything else is a document
SOURCE_DOMAINS = {
    "conversation": SearchScope.CONVERSATIONS,
    "notification": SearchScope.NOTIFICATIONS,
    "sms": SearchScope.NOTIFICATIONS,
    "usage_insight": SearchScope.APP_USAGE,
    "contextual_memory": SearchScope.CONTEXTUAL_MEMORY,
}


def domain_of(chunk: Chunk) -> SearchScope:
    """Return the domain a chunk belongs to."""
    source = chunk.metadata.get("source", "").lower()
    return SOURCE_DOMAINS.get(source, SearchScope.DOCUMENTS)


class SearchOrchestrator:
    """Runs queries against one or all domains of the semantic index.

    A search over ``SearchScope.ALL`` splits ``max_results`` evenly between
    the five domains and scans them concurrently, one task per domain. If a
    domain scan fails, or the caller is cancelled, the remaining scans are
    cancelled too.

    Internal failures never reach the caller: the orchestrator logs them,
    moves to ``SearchState.ERROR`` and returns empty results. Cancellation
    is the exception; it propagates after the state is reset to IDLE.

    Example:
        ```python
        orchestrator = SearchOrchestrator(index, AnalyticsRecorder(storage))
        await orchestrator.initialize()

        unsubscribe = orchestrator.subscribe(lambda results: print(results.total_results))
        results = await orchestrator.search("messages from alice")
        unsubscribe()
        ```
    """

    def __init__(
        self,
        index: "SemanticIndex",
        analytics: AnalyticsRecorder,
        config: Optional[SearchConfig] = None,
    ):
        """Initialize the orchestrator.

        Args:
            index: Semantic index to search
            analytics: Recorder that stores a session per search
            config: Search configuration (default: SearchConfig())
        """
        self.index = index
        self.analytics = analytics
        self.config = config or SearchConfig()

        self._state = SearchState.IDLE
        self._last_results: Optional[SearchResults] = None
        self._suggestions: list[str] = []
        self._listeners: list[SearchListener] = []

    @property
    def state(self) -> SearchState:
        return self._state

    @property
    def last_results(self) -> Optional[SearchResults]:
        """Results of the last completed search."""
        return self._last_results

    async def initialize(self, now: Optional[datetime] = None) -> None:
        """Seed the suggestion cache with default and personalized suggestions."""
        self._suggestions = distinct(
            DEFAULT_SUGGESTIONS + await self.get_personalized_suggestions(now),
            self.config.max_suggestions,
        )

    async def get_search_suggestions(self) -> list[str]:
        """Return the cached suggestions."""
        return list(self._suggestions)

    async def get_personalized_suggestions(self, now: Optional[datetime] = None) -> list[str]:
        """Suggestions derived from indexed data and the time of day."""
        return personalized_suggestions(self.index.index.snapshot(), now)

    def subscribe(self, listener: SearchListener) -> Callable[[], None]:
        """Register a listener called with the results of every completed search.

        Args:
            listener: Sync or async callable

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def search(
        self,
        query: str,
        scope: SearchScope = SearchScope.ALL,
        max_results: Optional[int] = None,
        threshold: Optional[float] = None,
        filters: Optional[dict[str, str]] = None,
    ) -> SearchResults:
        """Search one domain or all of them.

        Args:
            query: Query text
            scope: Domain to search, or ALL
            max_results: Result budget (default from config). ALL gives each
                domain ``max_results // 5``.
            threshold: Minimum score for every domain, overriding the
                per-domain defaults
            filters: Exact, case-insensitive metadata matches

        Returns:
            Aggregated results; empty results if the search failed
        """
        self._state = SearchState.SEARCHING
        max_results = self.config.default_max_results if max_results is None else max_results
        start = time.perf_counter()

        try:
            per_domain = await self._execute(query, scope, max_results, threshold, filters)

            results = SearchResults.from_domains(query, per_domain, query_suggestions(query))
            results.execution_time = (time.perf_counter() - start) * 1000
        except asyncio.CancelledError:
            self._state = SearchState.IDLE
            raise
        except Exception:
            logger.exception(f"Search failed for query {query!r}")
            self._state = SearchState.ERROR
            return SearchResults.empty(query)

        try:
            await self.analytics.record_session(query, scope, results)
        except Exception as e:
            logger.warning(f"Could not record search session: {e}")

        self._suggestions = distinct(
            self._suggestions + results.suggestions,
            self.config.max_suggestions,
        )
        self._last_results = results
        self._state = SearchState.COMPLETE

        logger.debug(
            f"Search {query!r} ({scope.value}): {results.total_results} results in {results.execution_time:.1f}ms"
        )
        await self._notify(results)
        return results

    async def _execute(
        self,
        query: str,
        scope: SearchScope,
        max_results: int,
        threshold: Optional[float],
        filters: Optional[dict[str, str]],
    ) -> dict[SearchScope, list[SearchResult]]:
        if scope is SearchScope.ALL:
            domains = SearchScope.domains()
            return await self._fan_out(
                domains, query, max_results // len(domains), threshold, filters
            )

        results = await self._search_domain(scope, query, max_results, threshold, filters)
        return {scope: results}

    async def _fan_out(
        self,
        domains: list[SearchScope],
        query: str,
        limit: int,
        threshold: Optional[float],
        filters: Optional[dict[str, str]],
    ) -> dict[SearchScope, list[SearchResult]]:
        tasks = [
            asyncio.create_task(
                self._search_domain(domain, query, limit, threshold, filters),
                name=f"search-{domain.value}",
            )
            for domain in domains
        ]

        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        return dict(zip(domains, results))

    async def _search_domain(
        self,
        domain: SearchScope,
        query: str,
        limit: int,
        threshold: Optional[float],
        filters: Optional[dict[str, str]],
    ) -> list[SearchResult]:
        query_embedding = await self.index.embedding.embed_safe(query)
        if query_embedding is None:
            raise SearchError(query, f"query could not be embedded for {domain.value}")

        if threshold is None:
            threshold = self.config.domain_thresholds.get(domain.value, self.config.default_threshold)

        return await self.index.engine.search(
            query_embedding,
            top_k=limit,
            threshold=threshold,
            filters=filters,
            predicate=lambda chunk: domain_of(chunk) is domain,
        )

    async def _notify(self, results: SearchResults) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(results)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception("Search listener failed")
