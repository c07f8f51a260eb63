"""Search session recording and analytics."""

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Optional

from .models import SearchAnalytics, SearchResults, SearchScope, SearchSession

if TYPE_CHECKING:
    from localsense.state.backend import StorageBackend

logger = logging.getLogger(__name__)

TOP_QUERY_LIMIT = 10


class AnalyticsRecorder:
    """Records search sessions and derives rolling analytics from them.

    Example:
        ```python
        recorder = AnalyticsRecorder(MemoryStorageBackend())
        await recorder.record_session("quick fox", SearchScope.ALL, results)

        analytics = await recorder.get_search_analytics(days=7)
        print(analytics.total_searches, analytics.top_queries)
        ```
    """

    def __init__(self, storage: "StorageBackend", window_days: int = 30):
        """Initialize the analytics recorder.

        Args:
            storage: Backend holding sessions and analytics snapshots
            window_days: Default analytics window in days
        """
        self.storage = storage
        self.window_days = window_days

    async def record_session(
        self,
        query: str,
        scope: SearchScope,
        results: SearchResults,
    ) -> SearchSession:
        """Persist a session for an executed search."""
        session = SearchSession(
            query=query,
            scope=scope.value,
            results_count=results.total_results,
            execution_time=results.execution_time,
        )
        await self.storage.save_session(session)
        logger.debug(f"Recorded session {session.id} for {query!r}")
        return session

    async def get_search_analytics(
        self,
        days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> SearchAnalytics:
        """Compute analytics over recent sessions.

        Args:
            days: Window size in days (default: the recorder's window)
            now: End of the window (default: datetime.now())

        Returns:
            Analytics for sessions newer than ``now - days``. Top queries are
            ordered by frequency, ties by most recent use.
        """
        days = self.window_days if days is None else days
        now = now or datetime.now()

        sessions = await self.storage.list_sessions(since=now - timedelta(days=days))
        total = len(sessions)

        if total == 0:
            return SearchAnalytics(period=f"{days}_days", timestamp=now)

        # Sessions are newest first and Counter keeps first-seen order on ties
        frequencies = Counter(session.query for session in sessions)
        top_queries = [query for query, _ in frequencies.most_common(TOP_QUERY_LIMIT)]

        return SearchAnalytics(
            total_searches=total,
            avg_results_per_search=sum(s.results_count for s in sessions) / total,
            avg_execution_time=sum(s.execution_time for s in sessions) / total,
            top_queries=top_queries,
            period=f"{days}_days",
            timestamp=now,
        )

    async def save_snapshot(self, days: Optional[int] = None) -> SearchAnalytics:
        """Compute analytics and persist them."""
        analytics = await self.get_search_analytics(days)
        await self.storage.save_analytics(analytics)
        logger.info(f"Saved analytics snapshot for {analytics.period}: {analytics.total_searches} searches")
        return analytics

    async def prune(self, older_than_days: int, now: Optional[datetime] = None) -> int:
        """Delete sessions and analytics snapshots older than the cut-off.

        Returns:
            Number of records deleted
        """
        cutoff = (now or datetime.now()) - timedelta(days=older_than_days)
        removed = await self.storage.delete_sessions_before(cutoff)
        removed += await self.storage.delete_analytics_before(cutoff)

        if removed:
            logger.info(f"Pruned {removed} search records older than {older_than_days} days")
        return removed
