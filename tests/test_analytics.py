"""Tests for search analytics."""

from datetime import datetime, timedelta

import pytest

from localsense.search import AnalyticsRecorder, SearchResults, SearchScope, SearchSession

NOW = datetime(2024, 6, 15, 12, 0)


async def add_session(storage, query, results_count=0, execution_time=0.0, age=timedelta(hours=1)):
    await storage.save_session(SearchSession(
        query=query,
        scope="all",
        results_count=results_count,
        execution_time=execution_time,
        timestamp=NOW - age,
    ))


@pytest.fixture
def recorder(storage):
    """Analytics recorder over in-memory storage."""
    return AnalyticsRecorder(storage)


class TestSearchAnalytics:
    """Tests for AnalyticsRecorder.get_search_analytics."""

    @pytest.mark.asyncio
    async def test_no_sessions(self, recorder):
        """Test analytics without any searches."""
        analytics = await recorder.get_search_analytics(now=NOW)

        assert analytics.total_searches == 0
        assert analytics.avg_results_per_search == 0.0
        assert analytics.avg_execution_time == 0.0
        assert analytics.top_queries == []
        assert analytics.period == "30_days"

    @pytest.mark.asyncio
    async def test_averages(self, recorder, storage):
        """Test average result count and execution time."""
        await add_session(storage, "a", results_count=2, execution_time=10.0)
        await add_session(storage, "b", results_count=4, execution_time=30.0)

        analytics = await recorder.get_search_analytics(now=NOW)

        assert analytics.total_searches == 2
        assert analytics.avg_results_per_search == pytest.approx(3.0)
        assert analytics.avg_execution_time == pytest.approx(20.0)

    @pytest.mark.asyncio
    async def test_top_queries_by_frequency(self, recorder, storage):
        """Test ordering by frequency, ties broken by most recent use."""
        await add_session(storage, "older tie", age=timedelta(hours=5))
        for hours in (2, 3, 4):
            await add_session(storage, "frequent", age=timedelta(hours=hours))
        await add_session(storage, "newer tie", age=timedelta(hours=1))

        analytics = await recorder.get_search_analytics(now=NOW)

        assert analytics.top_queries == ["frequent", "newer tie", "older tie"]

    @pytest.mark.asyncio
    async def test_top_queries_limit(self, recorder, storage):
        """Test that at most ten queries are reported."""
        for i in range(12):
            await add_session(storage, f"query {i}")

        analytics = await recorder.get_search_analytics(now=NOW)

        assert len(analytics.top_queries) == 10

    @pytest.mark.asyncio
    async def test_window(self, recorder, storage):
        """Test that sessions outside the window are ignored."""
        await add_session(storage, "recent", age=timedelta(days=2))
        await add_session(storage, "old", age=timedelta(days=40))

        monthly = await recorder.get_search_analytics(now=NOW)
        assert monthly.total_searches == 1
        assert monthly.top_queries == ["recent"]

        longer = await recorder.get_search_analytics(days=60, now=NOW)
        assert longer.total_searches == 2
        assert longer.period == "60_days"

    @pytest.mark.asyncio
    async def test_configured_window(self, storage):
        """Test the recorder's default window."""
        await add_session(storage, "recent", age=timedelta(days=2))
        await add_session(storage, "older", age=timedelta(days=5))

        analytics = await AnalyticsRecorder(storage, window_days=3).get_search_analytics(now=NOW)

        assert analytics.total_searches == 1
        assert analytics.period == "3_days"


class TestRecording:
    """Tests for recording, snapshots and pruning."""

    @pytest.mark.asyncio
    async def test_record_session(self, recorder, storage):
        """Test that a session mirrors the search results."""
        results = SearchResults(query="lunch", total_results=3, execution_time=12.5)

        session = await recorder.record_session("lunch", SearchScope.CONVERSATIONS, results)

        stored = await storage.list_sessions()
        assert stored == [session]
        assert session.scope == "conversations"
        assert session.results_count == 3
        assert session.execution_time == 12.5

    @pytest.mark.asyncio
    async def test_save_snapshot(self, recorder, storage):
        """Test persisting computed analytics."""
        await recorder.record_session("lunch", SearchScope.ALL, SearchResults(query="lunch"))

        snapshot = await recorder.save_snapshot()
        latest = await storage.latest_analytics()

        assert latest == snapshot
        assert latest.total_searches == 1
        assert latest.top_queries == ["lunch"]

    @pytest.mark.asyncio
    async def test_prune(self, recorder, storage):
        """Test deleting old sessions and analytics snapshots."""
        await add_session(storage, "recent", age=timedelta(days=1))
        await add_session(storage, "old", age=timedelta(days=100))

        removed = await recorder.prune(90, now=NOW)

        assert removed == 1
        assert [s.query for s in await storage.list_sessions()] == ["recent"]


class TestSearchRecordsSessions:
    """Tests for sessions written by the orchestrator."""

    @pytest.mark.asyncio
    async def test_searches_are_counted(self, orchestrator, storage):
        """Test that every search leaves a session behind."""
        await orchestrator.search("first query")
        await orchestrator.search("second query", scope=SearchScope.DOCUMENTS)
        await orchestrator.search("first query")

        analytics = await orchestrator.analytics.get_search_analytics()

        assert analytics.total_searches == 3
        assert analytics.top_queries == ["first query", "second query"]
        scopes = [s.scope for s in await storage.list_sessions()]
        assert sorted(scopes) == ["all", "all", "documents"]
