"""Tests for the search orchestrator and suggestions."""

import asyncio
from datetime import datetime

import pytest

from localsense.exceptions import EmbeddingError, StorageError
from localsense.index import Chunk, HashingEmbedding, SemanticIndex
from localsense.search import (
    DEFAULT_SUGGESTIONS,
    AnalyticsRecorder,
    SearchOrchestrator,
    SearchResults,
    SearchScope,
    SearchState,
    domain_of,
    personalized_suggestions,
    query_suggestions,
    time_of_day_suggestions,
)
from localsense.state import MemoryStorageBackend
from localsense.utils import SearchConfig

NIGHT = datetime(2024, 1, 1, 3, 0)
MORNING = datetime(2024, 1, 1, 9, 0)

DOMAIN_SOURCES = {
    SearchScope.CONVERSATIONS: "conversation",
    SearchScope.NOTIFICATIONS: "notification",
    SearchScope.DOCUMENTS: "manual",
    SearchScope.APP_USAGE: "usage_insight",
    SearchScope.CONTEXTUAL_MEMORY: "contextual_memory",
}


async def populate(index: SemanticIndex, per_domain: int = 6) -> None:
    """Add several similar documents to every domain."""
    for scope, source in DOMAIN_SOURCES.items():
        for i in range(per_domain):
            await index.add_document(
                f"{source}_{i}",
                f"{source} {i}",
                f"weekly project update number {i} from {source}",
                source,
                {"app": "Slack" if i % 2 else "Mail"},
            )


class TestDomainOf:
    """Tests for domain routing."""

    @pytest.mark.parametrize("source,scope", [
        ("conversation", SearchScope.CONVERSATIONS),
        ("notification", SearchScope.NOTIFICATIONS),
        ("sms", SearchScope.NOTIFICATIONS),
        ("usage_insight", SearchScope.APP_USAGE),
        ("contextual_memory", SearchScope.CONTEXTUAL_MEMORY),
        ("manual", SearchScope.DOCUMENTS),
        ("database", SearchScope.DOCUMENTS),
    ])
    def test_sources(self, source, scope):
        """Test which domain each source belongs to."""
        chunk = Chunk(id="c", document_id="d", content="x", metadata={"source": source})
        assert domain_of(chunk) is scope

    def test_missing_source(self):
        """Test that chunks without a source are documents."""
        assert domain_of(Chunk(id="c", document_id="d", content="x")) is SearchScope.DOCUMENTS


class TestSearchScopes:
    """Tests for scoped and all-domain searches."""

    @pytest.mark.asyncio
    async def test_all_scope_budget(self, orchestrator, semantic_index):
        """Test that ALL gives every domain max_results // 5."""
        await populate(semantic_index)

        results = await orchestrator.search("weekly project update", max_results=20, threshold=0.0)

        for scope in SearchScope.domains():
            assert len(results.results_for(scope)) == 4
        assert results.total_results == 20
        assert results.query == "weekly project update"
        assert results.execution_time >= 0

    @pytest.mark.asyncio
    async def test_all_scope_rounds_down(self, orchestrator, semantic_index):
        """Test that a budget below five leaves every domain empty."""
        await populate(semantic_index)

        results = await orchestrator.search("weekly project update", max_results=7, threshold=0.0)
        assert results.total_results == 5

        results = await orchestrator.search("weekly project update", max_results=4, threshold=0.0)
        assert results.total_results == 0
        assert orchestrator.state == SearchState.COMPLETE

    @pytest.mark.asyncio
    async def test_single_scope(self, orchestrator, semantic_index):
        """Test that a single scope only returns that domain."""
        await populate(semantic_index)

        results = await orchestrator.search(
            "weekly project update", scope=SearchScope.CONVERSATIONS, max_results=3, threshold=0.0
        )

        assert len(results.conversation_results) == 3
        assert results.total_results == 3
        assert all(r.metadata["source"] == "conversation" for r in results.conversation_results)
        assert results.notification_results == []
        assert results.document_results == []

    @pytest.mark.asyncio
    async def test_sms_is_searched_as_notification(self, orchestrator, semantic_index):
        """Test that SMS documents are part of the notifications domain."""
        await semantic_index.add_document("sms_1", "SMS", "your parcel arrives today", "sms")

        results = await orchestrator.search(
            "parcel arrives today", scope=SearchScope.NOTIFICATIONS, threshold=0.1
        )

        assert [r.document_id for r in results.notification_results] == ["sms_1"]

    @pytest.mark.asyncio
    async def test_filters(self, orchestrator, semantic_index):
        """Test that metadata filters reach every domain."""
        await populate(semantic_index)

        results = await orchestrator.search(
            "weekly project update", max_results=20, threshold=0.0, filters={"app": "slack"}
        )

        assert results.total_results > 0
        assert all(r.metadata["app"] == "Slack" for r in results.merged())

    @pytest.mark.asyncio
    async def test_domain_thresholds(self, semantic_index, storage):
        """Test that per-domain thresholds come from configuration."""
        await populate(semantic_index)
        config = SearchConfig(domain_thresholds={"documents": 1.01})
        orchestrator = SearchOrchestrator(semantic_index, AnalyticsRecorder(storage), config)

        results = await orchestrator.search("weekly project update", max_results=20)

        assert results.document_results == []
        assert len(results.conversation_results) == 4

    @pytest.mark.asyncio
    async def test_merged_is_sorted(self, orchestrator, semantic_index):
        """Test that merged results are ordered by score."""
        await populate(semantic_index)

        results = await orchestrator.search("weekly project update number 3", threshold=0.0)
        scores = [r.score for r in results.merged()]

        assert scores == sorted(scores, reverse=True)
        assert results.results_for(SearchScope.ALL) == results.merged()


class TestOrchestratorFailures:
    """Tests for error handling, cancellation and state."""

    @pytest.mark.asyncio
    async def test_initial_state(self, orchestrator):
        """Test that a new orchestrator is idle."""
        assert orchestrator.state == SearchState.IDLE
        assert orchestrator.last_results is None

    @pytest.mark.asyncio
    async def test_internal_error_returns_empty(self, orchestrator, semantic_index, monkeypatch):
        """Test that scan failures become empty results and ERROR."""
        await populate(semantic_index, per_domain=1)

        async def broken_search(*args, **kwargs):
            raise RuntimeError("scan failed")

        monkeypatch.setattr(semantic_index.engine, "search", broken_search)
        results = await orchestrator.search("weekly project update")

        assert results.total_results == 0
        assert results.query == "weekly project update"
        assert orchestrator.state == SearchState.ERROR

        monkeypatch.undo()
        await orchestrator.search("weekly project update")
        assert orchestrator.state == SearchState.COMPLETE

    @pytest.mark.asyncio
    async def test_embedding_failure_returns_empty(self, storage):
        """Test that an unembeddable query is reported as an error state."""

        class BrokenEmbedding(HashingEmbedding):
            async def embed_query(self, text):
                raise EmbeddingError("model unavailable")

        index = SemanticIndex(BrokenEmbedding(), storage)
        orchestrator = SearchOrchestrator(index, AnalyticsRecorder(storage))

        results = await orchestrator.search("anything")

        assert results == SearchResults.empty("anything")
        assert orchestrator.state == SearchState.ERROR

    @pytest.mark.asyncio
    async def test_failed_domain_cancels_siblings(self, orchestrator, monkeypatch):
        """Test that one failing domain cancels the other scans."""
        cancelled = []

        async def fake_search_domain(domain, *args):
            if domain is SearchScope.DOCUMENTS:
                await asyncio.sleep(0)
                raise RuntimeError("scan failed")
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(domain)
                raise
            return []

        monkeypatch.setattr(orchestrator, "_search_domain", fake_search_domain)
        results = await orchestrator.search("anything")

        assert results.total_results == 0
        assert orchestrator.state == SearchState.ERROR
        assert set(cancelled) == set(SearchScope.domains()) - {SearchScope.DOCUMENTS}

    @pytest.mark.asyncio
    async def test_caller_cancellation_propagates(self, orchestrator, monkeypatch):
        """Test that cancelling the caller cancels every domain scan."""
        started = asyncio.Event()
        running = []
        cancelled = []

        async def slow_search_domain(domain, *args):
            running.append(domain)
            if len(running) == len(SearchScope.domains()):
                started.set()
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(domain)
                raise
            return []

        monkeypatch.setattr(orchestrator, "_search_domain", slow_search_domain)
        task = asyncio.create_task(orchestrator.search("anything"))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert orchestrator.state == SearchState.IDLE
        assert set(cancelled) == set(SearchScope.domains())

    @pytest.mark.asyncio
    async def test_session_storage_failure_keeps_results(self, semantic_index):
        """Test that a failed session write does not discard results."""

        class NoSessions(MemoryStorageBackend):
            async def save_session(self, session):
                raise StorageError("save_session", "read-only")

        orchestrator = SearchOrchestrator(semantic_index, AnalyticsRecorder(NoSessions()))
        await semantic_index.add_document("doc1", "A", "weekly project update", "manual")

        results = await orchestrator.search("weekly project update", threshold=0.1)

        assert results.total_results == 1
        assert orchestrator.state == SearchState.COMPLETE

    @pytest.mark.asyncio
    async def test_unexpected_session_failure_keeps_results(self, semantic_index):
        """Test that any session write fault is logged rather than raised."""

        class BrokenDisk(MemoryStorageBackend):
            async def save_session(self, session):
                raise OSError("disk unavailable")

        orchestrator = SearchOrchestrator(semantic_index, AnalyticsRecorder(BrokenDisk()))
        await semantic_index.add_document("doc1", "A", "weekly project update", "manual")

        results = await orchestrator.search("weekly project update", threshold=0.1)

        assert results.total_results == 1
        assert orchestrator.state == SearchState.COMPLETE

    @pytest.mark.asyncio
    async def test_each_domain_embeds_the_query(self, storage):
        """Test that every domain task embeds the query on its own."""
        queries = []

        class RecordingEmbedding(HashingEmbedding):
            async def embed_query(self, text):
                queries.append(text)
                return await super().embed_query(text)

        orchestrator = SearchOrchestrator(
            SemanticIndex(RecordingEmbedding(), storage), AnalyticsRecorder(storage)
        )

        await orchestrator.search("lunch plans")
        assert queries == ["lunch plans"] * len(SearchScope.domains())

        queries.clear()
        await orchestrator.search("lunch plans", scope=SearchScope.CONVERSATIONS)
        assert queries == ["lunch plans"]


class TestListeners:
    """Tests for search listeners."""

    @pytest.mark.asyncio
    async def test_sync_and_async_listeners(self, orchestrator):
        """Test that both kinds of listener receive results."""
        received = []

        async def async_listener(results):
            received.append(("async", results.query))

        orchestrator.subscribe(lambda results: received.append(("sync", results.query)))
        orchestrator.subscribe(async_listener)

        await orchestrator.search("hello")

        assert received == [("sync", "hello"), ("async", "hello")]

    @pytest.mark.asyncio
    async def test_failing_listener_is_ignored(self, orchestrator):
        """Test that a listener error does not affect the search."""
        received = []

        def broken(results):
            raise ValueError("listener bug")

        orchestrator.subscribe(broken)
        orchestrator.subscribe(received.append)

        results = await orchestrator.search("hello")

        assert received == [results]
        assert orchestrator.state == SearchState.COMPLETE
        assert orchestrator.last_results is results

    @pytest.mark.asyncio
    async def test_unsubscribe(self, orchestrator):
        """Test that unsubscribed listeners are no longer called."""
        received = []
        unsubscribe = orchestrator.subscribe(received.append)

        await orchestrator.search("first")
        unsubscribe()
        unsubscribe()
        await orchestrator.search("second")

        assert [r.query for r in received] == ["first"]


class TestSuggestions:
    """Tests for query, time-of-day and cached suggestions."""

    def test_query_suggestions(self):
        """Test keyword rules."""
        assert query_suggestions("Show my CHAT history") == [
            "Recent messages",
            "Important conversations",
            "Message frequency analysis",
        ]
        assert query_suggestions("app usage this week")[0] == "App usage patterns"
        assert query_suggestions("notification summary")[0] == "Important notifications"
        assert query_suggestions("what did I do today")[0] == "Today's activity"
        assert query_suggestions("weather") == []

    def test_first_matching_rule_wins(self):
        """Test that only the first matching rule contributes."""
        assert query_suggestions("messages today") == query_suggestions("messages")
        assert query_suggestions("notification app") == query_suggestions("app")

    @pytest.mark.parametrize("hour,expected", [
        (5, []),
        (6, ["Morning routines", "Today's schedule"]),
        (10, ["Morning routines", "Today's schedule"]),
        (11, ["Lunch time activities", "Midday productivity"]),
        (13, ["Lunch time activities", "Midday productivity"]),
        (14, ["Afternoon work", "Meeting summaries"]),
        (17, ["Afternoon work", "Meeting summaries"]),
        (18, ["Evening activities", "Day recap"]),
        (22, ["Evening activities", "Day recap"]),
        (23, []),
    ])
    def test_time_of_day(self, hour, expected):
        """Test time-of-day suggestion windows."""
        assert time_of_day_suggestions(hour) == expected

    @pytest.mark.asyncio
    async def test_personalized_suggestions(self, semantic_index):
        """Test suggestions built from indexed data."""
        await semantic_index.add_document(
            "insight_1", "Screen time", "three hours in Slack", "usage_insight", {"app": "Slack"}
        )
        await semantic_index.add_document("chat_1", "Chat Message", "hello", "conversation")

        suggestions = personalized_suggestions(semantic_index.index.snapshot(), MORNING)

        assert suggestions == [
            "Find usage of Slack",
            "Show recent messages",
            "Morning routines",
            "Today's schedule",
        ]

    @pytest.mark.asyncio
    async def test_personalized_suggestions_are_capped(self, semantic_index):
        """Test that at most five distinct suggestions are returned."""
        for i, app in enumerate(["Slack", "Mail", "Maps", "Slack", "Music", "Notes"]):
            await semantic_index.add_document(
                f"insight_{i}", "Usage", f"time in {app}", "usage_insight", {"app": app}
            )

        suggestions = personalized_suggestions(semantic_index.index.snapshot(), MORNING)

        assert len(suggestions) == 5
        assert len(set(suggestions)) == 5

    @pytest.mark.asyncio
    async def test_cached_suggestions(self, orchestrator):
        """Test seeding and updating the suggestion cache."""
        await orchestrator.initialize(now=NIGHT)
        assert await orchestrator.get_search_suggestions() == DEFAULT_SUGGESTIONS

        await orchestrator.search("chat with alice")
        cached = await orchestrator.get_search_suggestions()
        assert cached == DEFAULT_SUGGESTIONS + [
            "Recent messages",
            "Important conversations",
            "Message frequency analysis",
        ]

        await orchestrator.search("app usage")
        assert await orchestrator.get_search_suggestions() == cached

    @pytest.mark.asyncio
    async def test_results_carry_query_suggestions(self, orchestrator):
        """Test that results include suggestions for their query."""
        results = await orchestrator.search("notification from bank")
        assert results.suggestions == query_suggestions("notification from bank")
