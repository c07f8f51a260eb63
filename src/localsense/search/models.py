"""Search scopes, result envelopes and analytics records."""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from localsense.index.document import SearchResult


class SearchScope(str, Enum):
    """Which domain(s) of indexed data a search targets."""
    ALL = "all"
    CONVERSATIONS = "conversations"
    NOTIFICATIONS = "notifications"
    DOCUMENTS = "documents"
    APP_USAGE = "app_usage"
    CONTEXTUAL_MEMORY = "contextual_memory"

    @classmethod
    def domains(cls) -> list["SearchScope"]:
        """All single-domain scopes, in fan-out order."""
        return [scope for scope in cls if scope is not cls.ALL]


class SearchState(str, Enum):
    """Orchestrator state."""
    IDLE = "idle"
    SEARCHING = "searching"
    COMPLETE = "complete"
    ERROR = "error"


_RESULT_FIELDS = {
    SearchScope.CONVERSATIONS: "conversation_results",
    SearchScope.NOTIFICATIONS: "notification_results",
    SearchScope.DOCUMENTS: "document_results",
    SearchScope.APP_USAGE: "usage_results",
    SearchScope.CONTEXTUAL_MEMORY: "contextual_results",
}


class SearchResults(BaseModel):
    """Aggregated results of one orchestrated search.

    Attributes:
        query: The query text
        total_results: Sum of the per-domain result counts
        execution_time: Wall time of the search in milliseconds
        suggestions: Follow-up queries derived from the query text
    """

    query: str
    total_results: int = 0
    conversation_results: list[SearchResult] = Field(default_factory=list)
    notification_results: list[SearchResult] = Field(default_factory=list)
    document_results: list[SearchResult] = Field(default_factory=list)
    usage_results: list[SearchResult] = Field(default_factory=list)
    contextual_results: list[SearchResult] = Field(default_factory=list)
    execution_time: float = 0.0
    suggestions: list[str] = Field(default_factory=list)

    @classmethod
    def empty(cls, query: str = "") -> "SearchResults":
        return cls(query=query)

    @classmethod
    def from_domains(
        cls,
        query: str,
        per_domain: dict[SearchScope, list[SearchResult]],
        suggestions: list[str],
    ) -> "SearchResults":
        """Build an envelope from per-domain result lists."""
        fields = {_RESULT_FIELDS[scope]: results for scope, results in per_domain.items()}
        return cls(
            query=query,
            total_results=sum(len(results) for results in per_domain.values()),
            suggestions=suggestions,
            **fields,
        )

    def results_for(self, scope: SearchScope) -> list[SearchResult]:
        """Return the result list of a single domain."""
        if scope is SearchScope.ALL:
            return self.merged()
        return getattr(self, _RESULT_FIELDS[scope])

    def merged(self) -> list[SearchResult]:
        """All domain results in one list, best score first."""
        merged = [
            result
            for field_name in _RESULT_FIELDS.values()
            for result in getattr(self, field_name)
        ]
        merged.sort(key=lambda result: result.score, reverse=True)
        return merged


class SearchSession(BaseModel):
    """A persisted record of one executed query."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    query: str
    scope: str
    results_count: int
    execution_time: float
    timestamp: datetime = Field(default_factory=datetime.now)


class SearchAnalytics(BaseModel):
    """Rolling statistics derived from recent search sessions."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    total_searches: int = 0
    avg_results_per_search: float = 0.0
    avg_execution_time: float = 0.0
    top_queries: list[str] = Field(default_factory=list)
    period: str = "30_days"
    timestamp: datetime = Field(default_factory=datetime.now)
