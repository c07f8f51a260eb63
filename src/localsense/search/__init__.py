"""Search layer for localsense.

This module provides query execution on top of the semantic index:
- SearchOrchestrator: Single-domain and parallel all-domain search
- AnalyticsRecorder: Search sessions and rolling analytics
- DataIndexer: Bulk ingestion of notifications, insights, chats and memories
- Query and time-of-day suggestions
"""

from .models import SearchAnalytics, SearchResults, SearchScope, SearchSession, SearchState
from .analytics import AnalyticsRecorder
from .ingestion import (
    ChatMessageRecord,
    ContextualMemoryRecord,
    DataIndexer,
    NotificationRecord,
    UsageInsightRecord,
)
from .orchestrator import SearchOrchestrator, domain_of
from .suggestions import (
    DEFAULT_SUGGESTIONS,
    personalized_suggestions,
    query_suggestions,
    time_of_day_suggestions,
)

__all__ = [
    # Models
    "SearchAnalytics",
    "SearchResults",
    "SearchScope",
    "SearchSession",
    "SearchState",
    # Orchestration
    "SearchOrchestrator",
    "domain_of",
    "AnalyticsRecorder",
    # Ingestion
    "DataIndexer",
    "ChatMessageRecord",
    "ContextualMemoryRecord",
    "NotificationRecord",
    "UsageInsightRecord",
    # Suggestions
    "DEFAULT_SUGGESTIONS",
    "personalized_suggestions",
    "query_suggestions",
    "time_of_day_suggestions",
]
