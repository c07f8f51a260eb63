"""Query suggestions."""

from datetime import datetime
from typing import Iterable, Optional

from localsense.index.vectorstore import IndexSnapshot

DEFAULT_SUGGESTIONS = [
    "Show my productivity today",
    "Recent important notifications",
    "Messages from this week",
    "Most used apps",
    "Focus time analysis",
    "Communication patterns",
    "Daily activity summary",
]

# Checked in order; only the first matching rule contributes
QUERY_SUGGESTION_RULES: list[tuple[tuple[str, ...], list[str]]] = [
    (("message", "chat"), [
        "Recent messages",
        "Important conversations",
        "Message frequency analysis",
    ]),
    (("app", "usage"), [
        "App usage patterns",
        "Screen time analysis",
        "Productivity apps",
    ]),
    (("notification",), [
        "Important notifications",
        "Notification patterns",
        "App notification frequency",
    ]),
    (("today", "day"), [
        "Today's activity",
        "Daily summary",
        "Today's productivity",
    ]),
]

# (first hour, last hour) inclusive
TIME_OF_DAY_SUGGESTIONS: list[tuple[tuple[int, int], list[str]]] = [
    ((6, 10), ["Morning routines", "Today's schedule"]),
    ((11, 13), ["Lunch time activities", "Midday productivity"]),
    ((14, 17), ["Afternoon work", "Meeting summaries"]),
    ((18, 22), ["Evening activities", "Day recap"]),
]

MAX_PERSONALIZED_SUGGESTIONS = 5


def distinct(items: Iterable[str], limit: Optional[int] = None) -> list[str]:
    """Drop repeated items, keeping first occurrences in order."""
    unique = list(dict.fromkeys(items))
    return unique if limit is None else unique[:limit]


def query_suggestions(query: str) -> list[str]:
    """Suggest follow-up queries from keywords in a query.

    Matching is a case-insensitive substring test, so "today" also
    matches the "day" keywords and "application" matches "app".
    """
    query_lower = query.lower()
    for keywords, suggestions in QUERY_SUGGESTION_RULES:
        if any(keyword in query_lower for keyword in keywords):
            return list(suggestions)
    return []


def time_of_day_suggestions(hour: int) -> list[str]:
    """Suggestions for the given hour of the day (0-23); none at night."""
    for (first, last), suggestions in TIME_OF_DAY_SUGGESTIONS:
        if first <= hour <= last:
            return list(suggestions)
    return []


def personalized_suggestions(
    snapshot: IndexSnapshot,
    now: Optional[datetime] = None,
) -> list[str]:
    """Build suggestions from what is indexed and the time of day.

    Args:
        snapshot: Index snapshot to inspect
        now: Current time (default: datetime.now())

    Returns:
        At most five distinct suggestions
    """
    now = now or datetime.now()
    suggestions = []

    for document in snapshot.documents.values():
        if document.source == "usage_insight":
            app = document.metadata.get("app")
            if app:
                suggestions.append(f"Find usage of {app}")

    sources = {document.source for document in snapshot.documents.values()}
    if "conversation" in sources:
        suggestions.append("Show recent messages")
    if sources & {"notification", "sms"}:
        suggestions.append("Find important notifications")

    suggestions.extend(time_of_day_suggestions(now.hour))

    return distinct(suggestions, MAX_PERSONALIZED_SUGGESTIONS)
