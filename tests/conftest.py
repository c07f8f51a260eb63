"""
Test configuration and fixtures.
"""

import pytest

from localsense.index import HashingEmbedding, SemanticIndex, TokenWindowChunker
from localsense.search import AnalyticsRecorder, SearchOrchestrator
from localsense.service import create_search_service
from localsense.state import MemoryStorageBackend
from localsense.utils import SearchConfig


@pytest.fixture
def storage():
    """In-memory storage backend."""
    return MemoryStorageBackend()


@pytest.fixture
def embedding():
    """Default hashing embedding."""
    return HashingEmbedding()


@pytest.fixture
def semantic_index(embedding, storage):
    """Semantic index over in-memory storage."""
    return SemanticIndex(embedding, storage)


@pytest.fixture
def small_chunk_index(embedding, storage):
    """Semantic index with four-token chunks overlapping by one token."""
    return SemanticIndex(embedding, storage, chunker=TokenWindowChunker(4, 1))


@pytest.fixture
def orchestrator(semantic_index, storage):
    """Orchestrator over the in-memory semantic index."""
    return SearchOrchestrator(semantic_index, AnalyticsRecorder(storage), SearchConfig())


@pytest.fixture
def service():
    """Search service with in-memory storage."""
    return create_search_service(SearchConfig())


@pytest.fixture
def sample_documents():
    """One document per search domain."""
    return [
        ("chat_1", "Chat Message", "Lunch with Alice at noon tomorrow", "conversation"),
        ("notification_1", "Slack", "New message from Bob about the release", "notification"),
        ("sms_1", "SMS", "Your package will arrive today", "sms"),
        ("insight_1", "Screen time", "You spent three hours in Slack today", "usage_insight"),
        ("memory_1", "Coffee", "Coffee preference is oat milk flat white", "contextual_memory"),
        ("doc1", "Animals", "The quick brown fox jumps over the lazy dog", "manual"),
    ]
