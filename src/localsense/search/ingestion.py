"""Bulk ingestion of external records into the semantic index."""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Iterable, Optional

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from localsense.index.pipeline import SemanticIndex

logger = logging.getLogger(__name__)


def _millis(timestamp: datetime) -> str:
    return str(int(timestamp.timestamp() * 1000))


class NotificationRecord(BaseModel):
    """A captured notification."""
    id: str
    title: str
    text: str
    package_name: str
    category: str = ""
    timestamp: datetime = Field(default_factory=datetime.now)


class UsageInsightRecord(BaseModel):
    """A derived app usage insight."""
    id: str
    title: str
    description: str
    type: str
    app: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)


class ChatMessageRecord(BaseModel):
    """A single turn of a conversation with the assistant."""
    id: str
    content: str
    context: str = "chat"
    timestamp: datetime = Field(default_factory=datetime.now)


class ContextualMemoryRecord(BaseModel):
    """A concept the assistant remembers about the user."""
    id: str
    concept: str
    context: str
    frequency: int = 1
    timestamp: datetime = Field(default_factory=datetime.now)


class DataIndexer:
    """Turns external records into documents of the semantic index.

    Each record becomes exactly one document with a prefixed id, so
    re-ingesting a record replaces the earlier version.
    """

    def __init__(self, index: "SemanticIndex"):
        """Initialize the indexer.

        Args:
            index: Semantic index that receives the documents
        """
        self.index = index

    async def add_conversation_message(
        self,
        message_id: str,
        content: str,
        context: str = "chat",
        timestamp: Optional[datetime] = None,
    ) -> bool:
        """Index a chat message as a conversation document."""
        metadata = {
            "type": "conversation",
            "context": context,
            "timestamp": _millis(timestamp or datetime.now()),
        }
        return await self.index.add_document(
            f"chat_{message_id}", "Chat Message", content, "conversation", metadata
        )

    async def index_chat_messages(self, messages: Iterable[ChatMessageRecord]) -> int:
        """Index chat messages.

        Returns:
            Number of messages indexed
        """
        indexed = 0
        for message in messages:
            if await self.add_conversation_message(
                message.id, message.content, message.context, message.timestamp
            ):
                indexed += 1

        logger.info(f"Indexed {indexed} chat messages")
        return indexed

    async def index_notifications(self, notifications: Iterable[NotificationRecord]) -> int:
        """Index captured notifications.

        Returns:
            Number of notifications indexed
        """
        indexed = 0
        for notification in notifications:
            metadata = {
                "type": "notification",
                "app": notification.package_name,
                "category": notification.category,
                "timestamp": _millis(notification.timestamp),
            }
            if await self.index.add_document(
                f"notification_{notification.id}",
                notification.title,
                f"{notification.title} {notification.text}",
                "notification",
                metadata,
            ):
                indexed += 1

        logger.info(f"Indexed {indexed} notifications")
        return indexed

    async def index_usage_insights(self, insights: Iterable[UsageInsightRecord]) -> int:
        """Index usage insights.

        Returns:
            Number of insights indexed
        """
        indexed = 0
        for insight in insights:
            metadata = {
                "type": "insight",
                "category": insight.type,
                "timestamp": _millis(insight.timestamp),
            }
            if insight.app:
                metadata["app"] = insight.app

            if await self.index.add_document(
                f"insight_{insight.id}",
                insight.title,
                f"{insight.title} {insight.description}",
                "usage_insight",
                metadata,
            ):
                indexed += 1

        logger.info(f"Indexed {indexed} usage insights")
        return indexed

    async def index_contextual_memories(self, memories: Iterable[ContextualMemoryRecord]) -> int:
        """Index contextual memories.

        Returns:
            Number of memories indexed
        """
        indexed = 0
        for memory in memories:
            metadata = {
                "type": "contextual_memory",
                "frequency": str(memory.frequency),
                "timestamp": _millis(memory.timestamp),
            }
            if await self.index.add_document(
                f"memory_{memory.id}",
                memory.concept,
                f"{memory.concept} {memory.context}",
                "contextual_memory",
                metadata,
            ):
                indexed += 1

        logger.info(f"Indexed {indexed} contextual memories")
        return indexed
