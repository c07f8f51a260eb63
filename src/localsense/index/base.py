"""Base classes and abstract interfaces for the semantic index."""

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

from localsense.exceptions import EmbeddingError

if TYPE_CHECKING:
    from .document import TextSpan

logger = logging.getLogger(__name__)


class BaseEmbedding(ABC):
    """Abstract base class for embedding models.

    Embedding models convert text into fixed-length vector representations.
    Every vector produced by one model has the same ``dimension``.
    """

    @abstractmethod
    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed a list of documents.

        Args:
            texts: List of text strings to embed

        Returns:
            List of embedding vectors
        """
        pass

    @abstractmethod
    async def embed_query(self, text: str) -> list[float]:
        """Embed a single query.

        Args:
            text: Query text to embed

        Returns:
            Embedding vector
        """
        pass

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Return the dimension of the embedding vectors."""
        pass

    async def embed_safe(self, text: str) -> Optional[list[float]]:
        """Embed text, returning None instead of raising on failure.

        Args:
            text: Text to embed

        Returns:
            Embedding vector, or None if the model could not embed the text
        """
        try:
            return await self.embed_query(text)
        except EmbeddingError as e:
            logger.warning(f"Embedding failed: {e.message}")
            return None


class BaseChunker(ABC):
    """Abstract base class for text chunkers.

    Chunkers split document text into smaller spans for embedding.
    """

    @abstractmethod
    def chunk(self, text: str) -> list["TextSpan"]:
        """Split text into ordered spans.

        Args:
            text: Text to split

        Returns:
            List of spans, in document order
        """
        pass
