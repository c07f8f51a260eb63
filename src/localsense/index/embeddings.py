"""Embedding model implementations."""

import logging
import math
import re
from collections import Counter

from localsense.exceptions import EmbeddingError

from .base import BaseEmbedding

logger = logging.getLogger(__name__)

EMBEDDING_DIMENSION = 384

# Number of trailing slots that hold surface statistics
FEATURE_SLOTS = 10

_WORD_RE = re.compile(r"\w+")


def stable_string_hash(text: str) -> int:
    """Signed 32-bit polynomial hash (``h = 31 * h + c``) over UTF-16 code units.

    Unlike ``hash()``, the value does not change between interpreter runs,
    so embeddings persisted by one process still match queries from another.
    """
    h = 0
    data = text.encode("utf-16-be")
    for i in range(0, len(data), 2):
        h = (31 * h + ((data[i] << 8) | data[i + 1])) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def tokenize(text: str) -> list[str]:
    """Split text into lowercase word tokens."""
    return _WORD_RE.findall(text.lower())


class DummyEmbedding(BaseEmbedding):
    """A dummy embedding model for testing.

    Returns zero vectors of a specified dimension.
    Useful for exercising the zero-norm paths of the index.
    """

    def __init__(self, dimension: int = EMBEDDING_DIMENSION):
        """Initialize the dummy embedding.

        Args:
            dimension: Dimension of the embedding vectors
        """
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [[0.0] * self._dimension for _ in texts]

    async def embed_query(self, text: str) -> list[float]:
        return [0.0] * self._dimension


class HashingEmbedding(BaseEmbedding):
    """Deterministic lexical embedding built from hashed term frequencies.

    Each distinct word adds its term frequency (count / total words) to the
    bucket ``abs(stable_string_hash(word)) % dimension``. Collisions are kept
    as they are. When the dimension is larger than ten, the last ten slots
    are then overwritten with surface statistics:

    ===========  ==========================================
    slot         value
    ===========  ==========================================
    ``dim-10``   text length / 1000
    ``dim-9``    word count / 100
    ``dim-8``    distinct words / total words
    ``dim-7``    share of uppercase characters
    ``dim-6``    share of digit characters
    ``dim-5``    share of ``!``, ``?`` and ``.`` characters
    ===========  ==========================================

    The vector is finally L2-normalized. Empty text yields the zero vector.

    Similarity between these vectors reflects shared vocabulary and surface
    statistics, not meaning.
    """

    def __init__(self, dimension: int = EMBEDDING_DIMENSION):
        """Initialize the hashing embedding.

        Args:
            dimension: Dimension of the embedding vectors
        """
        if dimension <= 0:
            raise ValueError("Dimension must be positive")
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed(self, text: str) -> list[float]:
        """Synchronously embed a piece of text.

        Raises:
            EmbeddingError: If the text cannot be vectorized
        """
        try:
            return self._vectorize(text)
        except EmbeddingError:
            raise
        except Exception as e:
            raise EmbeddingError(f"Failed to embed text: {e}") from e

    def _vectorize(self, text: str) -> list[float]:
        dim = self._dimension
        embedding = [0.0] * dim
        words = tokenize(text)
        total_words = len(words)

        for word, count in Counter(words).items():
            index = abs(stable_string_hash(word)) % dim
            embedding[index] += count / total_words

        if dim > FEATURE_SLOTS:
            length = len(text)
            embedding[dim - 10] = length / 1000
            embedding[dim - 9] = total_words / 100
            embedding[dim - 8] = len(set(words)) / total_words if total_words else 0.0

            if length:
                embedding[dim - 7] = sum(1 for c in text if c.isupper()) / length
                embedding[dim - 6] = sum(1 for c in text if c.isdigit()) / length
                embedding[dim - 5] = sum(1 for c in text if c in "!?.") / length
            else:
                embedding[dim - 7] = 0.0
                embedding[dim - 6] = 0.0
                embedding[dim - 5] = 0.0

        norm = math.sqrt(sum(v * v for v in embedding))
        if norm > 0:
            embedding = [v / norm for v in embedding]

        return embedding

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self.embed(text) for text in texts]

    async def embed_query(self, text: str) -> list[float]:
        return self.embed(text)
