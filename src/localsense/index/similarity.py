"""Brute-force cosine similarity search over the vector index."""

import asyncio
import logging
from typing import Callable, Optional, Sequence

from .document import Chunk, SearchResult
from .vectorstore import VectorIndex, cosine_similarity

logger = logging.getLogger(__name__)

ChunkPredicate = Callable[[Chunk], bool]

# Candidates kept per requested result before metadata filters run
CANDIDATE_MULTIPLIER = 2


def matches_filters(metadata: dict[str, str], filters: dict[str, str]) -> bool:
    """Check that every filter key is present with an equal value, ignoring case."""
    for key, value in filters.items():
        actual = metadata.get(key)
        if actual is None or actual.casefold() != str(value).casefold():
            return False
    return True


class SimilarityEngine:
    """Exact top-K retrieval by linear scan.

    Every query is O(n) in the number of vectors. The scan yields to the
    event loop every ``yield_every`` vectors, which is where a cancelled
    search stops.
    """

    def __init__(self, index: VectorIndex, yield_every: int = 256):
        """Initialize the similarity engine.

        Args:
            index: Vector index to scan
            yield_every: Number of vectors scanned between event loop yields
        """
        self.index = index
        self.yield_every = max(1, yield_every)

    async def search(
        self,
        query_embedding: Sequence[float],
        top_k: int = 10,
        threshold: float = 0.5,
        filters: Optional[dict[str, str]] = None,
        predicate: Optional[ChunkPredicate] = None,
    ) -> list[SearchResult]:
        """Find the chunks most similar to a query embedding.

        Args:
            query_embedding: Embedded query
            top_k: Maximum number of results
            threshold: Minimum cosine similarity to keep a chunk
            filters: Exact, case-insensitive metadata matches applied after ranking
            predicate: Restricts the scan to chunks it accepts

        Returns:
            Results sorted by descending score, all with ``score >= threshold``
        """
        if top_k <= 0:
            return []

        snapshot = self.index.snapshot()
        scored: list[tuple[str, float]] = []

        for position, (vector_id, embedding) in enumerate(snapshot.vectors.items(), start=1):
            if position % self.yield_every == 0:
                await asyncio.sleep(0)

            if predicate is not None:
                chunk = snapshot.chunks.get(vector_id)
                if chunk is None or not predicate(chunk):
                    continue

            score = cosine_similarity(query_embedding, embedding)
            if score >= threshold:
                scored.append((vector_id, score))

        scored.sort(key=lambda item: item[1], reverse=True)
        candidates = scored[: top_k * CANDIDATE_MULTIPLIER]

        results = []
        for vector_id, score in candidates:
            chunk = snapshot.chunks.get(vector_id)
            metadata = dict(chunk.metadata) if chunk else {}

            if filters and not matches_filters(metadata, filters):
                continue

            results.append(SearchResult(
                document_id=chunk.document_id if chunk else "",
                chunk_id=vector_id,
                content=chunk.content if chunk else "",
                score=score,
                metadata=metadata,
            ))
            if len(results) >= top_k:
                break

        logger.debug(f"Scanned {len(snapshot)} vectors, {len(scored)} above threshold, returned {len(results)}")
        return results
