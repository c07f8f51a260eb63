"""Document chunking strategies."""

from .base import BaseChunker
from .document import TextSpan

MAX_CHUNK_SIZE = 512
OVERLAP_SIZE = 50


class TokenWindowChunker(BaseChunker):
    """Chunk text into overlapping windows of whitespace-separated tokens.

    A window is emitted once it holds ``max_chunk_size`` tokens. The next
    window starts with the last ``overlap_size`` tokens of the one just
    emitted, so neighbouring chunks share that many tokens.

    Offsets are derived from the lengths of the re-joined tokens rather than
    from positions in the original string. They drift from the true source
    positions whenever the text contains whitespace other than single spaces.
    """

    def __init__(
        self,
        max_chunk_size: int = MAX_CHUNK_SIZE,
        overlap_size: int = OVERLAP_SIZE,
    ):
        """Initialize the token window chunker.

        Args:
            max_chunk_size: Maximum tokens per chunk
            overlap_size: Number of tokens shared by consecutive chunks
        """
        if overlap_size >= max_chunk_size:
            raise ValueError("Overlap must be less than max_chunk_size")
        if overlap_size < 0:
            raise ValueError("Overlap must not be negative")

        self.max_chunk_size = max_chunk_size
        self.overlap_size = overlap_size

    def chunk(self, text: str) -> list[TextSpan]:
        """Split text into token windows."""
        tokens = text.split()
        spans: list[TextSpan] = []

        window: list[str] = []
        start = 0

        for token in tokens:
            window.append(token)

            if len(window) >= self.max_chunk_size:
                chunk_text = " ".join(window)
                spans.append(TextSpan(
                    text=chunk_text,
                    start_index=start,
                    end_index=start + len(chunk_text),
                ))

                window = window[len(window) - self.overlap_size:]
                start += len(chunk_text) - len(" ".join(window))

        # Leftover tokens, including a bare overlap seed, form the last chunk
        if window:
            chunk_text = " ".join(window)
            spans.append(TextSpan(
                text=chunk_text,
                start_index=start,
                end_index=start + len(chunk_text),
            ))

        return spans
