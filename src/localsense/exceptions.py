"""
localsense exceptions.
"""


class LocalSenseError(Exception):
    """Base exception for search engine errors."""

    def __init__(self, message: str, code: int | None = None):
        self.message = message
        self.code = code
        super().__init__(self.message)


class EmbeddingError(LocalSenseError):
    """Raised when text cannot be converted into an embedding."""

    def __init__(self, message: str = "Failed to generate embedding"):
        super().__init__(message, code=1001)


class StorageError(LocalSenseError):
    """Raised when the durable store cannot be read or written."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"Storage '{operation}' failed: {message}", code=1002)


class DocumentNotFoundError(LocalSenseError):
    """Raised when a document id is not present in the index."""

    def __init__(self, document_id: str):
        self.document_id = document_id
        super().__init__(f"Document '{document_id}' not found", code=1003)


class DimensionMismatchError(LocalSenseError):
    """Raised when a vector does not match the index dimension."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Expected embedding of dimension {expected}, got {actual}",
            code=1004,
        )


class SearchError(LocalSenseError):
    """Raised when query execution fails."""

    def __init__(self, query: str, message: str):
        self.query = query
        super().__init__(f"Search for '{query}' failed: {message}", code=1005)
