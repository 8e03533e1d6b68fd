"""
Custom exceptions for the RAG visualizer.
"""


class RagVizError(Exception):
    """Base exception for all RAG visualizer errors."""
    pass


class EmbeddingError(RagVizError):
    """
    Error obtaining an embedding from the backend.

    Raised when:
    - Backend is unreachable or returns an error response
    - Backend returns an empty or absent vector
    - Vector dimensionality does not match the provider's
    """

    def __init__(self, message: str, model: str = None, status_code: int = None):
        super().__init__(message)
        self.model = model
        self.status_code = status_code


class IndexNotBuiltError(RagVizError):
    """Raised when a query is issued before any corpus has been indexed."""

    def __init__(self, message: str = "Index not built. Index a corpus before querying."):
        super().__init__(message)
