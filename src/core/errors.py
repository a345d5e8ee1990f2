"""Error taxonomy for the RAG pipeline.

Every error carries a stable ``code`` tag so callers (HTTP handlers, scripts)
can map failures to user-facing messages without string matching.
"""


class RAGError(Exception):
    """Base class for all ingestion and retrieval errors."""

    code = "rag_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UnsupportedFileType(RAGError):
    """Raised when a file type has no extractor."""

    code = "unsupported_file_type"

    def __init__(self, file_type: str, supported: list[str] | None = None):
        self.file_type = file_type
        self.supported = supported or []
        message = f"Unsupported file type: {file_type or '(none)'}"
        if self.supported:
            message += f". Supported types: {', '.join(self.supported)}"
        super().__init__(message)


class ExtractionError(RAGError):
    """Raised when a file cannot be parsed."""

    code = "extraction_failed"


class NoExtractableText(RAGError):
    """Raised when a file parses but yields no text (e.g. a scanned PDF)."""

    code = "no_extractable_text"


class InvalidChunkParameters(RAGError):
    """Raised when chunk size/overlap would not advance through the text."""

    code = "invalid_chunk_parameters"


class EmbeddingServiceError(RAGError):
    """Raised when the embedding provider fails or returns malformed data."""

    code = "embedding_service_error"


class PersistenceError(RAGError):
    """Raised when the document store rejects a read or write."""

    code = "persistence_error"


class OperationTimeout(RAGError):
    """Raised when an external call exceeds its configured timeout."""

    code = "timeout"

    def __init__(self, operation: str, timeout_seconds: float):
        self.operation = operation
        self.timeout_seconds = timeout_seconds
        super().__init__(f"{operation} timed out after {timeout_seconds:g}s")


__all__ = [
    "EmbeddingServiceError",
    "ExtractionError",
    "InvalidChunkParameters",
    "NoExtractableText",
    "OperationTimeout",
    "PersistenceError",
    "RAGError",
    "UnsupportedFileType",
]
