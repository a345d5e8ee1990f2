"""Document chunking.

Splits extracted text into overlapping, sentence-aligned windows
suitable for embedding and retrieval.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from src.core.errors import InvalidChunkParameters

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200

# A sentence cut is only taken past this fraction of the window
SENTENCE_CUT_RATIO = 0.5


@dataclass
class Chunk:
    """A document chunk ready for embedding."""

    index: int
    text: str
    start_char: int
    end_char: int
    metadata: dict = field(default_factory=dict)

    @property
    def char_count(self) -> int:
        return len(self.text)

    @property
    def word_count(self) -> int:
        return len(self.text.split())


def validate_chunk_parameters(chunk_size: int, overlap: int) -> None:
    """Raise InvalidChunkParameters unless chunking is guaranteed to advance."""
    if chunk_size <= 0:
        raise InvalidChunkParameters(f"chunk_size must be positive, got {chunk_size}")
    if overlap < 0:
        raise InvalidChunkParameters(f"overlap must not be negative, got {overlap}")
    if overlap >= chunk_size:
        raise InvalidChunkParameters(
            f"overlap ({overlap}) must be smaller than chunk_size ({chunk_size})"
        )


def _windows(text: str, chunk_size: int, overlap: int) -> list[tuple[int, int, str]]:
    """Compute (start, end, stripped_text) windows over ``text``."""
    validate_chunk_parameters(chunk_size, overlap)

    windows = []
    length = len(text)
    start = 0

    while start < length:
        end = min(start + chunk_size, length)

        # Prefer ending on a sentence boundary when more text follows
        if end < length:
            period = text.rfind(".", start, end)
            if (
                period != -1
                and period - start > chunk_size * SENTENCE_CUT_RATIO
                and period + 1 - overlap > start
            ):
                end = period + 1

        piece = text[start:end].strip()
        if piece:
            windows.append((start, end, piece))

        if end >= length:
            break
        start = end - overlap

    return windows


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[str]:
    """Split text into overlapping segments of at most ``chunk_size`` characters.

    Raises:
        InvalidChunkParameters: If ``overlap >= chunk_size``
    """
    return [piece for _, _, piece in _windows(text, chunk_size, overlap)]


class ChunkingStrategy(ABC):
    """Base class for chunking strategies."""

    @abstractmethod
    def chunk(self, text: str, metadata: dict | None = None) -> list[Chunk]:
        """Split text into chunks."""


class SentenceWindowChunker(ChunkingStrategy):
    """Fixed-size chunking with overlap, cutting at sentence ends when possible."""

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        overlap: int = DEFAULT_CHUNK_OVERLAP,
    ):
        validate_chunk_parameters(chunk_size, overlap)
        self.chunk_size = chunk_size
        self.overlap = overlap

    def chunk(self, text: str, metadata: dict | None = None) -> list[Chunk]:
        """Split text into indexed chunks carrying their source offsets."""
        return [
            Chunk(
                index=index,
                text=piece,
                start_char=start,
                end_char=end,
                metadata=dict(metadata or {}),
            )
            for index, (start, end, piece) in enumerate(
                _windows(text, self.chunk_size, self.overlap)
            )
        ]


def get_chunker(strategy: str = "sentence", **kwargs) -> ChunkingStrategy:
    """Get a chunking strategy by name.

    Args:
        strategy: "sentence"
        **kwargs: Strategy-specific parameters

    Returns:
        Configured chunking strategy
    """
    if strategy == "sentence":
        return SentenceWindowChunker(**kwargs)
    raise ValueError(f"Unknown chunking strategy: {strategy}")


__all__ = [
    "DEFAULT_CHUNK_OVERLAP",
    "DEFAULT_CHUNK_SIZE",
    "Chunk",
    "ChunkingStrategy",
    "SentenceWindowChunker",
    "chunk_text",
    "get_chunker",
    "validate_chunk_parameters",
]
