"""Document ingestion pipeline.

Handles document extraction, chunking, embedding, and storage.
"""

import asyncio
import hashlib
import logging
import time
from collections.abc import Awaitable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import TypeVar

from src.core.config import Settings
from src.core.errors import (
    EmbeddingServiceError,
    OperationTimeout,
    PersistenceError,
    RAGError,
    UnsupportedFileType,
)
from src.db.models import DEFAULT_JURISDICTION, DocumentType
from src.db.repository import DocumentStore, NewChunk, NewDocument
from src.observability.metrics import CHUNKS_CREATED_TOTAL, INGESTION_DURATION, INGESTIONS_TOTAL
from src.rag.chunking import Chunk, ChunkingStrategy, SentenceWindowChunker
from src.rag.embedder import Embedder
from src.rag.extractors import DocumentExtractor, file_type_from_name

logger = logging.getLogger(__name__)

T = TypeVar("T")


class IngestionStage(str, Enum):
    """Stages a document passes through; FAILED is terminal."""

    RECEIVED = "received"
    EXTRACTED = "extracted"
    CHUNKED = "chunked"
    EMBEDDED = "embedded"
    PERSISTED = "persisted"
    FAILED = "failed"


@dataclass
class IngestedDocument:
    """Result of a successful ingestion."""

    document_id: str
    chunk_count: int
    title: str
    file_type: str
    processing_time_ms: int = 0


class IngestionPipeline:
    """Turns uploaded files into stored, embedded documents.

    Pipeline:
    1. Extract text from document
    2. Split into chunks
    3. Generate embeddings
    4. Store document and chunks

    Either the document and all its chunks are stored, or nothing is.
    """

    def __init__(
        self,
        store: DocumentStore,
        embedder: Embedder,
        extractor: DocumentExtractor | None = None,
        chunker: ChunkingStrategy | None = None,
        extraction_timeout: float = 120.0,
        embedding_timeout: float = 60.0,
        persistence_timeout: float = 30.0,
    ):
        self.store = store
        self.embedder = embedder
        self.extractor = extractor or DocumentExtractor()
        self.chunker = chunker or SentenceWindowChunker()
        self.extraction_timeout = extraction_timeout
        self.embedding_timeout = embedding_timeout
        self.persistence_timeout = persistence_timeout

    async def ingest(
        self,
        content: bytes,
        file_name: str,
        owner_id: str | None,
        *,
        document_type: DocumentType = DocumentType.CASE,
        is_public: bool = True,
        title: str | None = None,
        citation: str | None = None,
        jurisdiction: str | None = None,
        year: int | None = None,
    ) -> IngestedDocument:
        """Ingest one file.

        Args:
            content: Raw file bytes
            file_name: Original file name; its extension selects the extractor
            owner_id: Uploading user
            document_type: Kind of legal document
            is_public: Whether other users can retrieve the document
            title: Display title (defaults to the file name)
            citation: Legal citation, if known
            jurisdiction: Jurisdiction (defaults to Nigeria)
            year: Year of the judgment or enactment, if known

        Returns:
            IngestedDocument with the new document ID and chunk count

        Raises:
            UnsupportedFileType, ExtractionError, NoExtractableText,
            InvalidChunkParameters, EmbeddingServiceError, PersistenceError,
            OperationTimeout
        """
        started = time.perf_counter()
        file_type = file_type_from_name(file_name)
        stage = IngestionStage.RECEIVED
        logger.info(
            f"[Ingestion] Received '{file_name}' ({len(content)} bytes, type={file_type or 'unknown'}) "
            f"for owner={owner_id}"
        )

        try:
            # 1. Extract
            if not self.extractor.supports(file_type):
                raise UnsupportedFileType(file_type, self.extractor.supported_types())

            text = await self._with_timeout(
                asyncio.to_thread(self.extractor.extract, content, file_type),
                self.extraction_timeout,
                "Text extraction",
            )
            stage = IngestionStage.EXTRACTED
            logger.debug(f"[Ingestion] Extracted {len(text)} characters")

            # 2. Chunk
            chunks = self.chunker.chunk(text, {"file_name": file_name})
            stage = IngestionStage.CHUNKED
            logger.info(f"[Ingestion] Generated {len(chunks)} chunks")

            # 3. Embed
            embeddings = await self._with_timeout(
                self.embedder.embed_texts([c.text for c in chunks]),
                self.embedding_timeout,
                "Chunk embedding",
            )
            if len(embeddings) != len(chunks):
                raise EmbeddingServiceError(
                    f"Got {len(embeddings)} embeddings for {len(chunks)} chunks"
                )
            stage = IngestionStage.EMBEDDED

            # 4. Persist
            fields = NewDocument(
                title=title or file_name,
                content=text,
                owner_id=owner_id,
                document_type=document_type,
                is_public=is_public,
                citation=citation,
                jurisdiction=jurisdiction or DEFAULT_JURISDICTION,
                year=year,
                metadata={
                    "file_size": len(content),
                    "file_type": file_type,
                    "chunk_count": len(chunks),
                    "processed_at": datetime.now(UTC).isoformat(),
                    "content_hash": self.compute_content_hash(content),
                },
                representative_embedding=embeddings[0],
            )
            document_id = await self._persist(fields, chunks, embeddings)
            stage = IngestionStage.PERSISTED

        except RAGError as e:
            INGESTIONS_TOTAL.labels(file_type=file_type or "unknown", status=e.code).inc()
            logger.error(
                f"[Ingestion] {IngestionStage.FAILED.value} '{file_name}' after stage {stage.value}: [{e.code}] {e.message}"
            )
            raise
        except Exception:
            INGESTIONS_TOTAL.labels(file_type=file_type or "unknown", status="internal_error").inc()
            logger.exception(f"[Ingestion] Unexpected failure for '{file_name}' after stage {stage.value}")
            raise

        elapsed = time.perf_counter() - started
        INGESTIONS_TOTAL.labels(file_type=file_type, status="success").inc()
        INGESTION_DURATION.labels(file_type=file_type).observe(elapsed)
        CHUNKS_CREATED_TOTAL.inc(len(chunks))

        processing_time = int(elapsed * 1000)
        logger.info(
            f"[Ingestion] Document {document_id} {stage.value} in {processing_time}ms: {len(chunks)} chunks"
        )
        return IngestedDocument(
            document_id=document_id,
            chunk_count=len(chunks),
            title=fields.title,
            file_type=file_type,
            processing_time_ms=processing_time,
        )

    async def _persist(
        self,
        fields: NewDocument,
        chunks: list[Chunk],
        embeddings: list[list[float]],
    ) -> str:
        """Write the document, then its chunks; remove the document if the chunks fail."""
        document_id = await self._with_timeout(
            self.store.create_document(fields),
            self.persistence_timeout,
            "Document persistence",
        )

        new_chunks = [
            NewChunk(
                chunk_index=chunk.index,
                content=chunk.text,
                embedding=embedding,
                char_count=chunk.char_count,
                word_count=chunk.word_count,
            )
            for chunk, embedding in zip(chunks, embeddings, strict=True)
        ]

        try:
            await self._with_timeout(
                self.store.create_chunks(document_id, new_chunks),
                self.persistence_timeout,
                "Chunk persistence",
            )
        except Exception as e:
            await self._remove_orphan(document_id)
            if isinstance(e, RAGError):
                raise
            raise PersistenceError(f"Failed to store chunks: {e}") from e

        return document_id

    async def _remove_orphan(self, document_id: str) -> None:
        """Delete a document whose chunks could not be stored."""
        logger.warning(f"[Ingestion] Removing partially stored document {document_id}")
        try:
            await self._with_timeout(
                self.store.delete_document(document_id),
                self.persistence_timeout,
                "Document clean-up",
            )
        except Exception:
            logger.exception(f"[Ingestion] Clean-up of document {document_id} failed")

    @staticmethod
    async def _with_timeout(awaitable: Awaitable[T], timeout: float, operation: str) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except TimeoutError as e:
            raise OperationTimeout(operation, timeout) from e

    @staticmethod
    def compute_content_hash(content: bytes) -> str:
        """Compute SHA-256 hash for content deduplication."""
        return hashlib.sha256(content).hexdigest()


def build_ingestion_pipeline(
    store: DocumentStore,
    embedder: Embedder,
    settings: Settings,
) -> IngestionPipeline:
    """Create an IngestionPipeline configured from settings."""
    return IngestionPipeline(
        store=store,
        embedder=embedder,
        chunker=SentenceWindowChunker(
            chunk_size=settings.chunk_size,
            overlap=settings.chunk_overlap,
        ),
        extraction_timeout=settings.extraction_timeout_seconds,
        embedding_timeout=settings.embedding_timeout_seconds,
        persistence_timeout=settings.persistence_timeout_seconds,
    )
