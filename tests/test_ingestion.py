"""Ingestion pipeline: stages, metadata, and all-or-nothing persistence."""
import asyncio
import time

import pytest
from sqlalchemy.exc import PendingRollbackError

from src.core.errors import (
    EmbeddingServiceError,
    NoExtractableText,
    OperationTimeout,
    PersistenceError,
    UnsupportedFileType,
)
from src.db.models import DocumentType
from src.db.repository import SQLDocumentStore
from src.rag.extractors import DocumentExtractor, PlainTextExtractor
from src.rag.ingestion import IngestionPipeline

from tests.conftest import FakeEmbedder, InMemoryDocumentStore, text_vector

TEXT_2500 = ("abcdefghij" * 250).encode()


@pytest.mark.asyncio
async def test_ingest_stores_document_and_chunks(pipeline, store):
    result = await pipeline.ingest(
        TEXT_2500,
        "judgment.txt",
        "user-1",
        document_type=DocumentType.STATUTE,
        is_public=False,
        citation="(2020) LPELR-1234(SC)",
        jurisdiction="Lagos",
        year=2020,
    )

    assert result.chunk_count == 3
    assert result.title == "judgment.txt"
    assert result.file_type == "txt"

    document = store.documents[result.document_id]
    assert document.type == DocumentType.STATUTE
    assert document.is_public is False
    assert document.owner_id == "user-1"
    assert document.citation == "(2020) LPELR-1234(SC)"
    assert document.year == 2020
    assert [c.chunk_index for c in document.chunks] == [0, 1, 2]
    assert all(len(c.content) <= 1000 for c in document.chunks)


@pytest.mark.asyncio
async def test_chunk_embeddings_match_their_chunks(pipeline, store):
    result = await pipeline.ingest(TEXT_2500, "judgment.txt", "user-1")

    document = store.documents[result.document_id]
    for chunk in document.chunks:
        assert chunk.embedding == text_vector(chunk.content)
        assert chunk.char_count == len(chunk.content)
    assert document.representative_embedding == document.chunks[0].embedding


@pytest.mark.asyncio
async def test_document_metadata(pipeline, store):
    result = await pipeline.ingest(b"The appeal succeeds.", "ruling.txt", None, title="Ruling")

    document = store.documents[result.document_id]
    assert document.title == "Ruling"
    assert document.content == "The appeal succeeds."
    assert document.doc_metadata["file_size"] == len(b"The appeal succeeds.")
    assert document.doc_metadata["file_type"] == "txt"
    assert document.doc_metadata["chunk_count"] == 1
    assert document.doc_metadata["content_hash"] == IngestionPipeline.compute_content_hash(
        b"The appeal succeeds."
    )
    assert "processed_at" in document.doc_metadata


@pytest.mark.asyncio
async def test_unsupported_type_stores_nothing(pipeline, store, embedder):
    with pytest.raises(UnsupportedFileType):
        await pipeline.ingest(b"cells", "sheet.xlsx", "user-1")

    assert store.documents == {}
    assert embedder.calls == []


@pytest.mark.asyncio
async def test_blank_file_stores_nothing(pipeline, store, embedder):
    with pytest.raises(NoExtractableText):
        await pipeline.ingest(b"   \n\n  ", "empty.txt", "user-1")

    assert store.documents == {}
    assert embedder.calls == []


@pytest.mark.asyncio
async def test_embedding_failure_stores_nothing(store):
    pipeline = IngestionPipeline(store=store, embedder=FakeEmbedder(error=EmbeddingServiceError("down")))

    with pytest.raises(EmbeddingServiceError):
        await pipeline.ingest(TEXT_2500, "judgment.txt", "user-1")

    assert store.documents == {}


@pytest.mark.asyncio
async def test_document_write_failure_stores_nothing(embedder):
    store = InMemoryDocumentStore(fail_on={"create_document"})
    pipeline = IngestionPipeline(store=store, embedder=embedder)

    with pytest.raises(PersistenceError):
        await pipeline.ingest(TEXT_2500, "judgment.txt", "user-1")

    assert store.documents == {}
    assert store.deleted == []


@pytest.mark.asyncio
async def test_chunk_write_failure_removes_document(embedder):
    store = InMemoryDocumentStore(fail_on={"create_chunks"})
    pipeline = IngestionPipeline(store=store, embedder=embedder)

    with pytest.raises(PersistenceError):
        await pipeline.ingest(TEXT_2500, "judgment.txt", "user-1")

    assert store.documents == {}
    assert len(store.deleted) == 1


@pytest.mark.asyncio
async def test_chunk_write_timeout_removes_document(embedder):
    store = InMemoryDocumentStore(hang_on={"create_chunks"})
    pipeline = IngestionPipeline(store=store, embedder=embedder, persistence_timeout=0.05)

    with pytest.raises(OperationTimeout) as exc:
        await pipeline.ingest(TEXT_2500, "judgment.txt", "user-1")

    assert exc.value.operation == "Chunk persistence"
    assert store.documents == {}


@pytest.mark.asyncio
async def test_failed_clean_up_still_raises_original_error(embedder):
    store = InMemoryDocumentStore(fail_on={"create_chunks", "delete_document"})
    pipeline = IngestionPipeline(store=store, embedder=embedder)

    with pytest.raises(PersistenceError) as exc:
        await pipeline.ingest(TEXT_2500, "judgment.txt", "user-1")

    assert "create_chunks" in exc.value.message
    assert len(store.deleted) == 1


class SlowTextExtractor(PlainTextExtractor):
    def extract(self, content: bytes) -> str:
        time.sleep(0.3)
        return super().extract(content)


@pytest.mark.asyncio
async def test_slow_extraction_times_out(store, embedder):
    pipeline = IngestionPipeline(
        store=store,
        embedder=embedder,
        extractor=DocumentExtractor([SlowTextExtractor()]),
        extraction_timeout=0.01,
    )

    with pytest.raises(OperationTimeout) as exc:
        await pipeline.ingest(b"text", "slow.txt", "user-1")

    assert exc.value.operation == "Text extraction"
    assert store.documents == {}
    assert embedder.calls == []


class StallingSession:
    """Session whose second commit (the chunk write) never finishes.

    Like a real session, a commit interrupted mid-flight leaves the
    transaction needing a rollback before the next statement.
    """

    def __init__(self):
        self.commits = 0
        self.needs_rollback = False
        self.executed = []

    def add(self, instance):
        pass

    def add_all(self, instances):
        pass

    async def commit(self):
        if self.needs_rollback:
            raise PendingRollbackError("transaction must be rolled back first")
        self.commits += 1
        if self.commits == 2:
            self.needs_rollback = True
            await asyncio.sleep(10)

    async def rollback(self):
        self.needs_rollback = False

    async def execute(self, statement):
        if self.needs_rollback:
            raise PendingRollbackError("transaction must be rolled back first")
        self.executed.append(statement)


@pytest.mark.asyncio
async def test_chunk_write_timeout_deletes_document_through_sql_store(embedder):
    session = StallingSession()
    pipeline = IngestionPipeline(
        store=SQLDocumentStore(session),
        embedder=embedder,
        persistence_timeout=0.05,
    )

    with pytest.raises(OperationTimeout) as exc:
        await pipeline.ingest(TEXT_2500, "judgment.txt", "user-1")

    assert exc.value.operation == "Chunk persistence"
    assert len(session.executed) == 1
    assert str(session.executed[0]).startswith("DELETE FROM documents")
    assert session.commits == 3


@pytest.mark.asyncio
async def test_jurisdiction_defaults_to_nigeria(pipeline, store):
    result = await pipeline.ingest(TEXT_2500, "judgment.txt", "user-1")

    assert store.documents[result.document_id].jurisdiction == "Nigeria"


@pytest.mark.asyncio
async def test_given_jurisdiction_is_kept(pipeline, store):
    result = await pipeline.ingest(TEXT_2500, "judgment.txt", "user-1", jurisdiction="Lagos")

    assert store.documents[result.document_id].jurisdiction == "Lagos"
