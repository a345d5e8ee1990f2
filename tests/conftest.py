"""Pytest fixtures for pipeline and API tests.

In-memory fakes stand in for the embedding API and PostgreSQL; no
network or database is touched.
"""
import asyncio
from contextlib import asynccontextmanager
from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.deps import get_ingestion_pipeline, get_retriever
from src.api.routes import documents, health
from src.core.config import Settings, get_settings
from src.core.errors import PersistenceError
from src.db.models import Document, DocumentChunk, DocumentType
from src.db.repository import CorpusFilter, DocumentStore, NewChunk, NewDocument
from src.rag.ingestion import IngestionPipeline
from src.rag.retriever import Retriever


def text_vector(text: str) -> list[float]:
    """Deterministic 3-d vector derived from the text."""
    return [float(len(text)), float(sum(map(ord, text[:5]))), 1.0]


class FakeEmbedder:
    """Embedder stand-in returning fixed or text-derived vectors."""

    def __init__(self, vectors: dict[str, list[float]] | None = None, error: Exception | None = None):
        self.vectors = vectors or {}
        self.error = error
        self.calls: list[list[str]] = []

    def _vector(self, text: str) -> list[float]:
        return self.vectors.get(text, text_vector(text))

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.error:
            raise self.error
        return [self._vector(t) for t in texts]

    async def embed_query(self, query: str) -> list[float]:
        self.calls.append([query])
        if self.error:
            raise self.error
        return self._vector(query)

    async def close(self) -> None:
        pass


class InMemoryDocumentStore(DocumentStore):
    """DocumentStore keeping ORM instances in a dict.

    ``fail_on`` names a method that raises PersistenceError;
    ``hang_on`` names a method that never completes in test time.
    """

    def __init__(self, fail_on: set[str] | None = None, hang_on: set[str] | None = None):
        self.documents: dict[str, Document] = {}
        self.fail_on = fail_on or set()
        self.hang_on = hang_on or set()
        self.deleted: list[str] = []
        self.filters: list[CorpusFilter] = []

    async def _check(self, operation: str) -> None:
        if operation in self.hang_on:
            await asyncio.sleep(10)
        if operation in self.fail_on:
            raise PersistenceError(f"{operation} failed")

    async def create_document(self, fields: NewDocument) -> str:
        await self._check("create_document")
        document = Document(
            id=str(uuid4()),
            title=fields.title,
            type=fields.document_type,
            content=fields.content,
            owner_id=fields.owner_id,
            is_public=fields.is_public,
            citation=fields.citation,
            jurisdiction=fields.jurisdiction,
            year=fields.year,
            doc_metadata=fields.metadata,
            representative_embedding=fields.representative_embedding,
        )
        self.documents[document.id] = document
        return document.id

    async def create_chunks(self, document_id: str, chunks: list[NewChunk]) -> None:
        await self._check("create_chunks")
        self.documents[document_id].chunks = [
            DocumentChunk(
                id=str(uuid4()),
                document_id=document_id,
                chunk_index=c.chunk_index,
                content=c.content,
                embedding=c.embedding,
                char_count=c.char_count,
                word_count=c.word_count,
            )
            for c in chunks
        ]

    async def delete_document(self, document_id: str) -> None:
        self.deleted.append(document_id)
        await self._check("delete_document")
        self.documents.pop(document_id, None)

    async def list_candidate_documents(self, corpus_filter: CorpusFilter) -> list[Document]:
        self.filters.append(corpus_filter)
        await self._check("list_candidate_documents")
        return [
            d
            for d in self.documents.values()
            if (corpus_filter.include_public and d.is_public)
            or (corpus_filter.owner_id and d.owner_id == corpus_filter.owner_id)
        ]

    def add(
        self,
        title: str,
        chunks: list[tuple[str, list[float]]],
        *,
        citation: str | None = None,
        is_public: bool = True,
        owner_id: str | None = None,
        representative_embedding: list[float] | None = None,
        content: str | None = None,
    ) -> Document:
        """Seed a stored document with (content, embedding) chunks."""
        document = Document(
            id=str(uuid4()),
            title=title,
            type=DocumentType.CASE,
            content=content if content is not None else " ".join(c for c, _ in chunks),
            citation=citation,
            is_public=is_public,
            owner_id=owner_id,
            representative_embedding=representative_embedding,
        )
        document.chunks = [
            DocumentChunk(
                id=str(uuid4()),
                document_id=document.id,
                chunk_index=i,
                content=text,
                embedding=vector,
            )
            for i, (text, vector) in enumerate(chunks)
        ]
        self.documents[document.id] = document
        return document


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def pipeline(store: InMemoryDocumentStore, embedder: FakeEmbedder) -> IngestionPipeline:
    return IngestionPipeline(store=store, embedder=embedder, persistence_timeout=0.5)


@pytest.fixture
def settings() -> Settings:
    """Settings independent of the environment and any .env file."""
    return Settings(_env_file=None, max_upload_bytes=1024 * 1024)


@asynccontextmanager
async def noop_lifespan(app: FastAPI):
    """Minimal lifespan for tests: no database or embedding client."""
    yield


@pytest.fixture
def test_app(
    settings: Settings,
    store: InMemoryDocumentStore,
    embedder: FakeEmbedder,
) -> FastAPI:
    """FastAPI app with health and document routes wired to in-memory fakes."""
    app = FastAPI(lifespan=noop_lifespan)
    app.include_router(health.router)
    app.include_router(documents.router, prefix="/api/v1")

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_ingestion_pipeline] = lambda: IngestionPipeline(
        store=store, embedder=embedder
    )
    app.dependency_overrides[get_retriever] = lambda: Retriever(embedder=embedder, store=store)
    return app


@pytest.fixture
def client(test_app: FastAPI) -> TestClient:
    """TestClient for the minimal test app."""
    return TestClient(test_app)
