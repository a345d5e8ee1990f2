"""Document store used by the ingestion and retrieval pipelines.

``DocumentStore`` is the contract the pipelines depend on;
``SQLDocumentStore`` implements it with async SQLAlchemy.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from uuid import uuid4

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.errors import PersistenceError
from src.db.models import Document, DocumentChunk, DocumentType


@dataclass
class NewDocument:
    """Fields for a document row created at the end of ingestion."""

    title: str
    content: str
    owner_id: str | None
    document_type: DocumentType = DocumentType.CASE
    is_public: bool = True
    citation: str | None = None
    jurisdiction: str | None = None
    year: int | None = None
    metadata: dict = field(default_factory=dict)
    representative_embedding: list[float] | None = None


@dataclass
class NewChunk:
    """An embedded chunk to persist under a document."""

    chunk_index: int
    content: str
    embedding: list[float]
    char_count: int = 0
    word_count: int = 0


@dataclass
class CorpusFilter:
    """Which documents a retrieval call may search.

    Public documents are included when ``include_public`` is set; an
    ``owner_id`` adds that owner's private documents. The remaining
    fields narrow the result further.
    """

    include_public: bool = True
    owner_id: str | None = None
    document_type: DocumentType | None = None
    jurisdiction: str | None = None
    document_ids: list[str] | None = None


class DocumentStore(ABC):
    """Persistence operations needed by the pipelines."""

    @abstractmethod
    async def create_document(self, fields: NewDocument) -> str:
        """Create a document and return its ID."""

    @abstractmethod
    async def create_chunks(self, document_id: str, chunks: list[NewChunk]) -> None:
        """Create all chunks of a document."""

    @abstractmethod
    async def delete_document(self, document_id: str) -> None:
        """Delete a document and, with it, its chunks."""

    @abstractmethod
    async def list_candidate_documents(self, corpus_filter: CorpusFilter) -> list[Document]:
        """List documents matching the filter, with their chunks loaded."""


class SQLDocumentStore(DocumentStore):
    """Async SQLAlchemy implementation of DocumentStore.

    Each write commits on its own, like the separate calls a hosted
    database API would take, so callers handle their own clean-up.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_document(self, fields: NewDocument) -> str:
        """Create a document row."""
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
        try:
            self.db.add(document)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(f"Failed to store document: {e}") from e
        return document.id

    async def create_chunks(self, document_id: str, chunks: list[NewChunk]) -> None:
        """Create chunk rows in one commit."""
        rows = [
            DocumentChunk(
                id=str(uuid4()),
                document_id=document_id,
                chunk_index=chunk.chunk_index,
                content=chunk.content,
                embedding=chunk.embedding,
                char_count=chunk.char_count,
                word_count=chunk.word_count,
            )
            for chunk in chunks
        ]
        try:
            self.db.add_all(rows)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(f"Failed to store chunks for document {document_id}: {e}") from e

    async def delete_document(self, document_id: str) -> None:
        """Delete a document; chunks go with it via ON DELETE CASCADE."""
        try:
            # Clears a transaction left pending by an interrupted write
            await self.db.rollback()
            await self.db.execute(delete(Document).where(Document.id == document_id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(f"Failed to delete document {document_id}: {e}") from e

    async def list_candidate_documents(self, corpus_filter: CorpusFilter) -> list[Document]:
        """Fetch searchable documents and their chunks."""
        access_conditions = []
        if corpus_filter.include_public:
            access_conditions.append(Document.is_public.is_(True))
        if corpus_filter.owner_id:
            access_conditions.append(Document.owner_id == corpus_filter.owner_id)

        if not access_conditions:
            return []

        query = (
            select(Document)
            .options(selectinload(Document.chunks))
            .where(or_(*access_conditions))
        )

        if corpus_filter.document_type:
            query = query.where(Document.type == corpus_filter.document_type)
        if corpus_filter.jurisdiction:
            query = query.where(
                func.lower(Document.jurisdiction) == corpus_filter.jurisdiction.lower()
            )
        if corpus_filter.document_ids:
            query = query.where(Document.id.in_(corpus_filter.document_ids))

        query = query.order_by(Document.created_at.desc())

        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(f"Failed to list candidate documents: {e}") from e
        return list(result.scalars().all())


__all__ = [
    "CorpusFilter",
    "DocumentStore",
    "NewChunk",
    "NewDocument",
    "SQLDocumentStore",
]
