"""SQLAlchemy database models.

Defines the documents and chunks persisted by the ingestion pipeline.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


DEFAULT_JURISDICTION = "Nigeria"


# ============================================
# Enums
# ============================================

class DocumentType(str, PyEnum):
    """Kinds of legal documents."""
    CASE = "case"
    STATUTE = "statute"
    REGULATION = "regulation"
    PRACTICE_NOTE = "practice_note"
    TEMPLATE = "template"


# ============================================
# Document Models
# ============================================

class Document(Base):
    """An uploaded or public legal text.

    Content is immutable after ingestion; deleting a document deletes its chunks.
    """
    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid4()))

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    type: Mapped[DocumentType] = mapped_column(Enum(DocumentType), nullable=False, default=DocumentType.CASE)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    # Legal citation details
    citation: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    jurisdiction: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True, default=DEFAULT_JURISDICTION, server_default=DEFAULT_JURISDICTION
    )
    year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Visibility and ownership (owner_id is an opaque auth-provider ID)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True)
    owner_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # file_size, file_type, chunk_count, processed_at, content_hash
    doc_metadata: Mapped[dict] = mapped_column("metadata", JSONB, default=dict)

    # First chunk's embedding; only used for documents stored without chunks
    representative_embedding: Mapped[Optional[list]] = mapped_column(ARRAY(Float), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    chunks = relationship(
        "DocumentChunk",
        back_populates="document",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="DocumentChunk.chunk_index",
    )

    __table_args__ = (
        Index("ix_documents_owner_id", "owner_id"),
        Index("ix_documents_is_public", "is_public"),
        Index("ix_documents_type", "type"),
    )


class DocumentChunk(Base):
    """A contiguous, embedded slice of a document's content."""
    __tablename__ = "document_chunks"

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid4()))
    document_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )

    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    embedding: Mapped[list] = mapped_column(ARRAY(Float), nullable=False)

    # Derived metadata
    char_count: Mapped[int] = mapped_column(Integer, default=0)
    word_count: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    document = relationship("Document", back_populates="chunks")

    __table_args__ = (
        UniqueConstraint("document_id", "chunk_index", name="uq_document_chunks_document_index"),
        Index("ix_document_chunks_document_id", "document_id"),
    )
