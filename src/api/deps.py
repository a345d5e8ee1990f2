"""FastAPI dependency injection.

Provides common dependencies for API routes.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import Settings, get_settings
from src.db.database import get_db
from src.db.repository import DocumentStore, SQLDocumentStore
from src.rag.embedder import Embedder
from src.rag.ingestion import IngestionPipeline, build_ingestion_pipeline
from src.rag.retriever import Retriever, build_retriever

# Type aliases for cleaner signatures
DB = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]


def get_embedder(request: Request) -> Embedder:
    """Get the embedder created at startup."""
    return request.app.state.embedder


EmbedderDep = Annotated[Embedder, Depends(get_embedder)]


async def get_document_store(db: DB) -> DocumentStore:
    """Get a document store bound to the request's session."""
    return SQLDocumentStore(db)


Store = Annotated[DocumentStore, Depends(get_document_store)]


async def get_ingestion_pipeline(
    store: Store,
    embedder: EmbedderDep,
    settings: AppSettings,
) -> IngestionPipeline:
    """Get an ingestion pipeline for this request."""
    return build_ingestion_pipeline(store, embedder, settings)


async def get_retriever(
    store: Store,
    embedder: EmbedderDep,
    settings: AppSettings,
) -> Retriever:
    """Get a retriever for this request."""
    return build_retriever(embedder, store, settings)


Pipeline = Annotated[IngestionPipeline, Depends(get_ingestion_pipeline)]
RetrieverDep = Annotated[Retriever, Depends(get_retriever)]
