"""RAG (Retrieval-Augmented Generation) package.

Components:
- DocumentExtractor: Text extraction from PDF, DOCX, TXT
- Chunker: Sentence-aligned overlapping chunks
- Embedder: OpenAI / Azure OpenAI embedding service
- SimilarityRanker: In-process cosine similarity ranking
- IngestionPipeline: extract -> chunk -> embed -> store
- Retriever: Semantic search over stored chunks
"""

from src.rag.chunking import Chunk, SentenceWindowChunker, chunk_text, get_chunker
from src.rag.embedder import Embedder, build_embedder
from src.rag.extractors import DocumentExtractor
from src.rag.ingestion import IngestedDocument, IngestionPipeline, build_ingestion_pipeline
from src.rag.retriever import RetrievalCandidate, Retriever, build_retriever
from src.rag.similarity import SimilarityRanker, cosine_similarity

__all__ = [
    "Chunk",
    "DocumentExtractor",
    "Embedder",
    "IngestedDocument",
    "IngestionPipeline",
    "RetrievalCandidate",
    "Retriever",
    "SentenceWindowChunker",
    "SimilarityRanker",
    "build_embedder",
    "build_ingestion_pipeline",
    "build_retriever",
    "chunk_text",
    "cosine_similarity",
    "get_chunker",
]
