"""RAG Retriever - semantic search over stored legal documents.

Embeds the query, scores it against stored chunk embeddings and
returns the best-matching excerpts with their citations.
"""

import logging
from dataclasses import dataclass

from src.core.config import Settings
from src.core.errors import EmbeddingServiceError, OperationTimeout, PersistenceError
from src.db.models import Document
from src.db.repository import CorpusFilter, DocumentStore
from src.observability.metrics import RETRIEVAL_RESULTS, RETRIEVALS_TOTAL
from src.rag.embedder import Embedder
from src.rag.similarity import RankCandidate, SimilarityRanker

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5
DEFAULT_MIN_SCORE = 0.7
DEFAULT_EXCERPT_LENGTH = 300


@dataclass
class RetrievalCandidate:
    """A chunk (or chunkless document) matched by a query."""

    id: str
    document_id: str
    chunk_index: int | None
    score: float
    excerpt: str
    title: str
    type: str
    citation: str | None = None


class Retriever:
    """Semantic retrieval over the document store.

    Retrieval is best-effort: embedding and store failures are logged
    and produce an empty result instead of an error.
    """

    def __init__(
        self,
        embedder: Embedder,
        store: DocumentStore,
        ranker: SimilarityRanker | None = None,
        excerpt_length: int = DEFAULT_EXCERPT_LENGTH,
    ):
        self.embedder = embedder
        self.store = store
        self.ranker = ranker or SimilarityRanker()
        self.excerpt_length = excerpt_length

    async def retrieve(
        self,
        query: str,
        corpus_filter: CorpusFilter | None = None,
        top_k: int = DEFAULT_TOP_K,
        min_score: float = DEFAULT_MIN_SCORE,
    ) -> list[RetrievalCandidate]:
        """Retrieve relevant excerpts for a query.

        Args:
            query: User's search query
            corpus_filter: Documents to search (public documents by default)
            top_k: Maximum number of results
            min_score: Minimum similarity score (exclusive)

        Returns:
            List of candidates, highest score first
        """
        if not query.strip():
            return []

        corpus_filter = corpus_filter or CorpusFilter()

        try:
            query_vector = await self.embedder.embed_query(query)
        except (EmbeddingServiceError, OperationTimeout) as e:
            RETRIEVALS_TOTAL.labels(status="degraded").inc()
            logger.warning(f"[Retriever] Query embedding failed, returning no results: {e.message}")
            return []

        try:
            documents = await self.store.list_candidate_documents(corpus_filter)
        except PersistenceError as e:
            RETRIEVALS_TOTAL.labels(status="degraded").inc()
            logger.warning(f"[Retriever] Candidate lookup failed, returning no results: {e.message}")
            return []

        candidates = self._build_candidates(documents)
        ranked = self.ranker.rank(query_vector, candidates, min_score=min_score, top_k=top_k)

        results = [RetrievalCandidate(id=r.id, score=r.score, **r.payload) for r in ranked]

        RETRIEVALS_TOTAL.labels(status="success").inc()
        RETRIEVAL_RESULTS.observe(len(results))
        logger.info(
            f"[Retriever] {len(results)} of {len(candidates)} candidates from "
            f"{len(documents)} documents passed min_score={min_score}"
        )
        return results

    def _build_candidates(self, documents: list[Document]) -> list[RankCandidate]:
        """One candidate per chunk; chunkless documents fall back to their representative embedding."""
        candidates = []
        for document in documents:
            base = {
                "document_id": document.id,
                "title": document.title,
                "type": _type_value(document),
                "citation": document.citation,
            }

            if document.chunks:
                for chunk in document.chunks:
                    candidates.append(
                        RankCandidate(
                            id=chunk.id,
                            vector=chunk.embedding,
                            payload={
                                **base,
                                "chunk_index": chunk.chunk_index,
                                "excerpt": self._excerpt(chunk.content),
                            },
                        )
                    )
            elif document.representative_embedding:
                candidates.append(
                    RankCandidate(
                        id=document.id,
                        vector=document.representative_embedding,
                        payload={
                            **base,
                            "chunk_index": None,
                            "excerpt": self._excerpt(document.content),
                        },
                    )
                )
        return candidates

    def _excerpt(self, text: str | None) -> str:
        return (text or "")[: self.excerpt_length]

    def format_context(
        self,
        candidates: list[RetrievalCandidate],
        max_chars: int = 8000,
    ) -> str:
        """Format candidates as grounding context for a chat prompt.

        Args:
            candidates: Retrieved candidates
            max_chars: Maximum context length

        Returns:
            Context string, one block per candidate separated by blank lines
        """
        blocks = []
        total_chars = 0

        for candidate in candidates:
            block = (
                f"Document: {candidate.title}\n"
                f"Citation: {candidate.citation or 'N/A'}\n"
                f"Content: {candidate.excerpt}"
            )
            separator = 2 if blocks else 0
            if total_chars + separator + len(block) > max_chars:
                break

            blocks.append(block)
            total_chars += separator + len(block)

        return "\n\n".join(blocks)

    @staticmethod
    def build_sources(candidates: list[RetrievalCandidate]) -> list[dict]:
        """Build the sources list shown alongside an answer."""
        return [
            {
                "id": c.id,
                "document_id": c.document_id,
                "title": c.title,
                "type": c.type,
                "citation": c.citation,
                "relevance_score": c.score,
                "excerpt": c.excerpt,
            }
            for c in candidates
        ]


def _type_value(document: Document) -> str:
    doc_type = document.type
    return doc_type.value if hasattr(doc_type, "value") else str(doc_type)


def build_retriever(
    embedder: Embedder,
    store: DocumentStore,
    settings: Settings,
) -> Retriever:
    """Create a Retriever configured from settings."""
    return Retriever(
        embedder=embedder,
        store=store,
        excerpt_length=settings.excerpt_length,
    )
