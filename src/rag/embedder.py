"""Embedding service using the OpenAI embeddings API.

Generates vector embeddings for text chunks and queries.
"""

import asyncio
import logging

import httpx
from openai import AsyncAzureOpenAI, AsyncOpenAI, OpenAIError

from src.core.config import Settings
from src.core.errors import EmbeddingServiceError, OperationTimeout
from src.observability.metrics import EMBEDDING_REQUESTS_TOTAL

logger = logging.getLogger(__name__)


class Embedder:
    """OpenAI embedding service.

    Uses text-embedding-3-small by default for cost-effective embeddings.
    """

    DEFAULT_MODEL = "text-embedding-3-small"
    BATCH_SIZE = 100  # OpenAI limit per request is much higher; keep payloads small

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = DEFAULT_MODEL,
        dimensions: int | None = None,
        batch_size: int = BATCH_SIZE,
        concurrency: int = 4,
        timeout_seconds: float = 60.0,
    ):
        self.client = client
        self.model = model
        self.dimensions = dimensions
        self.batch_size = batch_size
        self.concurrency = concurrency
        self.timeout_seconds = timeout_seconds

    async def _request(self, inputs: list[str]) -> list[list[float]]:
        """Send one embeddings request and validate the response shape."""
        try:
            response = await asyncio.wait_for(
                self.client.embeddings.create(input=inputs, model=self.model),
                timeout=self.timeout_seconds,
            )
        except TimeoutError as e:
            EMBEDDING_REQUESTS_TOTAL.labels(status="timeout").inc()
            raise OperationTimeout("Embedding request", self.timeout_seconds) from e
        except (OpenAIError, httpx.HTTPError) as e:
            EMBEDDING_REQUESTS_TOTAL.labels(status="error").inc()
            raise EmbeddingServiceError(f"Embedding request failed: {e}") from e

        EMBEDDING_REQUESTS_TOTAL.labels(status="success").inc()
        vectors = [item.embedding for item in response.data]

        if len(vectors) != len(inputs):
            raise EmbeddingServiceError(
                f"Embedding response has {len(vectors)} vectors for {len(inputs)} inputs"
            )
        if self.dimensions is not None:
            for vector in vectors:
                if len(vector) != self.dimensions:
                    raise EmbeddingServiceError(
                        f"Expected {self.dimensions}-dimensional embeddings, got {len(vector)}"
                    )

        return vectors

    async def embed_text(self, text: str) -> list[float]:
        """Generate embedding for a single text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector
        """
        text = text.strip()
        if not text:
            raise ValueError("Cannot embed empty text")

        vectors = await self._request([text])
        return vectors[0]

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts, one vector per input, in input order.

        Batches run concurrently (bounded by ``concurrency``). Each batch writes
        its vectors back at its own offset, so completion order does not matter.
        A failure in any batch fails the whole call.

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors
        """
        if not texts:
            return []

        cleaned = [t.strip() for t in texts]
        if not all(cleaned):
            raise ValueError("Cannot embed empty text")

        results: list[list[float] | None] = [None] * len(cleaned)
        semaphore = asyncio.Semaphore(self.concurrency)

        async def run_batch(offset: int, batch: list[str]) -> None:
            async with semaphore:
                vectors = await self._request(batch)
            results[offset : offset + len(vectors)] = vectors

        offsets = range(0, len(cleaned), self.batch_size)
        logger.info(
            f"[Embedder] Embedding {len(cleaned)} texts in {len(offsets)} request(s) with {self.model}"
        )

        outcomes = await asyncio.gather(
            *(run_batch(offset, cleaned[offset : offset + self.batch_size]) for offset in offsets),
            return_exceptions=True,
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

        return results

    async def embed_query(self, query: str) -> list[float]:
        """Embed a search query.

        Alias for embed_text, but can be extended for query-specific processing.
        """
        return await self.embed_text(query)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.close()


def build_embedder(settings: Settings) -> Embedder:
    """Create an Embedder from settings (Azure when an Azure endpoint is set)."""
    # Longer HTTP timeout than the SDK default for large batch requests
    http_timeout = httpx.Timeout(120.0, connect=30.0)

    if settings.azure_openai_endpoint:
        logger.info(
            f"Initializing Azure embedder with model '{settings.embedding_model}' "
            f"at endpoint '{settings.azure_openai_endpoint}'"
        )
        client = AsyncAzureOpenAI(
            api_key=settings.azure_openai_api_key,
            api_version=settings.azure_openai_api_version,
            azure_endpoint=settings.azure_openai_endpoint,
            timeout=http_timeout,
        )
    elif settings.openai_api_key:
        logger.info(f"Initializing OpenAI embedder with model '{settings.embedding_model}'")
        client = AsyncOpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            timeout=http_timeout,
        )
    else:
        raise RuntimeError(
            "No embedding provider configured. Set OPENAI_API_KEY or AZURE_OPENAI_ENDPOINT."
        )

    return Embedder(
        client=client,
        model=settings.embedding_model,
        dimensions=settings.embedding_dimensions,
        batch_size=settings.embedding_batch_size,
        concurrency=settings.embedding_concurrency,
        timeout_seconds=settings.embedding_timeout_seconds,
    )
