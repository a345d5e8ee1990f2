"""Prometheus metrics for ingestion and retrieval.

Exposed through the /metrics ASGI app mounted in src.api.main.
"""

from prometheus_client import Counter, Histogram

INGESTIONS_TOTAL = Counter(
    "rag_ingestions_total",
    "Document ingestions by outcome",
    ["file_type", "status"],  # status: success or an error code
)

INGESTION_DURATION = Histogram(
    "rag_ingestion_duration_seconds",
    "End-to-end ingestion latency in seconds",
    ["file_type"],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0],
)

CHUNKS_CREATED_TOTAL = Counter(
    "rag_chunks_created_total",
    "Chunks persisted by the ingestion pipeline",
)

RETRIEVALS_TOTAL = Counter(
    "rag_retrievals_total",
    "Retrieval calls by outcome",
    ["status"],  # status: success, degraded
)

RETRIEVAL_RESULTS = Histogram(
    "rag_retrieval_results",
    "Number of candidates returned per retrieval",
    buckets=[0, 1, 2, 3, 5, 10, 20],
)

EMBEDDING_REQUESTS_TOTAL = Counter(
    "rag_embedding_requests_total",
    "Embedding API requests by outcome",
    ["status"],  # status: success, error, timeout
)
