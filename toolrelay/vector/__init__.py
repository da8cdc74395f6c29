"""Vector search: chunking, embeddings, KNN search and chunk context."""

from toolrelay.vector.chunking import FixedLengthChunking
from toolrelay.vector.context import SummarizedContextGenerator
from toolrelay.vector.embeddings import EmbeddingError, EmbeddingProcessor
from toolrelay.vector.search import (
    Document,
    SearchResult,
    VectorSearch,
    VectorSearchError,
    tenant_index,
)

__all__ = [
    "Document",
    "EmbeddingError",
    "EmbeddingProcessor",
    "FixedLengthChunking",
    "SearchResult",
    "SummarizedContextGenerator",
    "VectorSearch",
    "VectorSearchError",
    "tenant_index",
]
