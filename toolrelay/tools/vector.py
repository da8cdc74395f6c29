from __future__ import annotations

import json
import logging

import httpx

from toolrelay.tools.base import Tool
from toolrelay.types import ErrorCode, ToolResult
from toolrelay.vector.embeddings import EmbeddingError
from toolrelay.vector.search import VectorSearch, VectorSearchError

logger = logging.getLogger(__name__)


class VectorSearchTool(Tool):
    """Semantic search over the tenant's knowledge base."""

    def __init__(
        self,
        search: VectorSearch,
        hostname: str,
        default_top_k: int = 10,
        threshold: float = 0.4,
    ) -> None:
        self._search = search
        self._hostname = hostname
        self._default_top_k = default_top_k
        self._threshold = threshold

    @property
    def name(self) -> str:
        return "search_knowledge_base"

    @property
    def description(self) -> str:
        return (
            "Semantic search over the indexed modules and entities. Returns the "
            "metadata of the best matching entries, most relevant first."
        )

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "The user query to be used to search in the vector store",
                },
                "topK": {
                    "type": "integer",
                    "minimum": 1,
                    "description": "Optional: Number of top results to return.",
                },
                "explanation": {
                    "type": "string",
                    "description": (
                        "Step-by-step thoughts on whether you think this question is "
                        "ambiguous and why you think it is ambiguous."
                    ),
                },
            },
            "required": ["query", "explanation"],
        }

    async def execute(self, **kwargs) -> ToolResult:
        query = kwargs["query"]
        top_k = kwargs.get("topK") or self._default_top_k
        try:
            results = await self._search.search(
                query, self._hostname, k=top_k, threshold=self._threshold
            )
        except (VectorSearchError, EmbeddingError, httpx.HTTPError) as e:
            logger.warning("Vector search failed: %s", e)
            return ToolResult.failure(f"Vector search failed: {e}", ErrorCode.UPSTREAM_ERROR)

        matches = [
            {**r.document.metadata, "score": r.score}
            for r in results
        ]
        return ToolResult(
            success=True,
            content=json.dumps(matches),
            data=matches,
            metadata={"count": len(matches)},
        )
