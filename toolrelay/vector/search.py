"""
KNN search over per-tenant OpenSearch indices.

Talks to OpenSearch's REST API directly with ``httpx``:
``HEAD /{index}``, ``POST /{index}/_search`` and ``POST /_msearch``.
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass, field

import httpx

from toolrelay.vector.chunking import FixedLengthChunking
from toolrelay.vector.context import SummarizedContextGenerator
from toolrelay.vector.embeddings import EmbeddingProcessor

logger = logging.getLogger(__name__)

MAX_CANDIDATES = 100


class VectorSearchError(Exception):
    """The vector index is missing or the search request failed."""


@dataclass
class Document:
    id: str
    content: str
    metadata: dict = field(default_factory=dict)


@dataclass
class SearchResult:
    document: Document
    score: float


def tenant_index(index_prefix: str, hostname: str) -> str:
    """Index name for a tenant: ``<prefix>-<sanitized hostname>``."""
    if not index_prefix or not hostname:
        raise ValueError("Index prefix and hostname are required")
    normalized = re.sub(r"[^a-z0-9]", "-", hostname.lower())
    sanitized = re.sub(r"-+", "-", normalized.strip("-"))
    return f"{index_prefix}-{sanitized}"


def _candidate_count(k: int) -> int:
    return min(math.ceil(k * 3), MAX_CANDIDATES)


def _knn_query(hostname: str, vector: list[float], k: int) -> dict:
    size = _candidate_count(k)
    return {
        "size": size,
        "query": {
            "bool": {
                "must": [
                    {"term": {"metadata.hostname": hostname}},
                    {"knn": {"embedding": {"vector": list(vector), "k": size}}},
                ]
            }
        },
    }


def _collect_hits(hits: list[dict], hostname: str, k: int, threshold: float) -> list[SearchResult]:
    results = []
    for hit in hits:
        source = hit.get("_source") or {}
        results.append(
            SearchResult(
                document=Document(
                    id=hit.get("_id", ""),
                    content=source.get("content") or "",
                    metadata=source.get("metadata") or {"hostname": hostname},
                ),
                score=hit.get("_score") or 0.0,
            )
        )
    return [r for r in results if r.score >= threshold][:k]


class VectorSearch:
    """
    Semantic search over documents indexed per tenant hostname.

    Parameters
    ----------
    endpoint:
        OpenSearch base URL.
    embeddings:
        Produces the query vector.
    index_prefix:
        Prefix for per-tenant index names.
    username, password:
        Basic-auth credentials for OpenSearch.
    """

    def __init__(
        self,
        endpoint: str,
        embeddings: EmbeddingProcessor,
        index_prefix: str,
        username: str = "",
        password: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._endpoint = endpoint.rstrip("/")
        self.embeddings = embeddings
        self.index_prefix = index_prefix
        self._auth = (username, password) if username else None
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._endpoint,
            auth=self._auth,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def _embed_query(self, query: str) -> list[float]:
        [vector] = await self.embeddings.process_batch([query])
        self.embeddings.validate_embedding(vector)
        return vector

    async def search(
        self,
        query: str,
        hostname: str,
        k: int = 5,
        threshold: float = 0.4,
    ) -> list[SearchResult]:
        logger.info(
            "KNN search for %r on %s (k=%d, threshold=%s)", query, hostname, k, threshold
        )
        index = tenant_index(self.index_prefix, hostname)

        async with self._client() as client:
            exists = await client.head(f"/{index}")
            if exists.status_code == 404:
                raise VectorSearchError(f"No index found for hostname: {hostname}")
            exists.raise_for_status()

            vector = await self._embed_query(query)
            resp = await client.post(f"/{index}/_search", json=_knn_query(hostname, vector, k))
            if resp.status_code >= 400:
                raise VectorSearchError(f"Search failed with HTTP {resp.status_code}: {resp.text[:200]}")
            hits = resp.json()["hits"]["hits"]

        results = _collect_hits(hits, hostname, k, threshold)
        logger.info("%d of %d hits met threshold %s", len(results), len(hits), threshold)
        return results

    async def bulk_search(self, queries: list[dict]) -> list[list[SearchResult]]:
        """
        Run several searches in one ``_msearch`` request.

        Each entry holds ``query`` and ``hostname`` and optionally ``k`` and
        ``threshold``.
        """
        lines: list[str] = []
        for q in queries:
            vector = await self._embed_query(q["query"])
            lines.append(json.dumps({"index": tenant_index(self.index_prefix, q["hostname"])}))
            lines.append(json.dumps(_knn_query(q["hostname"], vector, q.get("k", 5))))
        payload = "\n".join(lines) + "\n"

        async with self._client() as client:
            resp = await client.post(
                "/_msearch",
                content=payload,
                headers={"Content-Type": "application/x-ndjson"},
            )
        if resp.status_code >= 400:
            raise VectorSearchError(f"Bulk search failed with HTTP {resp.status_code}")

        out = []
        for q, response in zip(queries, resp.json()["responses"]):
            hits = (response.get("hits") or {}).get("hits") or []
            out.append(_collect_hits(hits, q["hostname"], q.get("k", 5), q.get("threshold", 0.4)))
        return out

    async def index_document(
        self,
        text: str,
        hostname: str,
        chunking: FixedLengthChunking,
        doc_id: str,
        metadata: dict | None = None,
        context: SummarizedContextGenerator | None = None,
        batch_size: int = 100,
    ) -> int:
        """
        Chunk, embed and store one document in the tenant's index.

        Returns the number of chunks written.
        """
        chunks = chunking.split_text(text)
        if not chunks:
            return 0
        contents = await context.contextualize(text, chunks) if context else chunks
        vectors = await self.embeddings.process_batch(contents)
        index = tenant_index(self.index_prefix, hostname)
        base_meta = {**(metadata or {}), "hostname": hostname}

        async with self._client() as client:
            for start in range(0, len(contents), batch_size):
                lines: list[str] = []
                for i in range(start, min(start + batch_size, len(contents))):
                    self.embeddings.validate_embedding(vectors[i])
                    lines.append(json.dumps({"index": {"_index": index, "_id": f"{doc_id}-{i}"}}))
                    lines.append(json.dumps({
                        "content": contents[i],
                        "embedding": vectors[i],
                        "metadata": {**base_meta, "doc_id": doc_id, "chunk": i},
                    }))
                resp = await client.post(
                    "/_bulk",
                    content="\n".join(lines) + "\n",
                    headers={"Content-Type": "application/x-ndjson"},
                )
                if resp.status_code >= 400 or resp.json().get("errors"):
                    raise VectorSearchError(f"Bulk indexing into {index} failed")

        logger.info("Indexed %d chunk(s) of %s into %s", len(contents), doc_id, index)
        return len(contents)
