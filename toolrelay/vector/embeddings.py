"""Azure OpenAI embeddings, requested in small batches over ``httpx``."""

from __future__ import annotations

import logging
import math

import httpx

logger = logging.getLogger(__name__)

DEFAULT_VECTOR_DIM = 3072


class EmbeddingError(Exception):
    """Embeddings could not be produced or failed validation."""


class EmbeddingProcessor:
    """
    Turns text into embedding vectors using an Azure OpenAI deployment.

    Parameters
    ----------
    endpoint:
        Resource URL, e.g. ``"https://x.openai.azure.com"``.
    api_key:
        Sent as the ``api-key`` header.
    deployment:
        Embeddings deployment name.
    api_version:
        ``api-version`` query parameter.
    batch_size:
        Texts per HTTP request.
    vector_dim:
        Expected embedding dimension, checked by ``validate_embedding``.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        deployment: str,
        api_version: str,
        batch_size: int = 8,
        vector_dim: int = DEFAULT_VECTOR_DIM,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._endpoint = endpoint.rstrip("/")
        self._api_key = api_key
        self._deployment = deployment
        self._api_version = api_version
        self.batch_size = batch_size
        self.vector_dim = vector_dim
        self._timeout = timeout
        self._transport = transport

    async def _embed_chunk(self, client: httpx.AsyncClient, texts: list[str]) -> list[list[float]]:
        url = f"{self._endpoint}/openai/deployments/{self._deployment}/embeddings"
        resp = await client.post(
            url,
            params={"api-version": self._api_version},
            json={"input": texts},
            headers={"Content-Type": "application/json", "api-key": self._api_key},
        )
        resp.raise_for_status()
        return [item["embedding"] for item in resp.json()["data"]]

    async def process_batch(self, texts: list[str]) -> list[list[float]]:
        embeddings: list[list[float]] = []
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                for i in range(0, len(texts), self.batch_size):
                    embeddings.extend(await self._embed_chunk(client, texts[i:i + self.batch_size]))
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error("Error generating embeddings: %s", e)
            raise EmbeddingError("Failed to generate embeddings from Azure OpenAI") from e
        return embeddings

    def validate_embedding(self, embedding: list[float]) -> None:
        if not isinstance(embedding, list):
            raise EmbeddingError("Embedding must be a list")
        if len(embedding) != self.vector_dim:
            raise EmbeddingError(f"Invalid embedding dimension: {len(embedding)}")
        if any(
            isinstance(v, bool) or not isinstance(v, (int, float)) or math.isnan(v)
            for v in embedding
        ):
            raise EmbeddingError("Embedding contains invalid values")
        magnitude = math.sqrt(sum(v * v for v in embedding))
        if magnitude == 0:
            raise EmbeddingError("Zero vector detected")
        if magnitude < 0.1 or magnitude > 100:
            raise EmbeddingError(f"Unusual embedding magnitude: {magnitude}")
