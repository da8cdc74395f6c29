from __future__ import annotations

from toolrelay.llm.providers.base import ModelClient
from toolrelay.llm.types import Message, ModelOptions

CONTEXT_INSTRUCTION = (
    "Generate a brief context explaining how this chunk relates to the full document."
)


class SummarizedContextGenerator:
    """Asks the model for a one-line context that situates a chunk in its document."""

    def __init__(self, model_client: ModelClient, options: ModelOptions | None = None) -> None:
        self._client = model_client
        self._options = options or ModelOptions(temperature=0.1, max_tokens=1000)

    async def generate_context(self, document: str, chunk: str) -> str:
        result = await self._client.complete(
            [
                Message.system(CONTEXT_INSTRUCTION),
                Message.user(
                    f"Document: {document}\n\nChunk: {chunk}\n\n"
                    "Generate concise context to improve search retrieval."
                ),
            ],
            options=self._options,
        )
        return result.content or ""

    async def contextualize(self, document: str, chunks: list[str]) -> list[str]:
        """Prefix each chunk with its generated context."""
        out = []
        for chunk in chunks:
            context = await self.generate_context(document, chunk)
            out.append(f"{context}\n\n{chunk}" if context else chunk)
        return out
