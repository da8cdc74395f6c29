from __future__ import annotations


class FixedLengthChunking:
    """Split text into fixed-size windows that overlap by ``overlap`` characters."""

    def __init__(self, chunk_size: int = 1000, overlap: int = 200) -> None:
        if chunk_size <= 0:
            raise ValueError("Chunk size must be positive")
        if overlap < 0:
            raise ValueError("Overlap must not be negative")
        if overlap >= chunk_size:
            raise ValueError("Overlap must be less than chunk size")
        self.chunk_size = chunk_size
        self.overlap = overlap

    def split_text(self, text: str) -> list[str]:
        if not text:
            return []

        chunks: list[str] = []
        position = 0
        while position < len(text):
            end = min(position + self.chunk_size, len(text))
            chunks.append(text[position:end])

            position = end - self.overlap
            if position >= len(text) - self.overlap:
                break
        return chunks
