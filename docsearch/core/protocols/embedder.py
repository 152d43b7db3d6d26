"""Embedder protocol for dependency injection."""
from typing import Literal, Protocol, runtime_checkable

InputKind = Literal["query", "passage"]


@runtime_checkable
class EmbedderProtocol(Protocol):
    """Protocol for embedding service."""

    async def embed(
        self,
        text: str,
        max_input_length: int = 8000,
        kind: InputKind = "query",
    ) -> list[float]:
        """Embed text into a fixed-dimension vector.

        Args:
            text: Text to embed.
            max_input_length: Characters kept before embedding.
            kind: Whether the text is a search query or a stored passage.

        Returns:
            Embedding vector.
        """
        ...
