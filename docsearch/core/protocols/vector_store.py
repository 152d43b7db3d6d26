"""Vector store protocol for dependency injection."""
from typing import Protocol, Sequence, runtime_checkable

from ..models.document import Chunk, StoreHit


@runtime_checkable
class VectorStoreProtocol(Protocol):
    """Protocol for vector + lexical chunk storage."""

    async def ensure_schema(self) -> None:
        """Create the chunk collection if it does not exist."""
        ...

    async def upsert(
        self, chunks: Sequence[Chunk], embeddings: Sequence[list[float]]
    ) -> None:
        """Store chunks with their embeddings.

        Args:
            chunks: Chunks to store.
            embeddings: One vector per chunk, same order.
        """
        ...

    async def query_by_vector(self, embedding: list[float], k: int) -> list[StoreHit]:
        """Vector similarity search, best first.

        Args:
            embedding: Query vector.
            k: Number of results.

        Returns:
            Hits with certainty/distance set.
        """
        ...

    async def query_by_keyword(
        self, text: str, fields: Sequence[str], k: int
    ) -> list[StoreHit]:
        """Lexical (BM25) search over the given fields, best first."""
        ...

    async def query_hybrid(
        self, text: str, embedding: list[float], alpha: float, k: int
    ) -> list[StoreHit]:
        """Store-native blended search (alpha=1 pure vector, 0 pure keyword)."""
        ...

    async def count(self) -> int:
        """Get chunk count."""
        ...
