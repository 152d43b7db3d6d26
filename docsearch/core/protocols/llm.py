"""LLM protocol for dependency injection."""
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class LLMProtocol(Protocol):
    """Protocol for text-generation client."""

    async def generate(
        self,
        messages: list[dict],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """Generate a completion for role-tagged messages.

        Args:
            messages: Chat messages ({"role": ..., "content": ...}).
            max_tokens: Response token cap (client default if None).
            temperature: Sampling temperature (client default if None).

        Returns:
            Generated text.
        """
        ...
