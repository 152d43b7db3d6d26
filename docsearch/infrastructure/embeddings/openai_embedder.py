import logging
from typing import Optional

from openai import AsyncOpenAI, OpenAIError

from docsearch.core.exceptions import GenerationError
from docsearch.core.protocols.embedder import InputKind

logger = logging.getLogger(__name__)


class OpenAIEmbedder:
    """Embedder backed by the OpenAI embeddings endpoint."""

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        base_url: str = "https://api.openai.com/v1",
        api_key: str = "not-needed",
        client: Optional[AsyncOpenAI] = None,
    ):
        """Initialize embedder.

        Args:
            model: Embedding model name.
            base_url: API URL.
            api_key: API key.
            client: Preconfigured client, mainly for tests.
        """
        self._client = client or AsyncOpenAI(base_url=base_url, api_key=api_key)
        self._model = model

    async def embed(
        self,
        text: str,
        max_input_length: int = 8000,
        kind: InputKind = "query",
    ) -> list[float]:
        try:
            response = await self._client.embeddings.create(
                model=self._model,
                input=text[:max_input_length],
            )
        except OpenAIError as e:
            logger.error(f"[embeddings] Request error: {e}")
            raise GenerationError(f"Embedding request failed: {e}") from e

        if not response.data:
            raise GenerationError("Embedding response contained no vectors")
        return list(response.data[0].embedding)
