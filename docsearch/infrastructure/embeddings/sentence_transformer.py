import asyncio
import logging
from functools import cached_property

import numpy as np
from sentence_transformers import SentenceTransformer

from docsearch.core.protocols.embedder import InputKind

logger = logging.getLogger(__name__)


class SentenceTransformerEmbedder:
    """Local embedder; e5-style models expect "query: "/"passage: " prefixes."""

    def __init__(
        self,
        model_name: str = "intfloat/multilingual-e5-base",
        use_prefixes: bool = True,
    ):
        self._model_name = model_name
        self._use_prefixes = use_prefixes

    @cached_property
    def model(self) -> SentenceTransformer:
        logger.info(f"Loading embedding model: {self._model_name}")
        return SentenceTransformer(self._model_name)

    def encode(self, texts: str | list[str]) -> np.ndarray:
        return self.model.encode(texts, convert_to_numpy=True, normalize_embeddings=True)

    async def embed(
        self,
        text: str,
        max_input_length: int = 8000,
        kind: InputKind = "query",
    ) -> list[float]:
        text = text[:max_input_length]
        if self._use_prefixes:
            text = f"{kind}: {text}"
        vector = await asyncio.to_thread(self.encode, text)
        return vector.tolist()
