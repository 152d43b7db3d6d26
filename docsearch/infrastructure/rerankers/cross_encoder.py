import logging
from functools import cached_property
from typing import Sequence

import numpy as np
from sentence_transformers import CrossEncoder

from docsearch.core.models.search import RankedResult
from docsearch.core.strategies.relevance import RelevanceStrategy, clamp

logger = logging.getLogger(__name__)


class CrossEncoderRelevanceStrategy(RelevanceStrategy):
    """Relevance from a CrossEncoder model, squashed to [0, 1]."""

    def __init__(self, model_name: str = "BAAI/bge-reranker-v2-m3"):
        """Initialize strategy.

        Args:
            model_name: HuggingFace model name.
        """
        self._model_name = model_name

    @cached_property
    def model(self) -> CrossEncoder:
        logger.info(f"Loading reranker: {self._model_name}")
        model = CrossEncoder(self._model_name)
        logger.info("Reranker loaded")
        return model

    def score(self, query: str, results: Sequence[RankedResult]) -> list[float]:
        if not results:
            return []

        pairs = [[query, r.content] for r in results]
        logits = np.asarray(self.model.predict(pairs), dtype=float)
        scores = [clamp(float(s)) for s in 1.0 / (1.0 + np.exp(-logits))]

        if logger.isEnabledFor(logging.DEBUG):
            top_scores = ", ".join(f"{s:.2f}" for s in sorted(scores, reverse=True)[:3])
            logger.debug(f"Reranker top-3 scores: [{top_scores}]")

        return scores
