"""Relevance scoring strategies used by the result ranker."""

import logging
from abc import ABC, abstractmethod
from typing import Sequence

from ..models.search import RankedResult, RetrievalMethod

logger = logging.getLogger(__name__)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


class RelevanceStrategy(ABC):
    """Base class for relevance re-scoring."""

    @abstractmethod
    def score(self, query: str, results: Sequence[RankedResult]) -> list[float]:
        """Relevance per result, each clamped to [0, 1], same order as input."""
        ...


class HeuristicRelevanceStrategy(RelevanceStrategy):
    """Store similarity boosted by term overlap, importance and phrase match."""

    def __init__(
        self,
        term_weight: float = 0.3,
        importance_weight: float = 0.2,
        phrase_bonus: float = 0.3,
        length_penalty: float = 0.8,
        min_words: int = 20,
        max_words: int = 500,
        default_similarity: float = 0.5,
    ):
        """Initialize strategy.

        Args:
            term_weight: Weight of the matched query-token ratio.
            importance_weight: Weight of chunk importance.
            phrase_bonus: Bonus when the full query appears verbatim.
            length_penalty: Multiplier for chunks outside the word range.
            min_words: Lower bound of the preferred word range.
            max_words: Upper bound of the preferred word range.
            default_similarity: Base score when the store supplied none.
        """
        self._term_weight = term_weight
        self._importance_weight = importance_weight
        self._phrase_bonus = phrase_bonus
        self._length_penalty = length_penalty
        self._min_words = min_words
        self._max_words = max_words
        self._default_similarity = default_similarity

    def score(self, query: str, results: Sequence[RankedResult]) -> list[float]:
        query_lower = query.lower().strip()
        query_tokens = query_lower.split()
        return [self._score_one(query_lower, query_tokens, r) for r in results]

    def _base_similarity(self, result: RankedResult) -> float:
        candidate = result.candidate
        if candidate.distance is not None:
            return 1.0 - candidate.distance
        if candidate.certainty is not None:
            return candidate.certainty
        # Store-native hybrid search only reports its blended score
        if candidate.method == RetrievalMethod.COMBINED:
            return clamp(candidate.raw_score)
        return self._default_similarity

    def _score_one(
        self, query_lower: str, query_tokens: list[str], result: RankedResult
    ) -> float:
        content = result.content.lower()
        score = self._base_similarity(result)

        if query_tokens:
            matched = sum(1 for token in query_tokens if token in content)
            score += self._term_weight * matched / len(query_tokens)

        score += self._importance_weight * result.chunk.metadata.importance

        if query_lower and query_lower in content:
            score += self._phrase_bonus

        word_count = result.chunk.metadata.word_count or len(result.content.split())
        if word_count < self._min_words or word_count > self._max_words:
            score *= self._length_penalty

        return clamp(score)
