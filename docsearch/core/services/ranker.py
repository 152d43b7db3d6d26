"""Result ranker - deduplication, re-scoring and diversification."""

import logging
from dataclasses import replace
from typing import Optional, Sequence

from ..exceptions import ValidationError
from ..models.search import RankedResult, SearchConfig
from ..strategies.relevance import HeuristicRelevanceStrategy, RelevanceStrategy, clamp
from ..text import jaccard_sets, token_set

logger = logging.getLogger(__name__)

DEDUP_PREFIX_LENGTH = 100


class ResultRanker:
    """Turns a pooled candidate list into the final result list."""

    def __init__(self, relevance_strategy: Optional[RelevanceStrategy] = None):
        """Initialize ranker.

        Args:
            relevance_strategy: Re-scoring strategy. Defaults to the heuristic one.
        """
        self._relevance = relevance_strategy or HeuristicRelevanceStrategy()

    def rank(
        self,
        pool: Sequence[RankedResult],
        query: str,
        config: Optional[SearchConfig] = None,
    ) -> list[RankedResult]:
        """Deduplicate, re-score, sort, and diversify candidates.

        Args:
            pool: Candidates from every searched variant.
            query: Original user query.
            config: Limits, threshold and stage toggles.

        Returns:
            At most `config.limit` results in admission order.
        """
        config = config or SearchConfig()
        if config.limit < 0 or config.max_results < 0:
            raise ValidationError("limit and max_results must not be negative")
        if not 0.0 <= config.diversity_threshold <= 1.0:
            raise ValidationError(
                f"diversity_threshold must be in [0, 1], got {config.diversity_threshold}"
            )

        unique = self.deduplicate(pool)

        if config.enable_ranking and unique:
            scores = self._relevance.score(query, unique)
            unique = [
                replace(r, relevance_score=clamp(s)) for r, s in zip(unique, scores)
            ]
        else:
            unique = [replace(r, relevance_score=clamp(r.fused_score)) for r in unique]

        # Stable: equal relevance keeps pool order
        ordered = sorted(unique, key=lambda r: r.relevance_score, reverse=True)
        ordered = ordered[: config.max_results]

        if config.enable_diversification:
            final = self.diversify(ordered, config.diversity_threshold, config.limit)
        else:
            final = [replace(r, admitted=True) for r in ordered[: config.limit]]

        logger.info(
            f"Ranked {len(pool)} candidates -> {len(unique)} unique -> {len(final)} final"
        )
        return final

    @staticmethod
    def deduplicate(pool: Sequence[RankedResult]) -> list[RankedResult]:
        """Keep the first result for each distinct content prefix."""
        seen = set()
        unique = []
        for r in pool:
            prefix = r.content[:DEDUP_PREFIX_LENGTH]
            if prefix in seen:
                continue
            seen.add(prefix)
            unique.append(r)
        return unique

    @staticmethod
    def diversify(
        ordered: Sequence[RankedResult], threshold: float, limit: int
    ) -> list[RankedResult]:
        """Greedy admission: each new result must differ from every admitted one.

        The first result is always admitted. Later results are admitted only
        when their token-set Jaccard similarity to every admitted result is
        below `threshold`.
        """
        admitted: list[RankedResult] = []
        admitted_tokens: list[set[str]] = []

        for r in ordered:
            if len(admitted) >= limit:
                break
            tokens = token_set(r.content)
            if admitted and any(
                jaccard_sets(tokens, other) >= threshold for other in admitted_tokens
            ):
                continue
            admitted.append(replace(r, admitted=True))
            admitted_tokens.append(tokens)

        return admitted
