"""Search service - query expansion, fused retrieval, ranking and synthesis."""

import asyncio
import logging
import math
from typing import Optional

from ..exceptions import DocSearchError, ValidationError
from ..models.search import RankedResult, SearchConfig, SearchResponse
from .fusion_service import FusionEngine
from .query_expander import QueryExpander
from .ranker import ResultRanker
from .synthesis_service import Synthesizer

logger = logging.getLogger(__name__)


class SearchService:
    """Single retrieval pipeline; search modes and stages are selected by config."""

    def __init__(
        self,
        fusion_engine: FusionEngine,
        expander: QueryExpander,
        ranker: ResultRanker,
        synthesizer: Synthesizer,
        default_config: Optional[SearchConfig] = None,
    ):
        """Initialize search service.

        Args:
            fusion_engine: Per-variant vector + keyword retrieval.
            expander: Query variant generator.
            ranker: Dedup, re-scoring and diversification.
            synthesizer: Answer generation.
            default_config: Options used when a call passes none.
        """
        self._fusion = fusion_engine
        self._expander = expander
        self._ranker = ranker
        self._synthesizer = synthesizer
        self._default_config = default_config or SearchConfig()

    async def variants_for(self, query: str, config: SearchConfig) -> list[str]:
        """Query variants to search, original first, capped at max_variants."""
        base = query
        if config.enable_enhancement:
            base = await self._expander.enhance(query)

        if config.enable_expansion:
            variants = await self._expander.expand(base)
        else:
            variants = [base]

        if base != query:
            variants = [query] + [v for v in variants if v.lower() != query.lower()]

        return variants[: max(1, config.max_variants)]

    async def retrieve(self, variants: list[str], config: SearchConfig) -> list[RankedResult]:
        """Search all variants concurrently and pool their results.

        Raises:
            RetrievalError: Any variant could not be searched.
        """
        per_variant = math.ceil(config.max_results / len(variants)) if variants else 0

        outcomes = await asyncio.gather(
            *(
                self._fusion.search(v, per_variant, config.mode, config.vector_weight)
                for v in variants
            ),
            return_exceptions=True,
        )

        pool: list[RankedResult] = []
        for variant, outcome in zip(variants, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Search failed for variant '{variant[:50]}': {outcome}")
                raise outcome
            pool.extend(outcome)
        return pool

    async def search(self, query: str, config: Optional[SearchConfig] = None) -> SearchResponse:
        """Search documents and optionally synthesize an answer.

        Args:
            query: User query.
            config: Per-call options; defaults to the service configuration.

        Returns:
            Ranked results and answer. An empty result list is a successful
            search that matched nothing.

        Raises:
            ValidationError: Empty query or invalid options.
            RetrievalError: The store could not be searched.
            GenerationError: The query could not be embedded.
        """
        config = config or self._default_config
        if not query or not query.strip():
            raise ValidationError("query must not be empty")
        if config.limit <= 0 or config.max_results <= 0:
            raise ValidationError("limit and max_results must be positive")

        try:
            variants = await self.variants_for(query, config)
            pool = await self.retrieve(variants, config)
        except DocSearchError as e:
            logger.error(f"Search error: {e}")
            raise

        results = self._ranker.rank(pool, query, config)

        answer = None
        if config.enable_synthesis and results:
            answer = await self._synthesizer.synthesize(results, query)

        logger.info(
            f"Search ({config.mode.value}): {len(variants)} variants, "
            f"{len(pool)} candidates, {len(results)} results for '{query[:50]}'"
        )
        return SearchResponse(
            query=query,
            results=results,
            answer=answer,
            variants=variants,
            total_found=len(pool),
            mode=config.mode,
        )
