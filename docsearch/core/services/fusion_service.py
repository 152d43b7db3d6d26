"""Fusion engine - merges vector and lexical result lists into one ranking."""

import asyncio
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from ..exceptions import GenerationError, RetrievalError, ValidationError
from ..models.document import Chunk, StoreHit
from ..models.search import CandidateResult, RankedResult, RetrievalMethod, SearchMode
from ..protocols.embedder import EmbedderProtocol
from ..protocols.vector_store import VectorStoreProtocol
from ..strategies.weighting import adaptive_vector_weight
from ..timeouts import call_with_timeout

logger = logging.getLogger(__name__)


class FusionKey(str, Enum):
    """How the same chunk is recognised across the two lists."""
    POSITION = "position"  # (source id, sequence index)
    CONTENT = "content"    # (source id, content hash)


def result_key(chunk: Chunk, key: FusionKey = FusionKey.POSITION) -> tuple[str, object]:
    if key == FusionKey.CONTENT:
        return (chunk.source_id, chunk.content_hash)
    return (chunk.source_id, chunk.sequence_index)


def _to_candidates(hits: Sequence[StoreHit], method: RetrievalMethod) -> list[CandidateResult]:
    return [
        CandidateResult(
            chunk=hit.chunk,
            method=method,
            raw_score=hit.score,
            rank=i,
            distance=hit.distance,
            certainty=hit.certainty,
        )
        for i, hit in enumerate(hits, 1)
    ]


def _normalizer(candidates: Sequence[CandidateResult]) -> float:
    """Max raw score of a list; 0 when empty or non-positive."""
    if not candidates:
        return 0.0
    top = max(c.raw_score for c in candidates)
    return top if top > 0 else 0.0


@dataclass
class _Entry:
    candidate: CandidateResult
    vector_score: float = 0.0
    lexical_score: float = 0.0
    vector_rank: Optional[int] = None
    lexical_rank: Optional[int] = None


def fuse(
    vector: Sequence[CandidateResult],
    lexical: Sequence[CandidateResult],
    vector_weight: float,
    limit: int,
    key: FusionKey = FusionKey.POSITION,
) -> list[RankedResult]:
    """Fuse two ranked lists by max-normalized weighted sum.

    Args:
        vector: Vector-similarity candidates, best first.
        lexical: Lexical candidates, best first.
        vector_weight: Weight of the vector score; lexical gets the rest.
        limit: Maximum results returned.
        key: Identity used to merge the same chunk across lists.

    Returns:
        Results sorted by fused score, ties broken by vector rank,
        then lexical rank, then insertion order.
    """
    if not 0.0 <= vector_weight <= 1.0:
        raise ValidationError(f"vector_weight must be in [0, 1], got {vector_weight}")
    if limit < 0:
        raise ValidationError(f"limit must not be negative, got {limit}")

    lexical_weight = 1.0 - vector_weight
    entries: dict[tuple[str, object], _Entry] = {}

    vector_max = _normalizer(vector)
    for candidate in vector:
        k = result_key(candidate.chunk, key)
        if k in entries:
            continue
        entries[k] = _Entry(
            candidate=candidate,
            vector_score=candidate.raw_score / vector_max if vector_max else 0.0,
            vector_rank=candidate.rank,
        )

    lexical_max = _normalizer(lexical)
    for candidate in lexical:
        k = result_key(candidate.chunk, key)
        score = candidate.raw_score / lexical_max if lexical_max else 0.0
        entry = entries.get(k)
        if entry is None:
            entries[k] = _Entry(candidate=candidate, lexical_score=score, lexical_rank=candidate.rank)
        elif entry.lexical_rank is None:
            entry.lexical_score = score
            entry.lexical_rank = candidate.rank
            if entry.vector_rank is not None:
                c = entry.candidate
                entry.candidate = CandidateResult(
                    chunk=c.chunk,
                    method=RetrievalMethod.COMBINED,
                    raw_score=c.raw_score,
                    rank=c.rank,
                    distance=c.distance,
                    certainty=c.certainty,
                )

    fused = []
    for entry in entries.values():
        score = vector_weight * entry.vector_score + lexical_weight * entry.lexical_score
        fused.append(
            RankedResult(
                candidate=entry.candidate,
                vector_score=entry.vector_score,
                lexical_score=entry.lexical_score,
                fused_score=score,
                relevance_score=score,
                vector_rank=entry.vector_rank,
                lexical_rank=entry.lexical_rank,
            )
        )

    # sorted() is stable: equal keys keep insertion order
    fused.sort(
        key=lambda r: (
            -r.fused_score,
            r.vector_rank if r.vector_rank is not None else math.inf,
            r.lexical_rank if r.lexical_rank is not None else math.inf,
        )
    )
    return fused[:limit]


class FusionEngine:
    """Runs vector and lexical retrieval for one query and fuses the results."""

    KEYWORD_FIELDS = ("content", "sourceId")

    def __init__(
        self,
        embedder: EmbedderProtocol,
        vector_store: VectorStoreProtocol,
        timeout: float = 30.0,
        fetch_multiplier: int = 2,
        hybrid_alpha: float = 0.7,
        max_input_length: int = 8000,
        key: FusionKey = FusionKey.POSITION,
    ):
        """Initialize fusion engine.

        Args:
            embedder: Embedding service.
            vector_store: Vector/lexical store.
            timeout: Seconds allowed per collaborator call.
            fetch_multiplier: Candidates fetched per list relative to limit.
            hybrid_alpha: Alpha for store-native hybrid search.
            max_input_length: Characters embedded per query.
            key: Identity used to merge results across lists.
        """
        self._embedder = embedder
        self._vector_store = vector_store
        self._timeout = timeout
        self._fetch_multiplier = fetch_multiplier
        self._hybrid_alpha = hybrid_alpha
        self._max_input_length = max_input_length
        self._key = key

    async def _embed(self, query: str) -> list[float]:
        return await call_with_timeout(
            self._embedder.embed(query, self._max_input_length, kind="query"),
            self._timeout,
            GenerationError,
            "query embedding",
        )

    async def _vector_hits(self, embedding: list[float], k: int) -> list[StoreHit]:
        return await call_with_timeout(
            self._vector_store.query_by_vector(embedding, k),
            self._timeout,
            RetrievalError,
            "vector search",
        )

    async def _lexical_hits(self, query: str, k: int) -> list[StoreHit]:
        return await call_with_timeout(
            self._vector_store.query_by_keyword(query, self.KEYWORD_FIELDS, k),
            self._timeout,
            RetrievalError,
            "keyword search",
        )

    async def _hybrid_hits(self, query: str, embedding: list[float], k: int) -> list[StoreHit]:
        return await call_with_timeout(
            self._vector_store.query_hybrid(query, embedding, self._hybrid_alpha, k),
            self._timeout,
            RetrievalError,
            "hybrid search",
        )

    async def search(
        self,
        query: str,
        limit: int,
        mode: SearchMode = SearchMode.ADVANCED,
        vector_weight: Optional[float] = 0.7,
    ) -> list[RankedResult]:
        """Retrieve and fuse candidates for one query string.

        Args:
            query: Query text.
            limit: Maximum results.
            mode: Retrieval strategy.
            vector_weight: Fusion weight; None selects adaptive weighting.

        Returns:
            Fused results, best first.

        Raises:
            RetrievalError: A store call failed or timed out.
            GenerationError: Query embedding failed or timed out.
        """
        if limit <= 0:
            return []

        k = limit * self._fetch_multiplier
        embedding = await self._embed(query)

        if mode == SearchMode.BASIC:
            hits = await self._vector_hits(embedding, k)
            return fuse(_to_candidates(hits, RetrievalMethod.VECTOR), [], 1.0, limit, self._key)

        if mode == SearchMode.HYBRID:
            hits = await self._hybrid_hits(query, embedding, k)
            return fuse(_to_candidates(hits, RetrievalMethod.COMBINED), [], 1.0, limit, self._key)

        if mode == SearchMode.SMART or vector_weight is None:
            vector_weight = adaptive_vector_weight(query)

        # Issue both sub-queries and join before fusing
        vector_result, lexical_result = await asyncio.gather(
            self._vector_hits(embedding, k),
            self._lexical_hits(query, k),
            return_exceptions=True,
        )
        for outcome in (vector_result, lexical_result):
            if isinstance(outcome, BaseException):
                raise outcome

        fused = fuse(
            _to_candidates(vector_result, RetrievalMethod.VECTOR),
            _to_candidates(lexical_result, RetrievalMethod.LEXICAL),
            vector_weight,
            limit,
            self._key,
        )
        logger.info(
            f"Fusion: {len(vector_result)} vector + {len(lexical_result)} keyword "
            f"-> {len(fused)} (weight={vector_weight:.2f}) for '{query[:50]}'"
        )
        return fused
