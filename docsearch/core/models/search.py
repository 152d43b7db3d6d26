"""Search domain models."""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from .document import Chunk


class RetrievalMethod(str, Enum):
    """Which retrieval path produced a candidate."""
    VECTOR = "vector"
    LEXICAL = "lexical"
    COMBINED = "combined"


class SearchMode(str, Enum):
    """Retrieval strategy for a single query variant."""
    BASIC = "basic"        # vector similarity only
    HYBRID = "hybrid"      # store-native blended search
    ADVANCED = "advanced"  # client-side fusion, configured weight
    SMART = "smart"        # client-side fusion, adaptive weight


@dataclass(frozen=True)
class CandidateResult:
    """Result as returned by one retrieval path."""
    chunk: Chunk
    method: RetrievalMethod
    raw_score: float
    rank: int
    distance: Optional[float] = None
    certainty: Optional[float] = None


@dataclass(frozen=True)
class RankedResult:
    """Candidate with normalized, fused and final relevance scores."""
    candidate: CandidateResult
    vector_score: float = 0.0
    lexical_score: float = 0.0
    fused_score: float = 0.0
    relevance_score: float = 0.0
    vector_rank: Optional[int] = None
    lexical_rank: Optional[int] = None
    admitted: bool = False

    @property
    def chunk(self) -> Chunk:
        return self.candidate.chunk

    @property
    def content(self) -> str:
        return self.candidate.chunk.text

    @property
    def source_id(self) -> str:
        return self.candidate.chunk.source_id

    @property
    def score(self) -> float:
        """Final score; equals the fused score until re-scored."""
        return self.relevance_score


@dataclass(frozen=True)
class SearchConfig:
    """Per-call search options. Frozen: use with_overrides() for variations."""
    limit: int = 10
    max_results: int = 20
    vector_weight: Optional[float] = 0.7  # None selects adaptive weighting
    diversity_threshold: float = 0.8
    mode: SearchMode = SearchMode.ADVANCED
    max_variants: int = 3
    enable_ranking: bool = True
    enable_diversification: bool = True
    enable_synthesis: bool = True
    enable_expansion: bool = True
    enable_enhancement: bool = False

    def with_overrides(self, **overrides) -> "SearchConfig":
        return replace(self, **overrides)


@dataclass
class SearchResponse:
    """Search response for presentation layer."""
    query: str
    results: list[RankedResult]
    answer: Optional[str] = None
    variants: list[str] = field(default_factory=list)
    total_found: int = 0
    mode: SearchMode = SearchMode.ADVANCED

    @property
    def sources(self) -> list[str]:
        """Unique source ids in result order."""
        seen = set()
        sources = []
        for r in self.results:
            if r.source_id not in seen:
                seen.add(r.source_id)
                sources.append(r.source_id)
        return sources


@dataclass
class IngestResult:
    """Outcome of ingesting one document."""
    source_id: str
    chunks_stored: int
    pages: int
    document_type: str = "general"
