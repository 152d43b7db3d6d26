"""Domain models."""
from .document import Chunk, ChunkDraft, ChunkMetadata, SourceDocument, StoreHit
from .search import (
    CandidateResult,
    IngestResult,
    RankedResult,
    RetrievalMethod,
    SearchConfig,
    SearchMode,
    SearchResponse,
)

__all__ = [
    "Chunk",
    "ChunkDraft",
    "ChunkMetadata",
    "SourceDocument",
    "StoreHit",
    "CandidateResult",
    "IngestResult",
    "RankedResult",
    "RetrievalMethod",
    "SearchConfig",
    "SearchMode",
    "SearchResponse",
]
