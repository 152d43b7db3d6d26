"""Core business services."""
from .segmenter import ChunkPolicy, Segmenter, SegmenterConfig
from .fusion_service import FusionEngine, FusionKey, fuse
from .query_expander import QueryExpander
from .ranker import ResultRanker
from .synthesis_service import Synthesizer
from .search_service import SearchService
from .ingest_service import IngestService, detect_document_type

__all__ = [
    "ChunkPolicy",
    "Segmenter",
    "SegmenterConfig",
    "FusionEngine",
    "FusionKey",
    "fuse",
    "QueryExpander",
    "ResultRanker",
    "Synthesizer",
    "SearchService",
    "IngestService",
    "detect_document_type",
]
