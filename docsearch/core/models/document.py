"""Document and chunk domain models."""
import hashlib
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class SourceDocument:
    """Ingested document summary."""
    source_id: str
    total_pages: int
    total_chunks: int
    document_type: str = "general"


@dataclass(frozen=True)
class ChunkMetadata:
    """Heuristic metadata derived when a chunk is created."""
    keywords: tuple[str, ...] = ()
    importance: float = 0.0
    coherence: float = 1.0
    word_count: int = 0
    summary: str = ""


@dataclass(frozen=True)
class ChunkDraft:
    """Segmenter output: a span of the source text with its metadata."""
    start: int
    end: int
    text: str
    metadata: ChunkMetadata = field(default_factory=ChunkMetadata)


@dataclass(frozen=True)
class Chunk:
    """Retrievable unit stored in the vector store."""
    source_id: str
    sequence_index: int
    start: int
    end: int
    text: str
    metadata: ChunkMetadata = field(default_factory=ChunkMetadata)
    page_number: int = 1
    total_pages: int = 1
    total_chunks: int = 0
    document_type: str = "general"

    @property
    def content_hash(self) -> str:
        return hashlib.sha1(self.text.encode("utf-8")).hexdigest()

    @classmethod
    def from_draft(
        cls,
        draft: ChunkDraft,
        source: SourceDocument,
        sequence_index: int,
        text_length: int,
    ) -> "Chunk":
        """Stamp a segmenter draft with its document position."""
        page = 1
        if text_length > 0 and source.total_pages > 0:
            page = min(
                int(draft.start / text_length * source.total_pages) + 1,
                source.total_pages,
            )
        return cls(
            source_id=source.source_id,
            sequence_index=sequence_index,
            start=draft.start,
            end=draft.end,
            text=draft.text,
            metadata=draft.metadata,
            page_number=page,
            total_pages=source.total_pages,
            total_chunks=source.total_chunks,
            document_type=source.document_type,
        )


@dataclass(frozen=True)
class StoreHit:
    """Single hit returned by the vector/lexical store."""
    chunk: Chunk
    score: float
    distance: Optional[float] = None
    certainty: Optional[float] = None
