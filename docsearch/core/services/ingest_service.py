"""Ingest service - segmentation, batched embedding and indexing."""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Sequence

from ..exceptions import GenerationError, RetrievalError, ValidationError
from ..models.document import Chunk, SourceDocument
from ..models.search import IngestResult
from ..protocols.embedder import EmbedderProtocol
from ..protocols.vector_store import VectorStoreProtocol
from ..timeouts import call_with_timeout
from .segmenter import Segmenter, SegmenterConfig

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".txt", ".md")

# First match wins
DOCUMENT_TYPE_MARKERS = (
    ("legal", ("contract", "agreement")),
    ("financial", ("financial", "budget")),
    ("technical", ("technical", "specification")),
    ("research", ("research", "study")),
)


def detect_document_type(text: str) -> str:
    """Coarse document category from marker words."""
    lower = text.lower()
    for doc_type, markers in DOCUMENT_TYPE_MARKERS:
        if any(m in lower for m in markers):
            return doc_type
    return "general"


class IngestService:
    """Service for indexing documents into the vector store."""

    def __init__(
        self,
        embedder: EmbedderProtocol,
        vector_store: VectorStoreProtocol,
        segmenter: Optional[Segmenter] = None,
        segmenter_config: Optional[SegmenterConfig] = None,
        batch_size: int = 5,
        concurrency: int = 3,
        wave_delay: float = 0.1,
        timeout: float = 30.0,
        max_input_length: int = 8000,
    ):
        """Initialize ingest service.

        Args:
            embedder: Embedding service.
            vector_store: Vector store.
            segmenter: Text segmenter.
            segmenter_config: Segmentation options.
            batch_size: Chunks per embedding batch.
            concurrency: Batches in flight per wave.
            wave_delay: Seconds to wait between waves.
            timeout: Seconds allowed per collaborator call.
            max_input_length: Characters embedded per chunk.
        """
        if batch_size <= 0 or concurrency <= 0:
            raise ValidationError("batch_size and concurrency must be positive")
        self._embedder = embedder
        self._vector_store = vector_store
        self._segmenter = segmenter or Segmenter()
        self._segmenter_config = segmenter_config or SegmenterConfig()
        self._batch_size = batch_size
        self._concurrency = concurrency
        self._wave_delay = wave_delay
        self._timeout = timeout
        self._max_input_length = max_input_length

    def build_chunks(self, text: str, source_id: str, total_pages: int = 1) -> list[Chunk]:
        """Segment text and stamp every draft with its document position."""
        drafts = self._segmenter.segment(text, self._segmenter_config)
        source = SourceDocument(
            source_id=source_id,
            total_pages=max(1, total_pages),
            total_chunks=len(drafts),
            document_type=detect_document_type(text),
        )
        return [
            Chunk.from_draft(draft, source, i, len(text))
            for i, draft in enumerate(drafts)
        ]

    async def _embed(self, chunk: Chunk) -> list[float]:
        return await call_with_timeout(
            self._embedder.embed(chunk.text, self._max_input_length, kind="passage"),
            self._timeout,
            GenerationError,
            "chunk embedding",
        )

    async def _store_batch(self, batch: Sequence[Chunk]) -> int:
        embeddings = await asyncio.gather(*(self._embed(c) for c in batch))
        await call_with_timeout(
            self._vector_store.upsert(batch, embeddings),
            self._timeout,
            RetrievalError,
            "chunk upsert",
        )
        return len(batch)

    async def index_chunks(self, chunks: Sequence[Chunk]) -> int:
        """Embed and store chunks in bounded-concurrency waves.

        Raises:
            GenerationError: A chunk could not be embedded.
            RetrievalError: A batch could not be stored.
        """
        batches = [
            chunks[i : i + self._batch_size]
            for i in range(0, len(chunks), self._batch_size)
        ]

        stored = 0
        for w in range(0, len(batches), self._concurrency):
            wave = batches[w : w + self._concurrency]
            outcomes = await asyncio.gather(
                *(self._store_batch(b) for b in wave), return_exceptions=True
            )
            for outcome in outcomes:
                if isinstance(outcome, BaseException):
                    logger.error(f"Batch failed after {stored}/{len(chunks)} chunks: {outcome}")
                    raise outcome
                stored += outcome
            logger.info(f"Indexed batch: {stored}/{len(chunks)}")

            if w + self._concurrency < len(batches) and self._wave_delay > 0:
                await asyncio.sleep(self._wave_delay)

        return stored

    async def ingest_text(self, text: str, source_id: str, total_pages: int = 1) -> IngestResult:
        """Segment, embed and store one document.

        Args:
            text: Extracted document text.
            source_id: Stable document identifier.
            total_pages: Page count used for page-number estimation.

        Returns:
            Stored chunk and page counts.
        """
        if not source_id:
            raise ValidationError("source_id must not be empty")

        chunks = self.build_chunks(text, source_id, total_pages)
        document_type = chunks[0].document_type if chunks else detect_document_type(text)
        if not chunks:
            logger.info(f"No chunks produced for {source_id}")
            return IngestResult(source_id, 0, max(1, total_pages), document_type)

        await call_with_timeout(
            self._vector_store.ensure_schema(), self._timeout, RetrievalError, "schema setup"
        )
        stored = await self.index_chunks(chunks)

        logger.info(f"Ingested {source_id}: {stored} chunks ({document_type})")
        return IngestResult(
            source_id=source_id,
            chunks_stored=stored,
            pages=max(1, total_pages),
            document_type=document_type,
        )

    async def ingest_file(self, path: Path, total_pages: int = 1) -> IngestResult:
        """Ingest a plain-text or markdown file; the file name is the source id."""
        path = Path(path)
        if path.suffix.lower() not in SUPPORTED_SUFFIXES:
            raise ValidationError(f"Unsupported file type: {path.suffix}")
        text = path.read_text(encoding="utf-8", errors="ignore")
        return await self.ingest_text(text, path.name, total_pages)

    async def ingest_directory(self, directory: Path) -> list[IngestResult]:
        """Ingest every supported file in a directory, in name order."""
        directory = Path(directory)
        if not directory.is_dir():
            raise ValidationError(f"Docs path not found: {directory}")

        results = []
        for file_path in sorted(directory.iterdir()):
            if file_path.is_file() and file_path.suffix.lower() in SUPPORTED_SUFFIXES:
                results.append(await self.ingest_file(file_path))

        logger.info(
            f"Indexing complete: {sum(r.chunks_stored for r in results)} chunks "
            f"from {len(results)} files"
        )
        return results
