"""Segmenter - splits extracted text into overlapping chunks."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..exceptions import ValidationError
from ..models.document import ChunkDraft
from ..strategies.scoring import ChunkScoringStrategy, HeuristicScoringStrategy
from ..text import paragraph_spans, semantic_sentence_spans, sentence_spans, split_sentences

logger = logging.getLogger(__name__)

Span = tuple[int, int]

_TERMINATORS = frozenset(".!?\n")


class ChunkPolicy(str, Enum):
    """Segmentation policy."""
    FIXED = "fixed"
    SENTENCES = "sentences"
    PARAGRAPHS = "paragraphs"
    SEMANTIC = "semantic"
    HYBRID = "hybrid"


@dataclass(frozen=True)
class SegmenterConfig:
    """Segmentation options.

    Attributes:
        policy: Segmentation policy.
        max_chunk_size: Size cap (characters).
        min_chunk_size: Smallest paragraph chunk accepted by the hybrid policy.
        overlap: Character overlap between fixed windows.
        overlap_sentences: Sentences carried forward by the sentence policy.
        overlap_paragraphs: Paragraphs carried forward by the paragraph policy.
        min_chunk_length: Chunks shorter than this are dropped.
        snap_ratio: Fixed windows only snap back to a terminator past this share.
        break_ratio: Semantic chunks only close past this share of the size cap.
        hard_limit_ratio: Semantic chunks always close past this multiple of the cap.
    """
    policy: ChunkPolicy = ChunkPolicy.HYBRID
    max_chunk_size: int = 1500
    min_chunk_size: int = 200
    overlap: int = 200
    overlap_sentences: int = 2
    overlap_paragraphs: int = 1
    min_chunk_length: int = 50
    snap_ratio: float = 0.5
    break_ratio: float = 0.8
    hard_limit_ratio: float = 2.0

    def validate(self) -> None:
        """Raise ValidationError on inconsistent options."""
        if self.max_chunk_size <= 0:
            raise ValidationError(f"max_chunk_size must be positive, got {self.max_chunk_size}")
        if self.min_chunk_size <= 0:
            raise ValidationError(f"min_chunk_size must be positive, got {self.min_chunk_size}")
        if self.min_chunk_size > self.max_chunk_size:
            raise ValidationError(
                f"min_chunk_size ({self.min_chunk_size}) exceeds "
                f"max_chunk_size ({self.max_chunk_size})"
            )
        if self.overlap < 0 or self.overlap >= self.max_chunk_size:
            raise ValidationError(
                f"overlap must be in [0, max_chunk_size), got {self.overlap}"
            )
        if self.overlap_sentences < 0 or self.overlap_paragraphs < 0:
            raise ValidationError("sentence/paragraph overlap must not be negative")
        if self.min_chunk_length < 0:
            raise ValidationError(f"min_chunk_length must not be negative, got {self.min_chunk_length}")
        if not 0.0 < self.snap_ratio < 1.0 or not 0.0 < self.break_ratio <= 1.0:
            raise ValidationError("snap_ratio and break_ratio must be within (0, 1]")
        if self.hard_limit_ratio < 1.0:
            raise ValidationError(f"hard_limit_ratio must be >= 1, got {self.hard_limit_ratio}")


class Segmenter:
    """Pure text segmenter with selectable policies."""

    def __init__(self, scorer: Optional[ChunkScoringStrategy] = None):
        """Initialize segmenter.

        Args:
            scorer: Metadata and break-point heuristics.
        """
        self._scorer = scorer or HeuristicScoringStrategy()

    def segment(self, text: str, config: Optional[SegmenterConfig] = None) -> list[ChunkDraft]:
        """Split text into ordered chunk drafts.

        Args:
            text: Raw extracted text.
            config: Segmentation options.

        Returns:
            Drafts ordered by start offset; empty for empty input.
        """
        config = config or SegmenterConfig()
        config.validate()

        if not text or not text.strip():
            return []

        policy = ChunkPolicy(config.policy)
        if policy == ChunkPolicy.FIXED:
            spans = self._fixed_window(text, config)
        elif policy == ChunkPolicy.SENTENCES:
            spans = self._sentence_chunks(sentence_spans(text), config, config.overlap_sentences)
        elif policy == ChunkPolicy.PARAGRAPHS:
            spans = self._paragraph_chunks(text, config)
        elif policy == ChunkPolicy.SEMANTIC:
            spans = self._semantic_chunks(text, config)
        else:
            spans = self._hybrid_chunks(text, config)

        drafts = self._to_drafts(text, spans, config)
        logger.debug(f"Segmented {len(text)} chars into {len(drafts)} chunks ({policy.value})")
        return drafts

    def _to_drafts(self, text: str, spans: list[Span], config: SegmenterConfig) -> list[ChunkDraft]:
        drafts = []
        last_start = -1
        for start, end in spans:
            if start <= last_start:
                continue
            if end - start < config.min_chunk_length:
                continue
            chunk_text = text[start:end]
            metadata = self._scorer.metadata(chunk_text, split_sentences(chunk_text))
            drafts.append(ChunkDraft(start=start, end=end, text=chunk_text, metadata=metadata))
            last_start = start
        return drafts

    @staticmethod
    def _trim(text: str, start: int, end: int) -> Optional[Span]:
        while start < end and text[start].isspace():
            start += 1
        while end > start and text[end - 1].isspace():
            end -= 1
        return (start, end) if start < end else None

    def _fixed_window(self, text: str, config: SegmenterConfig) -> list[Span]:
        size = config.max_chunk_size
        length = len(text)
        spans: list[Span] = []
        last_start = -1
        start = 0

        while start < length:
            end = min(start + size, length)

            # Window ends mid-token: snap back to the nearest terminator
            if end < length and not text[end - 1].isspace() and not text[end].isspace():
                floor = start + int(size * config.snap_ratio)
                for i in range(end - 1, floor, -1):
                    if text[i] in _TERMINATORS:
                        end = i + 1
                        break

            span = self._trim(text, start, end)
            if span and span[0] > last_start:
                spans.append(span)
                last_start = span[0]

            if end >= length:
                break
            start = max(start + 1, end - config.overlap, last_start + 1)

        return spans

    @staticmethod
    def _carry(units: list[Span], overlap: int) -> list[Span]:
        """Last `overlap` units, never the whole group so starts keep advancing."""
        keep = min(overlap, len(units) - 1)
        return units[-keep:] if keep > 0 else []

    def _sentence_chunks(self, sentences: list[Span], config: SegmenterConfig, overlap: int) -> list[Span]:
        chunks: list[Span] = []
        current: list[Span] = []

        for sentence in sentences:
            if current and sentence[1] - current[0][0] > config.max_chunk_size:
                chunks.append((current[0][0], current[-1][1]))
                current = self._carry(current, overlap)
            current.append(sentence)

        if current:
            chunks.append((current[0][0], current[-1][1]))
        return chunks

    def _paragraph_chunks(self, text: str, config: SegmenterConfig) -> list[Span]:
        chunks: list[Span] = []
        current: list[Span] = []

        for paragraph in paragraph_spans(text):
            p_start, p_end = paragraph
            if p_end - p_start > config.max_chunk_size:
                if current:
                    chunks.append((current[0][0], current[-1][1]))
                    current = []
                sentences = sentence_spans(text[p_start:p_end], offset=p_start)
                chunks.extend(self._sentence_chunks(sentences, config, overlap=1))
                continue

            if current and p_end - current[0][0] > config.max_chunk_size:
                chunks.append((current[0][0], current[-1][1]))
                current = self._carry(current, config.overlap_paragraphs)
            current.append(paragraph)

        if current:
            chunks.append((current[0][0], current[-1][1]))
        return chunks

    @staticmethod
    def _merge_fragments(spans: list[Span], min_length: int = 10) -> list[Span]:
        """Fold very short sentence fragments into their neighbour."""
        merged: list[Span] = []
        pending: Optional[int] = None
        for start, end in spans:
            if pending is not None:
                start = pending
                pending = None
            if end - start < min_length:
                pending = start
                continue
            merged.append((start, end))
        if pending is not None:
            if merged:
                merged[-1] = (merged[-1][0], spans[-1][1])
            else:
                merged.append((pending, spans[-1][1]))
        return merged

    def _semantic_chunks(self, text: str, config: SegmenterConfig) -> list[Span]:
        sentences = self._merge_fragments(semantic_sentence_spans(text))
        soft_limit = config.max_chunk_size * config.break_ratio
        hard_limit = config.max_chunk_size * config.hard_limit_ratio

        chunks: list[Span] = []
        current: list[Span] = []

        for sentence in sentences:
            if current:
                length = sentence[1] - current[0][0]
                previous = current[-1]
                close = length > soft_limit and self._scorer.is_break_point(
                    text[previous[0]:previous[1]],
                    text[sentence[0]:sentence[1]],
                    text[previous[1]:sentence[0]],
                )
                if close or length > hard_limit:
                    chunks.append((current[0][0], current[-1][1]))
                    overlap = self._scorer.overlap_sentences([text[s:e] for s, e in current])
                    current = self._carry(current, overlap)
            current.append(sentence)

        if current:
            chunks.append((current[0][0], current[-1][1]))
        return chunks

    def _hybrid_chunks(self, text: str, config: SegmenterConfig) -> list[Span]:
        if len(paragraph_spans(text)) > 1:
            chunks = self._paragraph_chunks(text, config)
            reasonable = all(
                config.min_chunk_size <= end - start <= config.max_chunk_size
                for start, end in chunks
            )
            if reasonable:
                return chunks
            logger.debug("Paragraph chunks out of range, falling back to semantic")
        return self._semantic_chunks(text, config)
