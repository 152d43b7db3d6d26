"""Chunk scoring strategies used during segmentation."""

import re
from abc import ABC, abstractmethod
from collections import Counter
from typing import Optional, Sequence

from ..models.document import ChunkMetadata
from ..text import token_set

_KEYWORD_RE = re.compile(r"\b\w{4,}\b")
_HEADING_RE = re.compile(r"^[A-Z\s\d.]{10,}$", re.MULTILINE)
_NUMERIC_RE = re.compile(r"\d+%|\$\d+|\d+\.\d+")
_PARAGRAPH_GAP_RE = re.compile(r"\n\s*\n")


class ChunkScoringStrategy(ABC):
    """Base class for chunk metadata and break-point heuristics."""

    summary_length = 200

    @abstractmethod
    def keywords(self, text: str) -> list[str]:
        """Representative keywords for the chunk."""
        ...

    @abstractmethod
    def importance(self, text: str) -> float:
        """Importance score in [0, 1]."""
        ...

    @abstractmethod
    def coherence(self, sentences: Sequence[str]) -> float:
        """Coherence score in [0, 1] over consecutive sentences."""
        ...

    @abstractmethod
    def is_break_point(
        self, previous: Optional[str], sentence: Optional[str], gap: str = ""
    ) -> bool:
        """Whether the boundary before `sentence` is a natural place to split.

        Args:
            previous: Sentence ending the current chunk.
            sentence: Sentence that would start the next chunk (None at end).
            gap: Raw text between the two sentences.
        """
        ...

    @abstractmethod
    def overlap_sentences(self, sentences: Sequence[str]) -> int:
        """Sentences to carry into the next chunk after closing this one."""
        ...

    def metadata(self, text: str, sentences: Sequence[str]) -> ChunkMetadata:
        """Build chunk metadata."""
        if len(text) > self.summary_length:
            summary = text[: self.summary_length] + "..."
        else:
            summary = text
        return ChunkMetadata(
            keywords=tuple(self.keywords(text)),
            importance=self.importance(text),
            coherence=self.coherence(sentences),
            word_count=len(text.split()),
            summary=summary,
        )


class HeuristicScoringStrategy(ChunkScoringStrategy):
    """Word-frequency and pattern based heuristics."""

    IMPORTANT_WORDS = (
        "important",
        "key",
        "significant",
        "critical",
        "essential",
        "conclusion",
        "summary",
    )
    TRANSITION_WORDS = (
        "however",
        "moreover",
        "furthermore",
        "in addition",
        "on the other hand",
        "meanwhile",
        "subsequently",
    )
    CONNECTIVE_WORDS = ("therefore", "thus", "consequently", "furthermore", "moreover")

    def __init__(self, max_keywords: int = 10, heading_max_length: int = 50):
        """Initialize strategy.

        Args:
            max_keywords: Keywords kept per chunk.
            heading_max_length: Longest line still treated as a heading.
        """
        self._max_keywords = max_keywords
        self._heading_max_length = heading_max_length

    def keywords(self, text: str) -> list[str]:
        counts = Counter(_KEYWORD_RE.findall(text.lower()))
        return [word for word, _ in counts.most_common(self._max_keywords)]

    def importance(self, text: str) -> float:
        score = 0.0
        if _HEADING_RE.search(text):
            score += 0.3
        if _NUMERIC_RE.search(text):
            score += 0.2
        lowered = text.lower()
        for word in self.IMPORTANT_WORDS:
            if word in lowered:
                score += 0.1
        if "?" in text:
            score += 0.1
        return min(score, 1.0)

    def coherence(self, sentences: Sequence[str]) -> float:
        if len(sentences) < 2:
            return 1.0

        total = 0.0
        for first, second in zip(sentences, sentences[1:]):
            words_a = token_set(first)
            words_b = token_set(second)
            smaller = min(len(words_a), len(words_b))
            if smaller:
                total += len(words_a & words_b) / smaller

        return min(total / (len(sentences) - 1), 1.0)

    def is_break_point(
        self, previous: Optional[str], sentence: Optional[str], gap: str = ""
    ) -> bool:
        if not sentence:
            return True

        if _PARAGRAPH_GAP_RE.search(gap):
            return True

        lowered = sentence.lower()
        if any(lowered.startswith(word) for word in self.TRANSITION_WORDS):
            return True

        return self._is_heading(sentence)

    def _is_heading(self, sentence: str) -> bool:
        if len(sentence) >= self._heading_max_length:
            return False
        if sentence.endswith(":"):
            return True
        return any(c.isalpha() for c in sentence) and sentence == sentence.upper()

    def overlap_sentences(self, sentences: Sequence[str]) -> int:
        lowered = [s.lower() for s in sentences]
        has_connective = any(
            word in sentence for sentence in lowered for word in self.CONNECTIVE_WORDS
        )
        return 2 if has_connective else 1
