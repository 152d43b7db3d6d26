"""Text helpers shared by segmentation and ranking."""

import re

WORD_RE = re.compile(r"\b\w+\b")

# Sentence = run of non-terminators followed by terminators, or a trailing tail.
_SENTENCE_RE = re.compile(r"[^.!?]*[.!?]+|[^.!?]+\Z")

# Boundary between sentences: whitespace after a terminator, before a capital.
_SEMANTIC_BOUNDARY_RE = re.compile(r"(?<=[.!?])\s+(?=[A-Z])|(?<=[.!?][\"'])\s+(?=[A-Z])")

_PARAGRAPH_BREAK_RE = re.compile(r"\n\s*\n")


def tokenize(text: str) -> list[str]:
    """Lowercase word tokens."""
    return WORD_RE.findall(text.lower())


def token_set(text: str) -> set[str]:
    return set(tokenize(text))


def jaccard_sets(a: set[str], b: set[str]) -> float:
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def jaccard(a: str, b: str) -> float:
    """Token-set Jaccard similarity; 0.0 when both texts have no tokens."""
    return jaccard_sets(token_set(a), token_set(b))


def _trimmed_span(text: str, start: int, end: int) -> tuple[int, int] | None:
    """Shrink [start, end) to exclude surrounding whitespace."""
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    if start >= end:
        return None
    return start, end


def sentence_spans(text: str, offset: int = 0) -> list[tuple[int, int]]:
    """Split on terminator punctuation, returning trimmed (start, end) spans."""
    spans = []
    for match in _SENTENCE_RE.finditer(text):
        span = _trimmed_span(text, match.start(), match.end())
        if span:
            spans.append((span[0] + offset, span[1] + offset))
    return spans


def semantic_sentence_spans(text: str) -> list[tuple[int, int]]:
    """Split at terminator + whitespace + capital letter boundaries."""
    spans = []
    cursor = 0
    for match in _SEMANTIC_BOUNDARY_RE.finditer(text):
        span = _trimmed_span(text, cursor, match.start())
        if span:
            spans.append(span)
        cursor = match.end()
    span = _trimmed_span(text, cursor, len(text))
    if span:
        spans.append(span)
    return spans


def paragraph_spans(text: str) -> list[tuple[int, int]]:
    """Split on blank lines, returning trimmed (start, end) spans."""
    spans = []
    cursor = 0
    for match in _PARAGRAPH_BREAK_RE.finditer(text):
        span = _trimmed_span(text, cursor, match.start())
        if span:
            spans.append(span)
        cursor = match.end()
    span = _trimmed_span(text, cursor, len(text))
    if span:
        spans.append(span)
    return spans


def split_sentences(text: str) -> list[str]:
    return [text[s:e] for s, e in sentence_spans(text)]
