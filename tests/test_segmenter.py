"""Tests for the Segmenter and its policies."""

import pytest

from docsearch.core.exceptions import ValidationError
from docsearch.core.services.segmenter import ChunkPolicy, Segmenter, SegmenterConfig
from docsearch.core.text import paragraph_spans, semantic_sentence_spans, sentence_spans

LONG_TEXT = " ".join(f"Sentence number {i} talks about topic {i % 7}." for i in range(60))

PARAGRAPHS = "\n\n".join(f"P{i} " + "x" * 56 + "." for i in range(4))


@pytest.fixture
def segmenter():
    return Segmenter()


def spans(drafts):
    return [(d.start, d.end) for d in drafts]


class TestSegmenterConfig:
    def test_defaults_are_valid(self):
        SegmenterConfig().validate()

    def test_overlap_must_be_smaller_than_chunk(self):
        with pytest.raises(ValidationError, match="overlap"):
            SegmenterConfig(max_chunk_size=100, min_chunk_size=10, overlap=100).validate()

    def test_min_size_cannot_exceed_max(self):
        with pytest.raises(ValidationError, match="min_chunk_size"):
            SegmenterConfig(max_chunk_size=100, min_chunk_size=200, overlap=10).validate()

    def test_non_positive_size_rejected(self):
        with pytest.raises(ValidationError):
            SegmenterConfig(max_chunk_size=0).validate()

    def test_invalid_config_raises_before_segmenting(self, segmenter):
        with pytest.raises(ValidationError):
            segmenter.segment("", SegmenterConfig(overlap=-1))


class TestSegmenterBasics:
    def test_empty_text(self, segmenter):
        assert segmenter.segment("") == []
        assert segmenter.segment("   \n\n  ") == []

    def test_draft_text_matches_offsets(self, segmenter):
        config = SegmenterConfig(
            policy=ChunkPolicy.SENTENCES, max_chunk_size=200, min_chunk_size=50,
            overlap=50, min_chunk_length=1,
        )
        for d in segmenter.segment(LONG_TEXT, config):
            assert d.text == LONG_TEXT[d.start:d.end]

    def test_short_chunks_dropped(self, segmenter):
        config = SegmenterConfig(policy=ChunkPolicy.SENTENCES, min_chunk_length=50)
        assert segmenter.segment("Too short.", config) == []

    def test_metadata_populated(self, segmenter):
        text = "IMPORTANT FINDINGS\n\nRevenue grew 15% in the key quarter. " * 3
        drafts = segmenter.segment(text, SegmenterConfig(min_chunk_length=1))
        assert drafts
        meta = drafts[0].metadata
        assert meta.word_count == len(drafts[0].text.split())
        assert meta.importance > 0
        assert "revenue" in meta.keywords


class TestSentencePolicy:
    def test_tiny_sentences_terminate_and_keep_last(self, segmenter):
        config = SegmenterConfig(
            policy=ChunkPolicy.SENTENCES,
            max_chunk_size=5,
            min_chunk_size=1,
            overlap=1,
            overlap_sentences=1,
            min_chunk_length=1,
        )
        drafts = segmenter.segment("A. B. C. D.", config)

        assert [d.text for d in drafts] == ["A. B.", "B. C.", "C. D."]
        starts = [d.start for d in drafts]
        assert starts == sorted(set(starts))
        assert drafts[-1].text.endswith("D.")

    def test_carries_overlap_sentences(self, segmenter):
        config = SegmenterConfig(
            policy=ChunkPolicy.SENTENCES, max_chunk_size=200, min_chunk_size=50,
            overlap=50, overlap_sentences=2, min_chunk_length=1,
        )
        drafts = segmenter.segment(LONG_TEXT, config)
        assert len(drafts) > 1
        for prev, nxt in zip(drafts, drafts[1:]):
            assert nxt.start < prev.end
            assert len(nxt.text) <= 200


class TestFixedWindowPolicy:
    def test_windows_overlap_by_configured_amount(self, segmenter):
        text = "abcdefghij" * 30
        config = SegmenterConfig(
            policy=ChunkPolicy.FIXED, max_chunk_size=100, min_chunk_size=10,
            overlap=20, min_chunk_length=1,
        )
        assert spans(segmenter.segment(text, config)) == [(0, 100), (80, 180), (160, 260), (240, 300)]

    def test_snaps_to_terminator(self, segmenter):
        text = "a" * 60 + ". " + "b" * 100
        config = SegmenterConfig(
            policy=ChunkPolicy.FIXED, max_chunk_size=100, min_chunk_size=10,
            overlap=10, min_chunk_length=1,
        )
        drafts = segmenter.segment(text, config)
        assert drafts[0].end == 61
        assert drafts[0].text.endswith(".")
        assert drafts[-1].end == len(text)


class TestParagraphPolicy:
    def test_accumulates_paragraphs_with_overlap(self, segmenter):
        config = SegmenterConfig(
            policy=ChunkPolicy.PARAGRAPHS, max_chunk_size=150, min_chunk_size=50,
            overlap=20, overlap_paragraphs=1,
        )
        drafts = segmenter.segment(PARAGRAPHS, config)

        assert spans(drafts) == [(0, 122), (62, 184), (124, 246)]
        assert drafts[1].text.startswith("P1")
        assert "P2" in drafts[1].text

    def test_oversized_paragraph_split_by_sentences(self, segmenter):
        config = SegmenterConfig(
            policy=ChunkPolicy.PARAGRAPHS, max_chunk_size=200, min_chunk_size=50,
            overlap=20, min_chunk_length=1,
        )
        drafts = segmenter.segment(LONG_TEXT, config)
        assert len(drafts) > 1
        assert all(len(d.text) <= 200 for d in drafts)


class TestSemanticPolicy:
    S1 = "The system stores every document in one index."
    S2 = "Each chunk keeps its offsets for later review."
    S3 = "However, retrieval needs both vector and keyword paths."
    S4 = "Results are fused before ranking."

    def test_breaks_at_transition_sentence(self, segmenter):
        text = " ".join([self.S1, self.S2, self.S3, self.S4])
        config = SegmenterConfig(
            policy=ChunkPolicy.SEMANTIC, max_chunk_size=100, min_chunk_size=10,
            overlap=10, min_chunk_length=1,
        )
        drafts = segmenter.segment(text, config)

        assert [d.text for d in drafts] == [
            f"{self.S1} {self.S2}",
            f"{self.S2} {self.S3} {self.S4}",
        ]

    def test_hard_limit_closes_chunk(self, segmenter):
        config = SegmenterConfig(
            policy=ChunkPolicy.SEMANTIC, max_chunk_size=100, min_chunk_size=10,
            overlap=10, min_chunk_length=1,
        )
        drafts = segmenter.segment(LONG_TEXT, config)
        assert len(drafts) > 1
        assert all(len(d.text) <= 2 * 100 for d in drafts)


class TestHybridPolicy:
    def test_uses_paragraphs_when_sizes_are_reasonable(self, segmenter):
        base = dict(max_chunk_size=150, min_chunk_size=100, overlap=20)
        hybrid = segmenter.segment(PARAGRAPHS, SegmenterConfig(policy=ChunkPolicy.HYBRID, **base))
        paragraphs = segmenter.segment(PARAGRAPHS, SegmenterConfig(policy=ChunkPolicy.PARAGRAPHS, **base))
        assert spans(hybrid) == spans(paragraphs)

    def test_falls_back_to_semantic_without_paragraphs(self, segmenter):
        base = dict(max_chunk_size=200, min_chunk_size=50, overlap=20, min_chunk_length=1)
        hybrid = segmenter.segment(LONG_TEXT, SegmenterConfig(policy=ChunkPolicy.HYBRID, **base))
        semantic = segmenter.segment(LONG_TEXT, SegmenterConfig(policy=ChunkPolicy.SEMANTIC, **base))
        assert spans(hybrid) == spans(semantic)


@pytest.mark.parametrize("policy", list(ChunkPolicy))
def test_spans_ordered_and_cover_text(segmenter, policy):
    config = SegmenterConfig(
        policy=policy, max_chunk_size=200, min_chunk_size=50, overlap=50, min_chunk_length=1,
    )
    drafts = segmenter.segment(LONG_TEXT, config)

    starts = [d.start for d in drafts]
    assert starts == sorted(starts)
    assert len(set(starts)) == len(starts)

    covered = set()
    for d in drafts:
        covered.update(range(d.start, d.end))
    missing = [i for i, c in enumerate(LONG_TEXT) if not c.isspace() and i not in covered]
    assert missing == []


def test_fixed_window_overlap_within_bound(segmenter):
    config = SegmenterConfig(
        policy=ChunkPolicy.FIXED, max_chunk_size=200, min_chunk_size=50, overlap=50, min_chunk_length=1,
    )
    drafts = segmenter.segment(LONG_TEXT, config)
    for prev, nxt in zip(drafts, drafts[1:]):
        assert 0 <= max(0, prev.end - nxt.start) <= 50


SHORT_PARAGRAPHS = "\n\n".join(f"P{i} " + "x" * 56 + "." for i in range(8))


@pytest.mark.parametrize(
    "policy, text, units_of, options, limit",
    [
        (ChunkPolicy.SENTENCES, LONG_TEXT, sentence_spans, {"overlap_sentences": 1}, 1),
        (ChunkPolicy.SENTENCES, LONG_TEXT, sentence_spans, {"overlap_sentences": 2}, 2),
        (ChunkPolicy.PARAGRAPHS, SHORT_PARAGRAPHS, paragraph_spans, {"overlap_paragraphs": 1}, 1),
        (ChunkPolicy.SEMANTIC, LONG_TEXT, semantic_sentence_spans, {}, 2),
    ],
)
def test_carried_units_within_policy_bound(segmenter, policy, text, units_of, options, limit):
    config = SegmenterConfig(
        policy=policy, max_chunk_size=150, min_chunk_size=50, overlap=20, min_chunk_length=1, **options,
    )
    drafts = segmenter.segment(text, config)
    units = units_of(text)

    assert len(drafts) > 1
    for prev, nxt in zip(drafts, drafts[1:]):
        carried = [u for u in units if u[0] >= nxt.start and u[1] <= prev.end]
        assert 0 <= len(carried) <= limit
