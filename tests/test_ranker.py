"""Tests for ResultRanker: dedup, re-scoring, diversification."""

from itertools import combinations
from unittest.mock import Mock

import pytest

from docsearch.core.exceptions import ValidationError
from docsearch.core.models.search import CandidateResult, RankedResult, RetrievalMethod, SearchConfig
from docsearch.core.services.ranker import ResultRanker
from docsearch.core.strategies.relevance import HeuristicRelevanceStrategy, RelevanceStrategy
from docsearch.core.text import jaccard

from conftest import make_chunk, make_result

FUSED_ONLY = SearchConfig(enable_ranking=False)


@pytest.fixture
def ranker():
    return ResultRanker()


class TestDeduplication:
    def test_same_prefix_collapses(self, ranker):
        prefix = "p" * 100
        first = make_result(make_chunk("a.txt", 0, prefix + " tail one"), fused=0.9)
        second = make_result(make_chunk("a.txt", 1, prefix + " tail two"), fused=0.8)
        other = make_result(make_chunk("b.txt", 0, "something else entirely"), fused=0.7)

        results = ranker.rank([first, second, other], "q", FUSED_ONLY)

        assert [r.chunk.sequence_index for r in results if r.source_id == "a.txt"] == [0]
        assert len(results) == 2


class TestHeuristicRelevance:
    @pytest.fixture
    def strategy(self):
        return HeuristicRelevanceStrategy()

    def test_partial_term_match(self, strategy):
        result = make_result(make_chunk(text="the vector index is large", word_count=50), distance=0.8)
        # (1 - 0.8) + 0.3 * 1/2
        assert strategy.score("vector search", [result]) == [pytest.approx(0.35)]

    def test_word_count_penalty(self, strategy):
        result = make_result(make_chunk(text="the vector index is large", word_count=5), distance=0.8)
        assert strategy.score("vector search", [result]) == [pytest.approx(0.35 * 0.8)]

    def test_importance_and_phrase_bonus(self, strategy):
        chunk = make_chunk(text="fast vector search over chunks", importance=0.5, word_count=100)
        result = make_result(chunk, distance=0.9)
        # 0.1 + 0.3 + 0.2 * 0.5 + 0.3
        assert strategy.score("vector search", [result]) == [pytest.approx(0.8)]

    def test_certainty_used_without_distance(self, strategy):
        result = make_result(make_chunk(text="unrelated words", word_count=50), certainty=0.4)
        assert strategy.score("query", [result]) == [pytest.approx(0.4)]

    def test_default_similarity(self, strategy):
        result = make_result(make_chunk(text="unrelated words", word_count=50))
        assert strategy.score("query", [result]) == [pytest.approx(0.5)]

    def test_hybrid_score_used_without_distance(self, strategy):
        def hybrid(raw_score):
            candidate = CandidateResult(
                chunk=make_chunk(text="unrelated words", word_count=50),
                method=RetrievalMethod.COMBINED,
                raw_score=raw_score,
                rank=1,
            )
            return RankedResult(candidate=candidate, fused_score=raw_score)

        strong, weak = strategy.score("query", [hybrid(0.95), hybrid(0.05)])
        assert strong == pytest.approx(0.95)
        assert weak == pytest.approx(0.05)

    def test_hybrid_score_clamped(self, strategy):
        candidate = CandidateResult(
            chunk=make_chunk(text="unrelated words", word_count=50),
            method=RetrievalMethod.COMBINED,
            raw_score=3.2,
            rank=1,
        )
        assert strategy.score("query", [RankedResult(candidate=candidate)]) == [pytest.approx(1.0)]

    @pytest.mark.parametrize("distance", [-5.0, 3.0])
    def test_clamped(self, strategy, distance):
        chunk = make_chunk(text="vector search", importance=1.0, word_count=50)
        [score] = strategy.score("vector search", [make_result(chunk, distance=distance)])
        assert 0.0 <= score <= 1.0


class TestRank:
    def test_rescoring_reorders(self):
        strategy = Mock(spec=RelevanceStrategy)
        strategy.score.return_value = [0.1, 0.9]
        ranker = ResultRanker(strategy)
        low = make_result(make_chunk("a.txt", 0, "first chunk words"), fused=0.9)
        high = make_result(make_chunk("b.txt", 0, "second chunk other"), fused=0.2)

        results = ranker.rank([low, high], "q", SearchConfig())

        assert [r.source_id for r in results] == ["b.txt", "a.txt"]
        assert [r.relevance_score for r in results] == [0.9, 0.1]
        strategy.score.assert_called_once()

    def test_out_of_range_strategy_scores_clamped(self):
        strategy = Mock(spec=RelevanceStrategy)
        strategy.score.return_value = [7.5]
        ranker = ResultRanker(strategy)
        results = ranker.rank([make_result(make_chunk())], "q", SearchConfig())
        assert results[0].relevance_score == 1.0

    def test_diversification_drops_near_duplicates(self, ranker):
        a = make_result(make_chunk("a.txt", 0, "alpha beta gamma delta"), fused=0.9)
        b = make_result(make_chunk("b.txt", 0, "delta gamma beta alpha"), fused=0.8)
        c = make_result(make_chunk("c.txt", 0, "completely different words here"), fused=0.7)

        results = ranker.rank([a, b, c], "q", FUSED_ONLY)

        assert [r.source_id for r in results] == ["a.txt", "c.txt"]
        assert all(r.admitted for r in results)

    def test_first_result_always_admitted(self, ranker):
        only = make_result(make_chunk(text=""), fused=0.1)
        assert len(ranker.rank([only], "q", FUSED_ONLY.with_overrides(diversity_threshold=0.0))) == 1

    def test_admitted_pairs_below_threshold(self, ranker):
        texts = [
            "fusion merges vector and keyword lists",
            "fusion merges vector and keyword results",
            "ranking removes duplicate chunks",
            "ranking removes duplicate chunks quickly",
            "synthesis cites every source",
            "the store keeps chunk embeddings",
        ]
        pool = [
            make_result(make_chunk(f"{i}.txt", 0, t), fused=1.0 - i * 0.1)
            for i, t in enumerate(texts)
        ]
        results = ranker.rank(pool, "q", FUSED_ONLY.with_overrides(diversity_threshold=0.6))

        for x, y in combinations(results, 2):
            assert jaccard(x.content, y.content) < 0.6
        assert len(results) == 4

    def test_diversification_disabled(self, ranker):
        a = make_result(make_chunk("a.txt", 0, "alpha beta gamma delta"), fused=0.9)
        b = make_result(make_chunk("b.txt", 0, "delta gamma beta alpha"), fused=0.8)
        config = FUSED_ONLY.with_overrides(enable_diversification=False)
        assert len(ranker.rank([a, b], "q", config)) == 2

    def test_limit_caps_output(self, ranker):
        pool = [
            make_result(make_chunk(f"{i}.txt", 0, f"unique{i} token{i}"), fused=0.5)
            for i in range(5)
        ]
        results = ranker.rank(pool, "q", FUSED_ONLY.with_overrides(limit=2))
        assert [r.source_id for r in results] == ["0.txt", "1.txt"]

    def test_max_results_applied_before_diversification(self, ranker):
        pool = [
            make_result(make_chunk(f"{i}.txt", 0, f"unique{i} token{i}"), fused=1.0 - i * 0.1)
            for i in range(5)
        ]
        results = ranker.rank(pool, "q", FUSED_ONLY.with_overrides(max_results=3, limit=10))
        assert len(results) == 3

    def test_empty_pool(self, ranker):
        assert ranker.rank([], "q", SearchConfig()) == []

    @pytest.mark.parametrize("threshold", [-0.1, 1.1])
    def test_invalid_threshold(self, ranker, threshold):
        with pytest.raises(ValidationError):
            ranker.rank([], "q", SearchConfig(diversity_threshold=threshold))
