"""Unit tests for CandidateAggregator and Ranker."""

from __future__ import annotations

import random

import pytest

from tunescout.models.recommendation import Candidate, CandidatePool, ReasonKind
from tunescout.services.candidate_aggregator import CandidateAggregator
from tunescout.services.ranker import Ranker
from tests.conftest import config_with


def _candidate(
    track_id: str,
    artist: str = "Artist X",
    score: float = 0.2,
    source: ReasonKind = ReasonKind.ARTIST_AFFINITY,
) -> Candidate:
    return Candidate(
        track_id=track_id,
        title=f"Song {track_id}",
        artist=artist,
        thumbnail="",
        duration_label="",
        score=score,
        reason_tag="More from Artist X",
        source_weight=score,
        source=source,
    )


def _pool(source: ReasonKind, *candidates: Candidate) -> CandidatePool:
    return CandidatePool(source=source, candidates=list(candidates))


class TestCandidateAggregator:
    def test_first_occurrence_wins_across_pools(self) -> None:
        liked = _pool(
            ReasonKind.LIKED_SIMILARITY,
            _candidate("t1", artist="A", source=ReasonKind.LIKED_SIMILARITY),
        )
        artist = _pool(ReasonKind.ARTIST_AFFINITY, _candidate("t1", artist="A"), _candidate("t2", artist="B"))

        merged = CandidateAggregator(diversity_cap=4).merge([liked, artist])

        assert [c.track_id for c in merged] == ["t1", "t2"]
        assert merged[0].source is ReasonKind.LIKED_SIMILARITY

    def test_diversity_cap_spans_sources(self) -> None:
        first = _pool(ReasonKind.LIKED_SIMILARITY, *[_candidate(f"a{i}", artist="Artist A") for i in range(3)])
        second = _pool(
            ReasonKind.ARTIST_AFFINITY,
            *[_candidate(f"b{i}", artist="artist a feat. Guest") for i in range(3)],
        )

        merged = CandidateAggregator(diversity_cap=4).merge([first, second])

        assert [c.track_id for c in merged] == ["a0", "a1", "a2", "b0"]

    def test_excluded_ids_rejected(self) -> None:
        pool = _pool(ReasonKind.ARTIST_AFFINITY, _candidate("t1"), _candidate("t2"))
        merged = CandidateAggregator(diversity_cap=4).merge([pool], excluded_ids=frozenset({"t1"}))
        assert [c.track_id for c in merged] == ["t2"]

    def test_empty_pools(self) -> None:
        assert CandidateAggregator(diversity_cap=4).merge([]) == []


class TestRanker:
    def test_sorted_descending_and_truncated(self) -> None:
        ranker = Ranker(config_with(working_set_size=3), rng=random.Random(1))
        candidates = [_candidate(f"t{i}", score=0.1 * (i + 1)) for i in range(5)]

        ranked = ranker.rank(candidates)

        assert len(ranked) == 3
        assert [c.score for c in ranked] == sorted((c.score for c in ranked), reverse=True)
        assert ranked[0].track_id == "t4"

    def test_jitter_stays_in_band(self) -> None:
        ranker = Ranker(config_with(), rng=random.Random(42))
        candidates = [_candidate(f"t{i}", score=1.0) for i in range(50)]

        ranker.jitter(candidates)

        assert all(0.95 <= c.score <= 1.05 for c in candidates)
        assert len({c.score for c in candidates}) > 1

    def test_same_seed_same_order(self) -> None:
        def run(seed: int) -> list[str]:
            candidates = [_candidate(f"t{i}", score=0.5) for i in range(10)]
            return [c.track_id for c in Ranker(config_with(), rng=random.Random(seed)).rank(candidates)]

        assert run(9) == run(9)

    def test_no_jitter_keeps_merge_order_on_ties(self) -> None:
        ranker = Ranker(config_with(jitter_floor=1.0, jitter_span=0.0))
        candidates = [_candidate(f"t{i}", score=0.5) for i in range(4)]
        assert [c.track_id for c in ranker.rank(candidates)] == ["t0", "t1", "t2", "t3"]
        assert candidates[0].score == pytest.approx(0.5)
