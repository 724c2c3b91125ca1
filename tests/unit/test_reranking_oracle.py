"""Unit tests for LLMRerankingOracle prompt building and reply parsing."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from tunescout.models.recommendation import AffinitySummary, OracleRequest, TrackRef
from tunescout.providers.oracle.llm_reranking_oracle import LLMRerankingOracle, _coerce_score
from tunescout.utils.errors import LLMError, OracleError, RateLimitError


def _mock_llm(reply: str | None = None, side_effect: Exception | None = None) -> MagicMock:
    llm = MagicMock()
    llm.complete = AsyncMock(return_value=reply, side_effect=side_effect)
    llm.get_provider_name.return_value = "openai"
    llm.is_available.return_value = True
    return llm


def _request(*ids: str) -> OracleRequest:
    return OracleRequest(
        profile=AffinitySummary(
            top_artists=["Nujabes", "J Dilla"],
            top_genres=["hip hop"],
            liked_sample=[TrackRef(title="Aruarian Dance", artist="Nujabes")],
        ),
        candidates=[TrackRef(track_id=i, title=f"Song {i}", artist="Someone") for i in ids],
    )


def _reply(items: list[dict], insights: object = None) -> str:
    body: dict = {"recommendations": items}
    if insights is not None:
        body["insights"] = insights
    return json.dumps(body)


class TestLLMRerankingOracle:
    @pytest.mark.asyncio
    async def test_empty_candidates_skip_the_llm(self) -> None:
        llm = _mock_llm("{}")
        oracle = LLMRerankingOracle(llm_provider=llm)

        response = await oracle.rerank(_request())

        assert response.recommendations == []
        llm.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_prompt_carries_profile_and_ids_only(self) -> None:
        llm = _mock_llm(_reply([]))
        oracle = LLMRerankingOracle(llm_provider=llm)

        await oracle.rerank(_request("a1", "b2"))

        prompt = llm.complete.call_args.kwargs["user_prompt"]
        assert "Nujabes, J Dilla" in prompt
        assert "hip hop" in prompt
        assert "id=a1" in prompt and "id=b2" in prompt
        assert '"Aruarian Dance" by Nujabes' in prompt

    @pytest.mark.asyncio
    async def test_parses_fenced_reply(self) -> None:
        reply = "```json\n" + _reply(
            [{"videoId": "a1", "reason": "Mellow beats", "relevanceScore": 0.9}],
            insights={"userMusicTaste": "lofi"},
        ) + "\n```"
        oracle = LLMRerankingOracle(llm_provider=_mock_llm(reply))

        response = await oracle.rerank(_request("a1", "b2"))

        assert len(response.recommendations) == 1
        opinion = response.recommendations[0]
        assert opinion.track_id == "a1"
        assert opinion.reason_text == "Mellow beats"
        assert opinion.relevance_score == pytest.approx(0.9)
        assert response.insights == {"userMusicTaste": "lofi"}

    @pytest.mark.asyncio
    async def test_prose_around_json_is_tolerated(self) -> None:
        reply = "Sure! Here you go:\n" + _reply(
            [{"trackId": "b2", "reasonText": "Fits", "relevance_score": 0.4}]
        ) + "\nEnjoy."
        oracle = LLMRerankingOracle(llm_provider=_mock_llm(reply))

        response = await oracle.rerank(_request("a1", "b2"))

        assert [o.track_id for o in response.recommendations] == ["b2"]

    @pytest.mark.asyncio
    async def test_bad_entries_are_dropped(self) -> None:
        reply = _reply(
            [
                {"videoId": "a1", "reason": "Good", "relevanceScore": 80},
                {"videoId": "a1", "reason": "Duplicate", "relevanceScore": 0.1},
                {"videoId": "zz", "reason": "Unknown id", "relevanceScore": 0.5},
                {"videoId": "b2", "reason": "", "relevanceScore": 0.5},
                {"videoId": "c3", "reason": "Bad score", "relevanceScore": "high"},
                {"videoId": "d4", "reason": "Out of range", "relevanceScore": 250},
                "not a dict",
            ],
            insights=["not", "a", "dict"],
        )
        oracle = LLMRerankingOracle(llm_provider=_mock_llm(reply))

        response = await oracle.rerank(_request("a1", "b2", "c3", "d4"))

        assert [o.track_id for o in response.recommendations] == ["a1"]
        assert response.recommendations[0].relevance_score == pytest.approx(0.8)
        assert response.insights == {}

    @pytest.mark.asyncio
    async def test_ambiguous_and_non_finite_scores_are_dropped(self) -> None:
        reply = _reply(
            [
                {"videoId": "a1", "reason": "Between scales", "relevanceScore": 1.5},
                {"videoId": "b2", "reason": "Not a number", "relevanceScore": float("nan")},
                {"videoId": "c3", "reason": "Unbounded", "relevanceScore": float("inf")},
                {"videoId": "d4", "reason": "Fine", "relevanceScore": 0.4},
            ]
        )
        oracle = LLMRerankingOracle(llm_provider=_mock_llm(reply))

        response = await oracle.rerank(_request("a1", "b2", "c3", "d4"))

        assert [o.track_id for o in response.recommendations] == ["d4"]
        assert response.recommendations[0].relevance_score == pytest.approx(0.4)

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (0, 0.0),
            (0.75, 0.75),
            (1, 1.0),
            ("0.3", 0.3),
            (2, 0.02),
            (85, 0.85),
            (100, 1.0),
            (1.5, None),
            (1.99, None),
            (100.5, None),
            (-0.1, None),
            (float("nan"), None),
            (float("-inf"), None),
            ("nan", None),
            (True, None),
            (None, None),
        ],
    )
    def test_score_coercion(self, raw: object, expected: float | None) -> None:
        result = _coerce_score(raw)
        if expected is None:
            assert result is None
        else:
            assert result == pytest.approx(expected)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "reply",
        ["I cannot help with that", "[1, 2, 3]", '{"insights": {}}'],
    )
    async def test_unusable_reply_raises(self, reply: str) -> None:
        oracle = LLMRerankingOracle(llm_provider=_mock_llm(reply))
        with pytest.raises(OracleError):
            await oracle.rerank(_request("a1"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [LLMError("down"), RateLimitError("slow")])
    async def test_llm_failure_becomes_oracle_error(self, error: Exception) -> None:
        oracle = LLMRerankingOracle(llm_provider=_mock_llm(side_effect=error))
        with pytest.raises(OracleError) as exc_info:
            await oracle.rerank(_request("a1"))
        assert exc_info.value.provider_name == "llm-oracle:openai"

    def test_availability_follows_llm(self) -> None:
        llm = _mock_llm()
        llm.is_available.return_value = False
        assert LLMRerankingOracle(llm_provider=llm).is_available() is False
