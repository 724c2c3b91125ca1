"""LLM-backed re-ranking oracle.

Turns an :class:`OracleRequest` into a single prompt for any
:class:`ILLMProvider`, then parses the model's JSON reply back into an
:class:`OracleResponse`.

Expected reply shape::

    {
      "recommendations": [
        {"videoId": "...", "reason": "...", "relevanceScore": 0.0-1.0}
      ],
      "insights": {"userMusicTaste": "...", "recommendationStrategy": "...",
                   "diversityScore": 0.0-1.0}
    }

The reply may be wrapped in a markdown fence.  Entries for ids that were
not in the request, duplicate ids, and entries without a usable reason or
score are dropped.  A reply that is not a JSON object raises
:class:`OracleError`; the caller turns that into local-only ranking.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any

from tunescout.interfaces.llm_provider import ILLMProvider
from tunescout.interfaces.reranking_oracle import IRerankingOracle
from tunescout.models.recommendation import (
    OracleOpinion,
    OracleRequest,
    OracleResponse,
    TrackRef,
)
from tunescout.utils.errors import LLMError, OracleError, RateLimitError
from tunescout.utils.logging import get_logger

_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)

_SYSTEM_PROMPT = (
    "You are a music recommendation expert. You re-rank candidate songs for "
    "one listener based on their taste profile. You only ever refer to "
    "candidates by the ids you were given, and you answer with JSON only."
)


def _format_refs(refs: list[TrackRef]) -> str:
    if not refs:
        return "(none)"
    return "\n".join(f'- "{ref.title}" by {ref.artist}' for ref in refs)


def _coerce_score(raw: Any) -> float | None:
    """Read a relevance score; whole percentages (2-100) are scaled down.

    Values strictly between 1 and 2 are neither a fraction nor a
    plausible percentage and are rejected, as are NaN and infinities.
    """
    if isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    if 2.0 <= value <= 100.0:
        value /= 100.0
    if value < 0.0 or value > 1.0:
        return None
    return value


class LLMRerankingOracle(IRerankingOracle):
    """Re-ranking oracle that asks an LLM for per-candidate relevance.

    Parameters
    ----------
    llm_provider:
        Any text-completion backend.
    temperature:
        Sampling temperature for the completion.
    max_tokens:
        Upper bound on reply length.
    """

    def __init__(
        self,
        llm_provider: ILLMProvider,
        temperature: float = 0.4,
        max_tokens: int = 3000,
    ) -> None:
        self._llm = llm_provider
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # IRerankingOracle implementation
    # ------------------------------------------------------------------

    async def rerank(self, request: OracleRequest) -> OracleResponse:
        if not request.candidates:
            return OracleResponse()

        user_prompt = self._build_prompt(request)
        try:
            reply = await self._llm.complete(
                system_prompt=_SYSTEM_PROMPT,
                user_prompt=user_prompt,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except (LLMError, RateLimitError) as exc:
            raise OracleError(
                message=f"Oracle completion failed: {exc.message}",
                provider_name=self.get_provider_name(),
            ) from exc

        known_ids = {ref.track_id for ref in request.candidates}
        response = self._parse_reply(reply, known_ids)
        self._logger.info(
            "oracle_rerank_completed",
            candidates=len(request.candidates),
            opinions=len(response.recommendations),
        )
        return response

    def get_provider_name(self) -> str:
        return f"llm-oracle:{self._llm.get_provider_name()}"

    def is_available(self) -> bool:
        return self._llm.is_available()

    # ------------------------------------------------------------------
    # Prompt and parsing
    # ------------------------------------------------------------------

    @staticmethod
    def _build_prompt(request: OracleRequest) -> str:
        profile = request.profile
        candidates = "\n".join(
            f'{i + 1}. id={ref.track_id} | "{ref.title}" by {ref.artist}'
            for i, ref in enumerate(request.candidates)
        )
        context = f"\nAdditional context: {request.context}\n" if request.context else ""
        return (
            "Analyze this listener's taste and pick the candidates they will enjoy most.\n\n"
            f"Top artists: {', '.join(profile.top_artists) or '(none)'}\n"
            f"Top genres: {', '.join(profile.top_genres) or '(none)'}\n\n"
            f"Recently liked:\n{_format_refs(profile.liked_sample)}\n\n"
            f"Recently played:\n{_format_refs(profile.recent_sample)}\n"
            f"{context}\n"
            f"Candidates:\n{candidates}\n\n"
            "Return a JSON object with two keys:\n"
            '{"recommendations": [{"videoId": "<candidate id>", '
            '"reason": "one short sentence on why this fits", '
            '"relevanceScore": 0.0-1.0}], '
            '"insights": {"userMusicTaste": "...", "recommendationStrategy": "...", '
            '"diversityScore": 0.0-1.0}}\n\n'
            "Only use ids from the candidate list. Return ONLY the JSON object."
        )

    def _parse_reply(self, reply: str, known_ids: set[str]) -> OracleResponse:
        text = reply.strip()
        fence_match = _JSON_FENCE_RE.search(text)
        if fence_match:
            text = fence_match.group(1).strip()
        if not text.startswith("{"):
            brace_start = text.find("{")
            brace_end = text.rfind("}")
            if brace_start != -1 and brace_end > brace_start:
                text = text[brace_start : brace_end + 1]

        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as exc:
            raise OracleError(
                message=f"Oracle reply is not valid JSON: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        if not isinstance(parsed, dict):
            raise OracleError(
                message=f"Oracle reply is a {type(parsed).__name__}, expected an object",
                provider_name=self.get_provider_name(),
            )

        raw_items = parsed.get("recommendations")
        if not isinstance(raw_items, list):
            raise OracleError(
                message="Oracle reply has no recommendations list",
                provider_name=self.get_provider_name(),
            )

        opinions: list[OracleOpinion] = []
        seen: set[str] = set()
        dropped = 0
        for item in raw_items:
            if not isinstance(item, dict):
                dropped += 1
                continue
            track_id = str(item.get("videoId") or item.get("trackId") or item.get("track_id") or "")
            reason = str(item.get("reason") or item.get("reasonText") or "").strip()
            score = _coerce_score(item.get("relevanceScore", item.get("relevance_score")))
            if track_id not in known_ids or track_id in seen or not reason or score is None:
                dropped += 1
                continue
            seen.add(track_id)
            opinions.append(
                OracleOpinion(track_id=track_id, reason_text=reason, relevance_score=score)
            )

        if dropped:
            self._logger.debug("oracle_entries_dropped", dropped=dropped)

        insights = parsed.get("insights")
        return OracleResponse(
            recommendations=opinions,
            insights=insights if isinstance(insights, dict) else {},
        )
