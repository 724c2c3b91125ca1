"""Scorer & ranker.

Applies a small multiplicative jitter to every candidate so refreshes do
not produce visually identical lists, sorts by score (stable, so ties keep
merge order) and truncates to the working set that the optional re-ranking
step is allowed to see.

The random source is injected; tests pass ``random.Random(seed)``.
"""

from __future__ import annotations

import random

from tunescout.config.engine import EngineConfig
from tunescout.models.recommendation import Candidate


class Ranker:
    def __init__(self, config: EngineConfig, rng: random.Random | None = None) -> None:
        self._config = config
        self._rng = rng or random.Random()

    def jitter(self, candidates: list[Candidate]) -> None:
        """``score *= floor + rand() * span`` in place, in list order."""
        floor = self._config.jitter_floor
        span = self._config.jitter_span
        for candidate in candidates:
            candidate.score *= floor + self._rng.random() * span

    def rank(self, candidates: list[Candidate]) -> list[Candidate]:
        """Jitter, sort descending and keep the top ``working_set_size``."""
        self.jitter(candidates)
        ordered = sorted(candidates, key=lambda c: c.score, reverse=True)
        return ordered[: self._config.working_set_size]
